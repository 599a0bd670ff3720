"""Diacritic-insensitive search over programs and applications."""
import pytest

from conftest import DOCS, context_for, rows
from erasmus import db, services
from erasmus.models import ApplicationStatus, ExchangeProgram, Semester
from erasmus.policy import visible_applications
from erasmus.utils import (group_by_status, normalize_text, search_applications, search_programs,
                           suggestions_for)


@pytest.mark.parametrize('raw, expected', [
    ('Šarić', 'saric'),
    ('ĐORĐE  Čaušević', 'dordecausevic'),
    ('  Universität   Wien ', 'universitatwien'),
    ('', ''),
    (None, ''),
])
def test_normalize_text(raw, expected):
    assert normalize_text(raw) == expected


def test_normalize_text_can_keep_spaces():
    assert normalize_text('U  toku', remove_spaces=False) == 'u toku'


@pytest.fixture
def catalog(request_ctx):
    seed = request_ctx
    summer = ExchangeProgram(university='Università di Bologna', academic_year='2026/2027',
                             semester=Semester.SUMMER, description='Ekonomija i menadžment')
    db.session.add(summer)
    db.session.commit()

    winter = db.session.get(ExchangeProgram, seed.program_id)
    first, _ = services.submit_application(context_for(seed.student_id), winter, DOCS,
                                           rows(('Električni krugovi', 'Elektrotechnik')))
    second, _ = services.submit_application(context_for(seed.other_student_id), summer, DOCS,
                                            rows(('Mikroekonomija', 'Microeconomia')))
    second.status = ApplicationStatus.UNSUCCESSFUL
    db.session.commit()
    return seed, winter, summer, first, second


def _all_programs():
    return ExchangeProgram.query.order_by(ExchangeProgram.id).all()


def test_program_search_folds_diacritics_and_case(catalog):
    _, winter, summer, _, _ = catalog
    assert search_programs(_all_programs(), 'UNIVERSITAT') == [winter]
    assert search_programs(_all_programs(), 'menadzment') == [summer]
    assert search_programs(_all_programs(), 'di bol') == [summer]


def test_program_search_by_semester_word_and_filter(catalog):
    _, winter, summer, _, _ = catalog
    assert search_programs(_all_programs(), 'zimski') == [winter]
    assert search_programs(_all_programs(), 'summer') == [summer]
    assert search_programs(_all_programs(), semester='2') == [summer]
    assert search_programs(_all_programs(), 'wien', semester=Semester.SUMMER) == []


def test_unknown_semester_matches_nothing(catalog):
    seed, _, _, _, _ = catalog
    applications = visible_applications(context_for(seed.admin_id)).all()

    assert search_programs(_all_programs(), None, 3) == []
    assert search_programs(_all_programs(), 'wien', semester='ljetni') == []
    assert search_applications(applications, semester=3) == []


def test_program_search_by_academic_year(catalog):
    _, _, summer, _, _ = catalog
    assert search_programs(_all_programs(), '2026/2027') == [summer]


def test_empty_query_returns_everything(catalog):
    assert len(search_programs(_all_programs(), '   ')) == 2


def test_application_search_by_student_name_and_course(catalog):
    seed, _, _, first, second = catalog
    applications = visible_applications(context_for(seed.admin_id)).all()

    assert search_applications(applications, 'sarić') == [second]
    assert search_applications(applications, 'elektricni') == [first]
    assert search_applications(applications, 'drugi@test') == [second]


def test_application_search_by_status_words(catalog):
    seed, _, _, first, second = catalog
    applications = visible_applications(context_for(seed.admin_id)).all()

    assert search_applications(applications, 'u toku') == [first]
    assert search_applications(applications, 'neuspjesna') == [second]
    assert search_applications(applications, status='UNSUCCESSFUL') == [second]


def test_unknown_status_filter_is_ignored(catalog):
    seed, _, _, _, _ = catalog
    applications = visible_applications(context_for(seed.admin_id)).all()
    assert len(search_applications(applications, status='archived')) == 2


def test_application_search_respects_role_scope(catalog):
    seed, _, _, first, _ = catalog
    applications = visible_applications(context_for(seed.coordinator_id)).all()
    assert search_applications(applications, 'mikro') == []
    assert search_applications(applications, 'krug') == [first]


def test_group_by_status_has_every_bucket(catalog):
    seed, _, _, first, second = catalog
    grouped = group_by_status(visible_applications(context_for(seed.admin_id)).all())

    assert list(grouped) == list(ApplicationStatus)
    assert grouped[ApplicationStatus.IN_PROGRESS] == [first]
    assert grouped[ApplicationStatus.SUCCESSFUL] == []
    assert grouped[ApplicationStatus.UNSUCCESSFUL] == [second]


def test_suggestions():
    universities = ['Universität Wien', 'Università di Bologna', 'Uniwersytet Warszawski']
    years = ['2025/2026', '2026/2027']

    assert suggestions_for('u', universities, years) == []
    assert suggestions_for('univ', universities, years) == ['Università di Bologna', 'Universität Wien']
    assert suggestions_for('2026', universities, years) == ['2025/2026', '2026/2027']
    assert suggestions_for('sar', universities, years, ['Đorđe Šarić']) == ['Đorđe Šarić']


def test_suggestions_are_capped():
    universities = [f'Univerzitet {i}' for i in range(8)]
    years = [f'20{i}0/20{i}1' for i in range(5)]
    names = [f'Uni Student {i}' for i in range(5)]

    result = suggestions_for('un', universities, years, names)

    assert len(result) == 8
    assert result[:5] == [f'Univerzitet {i}' for i in range(5)]
