"""
Application lifecycle: submit, edit, reapply, review, subject maintenance
and the maintenance jobs, exercised through the service layer.
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import text

from conftest import DOCS, context_for, rows
from erasmus import db, services
from erasmus.models import (Application, ApplicationStatus, AuditLog, Documentation, ExchangeProgram,
                            Notification, Semester, SubjectProposal, SubjectRow, SubjectStatus)


def _submit(seed, pairs=(('Matematika 1', 'Mathematik 1'), ('Fizika', 'Physik'))):
    program = db.session.get(ExchangeProgram, seed.program_id)
    application, message = services.submit_application(
        context_for(seed.student_id), program, DOCS, rows(*pairs))
    assert application is not None, message
    return application


# =============================================================================
# Submit
# =============================================================================

def test_submit_creates_application_with_documentation_and_rows(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    assert application.status == ApplicationStatus.IN_PROGRESS
    assert application.documentation.cv is True
    assert application.documentation.learning_agreement is False
    assert [r.home_course for r in application.subject_rows] == ['Matematika 1', 'Fizika']
    assert all(r.status == SubjectStatus.PENDING for r in application.subject_rows)
    assert application.subject_proposal.program_id == seed.program_id
    assert AuditLog.query.filter_by(action='Submit Application').count() == 1


def test_submit_notifies_coordinators_of_the_student_faculty(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    notified = {n.user_id for n in Notification.query.filter_by(application_id=application.id)}
    assert notified == {seed.coordinator_id}


def test_second_submit_for_same_program_is_refused(request_ctx):
    seed = request_ctx
    _submit(seed)
    program = db.session.get(ExchangeProgram, seed.program_id)

    application, message = services.submit_application(
        context_for(seed.student_id), program, DOCS, rows(('A', 'B')))

    assert application is None
    assert message == services.ALREADY_APPLIED
    assert Application.query.count() == 1


def test_unique_index_rejects_duplicate_when_precheck_is_bypassed(request_ctx, monkeypatch):
    seed = request_ctx
    _submit(seed)
    real_exists = services.application_exists
    calls = []

    def blind_prechecks(student_id, program_id):
        # Both checks before the insert miss; the one after the rollback sees the row.
        calls.append(program_id)
        return len(calls) > 2 and real_exists(student_id, program_id)

    monkeypatch.setattr(services, 'application_exists', blind_prechecks)
    program = db.session.get(ExchangeProgram, seed.program_id)

    application, message = services.submit_application(
        context_for(seed.student_id), program, DOCS, rows(('A', 'B')))

    assert application is None
    assert message == services.ALREADY_APPLIED
    assert len(calls) == 3
    assert Application.query.count() == 1
    assert Documentation.query.count() == 1


def test_constraint_failure_other_than_duplicate_is_a_save_error(request_ctx):
    seed = request_ctx
    # Never persisted, as if deleted by an Admin while the student was filling in the form.
    missing = ExchangeProgram(id=9999, university='Univerzitet u Grazu', academic_year='2025/2026',
                              semester=Semester.WINTER)

    application, message = services.submit_application(
        context_for(seed.student_id), missing, DOCS, rows(('A', 'B')))

    assert application is None
    assert message == services.SAVE_FAILED
    assert Application.query.count() == 0
    assert SubjectProposal.query.count() == 0


def test_submit_without_subjects_is_refused(request_ctx):
    seed = request_ctx
    program = db.session.get(ExchangeProgram, seed.program_id)
    blank = [{'id': 0, 'home_course': '  ', 'accepting_course': ''}]

    application, message = services.submit_application(context_for(seed.student_id), program, DOCS, blank)

    assert application is None
    assert message == services.NO_SUBJECTS
    assert Application.query.count() == 0


def test_half_filled_subject_row_is_refused(request_ctx):
    seed = request_ctx
    program = db.session.get(ExchangeProgram, seed.program_id)

    application, message = services.submit_application(
        context_for(seed.student_id), program, DOCS, rows(('Matematika', '')))

    assert application is None
    assert message == services.INCOMPLETE_SUBJECT


def test_blank_rows_are_ignored(request_ctx):
    seed = request_ctx
    application = _submit(seed, pairs=(('Matematika', 'Mathematik'), ('', '')))
    assert len(application.subject_rows) == 1


def test_only_students_can_submit(request_ctx):
    seed = request_ctx
    program = db.session.get(ExchangeProgram, seed.program_id)

    application, message = services.submit_application(
        context_for(seed.coordinator_id), program, DOCS, rows(('A', 'B')))

    assert application is None
    assert message == services.FORBIDDEN


# =============================================================================
# Edit and reapply
# =============================================================================

def test_edit_reconciles_rows_and_sends_successful_application_back_to_review(request_ctx):
    seed = request_ctx
    application = _submit(seed, pairs=(('A', 'A1'), ('B', 'B1'), ('C', 'C1')))
    row_a, row_b, row_c = application.subject_rows
    for row in (row_a, row_b, row_c):
        row.status = SubjectStatus.APPROVED
    application.status = ApplicationStatus.SUCCESSFUL
    db.session.commit()
    row_c_id = row_c.id

    edited = [
        {'id': row_a.id, 'home_course': 'A', 'accepting_course': 'A2'},
        {'id': row_b.id, 'home_course': 'B', 'accepting_course': 'B1'},
        {'id': 0, 'home_course': 'D', 'accepting_course': 'D1'},
    ]
    ok, message = services.edit_application(context_for(seed.student_id), application,
                                            {'cv': False}, edited)

    assert ok, message
    assert application.status == ApplicationStatus.IN_PROGRESS
    by_home = {r.home_course: r for r in application.subject_rows}
    assert set(by_home) == {'A', 'B', 'D'}
    assert by_home['A'].accepting_course == 'A2'
    assert by_home['A'].status == SubjectStatus.PENDING
    assert by_home['B'].status == SubjectStatus.APPROVED
    assert by_home['D'].status == SubjectStatus.PENDING
    assert application.documentation.cv is False
    assert db.session.get(SubjectRow, row_c_id) is None


def test_edit_with_foreign_row_id_is_refused(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    ok, message = services.edit_application(
        context_for(seed.student_id), application, DOCS,
        [{'id': 9999, 'home_course': 'X', 'accepting_course': 'Y'}])

    assert not ok
    assert message == services.UNKNOWN_SUBJECT
    assert len(application.subject_rows) == 2


def test_edit_with_repeated_row_id_is_refused(request_ctx):
    seed = request_ctx
    application = _submit(seed)
    first_id = application.subject_rows[0].id

    ok, message = services.edit_application(
        context_for(seed.student_id), application, DOCS,
        [{'id': first_id, 'home_course': 'X', 'accepting_course': 'X1'},
         {'id': first_id, 'home_course': 'Y', 'accepting_course': 'Y1'}])

    assert not ok
    assert message == services.DUPLICATE_SUBJECT
    assert [(r.home_course, r.accepting_course) for r in application.subject_rows] == [
        ('Matematika 1', 'Mathematik 1'), ('Fizika', 'Physik')]


def test_unsuccessful_application_cannot_be_edited(request_ctx):
    seed = request_ctx
    application = _submit(seed)
    application.status = ApplicationStatus.UNSUCCESSFUL
    db.session.commit()

    ok, message = services.edit_application(context_for(seed.student_id), application, DOCS, rows(('A', 'B')))

    assert not ok
    assert message == services.NOT_EDITABLE


def test_other_student_cannot_edit(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    ok, message = services.edit_application(context_for(seed.other_student_id), application, DOCS, rows(('A', 'B')))

    assert not ok
    assert message == services.FORBIDDEN


def test_reapply_replaces_rows_and_resets_status(request_ctx):
    seed = request_ctx
    application = _submit(seed)
    for row in application.subject_rows:
        row.status = SubjectStatus.REJECTED
    application.status = ApplicationStatus.UNSUCCESSFUL
    db.session.commit()
    old_ids = {r.id for r in application.subject_rows}

    ok, message = services.reapply_application(
        context_for(seed.student_id), application, DOCS, rows(('Novi', 'Neu')))

    assert ok, message
    assert application.status == ApplicationStatus.IN_PROGRESS
    assert [(r.home_course, r.status) for r in application.subject_rows] == [('Novi', SubjectStatus.PENDING)]
    assert all(db.session.get(SubjectRow, row_id) is None for row_id in old_ids)
    assert Application.query.count() == 1


def test_reapply_requires_unsuccessful_status(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    ok, message = services.reapply_application(context_for(seed.student_id), application, DOCS, rows(('A', 'B')))

    assert not ok
    assert message == services.NOT_REAPPLICABLE


# =============================================================================
# Review
# =============================================================================

def test_status_change_notifies_student(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    ok, message = services.update_application_status(context_for(seed.coordinator_id), application, 'SUCCESSFUL')

    assert ok, message
    assert application.status == ApplicationStatus.SUCCESSFUL
    student_notes = Notification.query.filter_by(user_id=seed.student_id).all()
    assert len(student_notes) == 1
    assert student_notes[0].application_id == application.id


def test_admin_can_change_status_of_any_faculty(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    ok, _ = services.update_application_status(context_for(seed.admin_id), application, ApplicationStatus.UNSUCCESSFUL)

    assert ok
    assert application.status == ApplicationStatus.UNSUCCESSFUL


def test_coordinator_of_other_faculty_cannot_review(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    ok, message = services.update_application_status(
        context_for(seed.other_coordinator_id), application, 'SUCCESSFUL')

    assert not ok
    assert message == services.FORBIDDEN
    assert application.status == ApplicationStatus.IN_PROGRESS


def test_unknown_application_status_is_refused(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    ok, _ = services.update_application_status(context_for(seed.coordinator_id), application, 'ARCHIVED')

    assert not ok
    assert application.status == ApplicationStatus.IN_PROGRESS


def test_subject_status_accepts_only_decisions(request_ctx):
    seed = request_ctx
    application = _submit(seed)
    row = application.subject_rows[0]
    coordinator = context_for(seed.coordinator_id)

    assert services.update_subject_status(coordinator, row, 'APPROVED')[0]
    assert row.status == SubjectStatus.APPROVED

    ok, message = services.update_subject_status(coordinator, row, 'PENDING')
    assert not ok
    assert message == services.INVALID_SUBJECT_STATUS
    assert row.status == SubjectStatus.APPROVED


def test_admin_does_not_manage_subject_rows(request_ctx):
    seed = request_ctx
    application = _submit(seed)
    row = application.subject_rows[0]

    ok, message = services.update_subject_status(context_for(seed.admin_id), row, 'APPROVED')

    assert not ok
    assert message == services.FORBIDDEN


def test_coordinator_row_maintenance(request_ctx):
    seed = request_ctx
    application = _submit(seed)
    coordinator = context_for(seed.coordinator_id)

    row, message = services.add_subject_row(coordinator, application, 'Hemija', 'Chemie')
    assert row is not None, message
    assert len(application.subject_rows) == 3

    ok, _ = services.edit_subject_row(coordinator, row, 'Hemija 2', 'Chemie 2')
    assert ok
    assert db.session.get(SubjectRow, row.id).home_course == 'Hemija 2'

    ok, message = services.edit_subject_row(coordinator, row, 'Hemija 2', '')
    assert not ok
    assert message == services.INCOMPLETE_SUBJECT

    row_id = row.id
    ok, _ = services.delete_subject_row(coordinator, row)
    assert ok
    assert db.session.get(SubjectRow, row_id) is None
    assert len(application.subject_rows) == 2


def test_send_notification_is_admin_only(request_ctx):
    seed = request_ctx
    application = _submit(seed)

    notification, _ = services.send_notification(context_for(seed.coordinator_id), application, 'Poruka')
    assert notification is None

    notification, _ = services.send_notification(context_for(seed.admin_id), application, '  ')
    assert notification is None

    notification, _ = services.send_notification(context_for(seed.admin_id), application, 'Donesite originale.')
    assert notification is not None
    assert notification.user_id == seed.student_id


def test_delete_application_removes_owned_rows_and_keeps_notifications(request_ctx):
    seed = request_ctx
    application = _submit(seed)
    application_id = application.id

    ok, _ = services.delete_application(context_for(seed.admin_id), application)

    assert ok
    assert db.session.get(Application, application_id) is None
    assert Documentation.query.count() == 0
    assert SubjectProposal.query.count() == 0
    assert SubjectRow.query.count() == 0
    remaining = Notification.query.all()
    assert remaining
    assert all(n.application_id is None for n in remaining)


# =============================================================================
# Maintenance jobs
# =============================================================================

def test_remove_duplicate_applications_keeps_earliest(request_ctx):
    seed = request_ctx
    # Simulates data that predates the unique index.
    db.session.execute(text('DROP INDEX ix_application_student_program'))
    db.session.commit()

    base = datetime(2025, 1, 10, 12, 0, 0)
    later = Application(student_id=seed.student_id, program_id=seed.program_id,
                        status=ApplicationStatus.IN_PROGRESS, date_created=base + timedelta(days=1))
    earliest = Application(student_id=seed.student_id, program_id=seed.program_id,
                           status=ApplicationStatus.IN_PROGRESS, date_created=base)
    tie = Application(student_id=seed.student_id, program_id=seed.program_id,
                      status=ApplicationStatus.IN_PROGRESS, date_created=base)
    unrelated = Application(student_id=seed.other_student_id, program_id=seed.program_id,
                            status=ApplicationStatus.IN_PROGRESS, date_created=base)
    db.session.add_all([later, earliest, tie, unrelated])
    db.session.commit()
    earliest_id, unrelated_id = earliest.id, unrelated.id

    removed = services.remove_duplicate_applications()

    assert removed == 2
    assert sorted(a.id for a in Application.query.all()) == sorted([earliest_id, unrelated_id])
    assert services.remove_duplicate_applications() == 0


def test_clean_old_notifications_deletes_only_old_read_ones(request_ctx):
    seed = request_ctx
    old = datetime.utcnow() - timedelta(days=40)
    db.session.add_all([
        Notification(user_id=seed.student_id, content='stara procitana', is_read=True, created_at=old),
        Notification(user_id=seed.student_id, content='stara neprocitana', is_read=False, created_at=old),
        Notification(user_id=seed.student_id, content='nova procitana', is_read=True, created_at=datetime.utcnow()),
    ])
    db.session.commit()

    assert services.clean_old_notifications(days_old=30) == 1
    assert sorted(n.content for n in Notification.query.all()) == ['nova procitana', 'stara neprocitana']


@pytest.mark.parametrize('raw', [None, [], [{'home_course': '', 'accepting_course': None}]])
def test_clean_subject_rows_requires_at_least_one_row(raw):
    with pytest.raises(services.SubjectInputError):
        services.clean_subject_rows(raw)
