# FILE: erasmus/utils.py
import re
import unicodedata

from .models import ApplicationStatus, Semester

# Letters of the Bosnian/Croatian/Serbian alphabet that must fold to ASCII.
# 'đ' has no decomposition, so NFD alone does not handle it.
DIACRITIC_MAP = str.maketrans({
    'š': 's', 'đ': 'd', 'č': 'c', 'ć': 'c', 'ž': 'z',
    'Š': 's', 'Đ': 'd', 'Č': 'c', 'Ć': 'c', 'Ž': 'z',
})

SEMESTER_WORDS = {
    Semester.WINTER: ('winter', 'zimski'),
    Semester.SUMMER: ('summer', 'ljetni'),
}

STATUS_WORDS = {
    ApplicationStatus.IN_PROGRESS: ('in_progress', 'in progress', 'u toku'),
    ApplicationStatus.SUCCESSFUL: ('successful', 'approved', 'uspjesna'),
    ApplicationStatus.UNSUCCESSFUL: ('unsuccessful', 'rejected', 'neuspjesna'),
}

_WHITESPACE = re.compile(r'\s+')


def remove_diacritics(text):
    text = text.translate(DIACRITIC_MAP)
    decomposed = unicodedata.normalize('NFD', text)
    stripped = ''.join(c for c in decomposed if unicodedata.category(c) != 'Mn')
    return unicodedata.normalize('NFC', stripped)


def normalize_text(text, remove_spaces=True):
    """Lowercases, folds diacritics and collapses whitespace. Spaces are dropped unless remove_spaces is False."""
    if not text:
        return ''
    text = remove_diacritics(str(text).lower())
    text = _WHITESPACE.sub(' ', text).strip()
    if remove_spaces:
        text = text.replace(' ', '')
    return text


def _contains(value, needle):
    return needle in normalize_text(value)


def _word_matches(words, needle):
    # The query matches a keyword when it is a fragment of it ("zim" -> "zimski").
    return any(needle in normalize_text(word) for word in words)


def program_matches(program, needle):
    semester = program.semester
    return (
        _contains(program.university, needle)
        or _contains(program.academic_year, needle)
        or _contains(program.description, needle)
        or (semester is not None and (
            _contains(str(semester.value), needle)
            or _word_matches(SEMESTER_WORDS[semester], needle)))
    )


def application_matches(application, needle):
    program = application.program
    if program is not None and program_matches(program, needle):
        return True
    if _word_matches(STATUS_WORDS[application.status], needle):
        return True
    student = application.student
    if student is not None and (_contains(student.email, needle) or _contains(student.full_name, needle)):
        return True
    return any(
        _contains(row.home_course, needle) or _contains(row.accepting_course, needle)
        for row in application.subject_rows
    )


def parse_semester(value):
    """Returns None for a blank value; raises ValueError for an unknown semester."""
    if value in (None, ''):
        return None
    if isinstance(value, Semester):
        return value
    try:
        return Semester(int(value))
    except TypeError:
        raise ValueError(f"Unknown semester: {value!r}")


def search_programs(programs, query=None, semester=None):
    """Linear in-memory filter over programs. An unknown semester matches nothing."""
    try:
        semester = parse_semester(semester)
    except ValueError:
        return []
    results = list(programs)
    if semester is not None:
        results = [p for p in results if p.semester == semester]
    needle = normalize_text(query)
    if needle:
        results = [p for p in results if program_matches(p, needle)]
    return results


def search_applications(applications, query=None, semester=None, status=None):
    """
    Filters already role-scoped applications.

    An unknown ``status`` is ignored rather than treated as "match nothing",
    while an unknown ``semester`` matches nothing.
    """
    try:
        semester = parse_semester(semester)
    except ValueError:
        return []
    status = ApplicationStatus.parse(status) if status else None
    results = list(applications)
    if status is not None:
        results = [a for a in results if a.status == status]
    needle = normalize_text(query)
    if needle:
        results = [a for a in results if application_matches(a, needle)]
    if semester is not None:
        results = [a for a in results if a.program is not None and a.program.semester == semester]
    return results


def group_by_status(applications):
    grouped = {status: [] for status in ApplicationStatus}
    for application in applications:
        grouped[application.status].append(application)
    return grouped


def suggestions_for(query, universities, academic_years, student_names=()):
    """Builds the autocomplete list: up to 5 universities, 3 years, 3 names, 10 overall."""
    if not query or len(query.strip()) < 2:
        return []
    needle = normalize_text(query)
    picked = []

    def take(candidates, limit):
        for value in [c for c in candidates if c and needle in normalize_text(c)][:limit]:
            if value not in picked:
                picked.append(value)

    take(sorted(set(universities)), 5)
    take(sorted(set(academic_years)), 3)
    take(student_names, 3)
    return picked[:10]
