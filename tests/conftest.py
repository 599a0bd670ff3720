"""
Shared fixtures: a fresh in-memory database per test, one faculty with a
student and a coordinator, a second faculty, an admin and one program.
"""
from types import SimpleNamespace

import pytest

from config import TestConfig
from erasmus import create_app, db
from erasmus.models import ExchangeProgram, Faculty, Role, Semester, User
from erasmus.policy import AccessContext

PASSWORD = 'Lozinka123!'


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(email, role, faculty=None, first_name='Test', last_name='Korisnik'):
    user = User(email=email, role=role, faculty=faculty, first_name=first_name, last_name=last_name)
    user.set_password(PASSWORD)
    db.session.add(user)
    return user


@pytest.fixture
def seed(app):
    """Commits the base data set and returns the primary keys."""
    with app.app_context():
        etf = Faculty(name='Elektrotehnički fakultet')
        eko = Faculty(name='Ekonomski fakultet')
        db.session.add_all([etf, eko])

        admin = _user('admin@test.ba', Role.ADMIN, first_name='Admin', last_name='Sistema')
        student = _user('student@test.ba', Role.STUDENT, etf, first_name='Amra', last_name='Hodžić')
        other_student = _user('drugi@test.ba', Role.STUDENT, eko, first_name='Đorđe', last_name='Šarić')
        coordinator = _user('koordinator@test.ba', Role.COORDINATOR, etf, first_name='Emir', last_name='Čaušević')
        other_coordinator = _user('eko.koordinator@test.ba', Role.COORDINATOR, eko)
        lonely_coordinator = _user('bez.fakulteta@test.ba', Role.COORDINATOR, None)

        program = ExchangeProgram(university='Universität Wien', academic_year='2025/2026',
                                  semester=Semester.WINTER, description='Tehničke nauke')
        db.session.add(program)
        db.session.commit()

        return SimpleNamespace(
            etf_id=etf.id, eko_id=eko.id,
            admin_id=admin.id, student_id=student.id, other_student_id=other_student.id,
            coordinator_id=coordinator.id, other_coordinator_id=other_coordinator.id,
            lonely_coordinator_id=lonely_coordinator.id,
            program_id=program.id,
        )


@pytest.fixture
def request_ctx(app, seed):
    """Pushes a request context for calling services directly."""
    with app.test_request_context():
        yield seed


def context_for(user_id):
    return AccessContext.from_user(db.session.get(User, user_id))


def rows(*pairs):
    return [{'id': 0, 'home_course': home, 'accepting_course': accepting} for home, accepting in pairs]


DOCS = {'cv': True, 'motivation_letter': True, 'learning_agreement': False}


def login(client, email, password=PASSWORD):
    return client.post('/auth/login', data={'email': email, 'password': password}, follow_redirects=False)


def logout(client):
    return client.get('/auth/logout', follow_redirects=False)
