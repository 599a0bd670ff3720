# FILE: erasmus/models.py
import enum
import sqlite3
from datetime import datetime
from erasmus import login
from erasmus import db
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from sqlalchemy import event
from sqlalchemy.engine import Engine


class Role:
    """Role tags stored on ``User.role``."""
    STUDENT = 'Student'
    COORDINATOR = 'ECTSKoordinator'
    ADMIN = 'Admin'

    ALL = (STUDENT, COORDINATOR, ADMIN)
    STAFF = (COORDINATOR, ADMIN)


class Semester(enum.Enum):
    WINTER = 1
    SUMMER = 2

    @property
    def label(self):
        return 'Winter' if self is Semester.WINTER else 'Summer'

    @classmethod
    def choices(cls):
        return [(s.value, s.label) for s in cls]


class ApplicationStatus(enum.Enum):
    IN_PROGRESS = 0
    SUCCESSFUL = 1
    UNSUCCESSFUL = 2

    @property
    def label(self):
        return {
            ApplicationStatus.IN_PROGRESS: 'In progress',
            ApplicationStatus.SUCCESSFUL: 'Successful',
            ApplicationStatus.UNSUCCESSFUL: 'Unsuccessful',
        }[self]

    @classmethod
    def parse(cls, value):
        """Looks a status up by name (case-insensitive) or numeric value. Returns None if unknown."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        if text.isdigit():
            try:
                return cls(int(text))
            except ValueError:
                return None
        return cls.__members__.get(text.upper().replace(' ', '_'))


class SubjectStatus(enum.Enum):
    PENDING = 0
    APPROVED = 1
    REJECTED = 2

    @property
    def label(self):
        return self.name.capitalize()


class Faculty(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), unique=True, nullable=False)

    members = db.relationship('User', back_populates='faculty', lazy='dynamic')

    def __repr__(self): return self.name


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), index=True, unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    first_name = db.Column(db.String(64), nullable=False, default='')
    last_name = db.Column(db.String(64), nullable=False, default='')
    role = db.Column(db.String(20), nullable=False, default=Role.STUDENT, index=True)
    faculty_id = db.Column(db.Integer, db.ForeignKey('faculty.id'), nullable=True, index=True)
    date_created = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    faculty = db.relationship('Faculty', back_populates='members')
    applications = db.relationship('Application', back_populates='student', lazy='dynamic')
    notifications = db.relationship('Notification', back_populates='user', lazy='dynamic',
                                    cascade='all, delete-orphan')
    logs = db.relationship('AuditLog', back_populates='user', lazy='dynamic')

    @property
    def full_name(self):
        """Returns the user's full name."""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def set_password(self, password):
        self.password_hash = generate_password_hash(password, method='pbkdf2:sha256:260000')

    def check_password(self, password):
        if self.password_hash:
            return check_password_hash(self.password_hash, password)
        return False

    def has_role(self, role_name):
        return self.role == role_name

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'


class ExchangeProgram(db.Model):
    __tablename__ = 'exchange_program'

    id = db.Column(db.Integer, primary_key=True)
    academic_year = db.Column(db.String(9), nullable=False, index=True)  # YYYY/YYYY
    semester = db.Column(db.Enum(Semester), nullable=False)
    university = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    date_added = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    applications = db.relationship('Application', back_populates='program', lazy='dynamic',
                                   passive_deletes='all')

    def to_dict(self):
        return {
            'id': self.id,
            'academic_year': self.academic_year,
            'semester': self.semester.value,
            'semester_name': self.semester.label,
            'university': self.university,
            'description': self.description,
            'date_added': self.date_added.isoformat() if self.date_added else None,
        }

    def __repr__(self):
        return f'<ExchangeProgram {self.university} {self.academic_year}/{self.semester.name}>'


class Application(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='RESTRICT'), nullable=False)
    program_id = db.Column(db.Integer, db.ForeignKey('exchange_program.id', ondelete='RESTRICT'),
                           nullable=False, index=True)
    status = db.Column(db.Enum(ApplicationStatus), nullable=False,
                       default=ApplicationStatus.IN_PROGRESS, index=True)
    date_created = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # One application per (student, program); the unique index is the final guard against races.
    __table_args__ = (
        db.Index('ix_application_student_program', 'student_id', 'program_id', unique=True),
    )

    student = db.relationship('User', back_populates='applications')
    program = db.relationship('ExchangeProgram', back_populates='applications')
    documentation = db.relationship('Documentation', back_populates='application', uselist=False,
                                    cascade='all, delete-orphan')
    subject_proposal = db.relationship('SubjectProposal', back_populates='application', uselist=False,
                                       cascade='all, delete-orphan')
    notifications = db.relationship('Notification', back_populates='application', lazy='dynamic',
                                    passive_deletes=True)

    @property
    def subject_rows(self):
        return list(self.subject_proposal.rows) if self.subject_proposal else []

    def __repr__(self):
        return f'<Application {self.id} S:{self.student_id} P:{self.program_id} {self.status.name}>'


class Documentation(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey('application.id', ondelete='CASCADE'),
                               nullable=False, unique=True)
    cv = db.Column(db.Boolean, default=False, nullable=False)
    motivation_letter = db.Column(db.Boolean, default=False, nullable=False)
    learning_agreement = db.Column(db.Boolean, default=False, nullable=False)

    application = db.relationship('Application', back_populates='documentation')

    def __repr__(self):
        return f'<Documentation A:{self.application_id}>'


class SubjectProposal(db.Model):
    __tablename__ = 'subject_proposal'

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(db.Integer, db.ForeignKey('application.id', ondelete='CASCADE'),
                               nullable=False, unique=True)
    program_id = db.Column(db.Integer, db.ForeignKey('exchange_program.id', ondelete='SET NULL'),
                           nullable=True)
    modified_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    application = db.relationship('Application', back_populates='subject_proposal')
    program = db.relationship('ExchangeProgram')
    rows = db.relationship('SubjectRow', back_populates='proposal', order_by='SubjectRow.id',
                           cascade='all, delete-orphan')

    def __repr__(self):
        return f'<SubjectProposal A:{self.application_id} rows:{len(self.rows)}>'


class SubjectRow(db.Model):
    __tablename__ = 'subject_row'

    id = db.Column(db.Integer, primary_key=True)
    proposal_id = db.Column(db.Integer, db.ForeignKey('subject_proposal.id', ondelete='CASCADE'),
                            nullable=False, index=True)
    home_course = db.Column(db.String(200), nullable=False)
    accepting_course = db.Column(db.String(200), nullable=False)
    status = db.Column(db.Enum(SubjectStatus), nullable=False, default=SubjectStatus.PENDING)

    proposal = db.relationship('SubjectProposal', back_populates='rows')

    def __repr__(self):
        return f'<SubjectRow {self.home_course} -> {self.accepting_course} {self.status.name}>'


class Notification(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    application_id = db.Column(db.Integer, db.ForeignKey('application.id', ondelete='SET NULL'),
                               nullable=True, index=True)
    content = db.Column(db.Text, nullable=False)
    url = db.Column(db.String(255), nullable=True)  # Link for Action
    is_read = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', back_populates='notifications')
    application = db.relationship('Application', back_populates='notifications')

    def to_dict(self):
        return {
            'id': self.id,
            'content': self.content,
            'url': self.url,
            'is_read': self.is_read,
            'application_id': self.application_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Notification for User {self.user_id}>'


class AuditLog(db.Model):
    __tablename__ = 'audit_log'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    action = db.Column(db.String(255), nullable=False)
    model_name = db.Column(db.String(50), nullable=True)
    record_id = db.Column(db.String(50), nullable=True)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime, server_default=db.func.now())

    user = db.relationship('User', back_populates='logs')

    def __repr__(self):
        return f'<AuditLog {self.action} by User:{self.user_id}>'


@login.user_loader
def load_user(id):
    return db.session.get(User, int(id))


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE rules unless foreign keys are switched on per connection.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()
