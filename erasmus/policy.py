# FILE: erasmus/policy.py
"""
Authorization rules for the portal.

Every request builds one ``AccessContext`` from the logged-in user and each
operation asks a single predicate from this module.  Nothing here reads
``current_user`` except ``current_context``, so the rules can be exercised
without a request.
"""
from functools import wraps
from typing import NamedTuple, Optional

from flask import abort, g
from flask_login import current_user
from sqlalchemy import false

from erasmus.models import Application, ApplicationStatus, Role, User


class AccessContext(NamedTuple):
    user_id: Optional[int]
    role: Optional[str]
    faculty_id: Optional[int]

    @classmethod
    def from_user(cls, user):
        if user is None or not getattr(user, 'is_authenticated', False):
            return cls(None, None, None)
        return cls(user.id, user.role, user.faculty_id)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @property
    def is_coordinator(self):
        return self.role == Role.COORDINATOR

    @property
    def is_student(self):
        return self.role == Role.STUDENT

    @property
    def is_staff(self):
        return self.role in Role.STAFF


def current_context():
    """Returns the AccessContext for this request, built once and cached on ``g``."""
    ctx = g.get('access_context')
    if ctx is None:
        ctx = AccessContext.from_user(current_user)
        g.access_context = ctx
    return ctx


def role_required(*roles):
    """
    Decorator to check that the current user holds one of the given roles.
    Responds 403 without explaining why.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if current_context().role not in roles:
                abort(403)
            return f(*args, **kwargs)
        return decorated_function
    return decorator


# --- Visibility ---

def visible_applications(ctx):
    """Application query scoped to what ``ctx`` may read."""
    query = Application.query
    if ctx.is_admin:
        return query
    if ctx.is_coordinator:
        if ctx.faculty_id is None:
            # A coordinator without a faculty sees nothing.
            return query.filter(false())
        return query.join(User, Application.student_id == User.id).filter(User.faculty_id == ctx.faculty_id)
    if ctx.is_student and ctx.user_id is not None:
        return query.filter(Application.student_id == ctx.user_id)
    return query.filter(false())


def _same_faculty(ctx, application):
    student = application.student
    return (ctx.faculty_id is not None and student is not None
            and student.faculty_id == ctx.faculty_id)


def can_view_application(ctx, application):
    if ctx.is_admin:
        return True
    if ctx.is_coordinator:
        return _same_faculty(ctx, application)
    if ctx.is_student:
        return application.student_id == ctx.user_id
    return False


def _owns(ctx, application):
    return ctx.is_student and application.student_id == ctx.user_id


# --- Student operations ---

def can_apply(ctx):
    return ctx.is_student


def can_edit_application(ctx, application):
    return _owns(ctx, application) and application.status in (
        ApplicationStatus.IN_PROGRESS, ApplicationStatus.SUCCESSFUL)


def can_reapply(ctx, application):
    return _owns(ctx, application) and application.status == ApplicationStatus.UNSUCCESSFUL


# --- Staff operations ---

def can_review_application(ctx, application):
    """Changing the application-level status: Admin anywhere, coordinators within their faculty."""
    if ctx.is_admin:
        return True
    return ctx.is_coordinator and _same_faculty(ctx, application)


def can_manage_subjects(ctx, application):
    """Per-row status changes and row maintenance are coordinator work, scoped to the faculty."""
    return ctx.is_coordinator and _same_faculty(ctx, application)


def can_delete_application(ctx):
    return ctx.is_admin


def can_manage_programs(ctx):
    return ctx.is_admin


def can_manage_users(ctx):
    return ctx.is_admin


def can_cleanup(ctx):
    return ctx.is_admin


def can_send_notification(ctx):
    return ctx.is_admin
