"""Role and faculty scoping of applications."""
from conftest import DOCS, context_for, rows
from erasmus import db, policy, services
from erasmus.models import Application, ApplicationStatus, ExchangeProgram
from erasmus.policy import AccessContext


def _apply(student_id, program_id):
    program = db.session.get(ExchangeProgram, program_id)
    application, message = services.submit_application(context_for(student_id), program, DOCS, rows(('A', 'B')))
    assert application is not None, message
    return application


def _visible_ids(user_id):
    return {a.id for a in policy.visible_applications(context_for(user_id)).all()}


def test_visibility_per_role(request_ctx):
    seed = request_ctx
    own = _apply(seed.student_id, seed.program_id)
    foreign = _apply(seed.other_student_id, seed.program_id)

    assert _visible_ids(seed.admin_id) == {own.id, foreign.id}
    assert _visible_ids(seed.student_id) == {own.id}
    assert _visible_ids(seed.coordinator_id) == {own.id}
    assert _visible_ids(seed.other_coordinator_id) == {foreign.id}


def test_coordinator_without_faculty_sees_nothing(request_ctx):
    seed = request_ctx
    _apply(seed.student_id, seed.program_id)

    assert _visible_ids(seed.lonely_coordinator_id) == set()
    application = Application.query.first()
    assert not policy.can_view_application(context_for(seed.lonely_coordinator_id), application)
    assert not policy.can_review_application(context_for(seed.lonely_coordinator_id), application)


def test_anonymous_context_has_no_access(request_ctx):
    seed = request_ctx
    application = _apply(seed.student_id, seed.program_id)
    anonymous = AccessContext.from_user(None)

    assert policy.visible_applications(anonymous).count() == 0
    assert not policy.can_view_application(anonymous, application)
    assert not policy.can_apply(anonymous)


def test_edit_and_reapply_follow_status(request_ctx):
    seed = request_ctx
    application = _apply(seed.student_id, seed.program_id)
    student = context_for(seed.student_id)

    expected = {
        ApplicationStatus.IN_PROGRESS: (True, False),
        ApplicationStatus.SUCCESSFUL: (True, False),
        ApplicationStatus.UNSUCCESSFUL: (False, True),
    }
    for status, (can_edit, can_reapply) in expected.items():
        application.status = status
        assert policy.can_edit_application(student, application) is can_edit
        assert policy.can_reapply(student, application) is can_reapply


def test_staff_permissions(request_ctx):
    seed = request_ctx
    application = _apply(seed.student_id, seed.program_id)
    admin = context_for(seed.admin_id)
    coordinator = context_for(seed.coordinator_id)
    other_coordinator = context_for(seed.other_coordinator_id)

    assert policy.can_review_application(admin, application)
    assert policy.can_review_application(coordinator, application)
    assert not policy.can_review_application(other_coordinator, application)

    assert policy.can_manage_subjects(coordinator, application)
    assert not policy.can_manage_subjects(admin, application)
    assert not policy.can_manage_subjects(other_coordinator, application)

    assert not policy.can_edit_application(coordinator, application)
    for check in (policy.can_delete_application, policy.can_manage_programs,
                  policy.can_manage_users, policy.can_cleanup, policy.can_send_notification):
        assert check(admin)
        assert not check(coordinator)
