# FILE: erasmus/applications/routes.py
from flask import abort, flash, redirect, render_template, request, url_for
from flask_login import login_required
from sqlalchemy.orm import joinedload
from erasmus import db
from erasmus.applications import bp
from erasmus.applications.forms import (ApplicationForm, ApplicationStatusForm, ConfirmForm,
                                        NotificationForm, SubjectRowEditForm, SubjectStatusForm)
from erasmus.models import Application, ExchangeProgram, Role, SubjectProposal, SubjectRow
from erasmus import policy, services
from erasmus.policy import current_context, role_required

def _load_application(application_id):
    application = Application.query.options(
        joinedload(Application.student),
        joinedload(Application.program),
        joinedload(Application.documentation),
        joinedload(Application.subject_proposal).selectinload(SubjectProposal.rows),
    ).filter(Application.id == application_id).first()
    if application is None:
        abort(404)
    return application

def _load_row(row_id):
    row = db.session.get(SubjectRow, row_id)
    if row is None:
        abort(404)
    return row

def _flash_result(ok, message):
    flash(message, 'success' if ok else 'danger')

# ==========================================================
# Lists
# ==========================================================
@bp.route('/')
@login_required
@role_required(Role.ADMIN, Role.COORDINATOR)
def index():
    ctx = current_context()
    applications = policy.visible_applications(ctx).options(
        joinedload(Application.student), joinedload(Application.program)
    ).order_by(Application.date_created.desc()).all()
    return render_template('applications/index.html',
                           applications=applications,
                           title='Prijave studenata')

@bp.route('/mine')
@login_required
@role_required(Role.STUDENT)
def my_applications():
    ctx = current_context()
    applications = policy.visible_applications(ctx).options(
        joinedload(Application.program)
    ).order_by(Application.date_created.desc()).all()
    return render_template('applications/mine.html',
                           applications=applications,
                           title='Moje prijave')

# ==========================================================
# Details
# ==========================================================
@bp.route('/<int:application_id>')
@login_required
def details(application_id):
    application = _load_application(application_id)
    ctx = current_context()
    if not policy.can_view_application(ctx, application):
        abort(403)

    if policy.can_manage_subjects(ctx, application):
        return render_template('applications/manage_subjects.html',
                               application=application,
                               status_form=ApplicationStatusForm(status=application.status.name),
                               subject_status_form=SubjectStatusForm(),
                               row_form=SubjectRowEditForm(),
                               confirm_form=ConfirmForm(),
                               title=f'Prijava #{application.id}')

    return render_template('applications/details.html',
                           application=application,
                           can_edit=policy.can_edit_application(ctx, application),
                           can_reapply=policy.can_reapply(ctx, application),
                           can_review=policy.can_review_application(ctx, application),
                           can_delete=policy.can_delete_application(ctx),
                           can_notify=policy.can_send_notification(ctx),
                           status_form=ApplicationStatusForm(status=application.status.name),
                           notification_form=NotificationForm(),
                           confirm_form=ConfirmForm(),
                           title=f'Prijava #{application.id}')

# ==========================================================
# Student workflow
# ==========================================================
@bp.route('/apply/<int:program_id>', methods=['GET', 'POST'])
@login_required
@role_required(Role.STUDENT)
def apply(program_id):
    program = db.get_or_404(ExchangeProgram, program_id)
    ctx = current_context()

    existing = Application.query.filter_by(student_id=ctx.user_id, program_id=program.id).first()
    if existing is not None:
        flash(services.ALREADY_APPLIED, 'warning')
        return redirect(url_for('applications.details', application_id=existing.id))

    form = ApplicationForm()
    if form.validate_on_submit():
        application, message = services.submit_application(
            ctx, program, form.documentation_data(), form.subject_rows())
        if application is not None:
            flash(message, 'success')
            return redirect(url_for('applications.my_applications'))
        flash(message, 'danger')
        if message == services.ALREADY_APPLIED:
            return redirect(url_for('applications.my_applications'))

    form.pad_blank_rows()
    return render_template('applications/form.html',
                           form=form,
                           program=program,
                           action_url=url_for('applications.apply', program_id=program.id),
                           title=f'Prijava na program: {program.university}')

def _owned_application(application_id):
    application = _load_application(application_id)
    if application.student_id != current_context().user_id:
        abort(403)
    return application

def _prefilled_form(application, keep_ids):
    rows = [{'id': row.id if keep_ids else 0,
             'home_course': row.home_course,
             'accepting_course': row.accepting_course} for row in application.subject_rows]
    docs = application.documentation
    return ApplicationForm(data={
        'cv': docs.cv,
        'motivation_letter': docs.motivation_letter,
        'learning_agreement': docs.learning_agreement,
        'subjects': rows,
    })

@bp.route('/<int:application_id>/edit', methods=['GET', 'POST'])
@login_required
@role_required(Role.STUDENT)
def edit(application_id):
    application = _owned_application(application_id)
    ctx = current_context()
    if not policy.can_edit_application(ctx, application):
        flash(services.NOT_EDITABLE, 'warning')
        return redirect(url_for('applications.details', application_id=application.id))

    form = ApplicationForm() if request.method == 'POST' else _prefilled_form(application, keep_ids=True)
    if form.validate_on_submit():
        ok, message = services.edit_application(
            ctx, application, form.documentation_data(), form.subject_rows())
        _flash_result(ok, message)
        if ok:
            return redirect(url_for('applications.details', application_id=application.id))

    form.pad_blank_rows(2)
    return render_template('applications/form.html',
                           form=form,
                           program=application.program,
                           application=application,
                           action_url=url_for('applications.edit', application_id=application.id),
                           title=f'Uredi prijavu #{application.id}')

@bp.route('/<int:application_id>/reapply', methods=['GET', 'POST'])
@login_required
@role_required(Role.STUDENT)
def reapply(application_id):
    application = _owned_application(application_id)
    ctx = current_context()
    if not policy.can_reapply(ctx, application):
        flash(services.NOT_REAPPLICABLE, 'warning')
        return redirect(url_for('applications.details', application_id=application.id))

    # Row ids are dropped: a reapplication replaces every subject row.
    form = ApplicationForm() if request.method == 'POST' else _prefilled_form(application, keep_ids=False)
    if form.validate_on_submit():
        ok, message = services.reapply_application(
            ctx, application, form.documentation_data(), form.subject_rows())
        _flash_result(ok, message)
        if ok:
            return redirect(url_for('applications.my_applications'))

    form.pad_blank_rows(2)
    return render_template('applications/form.html',
                           form=form,
                           program=application.program,
                           application=application,
                           reapply=True,
                           action_url=url_for('applications.reapply', application_id=application.id),
                           title=f'Ponovna prijava #{application.id}')

# ==========================================================
# Staff review
# ==========================================================
@bp.route('/<int:application_id>/status', methods=['POST'])
@login_required
@role_required(Role.ADMIN, Role.COORDINATOR)
def update_status(application_id):
    application = _load_application(application_id)
    ctx = current_context()
    if not policy.can_review_application(ctx, application):
        abort(403)
    form = ApplicationStatusForm()
    if not form.validate_on_submit():
        abort(400)
    _flash_result(*services.update_application_status(ctx, application, form.status.data))
    return redirect(url_for('applications.details', application_id=application.id))

@bp.route('/subjects/<int:row_id>/status', methods=['POST'])
@login_required
@role_required(Role.COORDINATOR)
def update_subject_status(row_id):
    row = _load_row(row_id)
    ctx = current_context()
    application = row.proposal.application
    if not policy.can_manage_subjects(ctx, application):
        abort(403)
    form = SubjectStatusForm()
    if not form.validate_on_submit():
        abort(400)
    _flash_result(*services.update_subject_status(ctx, row, form.status.data))
    return redirect(url_for('applications.details', application_id=application.id))

@bp.route('/<int:application_id>/subjects/add', methods=['POST'])
@login_required
@role_required(Role.COORDINATOR)
def add_subject(application_id):
    application = _load_application(application_id)
    ctx = current_context()
    if not policy.can_manage_subjects(ctx, application):
        abort(403)
    form = SubjectRowEditForm()
    if form.validate_on_submit():
        row, message = services.add_subject_row(ctx, application, form.home_course.data, form.accepting_course.data)
        _flash_result(row is not None, message)
    else:
        flash(services.INCOMPLETE_SUBJECT, 'danger')
    return redirect(url_for('applications.details', application_id=application.id))

@bp.route('/subjects/<int:row_id>/edit', methods=['POST'])
@login_required
@role_required(Role.COORDINATOR)
def edit_subject(row_id):
    row = _load_row(row_id)
    ctx = current_context()
    application = row.proposal.application
    if not policy.can_manage_subjects(ctx, application):
        abort(403)
    form = SubjectRowEditForm()
    if form.validate_on_submit():
        _flash_result(*services.edit_subject_row(ctx, row, form.home_course.data, form.accepting_course.data))
    else:
        flash(services.INCOMPLETE_SUBJECT, 'danger')
    return redirect(url_for('applications.details', application_id=application.id))

@bp.route('/subjects/<int:row_id>/delete', methods=['POST'])
@login_required
@role_required(Role.COORDINATOR)
def delete_subject(row_id):
    row = _load_row(row_id)
    ctx = current_context()
    application = row.proposal.application
    if not policy.can_manage_subjects(ctx, application):
        abort(403)
    _flash_result(*services.delete_subject_row(ctx, row))
    return redirect(url_for('applications.details', application_id=application.id))

@bp.route('/<int:application_id>/notify', methods=['POST'])
@login_required
@role_required(Role.ADMIN)
def notify_student(application_id):
    application = _load_application(application_id)
    form = NotificationForm()
    if form.validate_on_submit():
        notification, message = services.send_notification(current_context(), application, form.content.data)
        _flash_result(notification is not None, message)
    else:
        flash('Sadržaj notifikacije je obavezan.', 'danger')
    return redirect(url_for('applications.details', application_id=application.id))

@bp.route('/<int:application_id>/delete', methods=['POST'])
@login_required
@role_required(Role.ADMIN)
def delete(application_id):
    application = _load_application(application_id)
    ok, message = services.delete_application(current_context(), application)
    _flash_result(ok, message)
    if ok:
        return redirect(url_for('applications.index'))
    return redirect(url_for('applications.details', application_id=application_id))
