# erasmus/admin/routes.py

from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from erasmus import db
from erasmus.admin import bp
from erasmus.admin.forms import ConfirmForm, FacultyForm
from erasmus.models import Application, ApplicationStatus, ExchangeProgram, Faculty, Role, User
from erasmus.policy import role_required
from erasmus.services import log_action, remove_duplicate_applications

@bp.route('/')
@login_required
@role_required(Role.ADMIN)
def index():
    """Admin dashboard with headline counts."""
    status_counts = dict(
        db.session.query(Application.status, func.count(Application.id)).group_by(Application.status).all()
    )
    duplicate_pairs = db.session.query(Application.student_id, Application.program_id).group_by(
        Application.student_id, Application.program_id
    ).having(func.count(Application.id) > 1).count()
    return render_template('admin/dashboard.html',
                           title='Administracija',
                           program_count=ExchangeProgram.query.count(),
                           user_count=User.query.count(),
                           status_counts={s: status_counts.get(s, 0) for s in ApplicationStatus},
                           duplicate_pairs=duplicate_pairs,
                           confirm_form=ConfirmForm())

@bp.route('/users')
@login_required
@role_required(Role.ADMIN)
def list_users():
    page = request.args.get('page', 1, type=int)
    pagination = User.query.order_by(User.role, User.last_name, User.first_name).paginate(
        page=page, per_page=30, error_out=False
    )
    return render_template('admin/users.html',
                           users=pagination.items,
                           pagination=pagination,
                           title='Korisnici')

@bp.route('/faculties', methods=['GET', 'POST'])
@login_required
@role_required(Role.ADMIN)
def list_faculties():
    form = FacultyForm()
    if form.validate_on_submit():
        try:
            faculty = Faculty(name=form.name.data.strip())
            db.session.add(faculty)
            db.session.flush()
            log_action("Create Faculty", model=Faculty, record_id=faculty.id, new_value={'name': faculty.name})
            db.session.commit()
            flash('Fakultet je dodan.', 'success')
            return redirect(url_for('admin.list_faculties'))
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating faculty: {e}", exc_info=True)
            flash('Greška prilikom spremanja fakulteta.', 'danger')

    faculties = Faculty.query.order_by(Faculty.name).all()
    return render_template('admin/faculties.html',
                           faculties=faculties,
                           form=form,
                           title='Fakulteti')

@bp.route('/applications/remove-duplicates', methods=['POST'])
@login_required
@role_required(Role.ADMIN)
def remove_duplicates():
    """Keeps the earliest application for each (student, program) pair."""
    form = ConfirmForm()
    if not form.validate_on_submit():
        flash('Neispravan zahtjev.', 'danger')
        return redirect(url_for('admin.index'))

    removed = remove_duplicate_applications(user=current_user)
    if removed is None:
        flash('Greška prilikom uklanjanja duplikata.', 'danger')
    elif removed:
        flash(f'Uklonjeno duplikata: {removed}.', 'success')
    else:
        flash('Nema duplih prijava.', 'info')
    return redirect(url_for('admin.index'))
