# FILE: erasmus/auth/routes.py
from urllib.parse import urlparse
from flask import current_app, render_template, flash, redirect, url_for, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError
from erasmus import db
from erasmus.auth import bp
from erasmus.auth.forms import LoginForm, RegisterForm, RegisterCoordinatorForm
from erasmus.models import Role, User
from erasmus.policy import role_required
from erasmus.services import log_action

@bp.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(get_redirect_target(current_user))

    form = LoginForm()
    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user is None or not user.check_password(form.password.data):
            current_app.logger.warning(f"Failed login attempt for '{email}'.")
            flash('Neispravan e-mail ili lozinka.', 'danger')
            return redirect(url_for('auth.login'))

        login_user(user, remember=form.remember_me.data)
        log_action("Login Success", user=user)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Could not store login audit entry: {e}")
        current_app.logger.info(f"User {user.id} logged in.")
        return redirect(get_redirect_target(user))

    return render_template('auth/login.html', title='Prijava', form=form)

@bp.route('/logout')
def logout():
    if current_user.is_authenticated:
        current_app.logger.info(f"User {current_user.id} logged out.")
    logout_user()
    flash('Uspješno ste se odjavili.', 'info')
    return redirect(url_for('auth.login'))

def _create_user(form, role):
    user = User(
        email=form.email.data.strip().lower(),
        first_name=form.first_name.data.strip(),
        last_name=form.last_name.data.strip(),
        role=role,
        faculty=form.faculty.data
    )
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.flush()
    return user

@bp.route('/register', methods=['GET', 'POST'])
def register():
    """Self-registration is for students only; staff accounts are created by an Admin."""
    if current_user.is_authenticated:
        return redirect(get_redirect_target(current_user))

    form = RegisterForm()
    if form.validate_on_submit():
        try:
            user = _create_user(form, Role.STUDENT)
            log_action("Register Student", user=user, model=User, record_id=user.id,
                       new_value={'email': user.email, 'faculty_id': user.faculty_id})
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error registering student '{form.email.data}': {e}", exc_info=True)
            flash('Greška se desila prilikom registracije. Pokušajte opet.', 'danger')
            return render_template('auth/register.html', title='Registracija', form=form)

        current_app.logger.info(f"Student {user.id} registered.")
        login_user(user)
        flash('Registracija je uspješna. Dobrodošli!', 'success')
        return redirect(get_redirect_target(user))

    return render_template('auth/register.html', title='Registracija', form=form)

@bp.route('/register-coordinator', methods=['GET', 'POST'])
@login_required
@role_required(Role.ADMIN)
def register_coordinator():
    form = RegisterCoordinatorForm()
    if form.validate_on_submit():
        try:
            user = _create_user(form, Role.COORDINATOR)
            log_action("Create Coordinator", model=User, record_id=user.id,
                       new_value={'email': user.email, 'faculty_id': user.faculty_id})
            db.session.commit()
            current_app.logger.info(f"ECTS coordinator {user.id} created by admin {current_user.id}.")
            flash(f'ECTS koordinator {user.full_name} je kreiran.', 'success')
            return redirect(url_for('admin.list_users'))
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating coordinator '{form.email.data}': {e}", exc_info=True)
            flash('Greška prilikom kreiranja koordinatora.', 'danger')

    return render_template('auth/register_coordinator.html', title='Novi ECTS koordinator', form=form)

def get_redirect_target(user):
    next_page = request.args.get('next')
    if next_page and urlparse(next_page).netloc == '':
        return next_page
    if user.has_role(Role.ADMIN): return url_for('admin.index')
    elif user.has_role(Role.COORDINATOR): return url_for('applications.index')
    elif user.has_role(Role.STUDENT): return url_for('applications.my_applications')
    else: return url_for('programs.list_programs')
