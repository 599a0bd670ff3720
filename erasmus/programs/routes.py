# FILE: erasmus/programs/routes.py
from datetime import datetime
from flask import current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError
from erasmus import db
from erasmus.models import ExchangeProgram, Role, Semester
from erasmus.policy import current_context, role_required
from erasmus.programs import bp
from erasmus.programs.forms import DeleteForm, ExchangeProgramForm
from erasmus.services import application_exists, log_action

@bp.route('/')
def list_programs():
    page = request.args.get('page', 1, type=int)
    pagination = ExchangeProgram.query.order_by(
        ExchangeProgram.academic_year.desc(), ExchangeProgram.university.asc()
    ).paginate(page=page, per_page=current_app.config['PROGRAMS_PER_PAGE'], error_out=False)
    return render_template('programs/list.html',
                           programs=pagination.items,
                           pagination=pagination,
                           delete_form=DeleteForm(),
                           title='Erasmus programi')

@bp.route('/<int:program_id>')
def program_details(program_id):
    program = db.get_or_404(ExchangeProgram, program_id)
    already_applied = False
    ctx = current_context()
    if ctx.is_student:
        already_applied = application_exists(ctx.user_id, program.id)
    return render_template('programs/details.html',
                           program=program,
                           already_applied=already_applied,
                           title=program.university)

def _fill_program(program, form):
    program.university = form.university.data.strip()
    program.academic_year = form.academic_year.data.strip()
    program.semester = Semester(form.semester.data)
    program.description = form.description.data

def _program_snapshot(program):
    return {
        'university': program.university,
        'academic_year': program.academic_year,
        'semester': program.semester.name if program.semester else None,
    }

@bp.route('/add', methods=['GET', 'POST'])
@login_required
@role_required(Role.ADMIN)
def add_program():
    form = ExchangeProgramForm()
    if form.validate_on_submit():
        try:
            program = ExchangeProgram(date_added=datetime.utcnow())
            _fill_program(program, form)
            db.session.add(program)
            db.session.flush()
            log_action("Create Exchange Program", model=ExchangeProgram, record_id=program.id,
                       new_value=_program_snapshot(program))
            db.session.commit()
            current_app.logger.info(f"Exchange program {program.id} created by admin {current_user.id}.")
            flash('Program je uspješno dodan.', 'success')
            return redirect(url_for('programs.program_details', program_id=program.id))
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error creating exchange program: {e}", exc_info=True)
            flash('Greška prilikom spremanja programa.', 'danger')
    return render_template('programs/form.html', form=form, title='Novi Erasmus program')

@bp.route('/<int:program_id>/edit', methods=['GET', 'POST'])
@login_required
@role_required(Role.ADMIN)
def edit_program(program_id):
    program = db.get_or_404(ExchangeProgram, program_id)
    form = ExchangeProgramForm()
    if form.validate_on_submit():
        old_value = _program_snapshot(program)
        try:
            _fill_program(program, form)
            log_action("Edit Exchange Program", model=ExchangeProgram, record_id=program.id,
                       old_value=old_value, new_value=_program_snapshot(program))
            db.session.commit()
            flash('Program je izmijenjen.', 'success')
            return redirect(url_for('programs.program_details', program_id=program.id))
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error editing exchange program {program_id}: {e}", exc_info=True)
            flash('Greška prilikom spremanja programa.', 'danger')
    elif request.method == 'GET':
        form.university.data = program.university
        form.academic_year.data = program.academic_year
        form.semester.data = program.semester.value
        form.description.data = program.description
    return render_template('programs/form.html', form=form, program=program, title='Uredi Erasmus program')

@bp.route('/<int:program_id>/delete', methods=['POST'])
@login_required
@role_required(Role.ADMIN)
def delete_program(program_id):
    program = db.get_or_404(ExchangeProgram, program_id)
    # Applications reference programs with a restrictive foreign key
    if program.applications.count():
        flash('Program nije moguće obrisati jer postoje prijave na njega.', 'danger')
        return redirect(url_for('programs.program_details', program_id=program.id))
    try:
        snapshot = _program_snapshot(program)
        db.session.delete(program)
        log_action("Delete Exchange Program", model=ExchangeProgram, record_id=program_id, old_value=snapshot)
        db.session.commit()
        flash('Program je obrisan.', 'info')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting exchange program {program_id}: {e}", exc_info=True)
        flash('Greška prilikom brisanja programa.', 'danger')
    return redirect(url_for('programs.list_programs'))
