# FILE: erasmus/search/routes.py
from flask import jsonify, render_template, request
from flask_login import login_required
from sqlalchemy.orm import joinedload
from erasmus import db
from erasmus.models import Application, ApplicationStatus, ExchangeProgram, Role, Semester, SubjectProposal, User
from erasmus.policy import current_context, visible_applications
from erasmus.search import bp
from erasmus.utils import group_by_status, search_applications, search_programs, suggestions_for

def _render_search(**results):
    return render_template('search/index.html',
                           title='Pretraga',
                           query=request.args.get('query', ''),
                           selected_semester=request.args.get('semester', ''),
                           selected_status=request.args.get('status', ''),
                           semesters=list(Semester),
                           statuses=list(ApplicationStatus),
                           **results)

@bp.route('/')
@login_required
def index():
    return _render_search(programs=None, applications=None)

@bp.route('/results')
@login_required
def results():
    query = request.args.get('query', '').strip()
    semester = request.args.get('semester', type=int)
    status = request.args.get('status', '').strip()

    if not query and semester is None and not status:
        return _render_search(programs=None, applications=None)

    # Everything is loaded and filtered in memory; fine at portal-sized data volumes.
    programs = search_programs(ExchangeProgram.query.all(), query, semester)

    applications = visible_applications(current_context()).options(
        joinedload(Application.student),
        joinedload(Application.program),
        joinedload(Application.subject_proposal).selectinload(SubjectProposal.rows),
    ).all()
    applications = search_applications(applications, query, semester, status)

    return _render_search(programs=programs, applications=group_by_status(applications))

@bp.route('/suggestions')
@login_required
def suggestions():
    query = request.args.get('query', '')
    if len(query.strip()) < 2:
        return jsonify([])

    universities = [u for (u,) in db.session.query(ExchangeProgram.university).distinct()]
    academic_years = [y for (y,) in db.session.query(ExchangeProgram.academic_year).distinct()]
    student_names = []
    if current_context().is_staff:
        student_names = [f"{first} {last}".strip() for first, last in
                         db.session.query(User.first_name, User.last_name).filter(User.role == Role.STUDENT)]

    return jsonify(suggestions_for(query, universities, academic_years, student_names))
