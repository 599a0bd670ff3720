# FILE: run.py

from erasmus import create_app, db
import click

from erasmus.services import clean_old_notifications, remove_duplicate_applications

app = create_app()

@app.shell_context_processor
def make_shell_context():
    from erasmus.models import (Application, Documentation, ExchangeProgram, Faculty, Notification,
                                SubjectProposal, SubjectRow, User)
    return {
        'db': db, 'User': User, 'Faculty': Faculty, 'ExchangeProgram': ExchangeProgram,
        'Application': Application, 'Documentation': Documentation,
        'SubjectProposal': SubjectProposal, 'SubjectRow': SubjectRow, 'Notification': Notification
    }

@app.cli.command('seed-db')
def seed_db():
    """Seeds faculties, demo accounts for each role and a few exchange programs."""
    from erasmus.models import ExchangeProgram, Faculty, Role, Semester, User

    print("Seeding database...")

    # --- 1. Faculties ---
    faculty_names = ['Elektrotehnički fakultet', 'Ekonomski fakultet', 'Filozofski fakultet']
    faculties = {}
    for name in faculty_names:
        faculty = Faculty.query.filter_by(name=name).first()
        if not faculty:
            faculty = Faculty(name=name)
            db.session.add(faculty)
        faculties[name] = faculty
    db.session.flush()
    print("Faculties seeded.")

    # --- 2. Demo users (one per role) ---
    default_faculty = faculties[faculty_names[0]]
    users_data = [
        {'email': 'admin@erasmus.ba', 'password': 'Admin123!', 'role': Role.ADMIN,
         'first_name': 'Admin', 'last_name': 'Sistema', 'faculty': None},
        {'email': 'student@erasmus.ba', 'password': 'Student123!', 'role': Role.STUDENT,
         'first_name': 'Amra', 'last_name': 'Hodžić', 'faculty': default_faculty},
        {'email': 'koordinator@erasmus.ba', 'password': 'Koordinator123!', 'role': Role.COORDINATOR,
         'first_name': 'Emir', 'last_name': 'Čaušević', 'faculty': default_faculty},
    ]
    for data in users_data:
        if User.query.filter_by(email=data['email']).first():
            continue
        user = User(email=data['email'], role=data['role'], first_name=data['first_name'],
                    last_name=data['last_name'], faculty=data['faculty'])
        user.set_password(data['password'])
        db.session.add(user)
    print("Users seeded.")

    # --- 3. Sample programs ---
    programs_data = [
        ('Universität Wien', '2025/2026', Semester.WINTER, 'Razmjena za studente tehničkih nauka.'),
        ('Università di Bologna', '2025/2026', Semester.SUMMER, 'Ekonomija i menadžment.'),
        ('Uniwersytet Warszawski', '2026/2027', Semester.WINTER, None),
    ]
    for university, year, semester, description in programs_data:
        exists = ExchangeProgram.query.filter_by(university=university, academic_year=year, semester=semester).first()
        if not exists:
            db.session.add(ExchangeProgram(university=university, academic_year=year,
                                           semester=semester, description=description))

    db.session.commit()
    print("Database seeded successfully!")

@app.cli.command('dedupe-applications')
def dedupe_applications_command():
    """
    [CLI] Removes duplicate applications, keeping the earliest per (student, program).
    Run with: flask dedupe-applications
    """
    removed = remove_duplicate_applications()
    if removed is None:
        print('Error: duplicate cleanup failed. Check application logs.')
    else:
        print(f'Removed {removed} duplicate applications.')

@app.cli.command('clean-notifications')
@click.option('--days', default=None, type=int, help='Delete read notifications older than this many days.')
def clean_notifications_command(days):
    """
    [CLI] Deletes old read notifications from the database.
    Run with: flask clean-notifications --days=60
    """
    days = days if days is not None else app.config['NOTIFICATION_RETENTION_DAYS']
    print(f"Starting job: Deleting read notifications older than {days} days...")
    deleted_count = clean_old_notifications(days_old=days)
    if deleted_count is not None:
        print(f'Success: Successfully deleted {deleted_count} old notifications.')
    else:
        print('Error: The cleanup task failed. Check application logs.')

if __name__ == '__main__':
    app.run()
