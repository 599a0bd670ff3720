# FILE: erasmus/services.py

import json
from datetime import datetime, timedelta

from flask import current_app, url_for
from flask_login import current_user
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from erasmus.models import (Application, ApplicationStatus, AuditLog, Documentation, Notification,
                            Role, SubjectProposal, SubjectRow, SubjectStatus, User)
from erasmus import policy
from . import db

# --- User-facing messages ---
ALREADY_APPLIED = 'Već ste se prijavili na ovaj program.'
NO_SUBJECTS = 'Prijava mora sadržavati barem jedan predmet (matični i predmet na prihvatnoj instituciji).'
INCOMPLETE_SUBJECT = 'Svaki predmet mora imati popunjen i matični i predmet na prihvatnoj instituciji.'
UNKNOWN_SUBJECT = 'Predmet ne pripada ovoj prijavi.'
DUPLICATE_SUBJECT = 'Isti predmet je naveden više puta.'
NOT_EDITABLE = 'Prijavu je moguće mijenjati samo dok je u toku ili uspješna.'
NOT_REAPPLICABLE = 'Ponovna prijava je moguća samo za neuspješne prijave.'
INVALID_SUBJECT_STATUS = 'Neispravan status predmeta.'
FORBIDDEN = 'Nemate ovlaštenje za ovu akciju.'
SAVE_FAILED = 'Došlo je do greške prilikom spremanja. Pokušajte ponovo.'

DOCUMENT_FLAGS = ('cv', 'motivation_letter', 'learning_agreement')


class SubjectInputError(ValueError):
    """Raised while cleaning subject rows; carries the user-facing message."""


def log_action(action: str, user=None, model=None, record_id: int = None, old_value=None, new_value=None):
    """
    Creates an audit log entry. Does not commit the session.

    Args:
        action (str): Description of the action performed (e.g., "Submit Application").
        user (User, optional): The user performing the action. Defaults to current_user.
        model (db.Model class, optional): The model class being affected.
        record_id (int, optional): The primary key of the affected record.
        old_value (any, optional): The value before the change. Simple type or dict/list.
        new_value (any, optional): The value after the change. Simple type or dict/list.
    """
    try:
        log_user = user if user else current_user
        if not hasattr(log_user, 'is_authenticated') or not log_user.is_authenticated:
            current_app.logger.warning(f"Audit log skipped for action '{action}' due to missing authenticated user context.")
            return

        model_name_str = model.__tablename__ if model and hasattr(model, '__tablename__') else None

        def _to_str(value):
            if value is None:
                return None
            if isinstance(value, (dict, list)):
                try:
                    text = json.dumps(value, ensure_ascii=False, default=str)
                except TypeError as te:
                    current_app.logger.warning(f"Audit log JSON conversion failed (action: {action}): {te}. Falling back to str().")
                    text = str(value)
            else:
                text = str(value)
            max_len = 1000
            return text[:max_len] + "..." if len(text) > max_len else text

        log_entry = AuditLog(
            user_id=log_user.id,
            action=action,
            model_name=model_name_str,
            record_id=str(record_id) if record_id is not None else None,
            old_value=_to_str(old_value),
            new_value=_to_str(new_value),
            timestamp=datetime.utcnow()
        )
        db.session.add(log_entry)
        # The commit happens in the caller once the main action succeeds

    except Exception as e:
        # Never let the audit trail break the main action
        current_app.logger.error(f"Error creating audit log for action '{action}': {e}", exc_info=True)


# --- Notifications ---

def notify(user_id, content, application=None, url=None):
    """Adds a notification to the session. Does not commit."""
    notification = Notification(
        user_id=user_id,
        content=content,
        application=application,
        url=url,
        is_read=False,
        created_at=datetime.utcnow()
    )
    db.session.add(notification)
    return notification


def _application_url(application):
    try:
        return url_for('applications.details', application_id=application.id)
    except RuntimeError:
        # No request context (CLI); the link is optional
        return None


def notify_coordinators(application, content):
    student = application.student
    if student is None or student.faculty_id is None:
        return []
    coordinators = User.query.filter_by(role=Role.COORDINATOR, faculty_id=student.faculty_id).all()
    url = _application_url(application)
    return [notify(c.id, content, application=application, url=url) for c in coordinators]


def send_notification(ctx, application, content):
    """Free-text notification from an Admin to the application's student."""
    if not policy.can_send_notification(ctx):
        return None, FORBIDDEN
    content = (content or '').strip()
    if not content:
        return None, 'Sadržaj notifikacije je obavezan.'
    try:
        notification = notify(application.student_id, content, application=application,
                              url=_application_url(application))
        log_action("Send Notification", model=Application, record_id=application.id,
                   new_value={'content': content})
        db.session.commit()
        return notification, 'Notifikacija je kreirana.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error sending notification for application {application.id}: {e}", exc_info=True)
        return None, SAVE_FAILED


def mark_notification_read(notification):
    notification.is_read = True
    db.session.commit()


def clean_old_notifications(days_old=30):
    """
    Deletes read notifications older than ``days_old`` days.
    Returns the number of rows removed, or None if the job failed.
    """
    cutoff = datetime.utcnow() - timedelta(days=days_old)
    try:
        deleted = Notification.query.filter(
            Notification.is_read.is_(True),
            Notification.created_at < cutoff
        ).delete(synchronize_session=False)
        db.session.commit()
        current_app.logger.info(f"Deleted {deleted} notifications older than {days_old} days.")
        return deleted
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error cleaning old notifications: {e}", exc_info=True)
        return None


# --- Input cleaning ---

def clean_subject_rows(rows):
    """
    Normalizes raw subject rows into dicts with ``id``, ``home_course`` and ``accepting_course``.

    Rows with both names empty are dropped (blank form rows).  A row with only
    one side filled raises SubjectInputError, as does ending up with no rows.
    """
    cleaned = []
    for row in rows or []:
        home = (row.get('home_course') or '').strip()
        accepting = (row.get('accepting_course') or '').strip()
        if not home and not accepting:
            continue
        if not home or not accepting:
            raise SubjectInputError(INCOMPLETE_SUBJECT)
        try:
            row_id = int(row.get('id') or 0)
        except (TypeError, ValueError):
            row_id = 0
        cleaned.append({'id': row_id, 'home_course': home, 'accepting_course': accepting})
    if not cleaned:
        raise SubjectInputError(NO_SUBJECTS)
    return cleaned


def _apply_documentation(documentation, flags):
    flags = flags or {}
    for name in DOCUMENT_FLAGS:
        setattr(documentation, name, bool(flags.get(name)))


def _documentation_dict(documentation):
    return {name: getattr(documentation, name) for name in DOCUMENT_FLAGS}


def application_exists(student_id, program_id):
    return db.session.query(
        Application.query.filter_by(student_id=student_id, program_id=program_id).exists()
    ).scalar()


# --- Application lifecycle ---

def submit_application(ctx, program, documentation, rows):
    """
    Creates an application with its documentation and subject proposal in one transaction.

    Returns ``(application, message)``; ``application`` is None on failure.
    """
    if not policy.can_apply(ctx):
        return None, FORBIDDEN
    try:
        cleaned = clean_subject_rows(rows)
    except SubjectInputError as e:
        return None, str(e)

    if application_exists(ctx.user_id, program.id):
        current_app.logger.warning(f"Student {ctx.user_id} already applied to program {program.id}.")
        return None, ALREADY_APPLIED

    try:
        # Checked again right before the insert; the unique index is the last word.
        if application_exists(ctx.user_id, program.id):
            return None, ALREADY_APPLIED

        application = Application(
            student_id=ctx.user_id,
            program_id=program.id,
            status=ApplicationStatus.IN_PROGRESS,
            date_created=datetime.utcnow()
        )
        documentation_row = Documentation()
        _apply_documentation(documentation_row, documentation)
        proposal = SubjectProposal(program_id=program.id, modified_at=datetime.utcnow())
        proposal.rows = [
            SubjectRow(home_course=r['home_course'], accepting_course=r['accepting_course'],
                       status=SubjectStatus.PENDING)
            for r in cleaned
        ]
        application.documentation = documentation_row
        application.subject_proposal = proposal
        db.session.add(application)
        db.session.flush()

        log_action("Submit Application", user=db.session.get(User, ctx.user_id), model=Application,
                   record_id=application.id,
                   new_value={'program_id': program.id, 'subjects': len(cleaned)})
        notify_coordinators(application, f"Nova prijava za program {program.university} ({program.academic_year}).")
        db.session.commit()
        current_app.logger.info(f"Application {application.id} submitted by student {ctx.user_id} for program {program.id}.")
        return application, 'Prijava je uspješno poslana.'

    except IntegrityError as ie:
        db.session.rollback()
        if application_exists(ctx.user_id, program.id):
            current_app.logger.warning(f"Duplicate application rejected by constraint (student {ctx.user_id}, program {program.id}): {ie.orig}")
            return None, ALREADY_APPLIED
        current_app.logger.error(f"Integrity error submitting application (student {ctx.user_id}, program {program.id}): {ie.orig}", exc_info=True)
        return None, SAVE_FAILED
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error submitting application (student {ctx.user_id}, program {program.id}): {e}", exc_info=True)
        return None, SAVE_FAILED


def edit_application(ctx, application, documentation, rows):
    """
    Student edit of an in-progress or successful application.

    Rows are reconciled by id: known ids are updated, id 0 is inserted and
    rows missing from the input are deleted.  Editing a successful
    application sends it back to review.
    """
    if not policy.can_edit_application(ctx, application):
        if application.student_id == ctx.user_id:
            return False, NOT_EDITABLE
        return False, FORBIDDEN
    try:
        cleaned = clean_subject_rows(rows)
    except SubjectInputError as e:
        return False, str(e)

    proposal = application.subject_proposal
    existing = {row.id: row for row in proposal.rows}
    submitted_ids = [r['id'] for r in cleaned if r['id']]
    if any(row_id not in existing for row_id in submitted_ids):
        return False, UNKNOWN_SUBJECT
    if len(submitted_ids) != len(set(submitted_ids)):
        return False, DUPLICATE_SUBJECT

    old_status = application.status
    try:
        kept_ids = set()
        for r in cleaned:
            if r['id']:
                row = existing[r['id']]
                kept_ids.add(row.id)
                if (row.home_course, row.accepting_course) != (r['home_course'], r['accepting_course']):
                    row.home_course = r['home_course']
                    row.accepting_course = r['accepting_course']
                    row.status = SubjectStatus.PENDING
            else:
                proposal.rows.append(SubjectRow(home_course=r['home_course'],
                                                accepting_course=r['accepting_course'],
                                                status=SubjectStatus.PENDING))
        for row_id, row in existing.items():
            if row_id not in kept_ids:
                proposal.rows.remove(row)

        _apply_documentation(application.documentation, documentation)
        proposal.modified_at = datetime.utcnow()

        if old_status == ApplicationStatus.SUCCESSFUL:
            application.status = ApplicationStatus.IN_PROGRESS

        log_action("Edit Application", user=db.session.get(User, ctx.user_id), model=Application,
                   record_id=application.id,
                   old_value={'status': old_status.name},
                   new_value={'status': application.status.name, 'subjects': len(cleaned)})
        db.session.commit()
        current_app.logger.info(f"Application {application.id} edited by student {ctx.user_id}.")
        if old_status == ApplicationStatus.SUCCESSFUL:
            return True, 'Prijava je izmijenjena i ponovo čeka odobrenje.'
        return True, 'Prijava je uspješno izmijenjena.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error editing application {application.id}: {e}", exc_info=True)
        return False, SAVE_FAILED


def reapply_application(ctx, application, documentation, rows):
    """Resubmits a rejected application: every subject row is replaced and reset to pending."""
    if not policy.can_reapply(ctx, application):
        if application.student_id == ctx.user_id:
            current_app.logger.warning(f"Reapply refused for application {application.id} in status {application.status.name}.")
            return False, NOT_REAPPLICABLE
        return False, FORBIDDEN
    try:
        cleaned = clean_subject_rows(rows)
    except SubjectInputError as e:
        return False, str(e)

    try:
        proposal = application.subject_proposal
        proposal.rows.clear()
        db.session.flush()
        proposal.rows.extend(
            SubjectRow(home_course=r['home_course'], accepting_course=r['accepting_course'],
                       status=SubjectStatus.PENDING)
            for r in cleaned
        )
        proposal.modified_at = datetime.utcnow()
        _apply_documentation(application.documentation, documentation)
        application.status = ApplicationStatus.IN_PROGRESS

        log_action("Reapply Application", user=db.session.get(User, ctx.user_id), model=Application,
                   record_id=application.id,
                   old_value={'status': ApplicationStatus.UNSUCCESSFUL.name},
                   new_value={'status': application.status.name, 'subjects': len(cleaned)})
        notify_coordinators(application, f"Student je ponovo poslao prijavu #{application.id}.")
        db.session.commit()
        current_app.logger.info(f"Application {application.id} resubmitted by student {ctx.user_id}.")
        return True, 'Prijava je ponovo poslana.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error resubmitting application {application.id}: {e}", exc_info=True)
        return False, SAVE_FAILED


def update_application_status(ctx, application, status):
    """Staff decision on the whole application. The student is always notified."""
    if not policy.can_review_application(ctx, application):
        return False, FORBIDDEN
    new_status = ApplicationStatus.parse(status)
    if new_status is None:
        return False, 'Neispravan status prijave.'

    old_status = application.status
    try:
        application.status = new_status
        notify(application.student_id,
               f"Status vaše prijave za {application.program.university} je promijenjen u: {new_status.label}.",
               application=application, url=_application_url(application))
        log_action("Update Application Status", user=db.session.get(User, ctx.user_id), model=Application,
                   record_id=application.id, old_value=old_status.name, new_value=new_status.name)
        db.session.commit()
        current_app.logger.info(f"Application {application.id} status {old_status.name} -> {new_status.name} by user {ctx.user_id}.")
        return True, 'Status prijave je ažuriran.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating status of application {application.id}: {e}", exc_info=True)
        return False, SAVE_FAILED


def _parse_subject_status(status):
    if isinstance(status, SubjectStatus):
        return status
    return SubjectStatus.__members__.get(str(status or '').strip().upper())


def update_subject_status(ctx, row, status):
    """Coordinator decision on one subject row: APPROVED or REJECTED."""
    application = row.proposal.application
    if not policy.can_manage_subjects(ctx, application):
        return False, FORBIDDEN
    new_status = _parse_subject_status(status)
    if new_status not in (SubjectStatus.APPROVED, SubjectStatus.REJECTED):
        return False, INVALID_SUBJECT_STATUS

    old_status = row.status
    try:
        row.status = new_status
        log_action("Update Subject Status", user=db.session.get(User, ctx.user_id), model=SubjectRow,
                   record_id=row.id, old_value=old_status.name, new_value=new_status.name)
        db.session.commit()
        return True, 'Status predmeta je ažuriran.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating subject row {row.id}: {e}", exc_info=True)
        return False, SAVE_FAILED


def add_subject_row(ctx, application, home_course, accepting_course):
    if not policy.can_manage_subjects(ctx, application):
        return None, FORBIDDEN
    try:
        cleaned = clean_subject_rows([{'home_course': home_course, 'accepting_course': accepting_course}])[0]
    except SubjectInputError as e:
        return None, str(e)
    try:
        row = SubjectRow(home_course=cleaned['home_course'], accepting_course=cleaned['accepting_course'],
                         status=SubjectStatus.PENDING)
        application.subject_proposal.rows.append(row)
        application.subject_proposal.modified_at = datetime.utcnow()
        db.session.flush()
        log_action("Add Subject Row", user=db.session.get(User, ctx.user_id), model=SubjectRow,
                   record_id=row.id, new_value=cleaned)
        db.session.commit()
        return row, 'Predmet je dodan.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error adding subject row to application {application.id}: {e}", exc_info=True)
        return None, SAVE_FAILED


def edit_subject_row(ctx, row, home_course, accepting_course):
    if not policy.can_manage_subjects(ctx, row.proposal.application):
        return False, FORBIDDEN
    try:
        cleaned = clean_subject_rows([{'home_course': home_course, 'accepting_course': accepting_course}])[0]
    except SubjectInputError as e:
        return False, str(e)
    old_value = {'home_course': row.home_course, 'accepting_course': row.accepting_course}
    try:
        row.home_course = cleaned['home_course']
        row.accepting_course = cleaned['accepting_course']
        row.proposal.modified_at = datetime.utcnow()
        log_action("Edit Subject Row", user=db.session.get(User, ctx.user_id), model=SubjectRow,
                   record_id=row.id, old_value=old_value, new_value=cleaned)
        db.session.commit()
        return True, 'Predmet je izmijenjen.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error editing subject row {row.id}: {e}", exc_info=True)
        return False, SAVE_FAILED


def delete_subject_row(ctx, row):
    proposal = row.proposal
    if not policy.can_manage_subjects(ctx, proposal.application):
        return False, FORBIDDEN
    row_id = row.id
    try:
        proposal.rows.remove(row)
        proposal.modified_at = datetime.utcnow()
        log_action("Delete Subject Row", user=db.session.get(User, ctx.user_id), model=SubjectRow,
                   record_id=row_id)
        db.session.commit()
        return True, 'Predmet je obrisan.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting subject row {row_id}: {e}", exc_info=True)
        return False, SAVE_FAILED


def delete_application(ctx, application):
    if not policy.can_delete_application(ctx):
        return False, FORBIDDEN
    application_id = application.id
    try:
        db.session.delete(application)
        log_action("Delete Application", user=db.session.get(User, ctx.user_id), model=Application,
                   record_id=application_id)
        db.session.commit()
        current_app.logger.info(f"Application {application_id} deleted by user {ctx.user_id}.")
        return True, 'Prijava je obrisana.'
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting application {application_id}: {e}", exc_info=True)
        return False, SAVE_FAILED


# --- Maintenance ---

def remove_duplicate_applications(user=None):
    """
    Keeps only the earliest application (by creation time, then id) for each
    (student, program) pair and deletes the rest.

    Returns the number of applications removed, or None on failure.
    """
    try:
        duplicate_pairs = db.session.query(Application.student_id, Application.program_id).group_by(
            Application.student_id, Application.program_id
        ).having(func.count(Application.id) > 1).all()

        removed = 0
        for student_id, program_id in duplicate_pairs:
            applications = Application.query.filter_by(
                student_id=student_id, program_id=program_id
            ).order_by(Application.date_created.asc(), Application.id.asc()).all()
            for duplicate in applications[1:]:
                db.session.delete(duplicate)
                removed += 1

        if removed:
            log_action("Remove Duplicate Applications", user=user, model=Application,
                       new_value={'removed': removed, 'pairs': len(duplicate_pairs)})
        db.session.commit()
        current_app.logger.info(f"Duplicate cleanup removed {removed} applications across {len(duplicate_pairs)} pairs.")
        return removed
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error removing duplicate applications: {e}", exc_info=True)
        return None
