# FILE: erasmus/main/routes.py
from flask import abort, current_app, jsonify, redirect, render_template, request, url_for
from flask_login import login_required, current_user
from erasmus.main import bp
from erasmus.models import Application, Notification, Role
from erasmus.policy import current_context
from erasmus.services import mark_notification_read, send_notification
from erasmus import db

@bp.route('/dashboard')
@login_required
def dashboard():
    current_app.logger.debug(f"Dashboard redirect for user {current_user.id} with role {current_user.role}")

    if current_user.has_role(Role.ADMIN):
        return redirect(url_for('admin.index'))
    elif current_user.has_role(Role.COORDINATOR):
        return redirect(url_for('applications.index'))
    elif current_user.has_role(Role.STUDENT):
        return redirect(url_for('applications.my_applications'))
    return redirect(url_for('programs.list_programs'))

@bp.route('/api/notifications')
@login_required
def get_notifications():
    notifications = current_user.notifications.order_by(Notification.created_at.desc()).all()
    return jsonify([n.to_dict() for n in notifications])

@bp.route('/api/notifications/<int:notification_id>/mark-read', methods=['POST'])
@login_required
def mark_notification_as_read(notification_id):
    notification = db.session.get(Notification, notification_id)
    if not notification or notification.user_id != current_user.id:
        abort(404)

    mark_notification_read(notification)
    return jsonify({'status': 'success'})

@bp.route('/api/notifications', methods=['POST'])
@login_required
def create_notification():
    """Admin-only: free-text notification to the student behind an application."""
    payload = request.get_json(silent=True) or {}
    ctx = current_context()
    if not ctx.is_admin:
        abort(403)

    try:
        application_id = int(payload.get('application_id'))
    except (TypeError, ValueError):
        return jsonify({'error': 'application_id je obavezan.'}), 400
    application = db.session.get(Application, application_id)
    if application is None or application.student is None:
        return jsonify({'error': 'Prijava ili student nije pronađen.'}), 404

    notification, message = send_notification(ctx, application, payload.get('content'))
    if notification is None:
        return jsonify({'error': message}), 400
    return jsonify({'message': message, 'id': notification.id, 'application_id': application.id}), 201

@bp.route('/notifications')
@login_required
def all_notifications():
    """
    Shows every notification of the current user (unread first) and marks them read.
    """
    all_notifs = current_user.notifications.order_by(
        Notification.is_read.asc(),
        Notification.created_at.desc()
    ).all()

    unread_ids = [n.id for n in all_notifs if not n.is_read]
    if unread_ids:
        Notification.query.filter(Notification.id.in_(unread_ids)).update(
            {'is_read': True}, synchronize_session=False
        )
        db.session.commit()

    return render_template('main/notifications.html',
                           title='Notifikacije',
                           notifications=all_notifs,
                           unread_ids=set(unread_ids))
