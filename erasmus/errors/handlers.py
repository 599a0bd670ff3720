# FILE: erasmus/errors/handlers.py
from flask import current_app, jsonify, render_template, request
from erasmus import db
from erasmus.errors import bp


def wants_json_response():
    if request.path.startswith('/api/'):
        return True
    return request.accept_mimetypes['application/json'] >= \
        request.accept_mimetypes['text/html']


def _error_response(status_code, message, template):
    if wants_json_response():
        return jsonify({'error': message}), status_code
    return render_template(template, title=message), status_code


@bp.app_errorhandler(400)
def bad_request_error(error):
    return _error_response(400, 'Neispravan zahtjev', 'errors/400.html')


@bp.app_errorhandler(403)
def forbidden_error(error):
    return _error_response(403, 'Zabranjen pristup', 'errors/403.html')


@bp.app_errorhandler(404)
def not_found_error(error):
    return _error_response(404, 'Stranica nije pronađena', 'errors/404.html')


@bp.app_errorhandler(500)
def internal_error(error):
    # A failed request must not leave a broken transaction behind.
    db.session.rollback()
    current_app.logger.error(f"Unhandled error on {request.path}: {error}", exc_info=True)
    return _error_response(500, 'Greška na serveru', 'errors/500.html')
