from flask import Blueprint

bp = Blueprint('auth', __name__)

from erasmus.auth import routes
