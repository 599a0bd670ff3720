from flask import Blueprint

bp = Blueprint('admin', __name__)

from erasmus.admin import routes
