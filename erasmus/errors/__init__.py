from flask import Blueprint

bp = Blueprint('errors', __name__)

from erasmus.errors import handlers
