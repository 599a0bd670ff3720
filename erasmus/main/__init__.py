from flask import Blueprint

bp = Blueprint('main', __name__)

from erasmus.main import routes
