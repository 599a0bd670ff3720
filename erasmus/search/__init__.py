from flask import Blueprint

bp = Blueprint('search', __name__)

from erasmus.search import routes
