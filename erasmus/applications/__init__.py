from flask import Blueprint

bp = Blueprint('applications', __name__)

from erasmus.applications import routes
