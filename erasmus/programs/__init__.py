from flask import Blueprint

bp = Blueprint('programs', __name__)
# JSON mirror of the program list, registered under /api/programs
api_bp = Blueprint('programs_api', __name__)

from erasmus.programs import routes, api
