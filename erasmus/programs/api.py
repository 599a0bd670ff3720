# FILE: erasmus/programs/api.py
from flask import jsonify
from erasmus import db
from erasmus.models import ExchangeProgram
from erasmus.programs import api_bp

@api_bp.route('')
def get_programs():
    programs = ExchangeProgram.query.order_by(ExchangeProgram.id).all()
    return jsonify([p.to_dict() for p in programs])

@api_bp.route('/<int:program_id>')
def get_program(program_id):
    program = db.get_or_404(ExchangeProgram, program_id)
    return jsonify(program.to_dict())
