# erasmus/programs/forms.py
import re
from flask_wtf import FlaskForm
from wtforms import SelectField, StringField, SubmitField, TextAreaField, ValidationError
from wtforms.validators import DataRequired, Length, Optional, Regexp
from erasmus.models import Semester

ACADEMIC_YEAR_RE = re.compile(r'^\d{4}/\d{4}$')

def validate_academic_year(form, field):
    """Academic year must be two consecutive years, e.g. 2025/2026."""
    if not ACADEMIC_YEAR_RE.match(field.data or ''):
        return  # format errors are reported by the Regexp validator
    first, second = (int(part) for part in field.data.split('/'))
    if second != first + 1:
        raise ValidationError('Akademska godina mora obuhvatati dvije uzastopne godine (npr. 2025/2026).')

class ExchangeProgramForm(FlaskForm):
    university = StringField('Univerzitet', validators=[DataRequired(), Length(max=200)])
    academic_year = StringField('Akademska godina (YYYY/YYYY)', validators=[
        DataRequired(),
        Regexp(ACADEMIC_YEAR_RE, message='Akademska godina mora biti u formatu YYYY/YYYY.'),
        validate_academic_year
    ])
    semester = SelectField('Semestar', choices=Semester.choices(), coerce=int, validators=[DataRequired()])
    description = TextAreaField('Opis', validators=[Optional(), Length(max=5000)])
    submit = SubmitField('Spremi')

class DeleteForm(FlaskForm):
    submit = SubmitField('Obriši')
