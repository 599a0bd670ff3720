# erasmus/admin/forms.py

from flask_wtf import FlaskForm
from wtforms import StringField, SubmitField, ValidationError
from wtforms.validators import DataRequired, Length
from erasmus.models import Faculty

class FacultyForm(FlaskForm):
    name = StringField('Naziv fakulteta', validators=[DataRequired(), Length(min=2, max=150)])
    submit = SubmitField('Spremi')

    def validate_name(self, name):
        if Faculty.query.filter(Faculty.name == name.data.strip()).first():
            raise ValidationError('Fakultet s ovim nazivom već postoji.')

class ConfirmForm(FlaskForm):
    submit = SubmitField('Potvrdi')
