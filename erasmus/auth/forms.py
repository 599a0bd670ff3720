# erasmus/auth/forms.py
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SubmitField, ValidationError
from wtforms.validators import DataRequired, EqualTo, Length, Email
from wtforms_sqlalchemy.fields import QuerySelectField
from erasmus.models import Faculty, User

class LoginForm(FlaskForm):
    email = StringField('E-mail', validators=[DataRequired(), Email()])
    password = PasswordField('Lozinka', validators=[DataRequired()])
    remember_me = BooleanField('Zapamti me')
    submit = SubmitField('Prijava')

def get_faculties():
    return Faculty.query.order_by(Faculty.name).all()

class RegisterForm(FlaskForm):
    email = StringField('E-mail', validators=[DataRequired(), Email(), Length(max=120)])
    first_name = StringField('Ime', validators=[DataRequired(), Length(max=64)])
    last_name = StringField('Prezime', validators=[DataRequired(), Length(max=64)])
    faculty = QuerySelectField('Fakultet', query_factory=get_faculties, get_label='name',
                               allow_blank=True, blank_text='-- Odaberite fakultet --',
                               validators=[DataRequired(message='Fakultet je obavezan.')])
    password = PasswordField('Lozinka', validators=[DataRequired(), Length(min=6)])
    password2 = PasswordField('Potvrda lozinke', validators=[DataRequired(), EqualTo('password', message='Lozinke se moraju podudarati.')])
    submit = SubmitField('Registracija')

    def validate_email(self, email):
        if User.query.filter_by(email=email.data.strip().lower()).first():
            raise ValidationError('Korisnik s ovom e-mail adresom već postoji.')

class RegisterCoordinatorForm(RegisterForm):
    faculty = QuerySelectField('Fakultet', query_factory=get_faculties, get_label='name',
                               allow_blank=True, blank_text='-- Odaberite fakultet --',
                               validators=[DataRequired(message='Fakultet je neophodan za ECTS koordinatora.')])
    submit = SubmitField('Kreiraj koordinatora')
