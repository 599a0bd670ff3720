# erasmus/applications/forms.py
from flask_wtf import FlaskForm
from wtforms import (BooleanField, FieldList, Form, FormField, IntegerField,
                     SelectField, StringField, SubmitField, TextAreaField)
from wtforms.validators import DataRequired, Length, Optional
from erasmus.models import ApplicationStatus, SubjectStatus

BLANK_SUBJECT_ROWS = 3

class SubjectRowForm(Form):
    """One home/accepting course pair. Plain Form: the parent form carries the CSRF token."""
    id = IntegerField(validators=[Optional()], default=0)
    home_course = StringField('Matični predmet', validators=[Optional(), Length(max=200)])
    accepting_course = StringField('Predmet na prihvatnoj instituciji', validators=[Optional(), Length(max=200)])

class ApplicationForm(FlaskForm):
    cv = BooleanField('CV')
    motivation_letter = BooleanField('Motivaciono pismo')
    learning_agreement = BooleanField('Ugovor o učenju (Learning Agreement)')
    subjects = FieldList(FormField(SubjectRowForm), min_entries=1)
    submit = SubmitField('Pošalji prijavu')

    def documentation_data(self):
        return {
            'cv': self.cv.data,
            'motivation_letter': self.motivation_letter.data,
            'learning_agreement': self.learning_agreement.data,
        }

    def subject_rows(self):
        return [entry.data for entry in self.subjects]

    def pad_blank_rows(self, count=BLANK_SUBJECT_ROWS):
        blank = sum(1 for entry in self.subjects
                    if not entry.home_course.data and not entry.accepting_course.data)
        for _ in range(max(count - blank, 0)):
            self.subjects.append_entry()

class ApplicationStatusForm(FlaskForm):
    status = SelectField('Status prijave',
                         choices=[(s.name, s.label) for s in ApplicationStatus],
                         validators=[DataRequired()])
    submit = SubmitField('Promijeni status')

class SubjectStatusForm(FlaskForm):
    status = SelectField('Status predmeta',
                         choices=[(s.name, s.label) for s in (SubjectStatus.APPROVED, SubjectStatus.REJECTED)],
                         validators=[DataRequired()])
    submit = SubmitField('Spremi')

class SubjectRowEditForm(FlaskForm):
    home_course = StringField('Matični predmet', validators=[DataRequired(), Length(max=200)])
    accepting_course = StringField('Predmet na prihvatnoj instituciji', validators=[DataRequired(), Length(max=200)])
    submit = SubmitField('Spremi predmet')

class NotificationForm(FlaskForm):
    content = TextAreaField('Poruka studentu', validators=[DataRequired(), Length(max=2000)])
    submit = SubmitField('Pošalji')

class ConfirmForm(FlaskForm):
    submit = SubmitField('Potvrdi')
