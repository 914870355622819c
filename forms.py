import re
from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField, PasswordField, IntegerField, FloatField, BooleanField, TextAreaField
from wtforms.fields import DateField, DateTimeField
from wtforms.validators import DataRequired, InputRequired, Length, Email, Optional, NumberRange, AnyOf, ValidationError

from models import Enrollment, AttendanceSession, Marks
from utils.errors import ValidationFailed
from utils.grading import ENROLLMENT_GRADES

# Portals send ISO strings, with or without a time part / UTC suffix
DATE_FORMATS = ['%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ']
DATETIME_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M', '%Y-%m-%dT%H:%M:%S.%fZ',
                    '%Y-%m-%dT%H:%M:%SZ', '%Y-%m-%d %H:%M:%S']

_CAMEL = re.compile(r'(?<!^)(?=[A-Z])')


def _snake(key):
    return _CAMEL.sub('_', key).lower()


def _text(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def json_formdata(payload):
    """
    Flatten a JSON body into the form data WTForms expects. camelCase keys
    become snake_case field names; nested objects are left to the caller.
    """
    formdata = MultiDict()
    for key, value in (payload or {}).items():
        if value is None or isinstance(value, dict):
            continue
        name = _snake(key)
        if isinstance(value, list):
            if all(not isinstance(v, (dict, list)) and v is not None for v in value):
                formdata.setlist(name, [_text(v) for v in value])
            continue
        formdata.add(name, _text(value))
    return formdata


class ApiForm(FlaskForm):
    class Meta:
        csrf = False

    def provided_data(self):
        """Only the fields present in the request body."""
        return {name: field.data for name, field in self._fields.items() if field.raw_data}


def load_form(form_cls, payload=None):
    if payload is None:
        payload = request.get_json(silent=True) or {}
    form = form_cls(formdata=json_formdata(payload))
    if not form.validate():
        raise ValidationFailed("Invalid request data", errors=form.errors)
    return form


def _positive(form, field):
    if field.data is not None and field.data <= 0:
        raise ValidationError("Must be greater than zero.")


# ============================
# Auth
# ============================

class StudentRegisterForm(ApiForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=120)])
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6)])
    phone = StringField('Phone', validators=[DataRequired(), Length(max=20)])
    roll_number = StringField('Roll Number', validators=[DataRequired(), Length(max=30)])
    semester = IntegerField('Semester', validators=[InputRequired(), NumberRange(min=1, max=8)])
    department = StringField('Department', validators=[Optional(), Length(max=100)])


class StudentLoginForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(message="Please provide email and password")])
    password = PasswordField('Password', validators=[DataRequired(message="Please provide email and password")])


class AdminLoginForm(ApiForm):
    username = StringField('Username', validators=[DataRequired(message="Please provide username and password")])
    password = PasswordField('Password', validators=[DataRequired(message="Please provide username and password")])


class AdminRegisterForm(ApiForm):
    username = StringField('Username', validators=[DataRequired(), Length(min=3, max=100)])
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6)])
    name = StringField('Name', validators=[DataRequired(), Length(max=120)])
    registration_key = StringField('Registration Key', validators=[Optional()])


class ProfileForm(ApiForm):
    name = StringField('Name', validators=[Optional(), Length(min=1, max=120)])
    phone = StringField('Phone', validators=[Optional(), Length(max=20)])
    avatar = StringField('Avatar', validators=[Optional(), Length(max=255)])


class ChangePasswordForm(ApiForm):
    current_password = PasswordField('Current Password', validators=[
        DataRequired(message="Please provide both current and new password")])
    new_password = PasswordField('New Password', validators=[
        DataRequired(message="Please provide both current and new password"), Length(min=6)])


class RefreshTokenForm(ApiForm):
    refresh_token = StringField('Refresh Token', validators=[DataRequired()])


# ============================
# Courses & enrollments
# ============================

class CourseForm(ApiForm):
    code = StringField('Course Code', validators=[DataRequired(), Length(max=20)])
    title = StringField('Title', validators=[DataRequired(), Length(max=150)])
    description = TextAreaField('Description', validators=[Optional()])
    credits = IntegerField('Credits', validators=[Optional(), NumberRange(min=1, max=10)])
    department = StringField('Department', validators=[Optional(), Length(max=100)])
    semester = IntegerField('Semester', validators=[Optional(), NumberRange(min=1, max=8)])
    instructor = StringField('Instructor', validators=[Optional(), Length(max=120)])
    schedule = StringField('Schedule', validators=[Optional(), Length(max=120)])
    room = StringField('Room', validators=[Optional(), Length(max=50)])


class CourseUpdateForm(CourseForm):
    code = StringField('Course Code', validators=[Optional(), Length(min=1, max=20)])
    title = StringField('Title', validators=[Optional(), Length(min=1, max=150)])


class EnrollmentForm(ApiForm):
    course_id = IntegerField('Course', validators=[InputRequired()])
    semester = IntegerField('Semester', validators=[InputRequired(), NumberRange(min=1, max=8)])
    academic_year = StringField('Academic Year', validators=[DataRequired(), Length(max=20)])
    student_id = IntegerField('Student', validators=[Optional()])


class EnrollmentUpdateForm(ApiForm):
    grade = StringField('Grade', validators=[Optional(), AnyOf(ENROLLMENT_GRADES)])
    grade_points = FloatField('Grade Points', validators=[Optional(), NumberRange(min=0, max=10)])
    status = StringField('Status', validators=[Optional(), AnyOf(Enrollment.STATUSES)])
    attendance_percentage = FloatField('Attendance', validators=[Optional(), NumberRange(min=0, max=100)])


# ============================
# Attendance
# ============================

class AttendanceForm(ApiForm):
    course = IntegerField('Course', validators=[InputRequired()])
    semester = IntegerField('Semester', validators=[InputRequired(), NumberRange(min=1, max=8)])
    date = DateField('Date', format=DATE_FORMATS, validators=[DataRequired()])
    topic = StringField('Topic', validators=[DataRequired(), Length(max=200)])
    session_type = StringField('Session Type', validators=[Optional(), AnyOf(AttendanceSession.SESSION_TYPES)])
    duration = FloatField('Duration', validators=[Optional(), NumberRange(min=0)])
    academic_year = StringField('Academic Year', validators=[DataRequired(), Length(max=20)])


# ============================
# Marks
# ============================

class MarksForm(ApiForm):
    student = IntegerField('Student', validators=[InputRequired()])
    course = IntegerField('Course', validators=[InputRequired()])
    semester = IntegerField('Semester', validators=[InputRequired(), NumberRange(min=1, max=8)])
    academic_year = StringField('Academic Year', validators=[DataRequired(), Length(max=20)])
    exam_type = StringField('Exam Type', validators=[DataRequired(), AnyOf(Marks.EXAM_TYPES)])
    max_marks = FloatField('Max Marks', validators=[InputRequired(), _positive])
    marks_obtained = FloatField('Marks Obtained', validators=[InputRequired(), NumberRange(min=0)])
    remarks = TextAreaField('Remarks', validators=[Optional()])

    def validate_marks_obtained(self, field):
        if self.max_marks.data and field.data is not None and field.data > self.max_marks.data:
            raise ValidationError("Marks obtained cannot exceed max marks.")


class MarksUpdateForm(ApiForm):
    marks_obtained = FloatField('Marks Obtained', validators=[Optional(), NumberRange(min=0)])
    remarks = TextAreaField('Remarks', validators=[Optional()])


# ============================
# Assignments
# ============================

class AssignmentForm(ApiForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=150)])
    description = TextAreaField('Description', validators=[DataRequired()])
    course = IntegerField('Course', validators=[InputRequired()])
    semester = IntegerField('Semester', validators=[InputRequired(), NumberRange(min=1, max=8)])
    max_marks = FloatField('Max Marks', validators=[Optional(), _positive])
    due_date = DateTimeField('Due Date', format=DATETIME_FORMATS, validators=[DataRequired()])
    allow_late_submission = BooleanField('Allow Late Submission')
    late_submission_deadline = DateTimeField('Late Deadline', format=DATETIME_FORMATS, validators=[Optional()])
    instructions = TextAreaField('Instructions', validators=[Optional()])

    def validate_late_submission_deadline(self, field):
        if field.data and self.due_date.data and field.data < self.due_date.data:
            raise ValidationError("Late submission deadline must be after the due date.")


class AssignmentUpdateForm(AssignmentForm):
    title = StringField('Title', validators=[Optional(), Length(min=1, max=150)])
    description = TextAreaField('Description', validators=[Optional()])
    course = IntegerField('Course', validators=[Optional()])
    semester = IntegerField('Semester', validators=[Optional(), NumberRange(min=1, max=8)])
    due_date = DateTimeField('Due Date', format=DATETIME_FORMATS, validators=[Optional()])


class SubmissionForm(ApiForm):
    text_content = TextAreaField('Text', validators=[Optional()])


class GradeSubmissionForm(ApiForm):
    marks = FloatField('Marks', validators=[InputRequired(), NumberRange(min=0)])
    feedback = TextAreaField('Feedback', validators=[Optional()])
