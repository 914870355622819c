from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timedelta
from sqlalchemy import event
import hashlib

from utils.extensions import db
from utils.grading import grade_points_for, derive_percentage_and_grade


class Student(db.Model, UserMixin):
    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    roll_number = db.Column(db.String(30), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    department = db.Column(db.String(100), nullable=False, default='Computer Science')
    avatar = db.Column(db.String(255), default='')
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    enrollments = db.relationship('Enrollment', back_populates='student')

    __table_args__ = (
        db.CheckConstraint('semester BETWEEN 1 AND 8', name='ck_student_semester'),
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def get_id(self):
        return f"student:{self.id}"

    @property
    def role(self):
        return 'student'

    @property
    def is_admin(self):
        return False

    def __repr__(self):
        return f"<Student {self.roll_number}>"


class Admin(db.Model, UserMixin):
    __tablename__ = 'admin'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='admin')  # admin, superadmin
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def get_id(self):
        return f"admin:{self.id}"

    @property
    def is_admin(self):
        return True

    def __repr__(self):
        return f"<Admin {self.username}>"


class Course(db.Model):
    __tablename__ = 'course'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False)
    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, default='')
    credits = db.Column(db.Integer, nullable=True, default=3)
    department = db.Column(db.String(100), nullable=True)
    semester = db.Column(db.Integer, nullable=True)
    instructor = db.Column(db.String(120), nullable=True)
    schedule = db.Column(db.String(120), nullable=True)
    room = db.Column(db.String(50), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def credit_weight(self):
        # Courses without recorded credits weigh as a standard 3-credit course
        return self.credits or 3

    def __repr__(self):
        return f"<Course {self.code}>"


class Enrollment(db.Model):
    __tablename__ = 'enrollment'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    academic_year = db.Column(db.String(20), nullable=False)
    enrollment_date = db.Column(db.DateTime, default=datetime.utcnow)
    status = db.Column(db.String(20), nullable=False, default='active')  # active, completed, dropped, failed
    grade = db.Column(db.String(2), nullable=False, default='')
    grade_points = db.Column(db.Float, nullable=False, default=0)
    attendance_percentage = db.Column(db.Float, nullable=False, default=0)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship('Student', back_populates='enrollments')
    course = db.relationship('Course', backref='enrollments')

    __table_args__ = (
        db.UniqueConstraint('student_id', 'course_id', 'semester', name='uq_enrollment_student_course_semester'),
    )

    STATUSES = ('active', 'completed', 'dropped', 'failed')

    def assign_grade(self, grade):
        self.grade = grade
        self.grade_points = grade_points_for(grade)

    def __repr__(self):
        return f"<Enrollment student={self.student_id} course={self.course_id} sem={self.semester}>"


class AttendanceSession(db.Model):
    __tablename__ = 'attendance_session'

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    date = db.Column(db.Date, nullable=False)
    topic = db.Column(db.String(200), nullable=False)
    session_type = db.Column(db.String(20), nullable=False, default='lecture')  # lecture, lab, tutorial, seminar
    duration = db.Column(db.Float, nullable=False, default=1)  # hours
    academic_year = db.Column(db.String(20), nullable=False)
    marked_by_id = db.Column(db.Integer, db.ForeignKey('admin.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    course = db.relationship('Course')
    marked_by = db.relationship('Admin')
    records = db.relationship(
        'AttendanceRecord',
        back_populates='session',
        cascade='all, delete-orphan'
    )

    __table_args__ = (
        db.UniqueConstraint('course_id', 'date', 'session_type', name='uq_attendance_course_date_type'),
    )

    SESSION_TYPES = ('lecture', 'lab', 'tutorial', 'seminar')

    def record_for(self, student_id):
        return next((r for r in self.records if r.student_id == student_id), None)


class AttendanceRecord(db.Model):
    __tablename__ = 'attendance_record'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('attendance_session.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    status = db.Column(db.String(10), nullable=False)  # present, absent, late, excused
    remarks = db.Column(db.String(255), default='')

    session = db.relationship('AttendanceSession', back_populates='records')
    student = db.relationship('Student')

    __table_args__ = (
        db.UniqueConstraint('session_id', 'student_id', name='uq_attendance_record_session_student'),
    )

    STATUSES = ('present', 'absent', 'late', 'excused')


class Marks(db.Model):
    __tablename__ = 'marks'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    academic_year = db.Column(db.String(20), nullable=False)
    exam_type = db.Column(db.String(20), nullable=False)
    max_marks = db.Column(db.Float, nullable=False)
    marks_obtained = db.Column(db.Float, nullable=False)
    percentage = db.Column(db.Float, nullable=False, default=0)
    grade = db.Column(db.String(2), nullable=False, default='')
    remarks = db.Column(db.Text, default='')
    entered_by_id = db.Column(db.Integer, db.ForeignKey('admin.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = db.relationship('Student', backref='marks')
    course = db.relationship('Course')
    entered_by = db.relationship('Admin')

    __table_args__ = (
        db.UniqueConstraint('student_id', 'course_id', 'semester', 'exam_type', name='uq_marks_student_course_exam'),
    )

    EXAM_TYPES = ('internal1', 'internal2', 'internal3', 'assignment', 'project', 'final', 'practical')


@event.listens_for(Marks, 'before_insert')
@event.listens_for(Marks, 'before_update')
def _derive_marks_grade(mapper, connection, target):
    target.percentage, target.grade = derive_percentage_and_grade(target.marks_obtained, target.max_marks)


class Assignment(db.Model):
    __tablename__ = 'assignment'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey('course.id'), nullable=False)
    semester = db.Column(db.Integer, nullable=False)
    max_marks = db.Column(db.Float, nullable=False, default=100)
    due_date = db.Column(db.DateTime, nullable=False)
    allow_late_submission = db.Column(db.Boolean, nullable=False, default=False)
    late_submission_deadline = db.Column(db.DateTime, nullable=True)
    instructions = db.Column(db.Text, default='')
    attachments = db.Column(db.JSON, default=list)
    created_by_id = db.Column(db.Integer, db.ForeignKey('admin.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    course = db.relationship('Course', backref='assignments')
    created_by = db.relationship('Admin')
    submissions = db.relationship(
        'Submission',
        back_populates='assignment',
        cascade='all, delete-orphan',
        order_by='Submission.submitted_at'
    )

    def is_submission_late(self, submitted_at):
        return submitted_at > self.due_date

    def get_student_submission(self, student_id):
        return next((s for s in self.submissions if s.student_id == student_id), None)

    def __repr__(self):
        return f"<Assignment {self.title}>"


class Submission(db.Model):
    __tablename__ = 'submission'

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignment.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    files = db.Column(db.JSON, default=list)
    text_content = db.Column(db.Text, default='')
    status = db.Column(db.String(10), nullable=False, default='submitted')  # submitted, late, graded, returned
    marks = db.Column(db.Float, nullable=True)
    feedback = db.Column(db.Text, default='')
    graded_by_id = db.Column(db.Integer, db.ForeignKey('admin.id'), nullable=True)
    graded_at = db.Column(db.DateTime, nullable=True)

    assignment = db.relationship('Assignment', back_populates='submissions')
    student = db.relationship('Student')
    graded_by = db.relationship('Admin')

    __table_args__ = (
        db.UniqueConstraint('assignment_id', 'student_id', name='uq_submission_assignment_student'),
    )


class TokenBlacklist(db.Model):
    __tablename__ = 'token_blacklist'

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    @staticmethod
    def hash_token(raw_token):
        return hashlib.sha256(raw_token.encode()).hexdigest()

    @staticmethod
    def revoke(raw_token, ttl_seconds):
        token_hash = TokenBlacklist.hash_token(raw_token)
        if TokenBlacklist.query.filter_by(token_hash=token_hash).first():
            return
        now = datetime.utcnow()
        db.session.add(TokenBlacklist(
            token_hash=token_hash,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds)
        ))

    @staticmethod
    def is_revoked(raw_token):
        token_hash = TokenBlacklist.hash_token(raw_token)
        entry = TokenBlacklist.query.filter_by(token_hash=token_hash).first()
        return entry is not None and entry.expires_at > datetime.utcnow()

    @staticmethod
    def purge_expired():
        return TokenBlacklist.query.filter(
            TokenBlacklist.expires_at <= datetime.utcnow()
        ).delete(synchronize_session=False)
