from datetime import datetime, timedelta
import pytest

from app import create_app
from config import TestConfig
from models import db, Student, Admin, Course, Enrollment, Assignment
from utils.auth import load_identity
from utils.token_utils import generate_access_token


class Factory:
    """
    Seeds rows inside a short-lived app context and returns primary keys,
    so no context is left pushed while the test client makes requests.
    """

    def __init__(self, app):
        self.app = app
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def _save(self, obj):
        with self.app.app_context():
            db.session.add(obj)
            db.session.commit()
            return obj.id

    def student(self, password='secret123', **overrides):
        n = self._next()
        fields = dict(
            name=f'Student {n}',
            email=f'student{n}@college.edu',
            phone='9000000000',
            roll_number=f'CS{n:03d}',
            semester=1,
        )
        fields.update(overrides)
        student = Student(**fields)
        student.set_password(password)
        return self._save(student)

    def admin(self, password='adminpass', role='admin', **overrides):
        n = self._next()
        fields = dict(username=f'admin{n}', email=f'admin{n}@college.edu', name=f'Admin {n}', role=role)
        fields.update(overrides)
        admin = Admin(**fields)
        admin.set_password(password)
        return self._save(admin)

    def course(self, credits=3, **overrides):
        n = self._next()
        fields = dict(code=f'CS{100 + n}', title=f'Course {n}', credits=credits, department='Computer Science')
        fields.update(overrides)
        return self._save(Course(**fields))

    def enrollment(self, student_id, course_id, semester=1, status='active', grade=''):
        enrollment = Enrollment(
            student_id=student_id,
            course_id=course_id,
            semester=semester,
            academic_year='2024-25',
            status=status,
        )
        enrollment.assign_grade(grade)
        return self._save(enrollment)

    def assignment(self, course_id, created_by_id, due_date=None, **overrides):
        fields = dict(
            title='Linked lists',
            description='Implement a doubly linked list',
            course_id=course_id,
            semester=1,
            max_marks=100,
            due_date=due_date or datetime.utcnow() + timedelta(days=7),
            created_by_id=created_by_id,
        )
        fields.update(overrides)
        return self._save(Assignment(**fields))

    def token(self, kind, user_id):
        with self.app.app_context():
            return generate_access_token(load_identity(f'{kind}:{user_id}'))

    def headers(self, kind, user_id):
        return {'Authorization': f'Bearer {self.token(kind, user_id)}'}


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def factory(app):
    return Factory(app)


@pytest.fixture
def admin_headers(factory):
    return factory.headers('admin', factory.admin())
