# utils/auth.py
from functools import wraps
from flask import request
from flask_login import current_user, login_required

from models import db, Student, Admin
from utils.errors import ForbiddenError, NotFoundError
from utils.token_utils import verify_access_token

ADMIN_ROLES = ('admin', 'superadmin')


def bearer_token(req=None):
    req = req or request
    header = req.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header.split(' ', 1)[1].strip() or None
    return None


def load_identity(user_id):
    """Resolve a ``student:<id>`` / ``admin:<id>`` identity to its account."""
    kind, _, pk = (user_id or '').partition(':')
    if not pk.isdigit():
        return None
    if kind == 'admin':
        return db.session.get(Admin, int(pk))
    if kind == 'student':
        return db.session.get(Student, int(pk))
    return None


def load_user_from_request(req):
    token = bearer_token(req)
    if not token:
        return None

    payload = verify_access_token(token)
    if not payload:
        return None

    user = load_identity(payload.get('sub'))
    if user is None:
        return None
    if not user.is_active:
        raise ForbiddenError("Account is deactivated", reason='account_deactivated')
    return user


def role_required(*roles):
    def decorator(view):
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role not in roles:
                raise ForbiddenError(
                    f"User role '{current_user.role}' is not authorized to access this route"
                )
            return view(*args, **kwargs)
        return wrapped
    return decorator


admin_required = role_required(*ADMIN_ROLES)


def resolve_student(student_id=None):
    """
    The student a student-scoped route works on: the caller themselves, or
    for admins the student named in the path.
    """
    if current_user.is_admin:
        if student_id is None:
            raise NotFoundError("Student not found", reason='student_not_found')
        student = db.session.get(Student, student_id)
        if student is None:
            raise NotFoundError("Student not found", reason='student_not_found')
        return student

    if student_id is not None and student_id != current_user.id:
        raise ForbiddenError("Not authorized to access another student's records")
    return current_user
