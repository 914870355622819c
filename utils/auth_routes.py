from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
from datetime import datetime
from sqlalchemy import or_

from utils.extensions import db
from models import Student, Admin
from forms import (load_form, StudentRegisterForm, StudentLoginForm, AdminLoginForm, AdminRegisterForm,
                   ProfileForm, ChangePasswordForm, RefreshTokenForm)
from utils.auth import bearer_token, load_identity
from utils.errors import ConflictError, ForbiddenError, UnauthorizedError, NotFoundError
from utils.serializers import serialize_student, serialize_admin
from utils.token_utils import issue_tokens, generate_access_token, verify_refresh_token, revoke_token

auth_bp = Blueprint('auth', __name__)


# ========== STUDENT ==========

@auth_bp.route('/student/register', methods=['POST'])
def register_student():
    form = load_form(StudentRegisterForm)
    email = form.email.data.strip().lower()
    roll_number = form.roll_number.data.strip()

    existing = Student.query.filter(
        or_(Student.email == email, Student.roll_number == roll_number)
    ).first()
    if existing:
        message = "Email already registered" if existing.email == email else "Roll number already exists"
        raise ConflictError(message, reason='duplicate_student')

    student = Student(
        name=form.name.data.strip(),
        email=email,
        phone=form.phone.data.strip(),
        roll_number=roll_number,
        semester=form.semester.data,
        department=(form.department.data or '').strip() or 'Computer Science'
    )
    student.set_password(form.password.data)
    db.session.add(student)
    db.session.commit()
    current_app.logger.info("Student %s registered", student.roll_number)

    return jsonify({
        'success': True,
        'message': "Registration successful",
        **issue_tokens(student),
        'student': serialize_student(student)
    }), 201


@auth_bp.route('/student/login', methods=['POST'])
def login_student():
    form = load_form(StudentLoginForm)
    student = Student.query.filter_by(email=form.email.data.strip().lower()).first()

    if not student:
        raise UnauthorizedError("Invalid credentials", reason='invalid_credentials')
    if not student.is_active:
        raise ForbiddenError("Account is deactivated. Please contact admin.", reason='account_deactivated')
    if not student.check_password(form.password.data):
        raise UnauthorizedError("Invalid credentials", reason='invalid_credentials')

    return jsonify({
        'success': True,
        'message': "Login successful",
        **issue_tokens(student),
        'student': serialize_student(student)
    })


@auth_bp.route('/student/me')
@login_required
def student_me():
    if current_user.is_admin:
        raise NotFoundError("Student not found", reason='student_not_found')
    return jsonify({'success': True, 'student': serialize_student(current_user)})


@auth_bp.route('/students/profile', methods=['PUT'])
@login_required
def update_profile():
    if current_user.is_admin:
        raise NotFoundError("Student not found", reason='student_not_found')

    form = load_form(ProfileForm)
    for field, value in form.provided_data().items():
        setattr(current_user, field, value.strip())
    db.session.commit()

    return jsonify({
        'success': True,
        'message': "Profile updated successfully",
        'student': serialize_student(current_user)
    })


@auth_bp.route('/students/password', methods=['PUT'])
@login_required
def change_password():
    form = load_form(ChangePasswordForm)
    if not current_user.check_password(form.current_password.data):
        raise UnauthorizedError("Current password is incorrect", reason='invalid_credentials')

    current_user.set_password(form.new_password.data)
    db.session.commit()
    return jsonify({'success': True, 'message': "Password changed successfully"})


# ========== ADMIN ==========

@auth_bp.route('/admin/register', methods=['POST'])
def register_admin():
    payload = request.get_json(silent=True) or {}
    form = load_form(AdminRegisterForm, payload)

    key = form.registration_key.data or request.headers.get('X-Registration-Key')
    if key != current_app.config['ADMIN_REGISTRATION_KEY']:
        current_app.logger.warning("Admin registration with an invalid key from %s", request.remote_addr)
        raise ForbiddenError(
            "Invalid registration key. Contact system administrator for access.",
            reason='invalid_registration_key'
        )

    email = form.email.data.strip().lower()
    username = form.username.data.strip()
    existing = Admin.query.filter(or_(Admin.email == email, Admin.username == username)).first()
    if existing:
        message = "Email already registered" if existing.email == email else "Username already exists"
        raise ConflictError(message, reason='duplicate_admin')

    # The very first admin account becomes the superadmin
    role = 'superadmin' if Admin.query.count() == 0 else 'admin'
    admin = Admin(username=username, email=email, name=form.name.data.strip(), role=role)
    admin.set_password(form.password.data)
    db.session.add(admin)
    db.session.commit()
    current_app.logger.info("Admin %s registered as %s", admin.username, admin.role)

    return jsonify({
        'success': True,
        'message': "Admin registration successful",
        **issue_tokens(admin),
        'admin': serialize_admin(admin)
    }), 201


@auth_bp.route('/admin/login', methods=['POST'])
def login_admin():
    form = load_form(AdminLoginForm)
    admin = Admin.query.filter_by(username=form.username.data.strip()).first()

    if not admin:
        raise UnauthorizedError("Invalid credentials", reason='invalid_credentials')
    if not admin.is_active:
        raise ForbiddenError("Account is deactivated. Please contact super admin.", reason='account_deactivated')
    if not admin.check_password(form.password.data):
        raise UnauthorizedError("Invalid credentials", reason='invalid_credentials')

    admin.last_login = datetime.utcnow()
    db.session.commit()

    return jsonify({
        'success': True,
        'message': "Login successful",
        **issue_tokens(admin),
        'admin': serialize_admin(admin)
    })


@auth_bp.route('/admin/me')
@login_required
def admin_me():
    if not current_user.is_admin:
        raise NotFoundError("Admin not found", reason='admin_not_found')
    return jsonify({'success': True, 'admin': serialize_admin(current_user)})


# ========== TOKENS ==========

@auth_bp.route('/refresh', methods=['POST'])
def refresh():
    form = load_form(RefreshTokenForm)
    payload = verify_refresh_token(form.refresh_token.data)
    if not payload:
        raise UnauthorizedError("Invalid or expired refresh token", reason='invalid_token')

    user = load_identity(payload.get('sub'))
    if user is None:
        raise UnauthorizedError("User not found", reason='invalid_token')
    if not user.is_active:
        raise ForbiddenError("Account is deactivated", reason='account_deactivated')

    return jsonify({'success': True, 'token': generate_access_token(user)})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    revoke_token(bearer_token(), current_app.config['ACCESS_TOKEN_MAX_AGE'])

    refresh_token = (request.get_json(silent=True) or {}).get('refreshToken')
    if refresh_token:
        revoke_token(refresh_token, current_app.config['REFRESH_TOKEN_MAX_AGE'])

    current_app.logger.info("%s logged out", current_user.get_id())
    return jsonify({'success': True, 'message': "Logged out successfully"})
