from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user

from models import db, Student
from utils.auth import admin_required
from utils.errors import NotFoundError
from utils.serializers import serialize_student

admin_bp = Blueprint('admin', __name__)


def get_student_or_404(student_id):
    student = db.session.get(Student, student_id)
    if student is None:
        raise NotFoundError("Student not found", reason='student_not_found')
    return student


@admin_bp.route('/students', methods=['GET'])
@admin_required
def list_students():
    query = Student.query
    if request.args.get('semester', type=int):
        query = query.filter_by(semester=request.args.get('semester', type=int))
    if request.args.get('department'):
        query = query.filter_by(department=request.args['department'])
    if request.args.get('active') in ('true', 'false'):
        query = query.filter_by(is_active=request.args['active'] == 'true')

    students = query.order_by(Student.roll_number).all()
    return jsonify({'success': True, 'count': len(students), 'students': [serialize_student(s) for s in students]})


@admin_bp.route('/students/<int:student_id>/deactivate', methods=['PATCH'])
@admin_required
def deactivate_student(student_id):
    # Students are never deleted; their enrollments and marks stay on record
    student = get_student_or_404(student_id)
    student.is_active = False
    db.session.commit()
    current_app.logger.info("Student %s deactivated by %s", student.roll_number, current_user.username)
    return jsonify({'success': True, 'message': "Student deactivated", 'student': serialize_student(student)})


@admin_bp.route('/students/<int:student_id>/activate', methods=['PATCH'])
@admin_required
def activate_student(student_id):
    student = get_student_or_404(student_id)
    student.is_active = True
    db.session.commit()
    current_app.logger.info("Student %s reactivated by %s", student.roll_number, current_user.username)
    return jsonify({'success': True, 'message': "Student activated", 'student': serialize_student(student)})
