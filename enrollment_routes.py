from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from models import db, Enrollment, Student
from forms import load_form, EnrollmentForm, EnrollmentUpdateForm
from utils.auth import admin_required, resolve_student
from utils.enrollment import enroll_student, drop_enrollment, update_enrollment
from utils.errors import NotFoundError, ValidationFailed
from utils.gpa import calculate_cgpa, calculate_semester_gpa
from utils.serializers import serialize_enrollment

enrollment_bp = Blueprint('enrollments', __name__)


def get_enrollment_or_404(enrollment_id):
    enrollment = db.session.get(Enrollment, enrollment_id)
    if enrollment is None:
        raise NotFoundError("Enrollment not found", reason='enrollment_not_found')
    return enrollment


@enrollment_bp.route('', methods=['POST'])
@login_required
def enroll():
    form = load_form(EnrollmentForm)

    if current_user.is_admin:
        if not form.student_id.data:
            raise ValidationFailed("studentId is required", errors={'student_id': ["This field is required."]})
        student = db.session.get(Student, form.student_id.data)
        if student is None:
            raise NotFoundError("Student not found", reason='student_not_found')
        student_id = student.id
    else:
        student_id = current_user.id

    enrollment = enroll_student(student_id, form.course_id.data, form.semester.data, form.academic_year.data.strip())
    return jsonify({
        'success': True,
        'message': "Enrollment successful",
        'enrollment': serialize_enrollment(enrollment, include_student=True)
    }), 201


@enrollment_bp.route('/student/<int:student_id>', methods=['GET'])
@login_required
def student_enrollments(student_id):
    student = resolve_student(student_id)

    query = Enrollment.query.filter_by(student_id=student.id)
    if request.args.get('semester', type=int):
        query = query.filter_by(semester=request.args.get('semester', type=int))
    if request.args.get('status'):
        query = query.filter_by(status=request.args['status'])

    enrollments = query.order_by(Enrollment.semester.desc(), Enrollment.enrollment_date.desc()).all()
    return jsonify({
        'success': True,
        'count': len(enrollments),
        'enrollments': [serialize_enrollment(e) for e in enrollments]
    })


@enrollment_bp.route('/student/<int:student_id>/gpa', methods=['GET'])
@login_required
def student_gpa(student_id):
    student = resolve_student(student_id)
    return jsonify({
        'success': True,
        'data': {
            'cgpa': calculate_cgpa(student.id, student.semester),
            'currentSemesterGPA': calculate_semester_gpa(student.id, student.semester),
            'semester': student.semester
        }
    })


@enrollment_bp.route('/<int:enrollment_id>', methods=['DELETE'])
@login_required
def drop(enrollment_id):
    enrollment = get_enrollment_or_404(enrollment_id)
    drop_enrollment(enrollment, current_user)
    return jsonify({'success': True, 'message': "Enrollment dropped successfully"})


@enrollment_bp.route('/course/<int:course_id>', methods=['GET'])
@admin_required
def course_enrollments(course_id):
    query = Enrollment.query.filter_by(course_id=course_id).join(Student)
    if request.args.get('semester', type=int):
        query = query.filter(Enrollment.semester == request.args.get('semester', type=int))

    enrollments = query.order_by(Student.roll_number).all()
    return jsonify({
        'success': True,
        'count': len(enrollments),
        'enrollments': [serialize_enrollment(e, include_student=True) for e in enrollments]
    })


@enrollment_bp.route('/<int:enrollment_id>', methods=['PUT'])
@admin_required
def update(enrollment_id):
    enrollment = get_enrollment_or_404(enrollment_id)
    form = load_form(EnrollmentUpdateForm)
    update_enrollment(enrollment, **form.provided_data())

    return jsonify({
        'success': True,
        'message': "Enrollment updated successfully",
        'enrollment': serialize_enrollment(enrollment, include_student=True)
    })
