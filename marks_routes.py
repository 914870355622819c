from flask import Blueprint, jsonify, request, current_app, make_response
from flask_login import login_required, current_user
from sqlalchemy.exc import IntegrityError

from models import db, Marks, Enrollment, Student, Course
from forms import load_form, MarksForm, MarksUpdateForm
from utils.auth import admin_required, resolve_student
from utils.errors import ApiError, NotFoundError, ConflictError, ValidationFailed
from utils.gpa import calculate_cgpa, calculate_semester_gpa, semester_wise_gpa
from utils.gradecard_pdf import build_gradecard_pdf
from utils.serializers import serialize_marks, serialize_course

marks_bp = Blueprint('marks', __name__)


def get_marks_or_404(marks_id):
    marks = db.session.get(Marks, marks_id)
    if marks is None:
        raise NotFoundError("Marks record not found", reason='marks_not_found')
    return marks


def create_marks(form, entered_by):
    """Insert one marks row; an existing row for the same exam is never overwritten."""
    if db.session.get(Student, form.student.data) is None:
        raise NotFoundError("Student not found", reason='student_not_found')
    if db.session.get(Course, form.course.data) is None:
        raise NotFoundError("Course not found", reason='course_not_found')

    key = dict(
        student_id=form.student.data,
        course_id=form.course.data,
        semester=form.semester.data,
        exam_type=form.exam_type.data
    )
    if Marks.query.filter_by(**key).first():
        current_app.logger.warning("Duplicate marks entry rejected: %s", key)
        raise ConflictError("Marks already entered for this exam", reason='duplicate_marks')

    marks = Marks(
        academic_year=form.academic_year.data.strip(),
        max_marks=form.max_marks.data,
        marks_obtained=form.marks_obtained.data,
        remarks=form.remarks.data or '',
        entered_by_id=entered_by.id,
        **key
    )
    db.session.add(marks)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Marks already entered for this exam", reason='duplicate_marks')
    return marks


@marks_bp.route('', methods=['POST'])
@admin_required
def enter_marks():
    marks = create_marks(load_form(MarksForm), current_user)
    current_app.logger.info("Marks %s entered for student %s (%s)", marks.id, marks.student_id, marks.exam_type)
    return jsonify({'success': True, 'message': "Marks entered successfully", 'marks': serialize_marks(marks)}), 201


@marks_bp.route('/bulk', methods=['POST'])
@admin_required
def bulk_enter_marks():
    marks_data = (request.get_json(silent=True) or {}).get('marksData')
    if not isinstance(marks_data, list):
        raise ValidationFailed("marksData must be a list", errors={'marks_data': ["This field is required."]})

    results = {'success': [], 'failed': []}
    for item in marks_data:
        student = item.get('student') if isinstance(item, dict) else None
        try:
            if not isinstance(item, dict):
                raise ValidationFailed("Malformed marks entry")
            marks = create_marks(load_form(MarksForm, item), current_user)
            results['success'].append(marks.id)
        except ApiError as exc:
            reason = exc.message
            if isinstance(exc, ValidationFailed) and exc.errors:
                reason = f"{exc.message}: {exc.errors}"
            results['failed'].append({'student': student, 'reason': reason})
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception("Bulk marks entry failed for student %s", student)
            results['failed'].append({'student': student, 'reason': str(exc)})

    return jsonify({
        'success': True,
        'message': (
            f"Bulk marks entry completed: {len(results['success'])} successful, "
            f"{len(results['failed'])} failed"
        ),
        'results': results
    }), 201


@marks_bp.route('/student/<int:student_id>', methods=['GET'])
@login_required
def student_marks(student_id):
    student = resolve_student(student_id)

    query = Marks.query.filter_by(student_id=student.id, is_active=True)
    if request.args.get('course', type=int):
        query = query.filter_by(course_id=request.args.get('course', type=int))
    if request.args.get('semester', type=int):
        query = query.filter_by(semester=request.args.get('semester', type=int))
    if request.args.get('examType'):
        query = query.filter_by(exam_type=request.args['examType'])

    marks = query.order_by(Marks.semester.desc(), Marks.exam_type).all()
    return jsonify({'success': True, 'count': len(marks), 'marks': [serialize_marks(m) for m in marks]})


@marks_bp.route('/course/<int:course_id>', methods=['GET'])
@admin_required
def course_marks(course_id):
    query = Marks.query.filter_by(course_id=course_id, is_active=True).join(Student, Student.id == Marks.student_id)
    if request.args.get('semester', type=int):
        query = query.filter(Marks.semester == request.args.get('semester', type=int))
    if request.args.get('examType'):
        query = query.filter(Marks.exam_type == request.args['examType'])

    marks = query.order_by(Student.roll_number).all()
    return jsonify({'success': True, 'count': len(marks), 'marks': [serialize_marks(m) for m in marks]})


@marks_bp.route('/<int:marks_id>', methods=['PUT'])
@admin_required
def update_marks(marks_id):
    marks = get_marks_or_404(marks_id)
    data = load_form(MarksUpdateForm).provided_data()

    if data.get('marks_obtained') is not None:
        if data['marks_obtained'] > marks.max_marks:
            raise ValidationFailed(f"Marks cannot exceed {marks.max_marks:g}", reason='marks_exceed_maximum')
        marks.marks_obtained = data['marks_obtained']
    if 'remarks' in data:
        marks.remarks = data['remarks'] or ''

    # percentage and grade are re-derived by the Marks before_update hook
    db.session.commit()
    return jsonify({'success': True, 'message': "Marks updated successfully", 'marks': serialize_marks(marks)})


@marks_bp.route('/<int:marks_id>', methods=['DELETE'])
@admin_required
def delete_marks(marks_id):
    marks = get_marks_or_404(marks_id)
    marks.is_active = False
    db.session.commit()
    return jsonify({'success': True, 'message': "Marks deleted successfully"})


@marks_bp.route('/student/<int:student_id>/gpa', methods=['GET'])
@login_required
def student_gpa(student_id):
    student = resolve_student(student_id)
    return jsonify({
        'success': True,
        'data': {
            'studentId': student.id,
            'currentSemester': student.semester,
            'cgpa': calculate_cgpa(student.id, student.semester),
            'currentSemesterGPA': calculate_semester_gpa(student.id, student.semester),
            'semesterWiseGPA': semester_wise_gpa(student.id, student.semester)
        }
    })


def build_grade_card(student, semester):
    enrollments = (
        Enrollment.query
        .filter_by(student_id=student.id, semester=semester)
        .join(Course)
        .order_by(Course.code)
        .all()
    )

    grade_card = []
    for enrollment in enrollments:
        course_marks = Marks.query.filter_by(
            student_id=student.id,
            course_id=enrollment.course_id,
            semester=semester,
            is_active=True
        ).order_by(Marks.exam_type).all()

        grade_card.append({
            'course': serialize_course(enrollment.course),
            'enrollment': {
                'grade': enrollment.grade,
                'gradePoints': enrollment.grade_points,
                'attendancePercentage': enrollment.attendance_percentage,
                'status': enrollment.status
            },
            'marks': [serialize_marks(m) for m in course_marks]
        })
    return grade_card


@marks_bp.route('/student/<int:student_id>/gradecard/<int:semester>', methods=['GET'])
@login_required
def semester_grade_card(student_id, semester):
    student = resolve_student(student_id)
    return jsonify({
        'success': True,
        'data': {
            'student': {
                'name': student.name,
                'rollNumber': student.roll_number,
                'department': student.department
            },
            'semester': semester,
            'gradeCard': build_grade_card(student, semester),
            'semesterGPA': calculate_semester_gpa(student.id, semester),
            'cgpa': calculate_cgpa(student.id, semester)
        }
    })


@marks_bp.route('/student/<int:student_id>/gradecard/<int:semester>/pdf', methods=['GET'])
@login_required
def semester_grade_card_pdf(student_id, semester):
    student = resolve_student(student_id)
    pdf = build_gradecard_pdf(
        student,
        semester,
        build_grade_card(student, semester),
        calculate_semester_gpa(student.id, semester),
        calculate_cgpa(student.id, semester)
    )

    response = make_response(pdf)
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = f'attachment; filename=GradeCard_{student.roll_number}_Sem{semester}.pdf'
    return response
