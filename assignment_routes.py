from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user

from models import db, Assignment, Enrollment, Course
from forms import load_form, AssignmentForm, AssignmentUpdateForm, SubmissionForm, GradeSubmissionForm
from utils.assignments import submit_assignment, grade_submission, student_assignment_view
from utils.auth import admin_required
from utils.errors import NotFoundError, ForbiddenError, ValidationFailed
from utils.serializers import serialize_assignment, serialize_submission

assignment_bp = Blueprint('assignments', __name__)

FILE_KEYS = ('filename', 'url', 'fileType', 'fileSize')


def get_assignment_or_404(assignment_id):
    assignment = db.session.get(Assignment, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment not found", reason='assignment_not_found')
    return assignment


def parse_files(raw_files, field='files'):
    """File metadata only; uploads themselves are stored elsewhere."""
    if raw_files is None:
        return []
    if not isinstance(raw_files, list) or not all(isinstance(f, dict) for f in raw_files):
        raise ValidationFailed(f"{field} must be a list of objects")
    return [{k: f[k] for k in FILE_KEYS if k in f} for f in raw_files]


@assignment_bp.route('/student', methods=['GET'])
@login_required
def student_assignments():
    if current_user.is_admin:
        raise ForbiddenError("Only students have assignment lists")

    enrollments = Enrollment.query.filter_by(student_id=current_user.id, status='active')
    if request.args.get('semester', type=int):
        enrollments = enrollments.filter_by(semester=request.args.get('semester', type=int))
    course_ids = [e.course_id for e in enrollments.all()]

    assignments = []
    if course_ids:
        assignments = (
            Assignment.query
            .filter(Assignment.course_id.in_(course_ids), Assignment.is_active.is_(True))
            .order_by(Assignment.due_date.asc())
            .all()
        )

    results = []
    for assignment in assignments:
        status = student_assignment_view(assignment, current_user.id)
        data = serialize_assignment(assignment, include_submissions=False)
        data['submissionStatus'] = status['submission_status']
        data['hasSubmitted'] = status['has_submitted']
        data['submission'] = serialize_submission(status['submission']) if status['submission'] else None
        results.append(data)

    status_filter = request.args.get('status')
    if status_filter:
        results = [a for a in results if a['submissionStatus'] == status_filter]

    return jsonify({'success': True, 'count': len(results), 'assignments': results})


@assignment_bp.route('/<int:assignment_id>/submit', methods=['POST'])
@login_required
def submit(assignment_id):
    if current_user.is_admin:
        raise ForbiddenError("Only students can submit assignments")

    assignment = db.session.get(Assignment, assignment_id)
    payload = request.get_json(silent=True) or {}
    form = load_form(SubmissionForm, payload)

    submission = submit_assignment(
        assignment,
        current_user,
        text_content=form.text_content.data,
        files=parse_files(payload.get('files'))
    )
    return jsonify({
        'success': True,
        'message': "Assignment submitted successfully",
        'submission': serialize_submission(submission),
        'assignment': serialize_assignment(assignment, include_submissions=False)
    }), 201


@assignment_bp.route('', methods=['GET'])
@login_required
def list_assignments():
    query = Assignment.query.filter_by(is_active=True)
    if request.args.get('course', type=int):
        query = query.filter_by(course_id=request.args.get('course', type=int))
    if request.args.get('semester', type=int):
        query = query.filter_by(semester=request.args.get('semester', type=int))

    assignments = query.order_by(Assignment.due_date.desc()).all()
    # Students never see each other's work
    include_submissions = current_user.is_admin
    return jsonify({
        'success': True,
        'count': len(assignments),
        'assignments': [serialize_assignment(a, include_submissions=include_submissions) for a in assignments]
    })


@assignment_bp.route('/<int:assignment_id>', methods=['GET'])
@login_required
def get_assignment(assignment_id):
    assignment = get_assignment_or_404(assignment_id)
    if current_user.is_admin:
        return jsonify({'success': True, 'assignment': serialize_assignment(assignment)})

    data = serialize_assignment(assignment, include_submissions=False)
    own = assignment.get_student_submission(current_user.id)
    data['submission'] = serialize_submission(own) if own else None
    return jsonify({'success': True, 'assignment': data})


@assignment_bp.route('', methods=['POST'])
@admin_required
def create_assignment():
    payload = request.get_json(silent=True) or {}
    form = load_form(AssignmentForm, payload)

    if db.session.get(Course, form.course.data) is None:
        raise NotFoundError("Course not found", reason='course_not_found')

    assignment = Assignment(
        title=form.title.data.strip(),
        description=form.description.data,
        course_id=form.course.data,
        semester=form.semester.data,
        max_marks=form.max_marks.data or 100,
        due_date=form.due_date.data,
        allow_late_submission=form.allow_late_submission.data,
        late_submission_deadline=form.late_submission_deadline.data,
        instructions=form.instructions.data or '',
        attachments=parse_files(payload.get('attachments'), field='attachments'),
        created_by_id=current_user.id
    )
    db.session.add(assignment)
    db.session.commit()
    current_app.logger.info("Assignment %s created for course %s", assignment.id, assignment.course_id)

    return jsonify({
        'success': True,
        'message': "Assignment created successfully",
        'assignment': serialize_assignment(assignment)
    }), 201


@assignment_bp.route('/<int:assignment_id>', methods=['PUT'])
@admin_required
def update_assignment(assignment_id):
    assignment = get_assignment_or_404(assignment_id)
    payload = request.get_json(silent=True) or {}
    data = load_form(AssignmentUpdateForm, payload).provided_data()

    if 'course' in data:
        if db.session.get(Course, data['course']) is None:
            raise NotFoundError("Course not found", reason='course_not_found')
        assignment.course_id = data.pop('course')
    if 'attachments' in payload:
        assignment.attachments = parse_files(payload.get('attachments'), field='attachments')
    for field, value in data.items():
        setattr(assignment, field, value)

    if (assignment.late_submission_deadline and
            assignment.late_submission_deadline < assignment.due_date):
        raise ValidationFailed("Late submission deadline must be after the due date.")
    if not assignment.max_marks or assignment.max_marks <= 0:
        raise ValidationFailed("Max marks must be greater than zero.")

    db.session.commit()
    return jsonify({
        'success': True,
        'message': "Assignment updated successfully",
        'assignment': serialize_assignment(assignment)
    })


@assignment_bp.route('/<int:assignment_id>', methods=['DELETE'])
@admin_required
def delete_assignment(assignment_id):
    assignment = get_assignment_or_404(assignment_id)
    assignment.is_active = False
    db.session.commit()
    return jsonify({'success': True, 'message': "Assignment deleted successfully"})


@assignment_bp.route('/<int:assignment_id>/submissions/<int:submission_id>/grade', methods=['PUT'])
@admin_required
def grade(assignment_id, submission_id):
    assignment = get_assignment_or_404(assignment_id)
    form = load_form(GradeSubmissionForm)

    submission = grade_submission(
        assignment,
        submission_id,
        form.marks.data,
        feedback=form.feedback.data,
        grader=current_user
    )
    return jsonify({
        'success': True,
        'message': "Submission graded successfully",
        'submission': serialize_submission(submission)
    })
