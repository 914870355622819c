# utils/assignments.py
from datetime import datetime
from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db, Enrollment, Submission
from utils.errors import NotFoundError, ConflictError, ForbiddenError, ValidationFailed, DeadlineError


def submit_assignment(assignment, student, text_content='', files=None, now=None):
    """
    Record a student's single submission for an assignment.

    Past the due date the submission is accepted as ``late`` only when the
    assignment allows it and the late deadline has not gone by either.
    """
    if assignment is None or not assignment.is_active:
        raise NotFoundError("Assignment not found", reason='assignment_not_found')

    now = now or datetime.utcnow()

    enrollment = Enrollment.query.filter_by(
        student_id=student.id,
        course_id=assignment.course_id,
        status='active'
    ).first()
    if not enrollment:
        raise ForbiddenError("You are not enrolled in this course", reason='not_enrolled')

    if assignment.get_student_submission(student.id):
        raise ConflictError("Assignment already submitted", reason='already_submitted')

    is_late = assignment.is_submission_late(now)
    if is_late and not assignment.allow_late_submission:
        raise DeadlineError("Assignment deadline has passed", reason='deadline_passed')

    # Without a late deadline, late work stays open indefinitely
    if is_late and assignment.late_submission_deadline and now > assignment.late_submission_deadline:
        raise DeadlineError("Late submission deadline has also passed", reason='late_deadline_passed')

    submission = Submission(
        assignment=assignment,
        student_id=student.id,
        submitted_at=now,
        files=files or [],
        text_content=text_content or '',
        status='late' if is_late else 'submitted'
    )
    db.session.add(submission)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent request got its submission in first
        db.session.rollback()
        raise ConflictError("Assignment already submitted", reason='already_submitted')

    current_app.logger.info(
        "Student %s submitted assignment %s (%s)", student.id, assignment.id, submission.status
    )
    return submission


def grade_submission(assignment, submission_id, marks, feedback=None, grader=None, now=None):
    if assignment is None:
        raise NotFoundError("Assignment not found", reason='assignment_not_found')

    submission = next((s for s in assignment.submissions if s.id == submission_id), None)
    if submission is None:
        raise NotFoundError("Submission not found", reason='submission_not_found')

    if marks > assignment.max_marks:
        raise ValidationFailed(
            f"Marks cannot exceed {assignment.max_marks:g}", reason='marks_exceed_maximum'
        )

    submission.marks = marks
    submission.feedback = feedback or ''
    submission.status = 'graded'
    submission.graded_by_id = grader.id if grader else None
    submission.graded_at = now or datetime.utcnow()
    db.session.commit()

    current_app.logger.info(
        "Submission %s of assignment %s graded %s/%s", submission.id, assignment.id, marks, assignment.max_marks
    )
    return submission


def student_assignment_view(assignment, student_id):
    submission = assignment.get_student_submission(student_id)
    return {
        'submission_status': submission.status if submission else 'not-submitted',
        'has_submitted': submission is not None,
        'submission': submission,
    }
