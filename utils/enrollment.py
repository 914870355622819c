# utils/enrollment.py
from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db, Course, Enrollment
from utils.errors import NotFoundError, ConflictError, ForbiddenError, ValidationFailed


def enroll_student(student_id, course_id, semester, academic_year):
    """
    Create an active enrollment for (student, course, semester).

    Any existing row for the triple blocks the enrollment, including one the
    student has since dropped.
    """
    course = db.session.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course not found", reason='course_not_found')

    existing = Enrollment.query.filter_by(
        student_id=student_id,
        course_id=course_id,
        semester=semester
    ).first()
    if existing:
        current_app.logger.warning(
            "Duplicate enrollment rejected: student %s course %s semester %s", student_id, course_id, semester
        )
        raise ConflictError("Already enrolled in this course for this semester", reason='already_enrolled')

    enrollment = Enrollment(
        student_id=student_id,
        course_id=course_id,
        semester=semester,
        academic_year=academic_year,
        status='active',
        grade='',
        grade_points=0,
        attendance_percentage=0
    )
    db.session.add(enrollment)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Already enrolled in this course for this semester", reason='already_enrolled')

    current_app.logger.info("Student %s enrolled in course %s for semester %s", student_id, course_id, semester)
    return enrollment


def drop_enrollment(enrollment, requester):
    if not requester.is_admin and enrollment.student_id != requester.id:
        raise ForbiddenError("Not authorized to drop this enrollment")

    enrollment.status = 'dropped'
    enrollment.is_active = False
    db.session.commit()

    current_app.logger.info("Enrollment %s dropped by %s", enrollment.id, requester.get_id())
    return enrollment


def update_enrollment(enrollment, grade=None, grade_points=None, status=None, attendance_percentage=None):
    """Admin edit. A letter grade, including an empty one, always recomputes the grade points."""
    if status is not None:
        if status not in Enrollment.STATUSES:
            raise ValidationFailed(f"Invalid status '{status}'")
        enrollment.status = status
    if grade_points is not None:
        enrollment.grade_points = grade_points
    if attendance_percentage is not None:
        enrollment.attendance_percentage = attendance_percentage
    if grade is not None:
        enrollment.assign_grade(grade)

    db.session.commit()
    return enrollment
