# utils/gpa.py

from models import Enrollment

# Dropped and failed enrollments never count towards GPA
COUNTED_STATUSES = ('active', 'completed')


def _weighted_average(enrollments):
    if not enrollments:
        return 0

    total_credits = 0
    total_points = 0
    for enrollment in enrollments:
        credits = enrollment.course.credit_weight
        total_credits += credits
        total_points += (enrollment.grade_points or 0) * credits

    return round(total_points / total_credits, 2) if total_credits else 0


def calculate_semester_gpa(student_id, semester):
    enrollments = Enrollment.query.filter(
        Enrollment.student_id == student_id,
        Enrollment.semester == semester,
        Enrollment.status.in_(COUNTED_STATUSES)
    ).all()
    return _weighted_average(enrollments)


def calculate_cgpa(student_id, upto_semester):
    """Credit-weighted pool of every counted enrollment up to ``upto_semester``."""
    enrollments = Enrollment.query.filter(
        Enrollment.student_id == student_id,
        Enrollment.semester <= upto_semester,
        Enrollment.status.in_(COUNTED_STATUSES)
    ).all()
    return _weighted_average(enrollments)


def semester_wise_gpa(student_id, upto_semester):
    return [
        {'semester': sem, 'gpa': calculate_semester_gpa(student_id, sem)}
        for sem in range(1, upto_semester + 1)
    ]
