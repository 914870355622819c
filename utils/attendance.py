# utils/attendance.py
from flask import current_app

from models import db, AttendanceSession, AttendanceRecord, Enrollment


def _sessions_for_student(student_id, course_id, semester):
    return (
        AttendanceSession.query
        .join(AttendanceRecord, AttendanceRecord.session_id == AttendanceSession.id)
        .filter(
            AttendanceSession.course_id == course_id,
            AttendanceSession.semester == semester,
            AttendanceSession.is_active.is_(True),
            AttendanceRecord.student_id == student_id
        )
        .all()
    )


def get_student_attendance_percentage(student_id, course_id, semester):
    """
    Share of the student's recorded sessions in this course/semester where
    they were present. Late arrivals count as present.
    """
    sessions = _sessions_for_student(student_id, course_id, semester)
    total = len(sessions)
    if total == 0:
        return 0

    present = 0
    for session in sessions:
        record = session.record_for(student_id)
        if record and record.status in ('present', 'late'):
            present += 1

    return present / total * 100


def refresh_enrollment_attendance(student_ids, course_id, semester):
    """
    Write the recomputed percentage onto each student's enrollment for the
    course/semester. Runs after the attendance sheet itself is committed;
    a failure for one student is logged and the rest are still updated.
    """
    updated = 0
    for student_id in student_ids:
        try:
            percentage = get_student_attendance_percentage(student_id, course_id, semester)
            enrollment = Enrollment.query.filter_by(
                student_id=student_id,
                course_id=course_id,
                semester=semester
            ).first()
            if enrollment is None:
                continue
            enrollment.attendance_percentage = percentage
            db.session.commit()
            updated += 1
        except Exception:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to refresh attendance for student %s in course %s", student_id, course_id
            )
    return updated


def summarize_statuses(statuses):
    """
    Breakdown shown to a student. ``percentage`` gives late arrivals full
    credit, ``weighted_percentage`` gives them half credit.
    """
    statuses = list(statuses)
    total = len(statuses)
    present = statuses.count('present')
    late = statuses.count('late')

    summary = {
        'total': total,
        'present': present,
        'absent': statuses.count('absent'),
        'late': late,
        'excused': statuses.count('excused'),
        'percentage': 0,
        'weighted_percentage': 0,
    }
    if total:
        summary['percentage'] = (present + late) / total * 100
        summary['weighted_percentage'] = (present + 0.5 * late) / total * 100
    return summary
