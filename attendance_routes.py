from datetime import datetime
from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from sqlalchemy.exc import IntegrityError

from models import db, AttendanceSession, AttendanceRecord, Enrollment, Student, Course
from forms import load_form, AttendanceForm
from utils.attendance import get_student_attendance_percentage, refresh_enrollment_attendance, summarize_statuses
from utils.auth import admin_required, resolve_student
from utils.errors import NotFoundError, ConflictError, ValidationFailed
from utils.serializers import serialize_attendance, serialize_course, serialize_student_brief

attendance_bp = Blueprint('attendance', __name__)


def get_session_or_404(session_id):
    session = db.session.get(AttendanceSession, session_id)
    if session is None or not session.is_active:
        raise NotFoundError("Attendance record not found", reason='attendance_not_found')
    return session


def parse_records(raw_records):
    """Validate the per-student entries of an attendance sheet."""
    if not isinstance(raw_records, list) or not raw_records:
        raise ValidationFailed("records must be a non-empty list", errors={'records': ["This field is required."]})

    parsed = {}
    for index, item in enumerate(raw_records):
        if not isinstance(item, dict):
            raise ValidationFailed(f"Record {index} is malformed")
        student_id = item.get('student')
        status = item.get('status')
        if not isinstance(student_id, int) or isinstance(student_id, bool):
            raise ValidationFailed(f"Record {index} has an invalid student")
        if status not in AttendanceRecord.STATUSES:
            raise ValidationFailed(f"Record {index} has an invalid status '{status}'")
        if student_id in parsed:
            raise ValidationFailed(f"Student {student_id} appears more than once")
        parsed[student_id] = {'status': status, 'remarks': item.get('remarks') or ''}

    known = {s.id for s in Student.query.filter(Student.id.in_(parsed.keys())).all()}
    missing = sorted(set(parsed) - known)
    if missing:
        raise ValidationFailed(f"Unknown students: {', '.join(map(str, missing))}")
    return parsed


def _student_rows(sessions, student_id):
    rows = []
    for session in sessions:
        record = session.record_for(student_id)
        rows.append({
            'id': session.id,
            'course': serialize_course(session.course),
            'date': session.date.isoformat(),
            'topic': session.topic,
            'sessionType': session.session_type,
            'duration': session.duration,
            'status': record.status if record else 'absent',
            'remarks': record.remarks if record else ''
        })
    return rows


@attendance_bp.route('', methods=['POST'])
@admin_required
def mark_attendance():
    payload = request.get_json(silent=True) or {}
    form = load_form(AttendanceForm, payload)
    records = parse_records(payload.get('records'))

    if db.session.get(Course, form.course.data) is None:
        raise NotFoundError("Course not found", reason='course_not_found')

    session_type = form.session_type.data or 'lecture'
    duplicate = AttendanceSession.query.filter_by(
        course_id=form.course.data,
        date=form.date.data,
        session_type=session_type
    ).first()
    if duplicate:
        raise ConflictError("Attendance already marked for this session", reason='duplicate_attendance')

    session = AttendanceSession(
        course_id=form.course.data,
        semester=form.semester.data,
        date=form.date.data,
        topic=form.topic.data.strip(),
        session_type=session_type,
        duration=form.duration.data or 1,
        academic_year=form.academic_year.data.strip(),
        marked_by_id=current_user.id,
        records=[
            AttendanceRecord(student_id=sid, status=r['status'], remarks=r['remarks'])
            for sid, r in records.items()
        ]
    )
    db.session.add(session)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Attendance already marked for this session", reason='duplicate_attendance')

    current_app.logger.info(
        "Attendance for course %s on %s marked (%d students)", session.course_id, session.date, len(records)
    )
    refresh_enrollment_attendance(list(records), session.course_id, session.semester)

    return jsonify({
        'success': True,
        'message': "Attendance marked successfully",
        'attendance': serialize_attendance(session)
    }), 201


@attendance_bp.route('/course/<int:course_id>', methods=['GET'])
@admin_required
def course_attendance(course_id):
    query = AttendanceSession.query.filter_by(course_id=course_id, is_active=True)
    if request.args.get('semester', type=int):
        query = query.filter_by(semester=request.args.get('semester', type=int))

    start = request.args.get('startDate')
    end = request.args.get('endDate')
    if start and end:
        try:
            start_date = datetime.strptime(start[:10], '%Y-%m-%d').date()
            end_date = datetime.strptime(end[:10], '%Y-%m-%d').date()
        except ValueError:
            raise ValidationFailed("startDate and endDate must be YYYY-MM-DD")
        query = query.filter(AttendanceSession.date.between(start_date, end_date))

    sessions = query.order_by(AttendanceSession.date.desc()).all()
    return jsonify({
        'success': True,
        'count': len(sessions),
        'attendances': [serialize_attendance(s) for s in sessions]
    })


@attendance_bp.route('/student/<int:student_id>', methods=['GET'])
@login_required
def student_attendance(student_id):
    student = resolve_student(student_id)

    query = (
        AttendanceSession.query
        .join(AttendanceRecord, AttendanceRecord.session_id == AttendanceSession.id)
        .filter(AttendanceRecord.student_id == student.id, AttendanceSession.is_active.is_(True))
    )
    if request.args.get('course', type=int):
        query = query.filter(AttendanceSession.course_id == request.args.get('course', type=int))
    if request.args.get('semester', type=int):
        query = query.filter(AttendanceSession.semester == request.args.get('semester', type=int))

    rows = _student_rows(query.order_by(AttendanceSession.date.desc()).all(), student.id)
    summary = summarize_statuses(row['status'] for row in rows)

    return jsonify({
        'success': True,
        'count': len(rows),
        'attendancePercentage': f"{summary['percentage']:.2f}",
        'weightedAttendancePercentage': f"{summary['weighted_percentage']:.2f}",
        'summary': summary,
        'attendances': rows
    })


@attendance_bp.route('/student/<int:student_id>/course/<int:course_id>', methods=['GET'])
@login_required
def student_course_attendance(student_id, course_id):
    student = resolve_student(student_id)
    semester = request.args.get('semester', type=int) or student.semester

    sessions = (
        AttendanceSession.query
        .join(AttendanceRecord, AttendanceRecord.session_id == AttendanceSession.id)
        .filter(
            AttendanceSession.course_id == course_id,
            AttendanceSession.semester == semester,
            AttendanceSession.is_active.is_(True),
            AttendanceRecord.student_id == student.id
        )
        .order_by(AttendanceSession.date.desc())
        .all()
    )
    rows = _student_rows(sessions, student.id)
    percentage = get_student_attendance_percentage(student.id, course_id, semester)

    return jsonify({
        'success': True,
        'count': len(rows),
        'attendancePercentage': f"{percentage:.2f}",
        'course': serialize_course(sessions[0].course) if sessions else None,
        'attendances': [{k: v for k, v in row.items() if k != 'course'} for row in rows]
    })


@attendance_bp.route('/<int:session_id>', methods=['PUT'])
@admin_required
def update_attendance(session_id):
    session = get_session_or_404(session_id)
    payload = request.get_json(silent=True) or {}
    records = parse_records(payload.get('records'))

    existing = {r.student_id: r for r in session.records}
    affected = set(existing) | set(records)

    for student_id, record in list(existing.items()):
        if student_id not in records:
            session.records.remove(record)
    for student_id, data in records.items():
        record = existing.get(student_id)
        if record is None:
            session.records.append(AttendanceRecord(student_id=student_id, **data))
        else:
            record.status = data['status']
            record.remarks = data['remarks']

    db.session.commit()
    refresh_enrollment_attendance(sorted(affected), session.course_id, session.semester)

    return jsonify({
        'success': True,
        'message': "Attendance updated successfully",
        'attendance': serialize_attendance(session)
    })


@attendance_bp.route('/<int:session_id>', methods=['DELETE'])
@admin_required
def delete_attendance(session_id):
    session = get_session_or_404(session_id)
    session.is_active = False
    db.session.commit()

    # Inactive sessions no longer count, so the cached percentages move too
    refresh_enrollment_attendance([r.student_id for r in session.records], session.course_id, session.semester)
    return jsonify({'success': True, 'message': "Attendance record deleted successfully"})


@attendance_bp.route('/stats/<int:course_id>', methods=['GET'])
@admin_required
def attendance_stats(course_id):
    semester = request.args.get('semester', type=int)
    if not semester:
        raise ValidationFailed("semester query parameter is required")

    enrollments = Enrollment.query.filter_by(course_id=course_id, semester=semester, status='active').all()
    stats = []
    for enrollment in enrollments:
        percentage = get_student_attendance_percentage(enrollment.student_id, course_id, semester)
        stats.append({
            'student': serialize_student_brief(enrollment.student),
            'attendancePercentage': round(percentage, 2)
        })
    stats.sort(key=lambda s: s['attendancePercentage'], reverse=True)

    return jsonify({
        'success': True,
        'count': len(stats),
        'stats': [{**s, 'attendancePercentage': f"{s['attendancePercentage']:.2f}"} for s in stats]
    })
