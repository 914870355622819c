def _iso(value):
    return value.isoformat() if value else None


def serialize_student(s):
    return {
        'id': s.id,
        'name': s.name,
        'email': s.email,
        'phone': s.phone,
        'rollNumber': s.roll_number,
        'semester': s.semester,
        'department': s.department,
        'avatar': s.avatar or '',
        'isActive': s.is_active,
        'role': s.role
    }


def serialize_student_brief(s):
    return {
        'id': s.id,
        'name': s.name,
        'rollNumber': s.roll_number
    }


def serialize_admin(admin):
    return {
        'id': admin.id,
        'username': admin.username,
        'name': admin.name,
        'email': admin.email,
        'role': admin.role,
        'lastLogin': _iso(admin.last_login)
    }


def serialize_course(c):
    return {
        'id': c.id,
        'courseCode': c.code,
        'title': c.title,
        'description': c.description or '',
        'credits': c.credit_weight,
        'department': c.department,
        'semester': c.semester,
        'instructor': c.instructor,
        'schedule': c.schedule,
        'room': c.room,
        'isActive': c.is_active
    }


def serialize_enrollment(e, include_student=False):
    data = {
        'id': e.id,
        'course': serialize_course(e.course) if e.course else None,
        'semester': e.semester,
        'academicYear': e.academic_year,
        'enrollmentDate': _iso(e.enrollment_date),
        'status': e.status,
        'grade': e.grade,
        'gradePoints': e.grade_points,
        'attendancePercentage': e.attendance_percentage,
        'isActive': e.is_active
    }
    if include_student:
        data['student'] = serialize_student_brief(e.student)
    else:
        data['studentId'] = e.student_id
    return data


def serialize_attendance_record(r):
    return {
        'id': r.id,
        'student': serialize_student_brief(r.student) if r.student else {'id': r.student_id},
        'status': r.status,
        'remarks': r.remarks or ''
    }


def serialize_attendance(a):
    return {
        'id': a.id,
        'course': serialize_course(a.course) if a.course else None,
        'semester': a.semester,
        'date': _iso(a.date),
        'topic': a.topic,
        'sessionType': a.session_type,
        'duration': a.duration,
        'academicYear': a.academic_year,
        'markedBy': a.marked_by.name if a.marked_by else None,
        'records': [serialize_attendance_record(r) for r in a.records],
        'isActive': a.is_active
    }


def serialize_marks(m):
    return {
        'id': m.id,
        'student': serialize_student_brief(m.student) if m.student else {'id': m.student_id},
        'course': serialize_course(m.course) if m.course else None,
        'semester': m.semester,
        'academicYear': m.academic_year,
        'examType': m.exam_type,
        'maxMarks': m.max_marks,
        'marksObtained': m.marks_obtained,
        'percentage': m.percentage,
        'grade': m.grade,
        'remarks': m.remarks or '',
        'enteredBy': m.entered_by.name if m.entered_by else None,
        'isActive': m.is_active
    }


def serialize_submission(sub):
    return {
        "id": sub.id,
        "student": serialize_student_brief(sub.student) if sub.student else {"id": sub.student_id},
        "submittedAt": _iso(sub.submitted_at),
        "files": sub.files or [],
        "textContent": sub.text_content or "",
        "status": sub.status,
        "marks": sub.marks,
        "feedback": sub.feedback or "",
        "gradedBy": sub.graded_by.name if sub.graded_by else None,
        "gradedAt": _iso(sub.graded_at)
    }


def serialize_assignment(a, include_submissions=True):
    data = {
        'id': a.id,
        'title': a.title,
        'description': a.description,
        'course': serialize_course(a.course) if a.course else None,
        'semester': a.semester,
        'maxMarks': a.max_marks,
        'dueDate': _iso(a.due_date),
        'allowLateSubmission': a.allow_late_submission,
        'lateSubmissionDeadline': _iso(a.late_submission_deadline),
        'instructions': a.instructions or '',
        'attachments': a.attachments or [],
        'createdBy': a.created_by.name if a.created_by else None,
        'isActive': a.is_active
    }
    if include_submissions:
        data['submissions'] = [serialize_submission(s) for s in a.submissions]
    return data
