def enroll(client, headers, course_id, **extra):
    payload = {'courseId': course_id, 'semester': 1, 'academicYear': '2024-25'}
    payload.update(extra)
    return client.post('/api/enrollments', headers=headers, json=payload)


def test_student_enrolls_once_per_semester(client, factory):
    course_id = factory.course()
    headers = factory.headers('student', factory.student())

    resp = enroll(client, headers, course_id)
    assert resp.status_code == 201
    enrollment = resp.get_json()['enrollment']
    assert enrollment['status'] == 'active'
    assert enrollment['gradePoints'] == 0
    assert enrollment['attendancePercentage'] == 0

    resp = enroll(client, headers, course_id)
    assert resp.status_code == 400
    assert resp.get_json()['message'] == "Already enrolled in this course for this semester"

    # Another semester is a separate enrollment
    assert enroll(client, headers, course_id, semester=2).status_code == 201


def test_dropped_enrollment_still_blocks_reenrollment(client, factory):
    course_id = factory.course()
    headers = factory.headers('student', factory.student())
    enrollment_id = enroll(client, headers, course_id).get_json()['enrollment']['id']

    resp = client.delete(f'/api/enrollments/{enrollment_id}', headers=headers)
    assert resp.status_code == 200

    resp = enroll(client, headers, course_id)
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'already_enrolled'


def test_unknown_course_is_not_found(client, factory):
    resp = enroll(client, factory.headers('student', factory.student()), 9999)
    assert resp.status_code == 404


def test_only_owner_or_admin_can_drop(client, factory, admin_headers):
    course_id = factory.course()
    owner, other = factory.student(), factory.student()
    enrollment_id = factory.enrollment(owner, course_id)

    resp = client.delete(f'/api/enrollments/{enrollment_id}', headers=factory.headers('student', other))
    assert resp.status_code == 403

    resp = client.delete(f'/api/enrollments/{enrollment_id}', headers=admin_headers)
    assert resp.status_code == 200


def test_admin_enrolls_a_named_student(client, factory, admin_headers):
    course_id = factory.course()
    student_id = factory.student()

    assert enroll(client, admin_headers, course_id).status_code == 400

    resp = enroll(client, admin_headers, course_id, studentId=student_id)
    assert resp.status_code == 201
    assert resp.get_json()['enrollment']['student']['id'] == student_id


def test_admin_grade_update_recomputes_points(client, factory, admin_headers):
    student_id = factory.student()
    enrollment_id = factory.enrollment(student_id, factory.course())

    resp = client.put(f'/api/enrollments/{enrollment_id}', headers=admin_headers,
                      json={'grade': 'A', 'status': 'completed'})
    assert resp.status_code == 200
    enrollment = resp.get_json()['enrollment']
    assert enrollment['grade'] == 'A'
    assert enrollment['gradePoints'] == 9
    assert enrollment['status'] == 'completed'

    resp = client.put(f'/api/enrollments/{enrollment_id}', headers=admin_headers, json={'grade': 'Q'})
    assert resp.status_code == 400


def test_students_cannot_update_enrollments(client, factory):
    student_id = factory.student()
    enrollment_id = factory.enrollment(student_id, factory.course())
    resp = client.put(f'/api/enrollments/{enrollment_id}', headers=factory.headers('student', student_id),
                      json={'grade': 'A+'})
    assert resp.status_code == 403


def test_enrollment_listing_is_scoped_to_the_student(client, factory, admin_headers):
    owner, other = factory.student(), factory.student()
    factory.enrollment(owner, factory.course())

    resp = client.get(f'/api/enrollments/student/{owner}', headers=factory.headers('student', owner))
    assert resp.status_code == 200
    assert resp.get_json()['count'] == 1

    resp = client.get(f'/api/enrollments/student/{owner}', headers=factory.headers('student', other))
    assert resp.status_code == 403

    resp = client.get(f'/api/enrollments/student/{owner}', headers=admin_headers)
    assert resp.get_json()['count'] == 1


def test_gpa_endpoint(client, factory):
    student_id = factory.student()
    factory.enrollment(student_id, factory.course(credits=3), grade='A')
    factory.enrollment(student_id, factory.course(credits=4), grade='B')

    resp = client.get(f'/api/enrollments/student/{student_id}/gpa', headers=factory.headers('student', student_id))
    assert resp.status_code == 200
    assert resp.get_json()['data'] == {'cgpa': 7.86, 'currentSemesterGPA': 7.86, 'semester': 1}


def test_gpa_without_enrollments_is_zero(client, factory):
    student_id = factory.student()
    resp = client.get(f'/api/enrollments/student/{student_id}/gpa', headers=factory.headers('student', student_id))
    assert resp.get_json()['data']['cgpa'] == 0


def test_admin_can_clear_a_grade(client, factory, admin_headers):
    enrollment_id = factory.enrollment(factory.student(), factory.course(), grade='A')

    resp = client.put(f'/api/enrollments/{enrollment_id}', headers=admin_headers, json={'grade': ''})
    assert resp.status_code == 200
    enrollment = resp.get_json()['enrollment']
    assert enrollment['grade'] == ''
    assert enrollment['gradePoints'] == 0
