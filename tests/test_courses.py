from forms import json_formdata


def test_json_formdata_maps_camel_case_and_scalars():
    formdata = json_formdata({
        'academicYear': '2024-25',
        'maxMarks': 100,
        'allowLateSubmission': False,
        'remarks': None,
        'records': [{'student': 1}],
        'tags': ['a', 'b'],
    })
    assert formdata['academic_year'] == '2024-25'
    assert formdata['max_marks'] == '100'
    assert formdata['allow_late_submission'] == 'false'
    assert 'remarks' not in formdata
    assert 'records' not in formdata
    assert formdata.getlist('tags') == ['a', 'b']


def test_course_lifecycle(client, factory, admin_headers):
    resp = client.post('/api/courses', headers=admin_headers,
                       json={'code': 'cs201', 'title': 'Data Structures', 'credits': 4, 'semester': 3})
    assert resp.status_code == 201
    course = resp.get_json()['course']
    assert course['courseCode'] == 'CS201'
    assert course['credits'] == 4

    resp = client.post('/api/courses', headers=admin_headers, json={'code': 'CS201', 'title': 'Again'})
    assert resp.status_code == 400

    resp = client.put(f"/api/courses/{course['id']}", headers=admin_headers, json={'room': 'B-12'})
    assert resp.status_code == 200
    assert resp.get_json()['course']['room'] == 'B-12'
    assert resp.get_json()['course']['title'] == 'Data Structures'

    student_headers = factory.headers('student', factory.student())
    resp = client.get('/api/courses?semester=3', headers=student_headers)
    assert resp.get_json()['count'] == 1

    assert client.delete(f"/api/courses/{course['id']}", headers=admin_headers).status_code == 200
    assert client.get('/api/courses', headers=student_headers).get_json()['count'] == 0


def test_course_without_credits_reports_three(client, admin_headers):
    resp = client.post('/api/courses', headers=admin_headers, json={'code': 'HS101', 'title': 'Ethics'})
    assert resp.get_json()['course']['credits'] == 3


def test_students_cannot_create_courses(client, factory):
    resp = client.post('/api/courses', headers=factory.headers('student', factory.student()),
                       json={'code': 'CS999', 'title': 'Nope'})
    assert resp.status_code == 403
