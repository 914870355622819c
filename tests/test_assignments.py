from datetime import datetime, timedelta
import pytest

from models import db, Assignment, Student
from utils.assignments import submit_assignment, grade_submission
from utils.errors import ConflictError, DeadlineError, ForbiddenError, NotFoundError, ValidationFailed

DUE = datetime(2030, 3, 1, 23, 59)


@pytest.fixture
def seeded(factory):
    admin_id = factory.admin()
    course_id = factory.course()
    student_id = factory.student()
    factory.enrollment(student_id, course_id)
    return {'admin': admin_id, 'course': course_id, 'student': student_id}


def submit(app, assignment_id, student_id, now):
    with app.app_context():
        assignment = db.session.get(Assignment, assignment_id)
        student = db.session.get(Student, student_id)
        submission = submit_assignment(assignment, student, text_content='done', now=now)
        return submission.status


def test_on_time_submission(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE)
    assert submit(app, assignment_id, seeded['student'], DUE - timedelta(hours=1)) == 'submitted'


def test_second_submission_is_rejected(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE)
    submit(app, assignment_id, seeded['student'], DUE - timedelta(hours=2))

    with pytest.raises(ConflictError) as exc:
        submit(app, assignment_id, seeded['student'], DUE - timedelta(hours=1))
    assert exc.value.reason == 'already_submitted'


def test_late_without_permission_is_rejected(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE)

    with pytest.raises(DeadlineError) as exc:
        submit(app, assignment_id, seeded['student'], DUE + timedelta(milliseconds=1))
    assert exc.value.reason == 'deadline_passed'


def test_late_within_late_deadline_is_marked_late(app, factory, seeded):
    assignment_id = factory.assignment(
        seeded['course'], seeded['admin'], due_date=DUE,
        allow_late_submission=True, late_submission_deadline=DUE + timedelta(days=2)
    )
    assert submit(app, assignment_id, seeded['student'], DUE + timedelta(milliseconds=1)) == 'late'


def test_late_after_late_deadline_is_rejected(app, factory, seeded):
    assignment_id = factory.assignment(
        seeded['course'], seeded['admin'], due_date=DUE,
        allow_late_submission=True, late_submission_deadline=DUE + timedelta(days=2)
    )
    with pytest.raises(DeadlineError) as exc:
        submit(app, assignment_id, seeded['student'], DUE + timedelta(days=3))
    assert exc.value.reason == 'late_deadline_passed'


def test_late_without_late_deadline_stays_open(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE, allow_late_submission=True)
    assert submit(app, assignment_id, seeded['student'], DUE + timedelta(days=30)) == 'late'


def test_submission_at_exact_due_date_is_on_time(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE)
    assert submit(app, assignment_id, seeded['student'], DUE) == 'submitted'


def test_unenrolled_student_cannot_submit(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE)
    outsider = factory.student()

    with pytest.raises(ForbiddenError):
        submit(app, assignment_id, outsider, DUE - timedelta(hours=1))


def test_dropped_student_cannot_submit(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE)
    dropped = factory.student()
    factory.enrollment(dropped, seeded['course'], status='dropped')

    with pytest.raises(ForbiddenError):
        submit(app, assignment_id, dropped, DUE - timedelta(hours=1))


def test_inactive_assignment_is_not_found(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE, is_active=False)

    with pytest.raises(NotFoundError):
        submit(app, assignment_id, seeded['student'], DUE - timedelta(hours=1))


def test_grading_is_capped_at_max_marks(app, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], due_date=DUE, max_marks=20)
    submit(app, assignment_id, seeded['student'], DUE - timedelta(hours=1))

    with app.app_context():
        assignment = db.session.get(Assignment, assignment_id)
        submission_id = assignment.submissions[0].id

        with pytest.raises(ValidationFailed) as exc:
            grade_submission(assignment, submission_id, 21)
        assert exc.value.message == "Marks cannot exceed 20"

        with pytest.raises(NotFoundError):
            grade_submission(assignment, submission_id + 100, 10)

        submission = grade_submission(assignment, submission_id, 20, feedback='Well done')
        assert submission.status == 'graded'
        assert submission.marks == 20
        assert submission.graded_at is not None


def test_submit_route(client, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'])
    headers = factory.headers('student', seeded['student'])
    files = [{'filename': 'list.py', 'url': 'https://files.example.edu/list.py', 'secret': 'dropped'}]

    resp = client.post(f'/api/assignments/{assignment_id}/submit', headers=headers,
                       json={'textContent': 'See attached', 'files': files})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['submission']['status'] == 'submitted'
    assert body['submission']['files'] == [{'filename': 'list.py', 'url': 'https://files.example.edu/list.py'}]

    resp = client.post(f'/api/assignments/{assignment_id}/submit', headers=headers, json={})
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'already_submitted'


def test_admins_cannot_submit(client, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'])
    resp = client.post(f'/api/assignments/{assignment_id}/submit',
                       headers=factory.headers('admin', seeded['admin']), json={})
    assert resp.status_code == 403


def test_student_assignment_list_shows_status(client, factory, seeded):
    submitted_id = factory.assignment(seeded['course'], seeded['admin'], title='First')
    factory.assignment(seeded['course'], seeded['admin'], title='Second')
    headers = factory.headers('student', seeded['student'])
    client.post(f'/api/assignments/{submitted_id}/submit', headers=headers, json={'textContent': 'x'})

    resp = client.get('/api/assignments/student', headers=headers)
    assert resp.status_code == 200
    statuses = {a['title']: a['submissionStatus'] for a in resp.get_json()['assignments']}
    assert statuses == {'First': 'submitted', 'Second': 'not-submitted'}


def test_students_do_not_see_other_submissions(client, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'])
    classmate = factory.student()
    factory.enrollment(classmate, seeded['course'])
    client.post(f'/api/assignments/{assignment_id}/submit',
                headers=factory.headers('student', classmate), json={'textContent': 'mine'})

    resp = client.get(f'/api/assignments/{assignment_id}', headers=factory.headers('student', seeded['student']))
    assignment = resp.get_json()['assignment']
    assert 'submissions' not in assignment
    assert assignment['submission'] is None

    resp = client.get(f'/api/assignments/{assignment_id}', headers=factory.headers('admin', seeded['admin']))
    assert len(resp.get_json()['assignment']['submissions']) == 1


def test_create_assignment_validates_late_deadline(client, factory, seeded):
    headers = factory.headers('admin', seeded['admin'])
    payload = {
        'title': 'Trees',
        'description': 'Binary search trees',
        'course': seeded['course'],
        'semester': 1,
        'maxMarks': 50,
        'dueDate': '2030-03-01T23:59:00',
        'allowLateSubmission': True,
        'lateSubmissionDeadline': '2030-02-28T23:59:00',
    }
    assert client.post('/api/assignments', headers=headers, json=payload).status_code == 400

    payload['lateSubmissionDeadline'] = '2030-03-03T23:59:00'
    resp = client.post('/api/assignments', headers=headers, json=payload)
    assert resp.status_code == 201
    assignment = resp.get_json()['assignment']
    assert assignment['allowLateSubmission'] is True
    assert assignment['maxMarks'] == 50


def test_grade_route(client, factory, seeded):
    assignment_id = factory.assignment(seeded['course'], seeded['admin'], max_marks=10)
    resp = client.post(f'/api/assignments/{assignment_id}/submit',
                       headers=factory.headers('student', seeded['student']), json={'textContent': 'x'})
    submission_id = resp.get_json()['submission']['id']
    admin_headers = factory.headers('admin', seeded['admin'])

    resp = client.put(f'/api/assignments/{assignment_id}/submissions/{submission_id}/grade',
                      headers=admin_headers, json={'marks': 11})
    assert resp.status_code == 400

    resp = client.put(f'/api/assignments/{assignment_id}/submissions/{submission_id}/grade',
                      headers=admin_headers, json={'marks': 9, 'feedback': 'Good'})
    assert resp.status_code == 200
    assert resp.get_json()['submission']['status'] == 'graded'
