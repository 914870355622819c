from utils.gpa import calculate_semester_gpa, calculate_cgpa, semester_wise_gpa


def test_no_enrollments_gives_zero(app, factory):
    student_id = factory.student()
    with app.app_context():
        assert calculate_semester_gpa(student_id, 1) == 0
        assert calculate_cgpa(student_id, 8) == 0


def test_credit_weighted_average(app, factory):
    student_id = factory.student()
    factory.enrollment(student_id, factory.course(credits=3), grade='A')
    factory.enrollment(student_id, factory.course(credits=4), grade='B')

    with app.app_context():
        # (3 * 9 + 4 * 7) / 7
        assert calculate_semester_gpa(student_id, 1) == 7.86
        assert calculate_cgpa(student_id, 1) == 7.86


def test_dropped_and_failed_enrollments_are_ignored(app, factory):
    student_id = factory.student()
    factory.enrollment(student_id, factory.course(), grade='B')
    factory.enrollment(student_id, factory.course(), status='dropped', grade='A+')
    factory.enrollment(student_id, factory.course(), status='failed', grade='F')

    with app.app_context():
        assert calculate_semester_gpa(student_id, 1) == 7


def test_completed_enrollments_count(app, factory):
    student_id = factory.student()
    factory.enrollment(student_id, factory.course(), status='completed', grade='A+')
    factory.enrollment(student_id, factory.course(), grade='C')

    with app.app_context():
        assert calculate_semester_gpa(student_id, 1) == 7.5


def test_cgpa_pools_semesters_up_to_the_limit(app, factory):
    student_id = factory.student(semester=3)
    factory.enrollment(student_id, factory.course(credits=4), semester=1, grade='A+')
    factory.enrollment(student_id, factory.course(credits=2), semester=2, grade='C')
    factory.enrollment(student_id, factory.course(credits=3), semester=3, grade='F')

    with app.app_context():
        assert calculate_cgpa(student_id, 1) == 10
        # (4 * 10 + 2 * 5) / 6
        assert calculate_cgpa(student_id, 2) == 8.33
        # (40 + 10 + 0) / 9
        assert calculate_cgpa(student_id, 3) == 5.56
        assert calculate_semester_gpa(student_id, 2) == 5


def test_semester_wise_gpa_lists_every_semester(app, factory):
    student_id = factory.student(semester=2)
    factory.enrollment(student_id, factory.course(), semester=2, grade='B+')

    with app.app_context():
        assert semester_wise_gpa(student_id, 2) == [
            {'semester': 1, 'gpa': 0},
            {'semester': 2, 'gpa': 8},
        ]
