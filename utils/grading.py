# utils/grading.py

# Letter grade -> grade point on the 0-10 scale
GRADE_POINTS = {
    'A+': 10,
    'A': 9,
    'B+': 8,
    'B': 7,
    'C+': 6,
    'C': 5,
    'D': 4,
    'F': 0,
    'I': 0,
    'W': 0,
}

ENROLLMENT_GRADES = ['A+', 'A', 'B+', 'B', 'C+', 'C', 'D', 'F', 'I', 'W', '']

# (minimum percentage, letter), checked top-down
PERCENTAGE_THRESHOLDS = [
    (90, 'A+'),
    (80, 'A'),
    (70, 'B+'),
    (60, 'B'),
    (50, 'C+'),
    (40, 'C'),
    (35, 'D'),
]


def grade_points_for(grade):
    """Grade point for a letter grade; empty or unknown grades count as 0."""
    return GRADE_POINTS.get(grade or '', 0)


def percentage_of(marks_obtained, max_marks):
    if not max_marks or max_marks <= 0:
        raise ValueError("max_marks must be greater than zero")
    # Multiply first so whole-number boundaries like 35/100 stay exact
    return marks_obtained * 100 / max_marks


def letter_grade_for(percentage):
    for minimum, letter in PERCENTAGE_THRESHOLDS:
        if percentage >= minimum:
            return letter
    return 'F'


def derive_percentage_and_grade(marks_obtained, max_marks):
    percentage = percentage_of(marks_obtained, max_marks)
    return percentage, letter_grade_for(percentage)
