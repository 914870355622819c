from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required

from models import db, Course
from forms import load_form, CourseForm, CourseUpdateForm
from utils.auth import admin_required
from utils.errors import NotFoundError, ConflictError
from utils.serializers import serialize_course

course_bp = Blueprint('courses', __name__)


def get_course_or_404(course_id):
    course = db.session.get(Course, course_id)
    if course is None:
        raise NotFoundError("Course not found", reason='course_not_found')
    return course


@course_bp.route('', methods=['GET'])
@login_required
def list_courses():
    query = Course.query.filter_by(is_active=True)
    if request.args.get('department'):
        query = query.filter_by(department=request.args['department'])
    if request.args.get('semester', type=int):
        query = query.filter_by(semester=request.args.get('semester', type=int))

    courses = query.order_by(Course.code).all()
    return jsonify({'success': True, 'count': len(courses), 'courses': [serialize_course(c) for c in courses]})


@course_bp.route('/<int:course_id>', methods=['GET'])
@login_required
def get_course(course_id):
    return jsonify({'success': True, 'course': serialize_course(get_course_or_404(course_id))})


@course_bp.route('', methods=['POST'])
@admin_required
def create_course():
    form = load_form(CourseForm)
    code = form.code.data.strip().upper()
    if Course.query.filter_by(code=code).first():
        raise ConflictError("Course code already exists", reason='duplicate_course')

    course = Course(code=code, title=form.title.data.strip())
    for field, value in form.provided_data().items():
        if field not in ('code', 'title'):
            setattr(course, field, value)
    db.session.add(course)
    db.session.commit()
    current_app.logger.info("Course %s created", course.code)

    return jsonify({'success': True, 'message': "Course created successfully", 'course': serialize_course(course)}), 201


@course_bp.route('/<int:course_id>', methods=['PUT'])
@admin_required
def update_course(course_id):
    course = get_course_or_404(course_id)
    form = load_form(CourseUpdateForm)
    data = form.provided_data()

    if 'code' in data:
        data['code'] = data['code'].strip().upper()
        clash = Course.query.filter(Course.code == data['code'], Course.id != course.id).first()
        if clash:
            raise ConflictError("Course code already exists", reason='duplicate_course')

    for field, value in data.items():
        setattr(course, field, value)
    db.session.commit()

    return jsonify({'success': True, 'message': "Course updated successfully", 'course': serialize_course(course)})


@course_bp.route('/<int:course_id>', methods=['DELETE'])
@admin_required
def delete_course(course_id):
    course = get_course_or_404(course_id)
    # Enrollments keep pointing at the course, so it is only hidden
    course.is_active = False
    db.session.commit()
    return jsonify({'success': True, 'message': "Course deleted successfully"})
