import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from utils.extensions import db, login_manager, migrate, cors
from utils.auth import load_identity, load_user_from_request
from utils.errors import ValidationFailed

from utils.auth_routes import auth_bp
from admin_routes import admin_bp
from course_routes import course_bp
from enrollment_routes import enrollment_bp
from attendance_routes import attendance_bp
from marks_routes import marks_bp
from assignment_routes import assignment_bp


def configure_logging(app):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    app.logger.handlers = [handler]
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Only show werkzeug warnings and errors
    logging.getLogger('werkzeug').setLevel(logging.WARNING)


@login_manager.user_loader
def load_user(user_id):
    return load_identity(user_id)


@login_manager.request_loader
def load_user_from_header(request):
    return load_user_from_request(request)


@login_manager.unauthorized_handler
def unauthorized_callback():
    return jsonify({
        'success': False,
        'message': "Not authorized to access this route",
        'error': 'unauthorized'
    }), 401


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if exc.code is None or exc.code < 400:
            return exc
        db.session.rollback()
        payload = {
            'success': False,
            'message': getattr(exc, 'message', None) or exc.description,
            'error': getattr(exc, 'reason', None) or exc.name.lower().replace(' ', '_')
        }
        if isinstance(exc, ValidationFailed) and exc.errors:
            payload['errors'] = exc.errors
        return jsonify(payload), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify({'success': False, 'message': "Internal server error", 'error': str(exc)}), 500


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(course_bp, url_prefix="/api/courses")
    app.register_blueprint(enrollment_bp, url_prefix="/api/enrollments")
    app.register_blueprint(attendance_bp, url_prefix="/api/attendance")
    app.register_blueprint(marks_bp, url_prefix="/api/marks")
    app.register_blueprint(assignment_bp, url_prefix="/api/assignments")

    register_error_handlers(app)

    @app.route('/api/health')
    def health():
        return jsonify({'success': True, 'message': "Academic portal API is running"})

    with app.app_context():
        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=False)
