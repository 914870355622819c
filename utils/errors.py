from werkzeug.exceptions import HTTPException


class ApiError(HTTPException):
    """Base for failures reported to the caller as ``{success, message, error}``."""
    code = 400
    reason = 'bad_request'

    def __init__(self, message, reason=None):
        super().__init__(description=message)
        self.message = message
        if reason:
            self.reason = reason


class NotFoundError(ApiError):
    code = 404
    reason = 'not_found'


class ConflictError(ApiError):
    # Duplicates are reported as 400, matching what the portals expect
    code = 400
    reason = 'conflict'


class ForbiddenError(ApiError):
    code = 403
    reason = 'forbidden'


class UnauthorizedError(ApiError):
    code = 401
    reason = 'unauthorized'


class ValidationFailed(ApiError):
    code = 400
    reason = 'validation_failed'

    def __init__(self, message, errors=None, reason=None):
        super().__init__(message, reason=reason)
        self.errors = errors or {}


class DeadlineError(ApiError):
    code = 400
    reason = 'deadline_passed'
