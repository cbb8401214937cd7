from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

from models.schemas.common import flatten_errors
from services.errors import ErrorKind, ServiceResult

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.ACCOUNT_LOCKED: 401,
    ErrorKind.ACCOUNT_INACTIVE: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.INVALID_API_KEY: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.LIMIT_EXCEEDED: 400,
    ErrorKind.UNIMPLEMENTED: 501,
    ErrorKind.INTERNAL: 500,
}


def error_response(message: str, status: int, errors: list | None = None):
    payload = {"success": False, "message": message, "data": None, "errors": errors or []}
    return jsonify(payload), status


def result_response(result: ServiceResult, success_status: int = 200):
    """Render a core result with the status its error kind maps to."""
    if result.success:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), STATUS_BY_KIND.get(result.error_kind, 400)


def register_error_handlers(app):
    # 400 Bad Request (generic)
    @app.errorhandler(400)
    def bad_request(e):
        message = getattr(e, "description", "Bad request")
        return error_response(message, 400)

    # 401 Unauthorized
    @app.errorhandler(401)
    def unauthorized(e):
        message = getattr(e, "description", "Not authenticated")
        return error_response(message, 401)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("Resource not found", 404)

    # 405 Method Not Allowed
    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("Method not allowed", 405)

    # 409 Conflict
    @app.errorhandler(409)
    def conflict(e):
        message = getattr(e, "description", "Conflict")
        return error_response(message, 409)

    # 422 Unprocessable Entity
    @app.errorhandler(422)
    def unprocessable(e):
        message = getattr(e, "description", "Unprocessable entity")
        return error_response(message, 422)

    # Marshmallow validation errors that escape a view
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return error_response("Validation failed", 400, errors=flatten_errors(err.messages))

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        logger.warning("Integrity error: %s", getattr(err, "orig", err))
        lower_msg = str(getattr(err, "orig", err)).lower()
        if "unique constraint" in lower_msg or "unique violation" in lower_msg:
            return error_response("Unique constraint violated", 409)
        return error_response("Integrity error", 400)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response(err.description, err.code or 400)

    # 500 Internal Error (catch-all): full context in the log, generic message to the caller
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        errors = None
        if current_app and current_app.debug:
            errors = [f"{err.__class__.__name__}: {err}"]
        return error_response("An unexpected error occurred", 500, errors=errors)
