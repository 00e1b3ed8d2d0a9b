from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from security.errors import (
    AuthFailure,
    Forbidden,
    MalformedInput,
    MissingCredential,
    StorageFailure,
    Unauthorized,
)

logger = logging.getLogger(__name__)


def error_response(error: str, message: str, status: int, details: dict | None = None, headers=None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    response = jsonify(payload)
    if headers:
        response.headers.extend(headers)
    return response, status


BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def register_error_handlers(app):
    # 400 Bad Request (generic)
    @app.errorhandler(400)
    def bad_request(e):
        message = getattr(e, "description", "Bad request")
        return error_response("BAD_REQUEST", message, 400)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        message = getattr(e, "description", None) or "Resource not found"
        return error_response("NOT_FOUND", message, 404)

    # 409 Conflict
    @app.errorhandler(409)
    def conflict(e):
        message = getattr(e, "description", "Conflict")
        return error_response("CONFLICT", message, 409)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    # Credential problems. Messages are fixed by the security layer and never
    # say which factor or lifecycle state failed.
    @app.errorhandler(MissingCredential)
    def handle_missing_credential(err: MissingCredential):
        return error_response("UNAUTHORIZED", "Unauthorized", 401, headers=BEARER_CHALLENGE)

    @app.errorhandler(MalformedInput)
    def handle_malformed_input(err: MalformedInput):
        return error_response("BAD_REQUEST", err.message, 400)

    @app.errorhandler(AuthFailure)
    def handle_auth_failure(err: AuthFailure):
        return error_response("AUTH_FAILED", err.message, 401, headers=BEARER_CHALLENGE)

    @app.errorhandler(Unauthorized)
    def handle_unauthorized(err: Unauthorized):
        return error_response("UNAUTHORIZED", "Unauthorized", 401, headers=BEARER_CHALLENGE)

    @app.errorhandler(Forbidden)
    def handle_forbidden(err: Forbidden):
        return error_response("FORBIDDEN", err.message, 403)

    # Storage is down or misbehaving: log the detail, answer generically
    @app.errorhandler(StorageFailure)
    def handle_storage_failure(err: StorageFailure):
        logger.error("Storage failure: %s", err, exc_info=err)
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500)

    # Integrity errors (unique constraints, FK violations, check constraints)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        message = str(getattr(err, "orig", err))
        lower_msg = message.lower()
        logger.info("Integrity error: %s", message)
        if "unique constraint" in lower_msg or "unique violation" in lower_msg or "duplicate key" in lower_msg:
            return error_response("CONFLICT", "Unique constraint violated.", 409)
        if "foreign key constraint" in lower_msg or "foreign key mismatch" in lower_msg:
            return error_response("BAD_REQUEST", "Foreign key constraint failed.", 400)
        return error_response("BAD_REQUEST", "Integrity error.", 400)

    @app.errorhandler(SQLAlchemyError)
    def handle_sqlalchemy_error(err: SQLAlchemyError):
        logger.error("Database error", exc_info=err)
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.code or 400
        error = (err.name or "error").upper().replace(" ", "_")
        return error_response(error, err.description, code)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        details = None
        # In dev, include exception details to speed up debugging
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
