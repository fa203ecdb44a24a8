from flask import jsonify
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException


class AppError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class NotAuthorized(AppError):
    status_code = 403
    code = "not_authorized"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class InvalidTransition(AppError):
    status_code = 409
    code = "invalid_transition"


class BookingUnavailable(AppError):
    """The conditioned accept matched no row: someone else claimed or cancelled it."""

    status_code = 409
    code = "booking_unavailable"


class TransientStoreError(AppError):
    status_code = 503
    code = "store_unavailable"


def _error_response(message, status_code, code):
    return jsonify({"error": message, "code": code}), status_code


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        return _error_response(err.message, err.status_code, err.code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(_err):
        app.logger.warning("Database integrity error")
        return _error_response("Conflict. Resource already exists.", 409, "conflict")

    @app.errorhandler(OperationalError)
    def handle_operational_error(_err):
        app.logger.warning("Store unavailable", exc_info=True)
        return _error_response("Store temporarily unavailable. Please retry.", 503, TransientStoreError.code)

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return _error_response(err.name, err.code, err.name.lower().replace(" ", "_"))

    @app.errorhandler(500)
    def server_error(_err):
        app.logger.exception("Internal server error")
        return _error_response("Internal server error", 500, "internal_error")
