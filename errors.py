"""Error taxonomy shared by the gateway, the catalog and the Flask layer."""

from datetime import datetime

NETWORK = "NETWORK_ERROR"
SERVER = "SERVER_ERROR"
VALIDATION = "VALIDATION_ERROR"
AUTH = "AUTHENTICATION_ERROR"
NOT_FOUND = "NOT_FOUND_ERROR"
UNKNOWN = "UNKNOWN_ERROR"

INFO = "info"
WARNING = "warning"
ERROR = "error"
CRITICAL = "critical"


class AppError(Exception):
    """Base class for every error surfaced to the user.

    Args:
        message: Human readable text, shown as-is by the UI
        status_code: HTTP status that caused the error, if any
        original: The underlying exception, kept for logging
    """

    error_type = UNKNOWN
    severity = ERROR
    http_status = 500

    def __init__(self, message, status_code=None, original=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.original = original
        self.timestamp = datetime.now()

    def to_dict(self):
        return {
            'success': False,
            'error': self.message,
            'type': self.error_type,
            'severity': self.severity,
        }


class NetworkError(AppError):
    error_type = NETWORK
    severity = WARNING
    http_status = 503


class ServerError(AppError):
    error_type = SERVER
    http_status = 502


class ValidationError(AppError):
    error_type = VALIDATION
    severity = WARNING
    http_status = 400

    def __init__(self, message, problems=None, status_code=None, original=None):
        super().__init__(message, status_code=status_code, original=original)
        self.problems = list(problems or [])

    def to_dict(self):
        data = super().to_dict()
        data['problems'] = self.problems
        return data


class AuthError(AppError):
    error_type = AUTH
    severity = WARNING
    http_status = 403


class NotFoundError(AppError):
    error_type = NOT_FOUND
    severity = WARNING
    http_status = 404


class UnknownError(AppError):
    error_type = UNKNOWN


class InvalidInput(ValueError):
    """Raised by the pricing functions for rates or prices they cannot convert."""


def error_for_status(status, message, original=None):
    """Map an HTTP status code to the matching AppError subclass."""
    if status in (400, 409, 422):
        return ValidationError(message, status_code=status, original=original)
    if status in (401, 403):
        return AuthError(message, status_code=status, original=original)
    if status == 404:
        return NotFoundError(message, status_code=status, original=original)
    if 500 <= status < 600:
        return ServerError(message, status_code=status, original=original)
    return UnknownError(message, status_code=status, original=original)
