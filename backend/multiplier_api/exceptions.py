"""
Custom exceptions for the Multiplier API backend.

Each exception carries the machine-readable ``code`` and HTTP status that
the error handlers in ``main`` render for the front end.
"""


class MultiplierException(Exception):
    """Base exception class for the Multiplier API."""

    code = "multiplier_error"
    status_code = 500

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ValidationError(MultiplierException):
    """Raised when a required field is missing or empty."""
    code = "missing_data"
    status_code = 400


class AuthenticationError(MultiplierException):
    """Raised when the anti-forgery session token is missing or invalid."""
    code = "rest_forbidden"
    status_code = 401


class DatabaseError(MultiplierException):
    """Raised when database operations fail."""
    code = "db_insert_error"
    status_code = 500


class ExternalServiceError(MultiplierException):
    """Raised when external service calls fail."""
    code = "external_service_error"
    status_code = 502
