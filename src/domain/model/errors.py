"""Domain-level exceptions.

Services raise these errors to express business rule violations.
Route handlers catch them and map to appropriate HTTP status codes.
Each error carries a stable ``code`` so clients can branch on it without
parsing the human-readable message.
"""

from enum import Enum


class ErrorCode(str, Enum):
    CONFLICT = 'conflict'
    INVALID_OTP = 'invalid_otp'
    INVALID_CREDENTIALS = 'invalid_credentials'
    INVALID_RESET_TOKEN = 'invalid_reset_token'
    VALIDATION = 'validation_error'
    SERVICE_UNAVAILABLE = 'service_unavailable'
    INTERNAL = 'internal_error'


class DomainError(Exception):
    """Base class for all domain errors."""
    code = ErrorCode.INTERNAL


class ConflictError(DomainError):
    """Entity with the same unique key already exists."""
    code = ErrorCode.CONFLICT


class ValidationError(DomainError):
    """Input violates a business validation rule."""
    code = ErrorCode.VALIDATION


class InvalidOtpError(DomainError):
    """Missing, expired or mismatching one-time code.

    The message never says which of those it was.
    """
    code = ErrorCode.INVALID_OTP

    def __init__(self, message: str = "Invalid or expired OTP."):
        super().__init__(message)


class InvalidCredentialsError(DomainError):
    """Unknown email or wrong password (deliberately indistinguishable)."""
    code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class InvalidResetTokenError(DomainError):
    """Password reset token is malformed, expired, already used or for another account."""
    code = ErrorCode.INVALID_RESET_TOKEN

    def __init__(self, message: str = "Invalid or expired reset token."):
        super().__init__(message)


class ServiceUnavailableError(DomainError):
    """A downstream collaborator (email, store, database) failed."""
    code = ErrorCode.SERVICE_UNAVAILABLE


class NotificationError(Exception):
    """Raised by notification adapters when a code could not be delivered."""


class RepositoryError(Exception):
    """Raised by repositories when the backing database cannot be read."""
