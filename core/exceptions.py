"""
Application exceptions.

Every error a client can see is an AppException carrying an ErrorCode.
The handlers in main.py turn them into the standard ApiResponse envelope,
so services raise these instead of HTTPException.
"""

from enum import Enum
from starlette import status


class ErrorCode(Enum):
    """
    Stable machine-readable codes returned in the `errorCode` field.

    Each member is (code, default message, HTTP status).
    """

    # Authentication
    INVALID_CREDENTIALS = ("AUTH_001", "Invalid email or password", status.HTTP_401_UNAUTHORIZED)
    TOKEN_EXPIRED = ("AUTH_002", "Your session has expired. Please login again", status.HTTP_401_UNAUTHORIZED)
    INVALID_TOKEN = ("AUTH_003", "Invalid authentication token", status.HTTP_401_UNAUTHORIZED)
    REFRESH_TOKEN_EXPIRED = ("AUTH_004", "Refresh token expired. Please login again", status.HTTP_401_UNAUTHORIZED)
    INVALID_GOOGLE_TOKEN = ("AUTH_005", "Invalid Google authentication token", status.HTTP_401_UNAUTHORIZED)
    AUTHENTICATION_REQUIRED = ("AUTH_006", "Authentication is required to access this resource", status.HTTP_401_UNAUTHORIZED)
    REFRESH_TOKEN_NOT_FOUND = ("AUTH_009", "Refresh token is invalid or has been revoked", status.HTTP_401_UNAUTHORIZED)

    # Validation
    VALIDATION_ERROR = ("VALIDATION_001", "Validation failed for one or more fields", status.HTTP_400_BAD_REQUEST)

    # Business rules
    USER_ALREADY_EXISTS = ("BUSINESS_001", "An account with this email already exists", status.HTTP_409_CONFLICT)

    # Resources
    USER_NOT_FOUND = ("RESOURCE_001", "User not found", status.HTTP_404_NOT_FOUND)
    MAILBOX_NOT_FOUND = ("RESOURCE_002", "Mailbox not found", status.HTTP_404_NOT_FOUND)
    EMAIL_NOT_FOUND = ("RESOURCE_003", "Email not found", status.HTTP_404_NOT_FOUND)
    RESOURCE_NOT_FOUND = ("RESOURCE_004", "Requested resource not found", status.HTTP_404_NOT_FOUND)
    METHOD_NOT_ALLOWED = ("RESOURCE_005", "Method not allowed", status.HTTP_405_METHOD_NOT_ALLOWED)
    TOO_MANY_REQUESTS = ("RATE_001", "Too many requests. Please try again later", status.HTTP_429_TOO_MANY_REQUESTS)

    # System
    INTERNAL_SERVER_ERROR = ("SYSTEM_001", "An unexpected error occurred. Please try again later", status.HTTP_500_INTERNAL_SERVER_ERROR)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]

    @property
    def status_code(self) -> int:
        return self.value[2]


class AppException(Exception):
    """Base class for errors that are reported to the client."""

    error_code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None, error_code: ErrorCode | None = None):
        if error_code is not None:
            self.error_code = error_code
        self.message = message or self.error_code.message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.error_code.status_code

    @property
    def code(self) -> str:
        return self.error_code.code


class ValidationError(AppException):
    error_code = ErrorCode.VALIDATION_ERROR


class InvalidCredentialsError(AppException):
    """Same message whether the email is unknown or the password is wrong."""
    error_code = ErrorCode.INVALID_CREDENTIALS


class ConflictError(AppException):
    error_code = ErrorCode.USER_ALREADY_EXISTS


class InvalidGoogleTokenError(AppException):
    """Raised for every Google verification failure; the cause is only logged."""
    error_code = ErrorCode.INVALID_GOOGLE_TOKEN


class NotFoundError(AppException):
    """
    A presented refresh token does not exist (never issued, logged out or
    already rotated). Reported as 401, not 404.
    """
    error_code = ErrorCode.REFRESH_TOKEN_NOT_FOUND


class ExpiredError(AppException):
    error_code = ErrorCode.REFRESH_TOKEN_EXPIRED


class InvalidTokenError(AppException):
    error_code = ErrorCode.INVALID_TOKEN


class AccessTokenExpiredError(InvalidTokenError):
    error_code = ErrorCode.TOKEN_EXPIRED


class AuthenticationRequiredError(AppException):
    error_code = ErrorCode.AUTHENTICATION_REQUIRED


class ResourceNotFoundError(AppException):
    """
    A user, mailbox or email that does not exist or belongs to someone else.
    """
    error_code = ErrorCode.RESOURCE_NOT_FOUND


class UserNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.USER_NOT_FOUND


class MailboxNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.MAILBOX_NOT_FOUND


class EmailNotFoundError(ResourceNotFoundError):
    error_code = ErrorCode.EMAIL_NOT_FOUND
