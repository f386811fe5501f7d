"""
Custom exceptions for the UserHub API.
Every domain error carries its HTTP status, a stable error code and
optional per-field details; the handlers in core.errors turn them into
the {message, code, details} envelope.
"""
from typing import Dict, List, Optional

from fastapi import status

Details = Dict[str, List[str]]


class UserHubException(Exception):
    """Base exception for UserHub"""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str = "An error occurred",
        code: Optional[str] = None,
        details: Optional[Details] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ConfigurationError(UserHubException):
    """Required configuration is missing"""
    code = "CONFIGURATION_ERROR"


class ValidationError(UserHubException):
    """Request data failed validation"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, details: Optional[Details] = None, message: str = "Invalid data"):
        super().__init__(message, details=details)


class NotFoundError(UserHubException):
    """Resource not found"""
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", resource_id: Optional[str] = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class DuplicateEmailError(UserHubException):
    """Email is already registered"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Registration failed", code: str = "REGISTER_FAILED"):
        super().__init__(message, code=code, details={"email": ["Email already exists"]})


class PasswordMismatchError(UserHubException):
    """Password and its confirmation differ"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, code: str):
        super().__init__(
            message,
            code=code,
            details={"confirmPassword": ["Password confirmation does not match"]},
        )


class InvalidCredentialsError(UserHubException):
    """
    Login failed. The same body is used for an unknown email and a wrong
    password so callers cannot tell which one it was.
    """
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "LOGIN_FAILED"

    def __init__(self):
        super().__init__(
            "Login failed",
            details={"email": ["Invalid email or password"]},
        )


class EmailNotFoundError(UserHubException):
    """No account for the given email"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, code: str):
        super().__init__(
            message,
            code=code,
            details={"email": ["Email does not exist in the system"]},
        )


class AlreadyVerifiedError(UserHubException):
    """Email was verified already"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "RESEND_VERIFICATION_FAILED"

    def __init__(self):
        super().__init__(
            "Could not resend verification email",
            details={"email": ["Email is already verified"]},
        )


class InvalidOrExpiredTokenError(UserHubException):
    """Refresh, reset or verification token is unknown or past its expiry"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: str,
        field: str = "token",
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message,
            code=code,
            details={field: ["Token is invalid or has expired"]},
            status_code=status_code,
        )


class IncorrectPasswordError(UserHubException):
    """Password confirmation for a sensitive action failed"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, code: str, field: str = "password"):
        super().__init__(message, code=code, details={field: ["Password is incorrect"]})


class UnauthenticatedError(UserHubException):
    """Authentication failed"""
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class ForbiddenError(UserHubException):
    """Access denied"""
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class BadRequestError(UserHubException):
    """Generic 400 with a caller-chosen code"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"


class UploadError(UserHubException):
    """Uploaded file was rejected"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "UPLOAD_ERROR"


class RateLimitError(UserHubException):
    """Too many attempts"""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self, message: str = "Too many authentication attempts, please try again later."):
        super().__init__(message)
