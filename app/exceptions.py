"""Typed exceptions for auth failures.

Each exception carries a stable error ``code`` that clients branch on, the
HTTP status it maps to, and optional ``details``. Route handlers let these
propagate; ``main.py`` renders them into the response envelope.
"""

from typing import Any


class AuthError(Exception):
    """Base class for authentication/authorization errors."""

    code = "AUTH_ERROR"
    message = "Authentication failed"
    status_code = 400

    def __init__(
        self,
        message: str | None = None,
        details: Any = None,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.message
        self.details = details
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class UserAlreadyExistsError(AuthError):
    code = "USER_ALREADY_EXISTS"
    message = "A user with this email already exists"
    status_code = 400


class WeakPasswordError(AuthError):
    """Password fails the strength policy. ``details`` lists every violated rule."""

    code = "WEAK_PASSWORD"
    message = "Password does not meet security requirements"
    status_code = 400


class InvalidCredentialsError(AuthError):
    """
    Unknown email or wrong password.

    Both causes share this error so responses never reveal which accounts exist.
    """

    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"
    status_code = 401


class AccountInactiveError(AuthError):
    code = "ACCOUNT_INACTIVE"
    message = "Account is inactive. Please contact support."
    status_code = 401


class InvalidRefreshTokenError(AuthError):
    """Refresh token unknown, expired, forged, or already rotated. Terminal for the session."""

    code = "INVALID_REFRESH_TOKEN"
    message = "Invalid or expired refresh token"
    status_code = 401


class MissingTokenError(AuthError):
    code = "MISSING_TOKEN"
    message = "Access token is required"
    status_code = 401


class InvalidTokenError(AuthError):
    """Token signature, expiry, or type check failed."""

    code = "INVALID_TOKEN"
    message = "Invalid or expired access token"
    status_code = 401


class UserNotFoundError(AuthError):
    """User referenced by a valid token no longer exists or was deactivated."""

    code = "USER_NOT_FOUND"
    message = "User not found or account is inactive"
    status_code = 401


class AuthenticationRequiredError(AuthError):
    code = "UNAUTHORIZED"
    message = "Authentication required"
    status_code = 401


class InsufficientPermissionsError(AuthError):
    code = "INSUFFICIENT_PERMISSIONS"
    message = "You do not have permission to access this resource"
    status_code = 403


class InvalidResetTokenError(AuthError):
    code = "INVALID_RESET_TOKEN"
    message = "Invalid or expired reset token"
    status_code = 400


class InvalidCurrentPasswordError(AuthError):
    code = "INVALID_CURRENT_PASSWORD"
    message = "Current password is incorrect"
    status_code = 400


class EmailSendFailedError(AuthError):
    code = "EMAIL_SEND_FAILED"
    message = "Failed to send password reset email"
    status_code = 500
