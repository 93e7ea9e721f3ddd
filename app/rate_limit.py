"""Rate limiting for the public auth endpoints."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings
from app.responses import ErrorCodes

settings = get_settings()

limiter = Limiter(key_func=get_remote_address)

LOGIN_LIMIT = settings.LOGIN_RATE_LIMIT
REGISTRATION_LIMIT = settings.REGISTRATION_RATE_LIMIT
PASSWORD_RESET_LIMIT = settings.PASSWORD_RESET_RATE_LIMIT
REFRESH_LIMIT = settings.REFRESH_RATE_LIMIT

# Route path -> error code reported when its limit trips
RATE_LIMIT_CODES = {
    "/api/auth/login": ErrorCodes.LOGIN_RATE_LIMIT_EXCEEDED,
    "/api/auth/register": ErrorCodes.REGISTRATION_RATE_LIMIT_EXCEEDED,
    "/api/auth/forgot-password": ErrorCodes.PASSWORD_RESET_RATE_LIMIT_EXCEEDED,
    "/api/auth/reset-password": ErrorCodes.PASSWORD_RESET_RATE_LIMIT_EXCEEDED,
    "/api/auth/refresh": ErrorCodes.REFRESH_TOKEN_RATE_LIMIT_EXCEEDED,
}

RATE_LIMIT_MESSAGES = {
    ErrorCodes.LOGIN_RATE_LIMIT_EXCEEDED: "Too many login attempts. Please try again later.",
    ErrorCodes.REGISTRATION_RATE_LIMIT_EXCEEDED: "Too many registration attempts. Please try again later.",
    ErrorCodes.PASSWORD_RESET_RATE_LIMIT_EXCEEDED: "Too many password reset attempts. Please try again later.",
    ErrorCodes.REFRESH_TOKEN_RATE_LIMIT_EXCEEDED: "Too many token refresh attempts. Please try again later.",
    ErrorCodes.RATE_LIMIT_EXCEEDED: "Too many requests. Please try again later.",
}


async def capture_login_email(request: Request) -> None:
    """Stash the submitted email on the request so the login limit can key on it."""
    try:
        body = await request.json()
    except ValueError:
        body = None
    email = body.get("email") if isinstance(body, dict) else None
    request.state.login_email = email.strip().lower() if isinstance(email, str) else ""


def login_rate_limit_key(request: Request) -> str:
    """Login attempts are counted per client IP and email pair."""
    email = getattr(request.state, "login_email", "")
    return f"{get_remote_address(request)}:{email}"


def rate_limit_code(path: str) -> str:
    return RATE_LIMIT_CODES.get(path, ErrorCodes.RATE_LIMIT_EXCEEDED)
