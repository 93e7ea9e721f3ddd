"""Unified API response envelope.

Every endpoint answers with ``{success, data?, message?, error?}`` so the
client can parse responses without knowing the endpoint.
"""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data: Any = None, message: str | None = None) -> dict:
    """Build a success envelope, omitting empty fields."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if message is not None:
        body["message"] = message
    return body


def error_response(code: str, message: str, details: Any = None, stack: str | None = None) -> dict:
    """Build an error envelope, omitting empty fields."""
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    if stack is not None:
        error["stack"] = stack
    return {"success": False, "error": error}


def error_json(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
    stack: str | None = None,
) -> JSONResponse:
    """Error envelope wrapped in a JSONResponse."""
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details=details, stack=stack),
        headers=headers,
    )


class ErrorCodes:
    """Stable error codes not owned by a domain exception."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    LOGIN_RATE_LIMIT_EXCEEDED = "LOGIN_RATE_LIMIT_EXCEEDED"
    REGISTRATION_RATE_LIMIT_EXCEEDED = "REGISTRATION_RATE_LIMIT_EXCEEDED"
    PASSWORD_RESET_RATE_LIMIT_EXCEEDED = "PASSWORD_RESET_RATE_LIMIT_EXCEEDED"
    REFRESH_TOKEN_RATE_LIMIT_EXCEEDED = "REFRESH_TOKEN_RATE_LIMIT_EXCEEDED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
