"""PropEase - Property Management API."""

import logging
import time
import traceback

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import SessionLocal
from app.dependencies import get_client_ip
from app.exceptions import AuthError
from app.rate_limit import RATE_LIMIT_MESSAGES, limiter, rate_limit_code
from app.responses import ErrorCodes, error_json
from app.routers import auth_router
from app.services.email import get_email_service
from app.services.session_store import get_session_store

__version__ = "0.1.0"

settings = get_settings()

# Logging
logger = logging.getLogger("propease")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

for warning in settings.validate():
    logger.warning("Config: %s", warning)

app = FastAPI(title=settings.APP_NAME, version=__version__)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 1024 * 1024  # 1MB; auth payloads are tiny

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return error_json(413, "PAYLOAD_TOO_LARGE", "Request body too large")
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIX = "/api/auth/"

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        if request.method == "POST" and path.startswith(self.AUDIT_PREFIX):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                request.method,
                path,
                response.status_code,
                duration_ms,
                get_client_ip(request),
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# API routers
app.include_router(auth_router)


@app.on_event("startup")
def check_email_configuration() -> None:
    """Warn at boot when SMTP credentials are configured but the server rejects them."""
    if settings.EMAIL_USER and not get_email_service().verify_connection():
        logger.warning("Outgoing email is unavailable; password reset requests will fail")


@app.on_event("startup")
def purge_expired_sessions() -> None:
    """Drop refresh and reset tokens that expired while the app was down."""
    db = SessionLocal()
    try:
        get_session_store().purge_expired(db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Skipping expired token purge: %s", e)
    finally:
        db.close()


# --- Error handlers: every failure leaves in the response envelope ---
@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> Response:
    """Render domain auth errors."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_json(exc.status_code, exc.code, exc.message, details=exc.details, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    """Itemize request validation failures per field."""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        details.append({"field": ".".join(loc) or "body", "message": message})
    return error_json(400, ErrorCodes.VALIDATION_ERROR, "Validation failed", details=details)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded with a per-endpoint error code."""
    code = rate_limit_code(request.url.path)
    headers = None
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if view_rate_limit is not None:
        limit, identifiers = view_rate_limit
        reset_at, _ = limiter.limiter.get_window_stats(limit, *identifiers)
        headers = {"Retry-After": str(max(int(reset_at - time.time()), 0))}
    return error_json(429, code, RATE_LIMIT_MESSAGES[code], headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Wrap framework HTTP errors (404, 405, ...) in the envelope."""
    code = ErrorCodes.NOT_FOUND if exc.status_code == 404 else f"HTTP_{exc.status_code}"
    return error_json(exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    """Last resort: log and answer 500 without leaking internals."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    stack = "".join(traceback.format_exception(exc)) if settings.is_development else None
    return error_json(500, ErrorCodes.INTERNAL_SERVER_ERROR, "Internal server error", stack=stack)


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": settings.APP_NAME, "version": __version__}
