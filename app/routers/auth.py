"""Authentication API endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, get_current_user
from app.rate_limit import (
    LOGIN_LIMIT,
    PASSWORD_RESET_LIMIT,
    REFRESH_LIMIT,
    REGISTRATION_LIMIT,
    capture_login_email,
    limiter,
    login_rate_limit_key,
)
from app.responses import success_response
from app.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from app.services.auth import AuthService, get_auth_service

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."


@router.post("/register", status_code=201)
@limiter.limit(REGISTRATION_LIMIT)
def register(
    request: Request,
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Register a new user account, optionally with its company."""
    result = auth_service.register(db, body, background_tasks)
    return success_response(
        data={"user": result.user, "tokens": result.tokens},
        message="User registered successfully",
    )


@router.post("/login", dependencies=[Depends(capture_login_email)])
@limiter.limit(LOGIN_LIMIT, key_func=login_rate_limit_key)
def login(
    request: Request,
    body: LoginRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Authenticate with email and password."""
    result = auth_service.login(db, body.email, body.password)
    return success_response(
        data={"user": result.user, "tokens": result.tokens},
        message="Login successful",
    )


@router.post("/refresh")
@limiter.limit(REFRESH_LIMIT)
def refresh(
    request: Request,
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Exchange a refresh token for a new token pair. The old refresh token is revoked."""
    tokens = auth_service.refresh(db, body.refresh_token)
    return success_response(data={"tokens": tokens}, message="Token refreshed successfully")


@router.post("/logout")
def logout(
    body: LogoutRequest | None = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Revoke the supplied refresh token for this device."""
    auth_service.logout(db, user.id, body.refresh_token if body else None)
    return success_response(message="Logged out successfully")


@router.post("/logout-all")
def logout_all(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Revoke every refresh token of the current user."""
    auth_service.logout_all(db, user.id)
    return success_response(message="Logged out from all devices successfully")


@router.post("/forgot-password")
@limiter.limit(PASSWORD_RESET_LIMIT)
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Email a password reset link. The answer never reveals whether the account exists."""
    auth_service.forgot_password(db, body.email)
    return success_response(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password")
@limiter.limit(PASSWORD_RESET_LIMIT)
def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Set a new password using an emailed reset token."""
    auth_service.reset_password(db, body.token, body.password, background_tasks)
    return success_response(message="Password reset successfully")


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Change the current user's password. All sessions are signed out."""
    auth_service.change_password(db, user.id, body.current_password, body.new_password, background_tasks)
    return success_response(message="Password changed successfully. Please log in again.")


@router.get("/me")
def me(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict:
    """Return the current user's profile."""
    profile = auth_service.get_profile(db, user.id)
    return success_response(data={"user": profile}, message="User profile retrieved successfully")
