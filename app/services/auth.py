"""Authentication service.

Orchestrates registration, login, token rotation, logout and password
reset/change on top of the password hasher, JWT service and session store.
Multi-row writes run inside ``transaction(db)`` so they land together or not
at all.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import transaction, utcnow
from app.exceptions import (
    AccountInactiveError,
    EmailSendFailedError,
    InvalidCredentialsError,
    InvalidCurrentPasswordError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    InvalidTokenError,
    UserAlreadyExistsError,
    UserNotFoundError,
    WeakPasswordError,
)
from app.models.company import Company
from app.models.user import User
from app.schemas.auth import AuthTokens, AuthUser, RegisterRequest, UserResponse
from app.services.email import EmailSendError, EmailService, get_email_service
from app.services.jwt import JWTService, generate_password_reset_token, get_jwt_service, hash_reset_token
from app.services.password import PasswordHasher, get_password_hasher
from app.services.session_store import SessionStore, get_session_store
from app.services.validators import validate_password_strength

logger = logging.getLogger("propease")


@dataclass
class AuthResult:
    """Outcome of a successful register or login."""

    user: UserResponse
    tokens: AuthTokens


class AuthService:
    """Handles user registration, authentication and session lifecycle."""

    def __init__(
        self,
        settings: Settings,
        jwt_service: JWTService,
        session_store: SessionStore,
        password_hasher: PasswordHasher,
        email_service: EmailService,
    ) -> None:
        self.settings = settings
        self.jwt = jwt_service
        self.sessions = session_store
        self.hasher = password_hasher
        self.email = email_service

    # --- Helpers ---

    @staticmethod
    def find_user_by_email(db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email.strip().lower()).first()

    def _check_strength(self, password: str) -> None:
        validation = validate_password_strength(password)
        if not validation.is_valid:
            raise WeakPasswordError(details=validation.errors)

    def _issue_tokens(self, db: Session, user: User) -> AuthTokens:
        """Mint a token pair and persist the refresh token in the caller's transaction."""
        tokens = self.jwt.create_auth_tokens(AuthUser.model_validate(user))
        self.sessions.save_refresh_token(db, user.id, tokens.refresh_token)
        return tokens

    def _send_best_effort(self, send: Callable[..., None], *args) -> None:
        try:
            send(*args)
        except EmailSendError as e:
            logger.warning("Notification email failed: %s", e)
        except Exception:
            logger.exception("Notification email could not be prepared")

    def _schedule_email(self, background_tasks: BackgroundTasks | None, send: Callable[..., None], *args) -> None:
        """Send after the response when a task queue is available, inline otherwise."""
        if background_tasks is not None:
            background_tasks.add_task(self._send_best_effort, send, *args)
        else:
            self._send_best_effort(send, *args)

    # --- Operations ---

    def register(
        self, db: Session, data: RegisterRequest, background_tasks: BackgroundTasks | None = None
    ) -> AuthResult:
        """Create a user (and optionally its company) and sign them in."""
        email = data.email.strip().lower()
        if self.find_user_by_email(db, email):
            raise UserAlreadyExistsError()
        self._check_strength(data.password)

        password_hash = self.hasher.hash(data.password)
        try:
            with transaction(db):
                company = None
                if data.company_name and data.company_address:
                    company = Company(
                        name=data.company_name.strip(),
                        address=data.company_address.model_dump(by_alias=True),
                        phone=data.company_phone or "",
                        email=(data.company_email or email).lower(),
                    )
                    db.add(company)
                    db.flush()

                user = User(
                    email=email,
                    password_hash=password_hash,
                    first_name=data.first_name.strip(),
                    last_name=data.last_name.strip(),
                    company_id=company.id if company else None,
                )
                db.add(user)
                db.flush()
                tokens = self._issue_tokens(db, user)
        except IntegrityError as e:
            # Lost a race with a concurrent registration of the same email.
            raise UserAlreadyExistsError() from e

        logger.info("User registered: %s", user.id)
        self._schedule_email(background_tasks, self.email.send_welcome_email, user.email, user.first_name)
        return AuthResult(user=UserResponse.model_validate(user), tokens=tokens)

    def login(self, db: Session, email: str, password: str) -> AuthResult:
        """Verify credentials and issue a fresh token pair."""
        user = self.find_user_by_email(db, email)
        if user is None or not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountInactiveError()

        with transaction(db):
            tokens = self._issue_tokens(db, user)
        active = self.sessions.count_refresh_tokens(db, user.id)
        logger.info("User logged in: %s (%d active sessions)", user.id, active)
        return AuthResult(user=UserResponse.model_validate(user), tokens=tokens)

    def refresh(self, db: Session, refresh_token: str) -> AuthTokens:
        """Rotate a refresh token: the presented token is consumed and a new pair issued."""
        if not self.sessions.is_refresh_token_valid(db, refresh_token):
            raise InvalidRefreshTokenError()
        try:
            payload = self.jwt.verify_refresh_token(refresh_token)
        except InvalidTokenError as e:
            raise InvalidRefreshTokenError() from e

        user = db.get(User, payload.get("userId"))
        if user is None or not user.is_active:
            raise InvalidRefreshTokenError()

        with transaction(db):
            # Row count decides the winner when two requests rotate the same token.
            if not self.sessions.delete_refresh_token(db, refresh_token):
                raise InvalidRefreshTokenError()
            tokens = self._issue_tokens(db, user)
        return tokens

    def logout(self, db: Session, user_id: str, refresh_token: str | None = None) -> None:
        """Revoke one of the caller's refresh tokens. Unknown tokens are ignored."""
        if not refresh_token:
            return
        with transaction(db):
            self.sessions.delete_refresh_token(db, refresh_token, user_id=user_id)

    def logout_all(self, db: Session, user_id: str) -> int:
        """Revoke every refresh token of the caller."""
        with transaction(db):
            count = self.sessions.delete_all_refresh_tokens(db, user_id)
        logger.info("Revoked %d sessions for user %s", count, user_id)
        return count

    def forgot_password(self, db: Session, email: str) -> None:
        """Create a reset token and email it.

        Unknown accounts return silently. Raises EmailSendFailedError
        when the reset email for a known account cannot be sent.
        """
        user = self.find_user_by_email(db, email)
        if user is None:
            return

        token = generate_password_reset_token()
        expires_at = utcnow() + timedelta(minutes=self.settings.PASSWORD_RESET_EXPIRE_MINUTES)
        with transaction(db):
            self.sessions.create_password_reset_token(db, user.id, hash_reset_token(token), expires_at)

        try:
            self.email.send_password_reset_email(user.email, user.first_name, token)
        except EmailSendError as e:
            raise EmailSendFailedError() from e

    def reset_password(
        self, db: Session, token: str, new_password: str, background_tasks: BackgroundTasks | None = None
    ) -> None:
        """Set a new password from a reset token and sign the user out everywhere."""
        record = self.sessions.find_password_reset_token(db, hash_reset_token(token))
        if record is None:
            raise InvalidResetTokenError()
        self._check_strength(new_password)

        user = record.user
        password_hash = self.hasher.hash(new_password)
        with transaction(db):
            if not self.sessions.consume_password_reset_token(db, record):
                raise InvalidResetTokenError()
            user.password_hash = password_hash
            self.sessions.delete_all_refresh_tokens(db, user.id)

        logger.info("Password reset for user %s", user.id)
        self._schedule_email(background_tasks, self.email.send_password_changed_email, user.email, user.first_name)

    def change_password(
        self,
        db: Session,
        user_id: str,
        current_password: str,
        new_password: str,
        background_tasks: BackgroundTasks | None = None,
    ) -> None:
        """Change the caller's password and revoke all of their sessions."""
        user = db.get(User, user_id)
        if user is None:
            raise UserNotFoundError("User not found", status_code=404)
        if not self.hasher.verify(current_password, user.password_hash):
            raise InvalidCurrentPasswordError()
        self._check_strength(new_password)

        password_hash = self.hasher.hash(new_password)
        with transaction(db):
            user.password_hash = password_hash
            self.sessions.delete_all_refresh_tokens(db, user.id)

        logger.info("Password changed for user %s", user.id)
        self._schedule_email(background_tasks, self.email.send_password_changed_email, user.email, user.first_name)

    def get_profile(self, db: Session, user_id: str) -> UserResponse:
        user = db.get(User, user_id)
        if user is None:
            raise UserNotFoundError("User not found", status_code=404)
        return UserResponse.model_validate(user)


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(
            settings=get_settings(),
            jwt_service=get_jwt_service(),
            session_store=get_session_store(),
            password_hasher=get_password_hasher(),
            email_service=get_email_service(),
        )
    return _auth_service
