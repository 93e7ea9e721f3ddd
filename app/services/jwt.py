"""JWT token service.

Access tokens are short-lived and carry the caller's identity; refresh tokens
are long-lived, carry only the user id and are signed with a separate secret
so that leaking one key cannot forge the other kind of token.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.config import Settings, get_settings
from app.exceptions import InvalidTokenError
from app.schemas.auth import AuthTokens, AuthUser

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, settings: Settings) -> None:
        self.access_secret = settings.JWT_SECRET
        self.refresh_secret = settings.JWT_REFRESH_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.access_expire = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_expire = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    @property
    def access_expires_in(self) -> int:
        """Access token lifetime in seconds."""
        return int(self.access_expire.total_seconds())

    def _encode(self, claims: dict[str, Any], secret: str, lifetime: timedelta, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "type": token_type,
            "iat": now,
            "exp": now + lifetime,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def _decode(self, token: str, secret: str, token_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise InvalidTokenError() from e
        if payload.get("type") != token_type:
            raise InvalidTokenError()
        return payload

    def create_access_token(self, user: AuthUser) -> str:
        """Create a short-lived access token for the given user."""
        claims = {
            "id": user.id,
            "email": user.email,
            "role": user.role.value,
            "companyId": user.company_id,
        }
        return self._encode(claims, self.access_secret, self.access_expire, ACCESS_TOKEN_TYPE)

    def create_refresh_token(self, user_id: str) -> str:
        """Create a long-lived refresh token for the given user."""
        return self._encode({"userId": user_id}, self.refresh_secret, self.refresh_expire, REFRESH_TOKEN_TYPE)

    def create_auth_tokens(self, user: AuthUser) -> AuthTokens:
        """Mint an access/refresh pair. The caller persists the refresh token."""
        return AuthTokens(
            access_token=self.create_access_token(user),
            refresh_token=self.create_refresh_token(user.id),
            expires_in=self.access_expires_in,
        )

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """Decode and validate an access token. Raises InvalidTokenError."""
        return self._decode(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def verify_refresh_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a refresh token. Raises InvalidTokenError."""
        return self._decode(token, self.refresh_secret, REFRESH_TOKEN_TYPE)


def generate_password_reset_token() -> str:
    """256 random bits as 64 hex characters."""
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    """SHA-256 hex digest of a reset token; the only form that is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService(get_settings())
    return _jwt_service
