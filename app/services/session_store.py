"""Persistence of refresh tokens and password reset tokens.

Methods only stage changes on the session; the caller decides when to commit,
usually inside ``app.database.transaction``.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import utcnow
from app.models.password_reset_token import PasswordResetToken
from app.models.refresh_token import RefreshToken

logger = logging.getLogger("propease")


class SessionStore:
    """Stores and revokes server-side session credentials."""

    def __init__(self, settings: Settings) -> None:
        self.refresh_expire = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    # --- Refresh tokens ---

    def save_refresh_token(self, db: Session, user_id: str, token: str) -> RefreshToken:
        record = RefreshToken(token=token, user_id=user_id, expires_at=utcnow() + self.refresh_expire)
        db.add(record)
        db.flush()
        return record

    def is_refresh_token_valid(self, db: Session, token: str) -> bool:
        """True iff the token is stored and unexpired. Expired rows are deleted on sight."""
        record = db.query(RefreshToken).filter(RefreshToken.token == token).first()
        if record is None:
            return False
        if record.expires_at <= utcnow():
            db.delete(record)
            db.commit()
            return False
        return True

    def delete_refresh_token(self, db: Session, token: str, user_id: str | None = None) -> bool:
        """Delete one refresh token. Returns False if no row matched.

        A single conditional DELETE, so two callers racing on the same token
        cannot both see a removed row.
        """
        query = db.query(RefreshToken).filter(RefreshToken.token == token)
        if user_id is not None:
            query = query.filter(RefreshToken.user_id == user_id)
        return query.delete(synchronize_session=False) > 0

    def delete_all_refresh_tokens(self, db: Session, user_id: str) -> int:
        return db.query(RefreshToken).filter(RefreshToken.user_id == user_id).delete(synchronize_session=False)

    def count_refresh_tokens(self, db: Session, user_id: str) -> int:
        return db.query(RefreshToken).filter(RefreshToken.user_id == user_id).count()

    # --- Password reset tokens ---

    def create_password_reset_token(
        self, db: Session, user_id: str, hashed_token: str, expires_at: datetime
    ) -> PasswordResetToken:
        record = PasswordResetToken(token_hash=hashed_token, user_id=user_id, expires_at=expires_at)
        db.add(record)
        db.flush()
        return record

    def find_password_reset_token(self, db: Session, hashed_token: str) -> PasswordResetToken | None:
        """Look up an unexpired reset token by its hash."""
        return (
            db.query(PasswordResetToken)
            .filter(PasswordResetToken.token_hash == hashed_token, PasswordResetToken.expires_at > utcnow())
            .first()
        )

    def consume_password_reset_token(self, db: Session, record: PasswordResetToken) -> bool:
        """Delete a reset token. Returns False if it was already consumed."""
        deleted = (
            db.query(PasswordResetToken)
            .filter(PasswordResetToken.id == record.id)
            .delete(synchronize_session=False)
        )
        return deleted > 0

    # --- Housekeeping ---

    def purge_expired(self, db: Session) -> int:
        """Delete expired refresh and reset tokens. Returns the number of rows removed."""
        now = utcnow()
        removed = db.query(RefreshToken).filter(RefreshToken.expires_at <= now).delete(synchronize_session=False)
        removed += (
            db.query(PasswordResetToken)
            .filter(PasswordResetToken.expires_at <= now)
            .delete(synchronize_session=False)
        )
        db.commit()
        if removed:
            logger.info("Purged %d expired session tokens", removed)
        return removed


_session_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Get singleton session store instance."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore(get_settings())
    return _session_store
