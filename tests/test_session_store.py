"""Tests for refresh token and password reset token persistence."""

from datetime import timedelta

import pytest
from sqlalchemy.orm import Session

from app.config import Settings
from app.database import utcnow
from app.models.password_reset_token import PasswordResetToken
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.services.session_store import SessionStore


@pytest.fixture(name="store")
def store_fixture() -> SessionStore:
    return SessionStore(Settings(REFRESH_TOKEN_EXPIRE_DAYS=7))


@pytest.fixture(name="user")
def user_fixture(db_session: Session) -> User:
    user = User(email="store@example.com", password_hash="x", first_name="S", last_name="T")
    db_session.add(user)
    db_session.commit()
    return user


class TestRefreshTokens:
    """Tests for refresh token storage."""

    def test_save_sets_expiry(self, store: SessionStore, user: User, db_session: Session):
        record = store.save_refresh_token(db_session, user.id, "tok-1")
        db_session.commit()
        expected = utcnow() + timedelta(days=7)
        assert abs((record.expires_at - expected).total_seconds()) < 5

    def test_valid_token(self, store: SessionStore, user: User, db_session: Session):
        store.save_refresh_token(db_session, user.id, "tok-1")
        db_session.commit()
        assert store.is_refresh_token_valid(db_session, "tok-1")
        assert not store.is_refresh_token_valid(db_session, "tok-unknown")

    def test_expired_token_is_deleted_on_lookup(self, store: SessionStore, user: User, db_session: Session):
        record = store.save_refresh_token(db_session, user.id, "tok-1")
        record.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()

        assert not store.is_refresh_token_valid(db_session, "tok-1")
        assert db_session.query(RefreshToken).count() == 0

    def test_delete_reports_whether_a_row_was_removed(self, store: SessionStore, user: User, db_session: Session):
        store.save_refresh_token(db_session, user.id, "tok-1")
        db_session.commit()
        assert store.delete_refresh_token(db_session, "tok-1") is True
        assert store.delete_refresh_token(db_session, "tok-1") is False

    def test_delete_scoped_to_owner(self, store: SessionStore, user: User, db_session: Session):
        store.save_refresh_token(db_session, user.id, "tok-1")
        db_session.commit()
        assert store.delete_refresh_token(db_session, "tok-1", user_id="someone-else") is False
        assert store.count_refresh_tokens(db_session, user.id) == 1

    def test_delete_all(self, store: SessionStore, user: User, db_session: Session):
        for i in range(3):
            store.save_refresh_token(db_session, user.id, f"tok-{i}")
        db_session.commit()
        assert store.delete_all_refresh_tokens(db_session, user.id) == 3
        assert store.count_refresh_tokens(db_session, user.id) == 0


class TestPasswordResetTokens:
    """Tests for reset token storage."""

    def test_find_only_unexpired(self, store: SessionStore, user: User, db_session: Session):
        store.create_password_reset_token(db_session, user.id, "a" * 64, utcnow() + timedelta(hours=1))
        store.create_password_reset_token(db_session, user.id, "b" * 64, utcnow() - timedelta(seconds=1))
        db_session.commit()

        assert store.find_password_reset_token(db_session, "a" * 64) is not None
        assert store.find_password_reset_token(db_session, "b" * 64) is None
        assert store.find_password_reset_token(db_session, "c" * 64) is None

    def test_consume(self, store: SessionStore, user: User, db_session: Session):
        record = store.create_password_reset_token(db_session, user.id, "a" * 64, utcnow() + timedelta(hours=1))
        db_session.commit()

        assert store.consume_password_reset_token(db_session, record) is True
        assert store.consume_password_reset_token(db_session, record) is False
        db_session.commit()
        assert db_session.query(PasswordResetToken).count() == 0


def test_purge_expired(store: SessionStore, user: User, db_session: Session):
    store.save_refresh_token(db_session, user.id, "live")
    expired = store.save_refresh_token(db_session, user.id, "dead")
    expired.expires_at = utcnow() - timedelta(days=1)
    store.create_password_reset_token(db_session, user.id, "a" * 64, utcnow() - timedelta(minutes=1))
    db_session.commit()

    assert store.purge_expired(db_session) == 2
    assert [t.token for t in db_session.query(RefreshToken).all()] == ["live"]
    assert db_session.query(PasswordResetToken).count() == 0


def test_purge_runs_at_startup(user: User, db_session: Session, monkeypatch: pytest.MonkeyPatch):
    import main

    live = RefreshToken(token="live", user_id=user.id, expires_at=utcnow() + timedelta(days=1))
    dead = RefreshToken(token="dead", user_id=user.id, expires_at=utcnow() - timedelta(days=1))
    db_session.add_all([live, dead])
    db_session.commit()
    monkeypatch.setattr(main, "SessionLocal", lambda: db_session)

    main.purge_expired_sessions()

    assert [t.token for t in db_session.query(RefreshToken).all()] == ["live"]
