"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; pin them before the app is imported.
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("APP_URL", "http://app.test")

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings
from app.database import Base, get_db
from app.models.company import Company  # noqa: F401
from app.models.password_reset_token import PasswordResetToken  # noqa: F401
from app.models.refresh_token import RefreshToken  # noqa: F401
from app.models.user import User  # noqa: F401
from app.schemas.auth import RegisterRequest
from app.services.auth import AuthService, get_auth_service
from app.services.email import EmailService
from app.services.jwt import get_jwt_service
from app.services.password import get_password_hasher
from app.services.session_store import get_session_store

TEST_PASSWORD = "Password123"


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="mock_email")
def mock_email_fixture():
    """Email service that records calls instead of talking to SMTP."""
    return Mock(spec=EmailService)


@pytest.fixture(name="auth_service")
def auth_service_fixture(mock_email: Mock) -> AuthService:
    return AuthService(
        settings=get_settings(),
        jwt_service=get_jwt_service(),
        session_store=get_session_store(),
        password_hasher=get_password_hasher(),
        email_service=mock_email,
    )


@pytest.fixture(name="client")
def client_fixture(db_session: Session, auth_service: AuthService):
    """Create a test client with overridden DB and auth service, and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


def make_register_request(email: str = "test@example.com", password: str = TEST_PASSWORD, **extra) -> RegisterRequest:
    return RegisterRequest(
        email=email,
        first_name=extra.pop("first_name", "Test"),
        last_name=extra.pop("last_name", "User"),
        password=password,
        confirm_password=password,
        **extra,
    )


@pytest.fixture(name="register_user")
def register_user_fixture(db_session: Session, auth_service: AuthService):
    """Factory registering users through the service layer."""

    def _register(email: str, password: str = TEST_PASSWORD, **extra):
        return auth_service.register(db_session, make_register_request(email, password, **extra))

    return _register


@pytest.fixture(name="test_user")
def test_user_fixture(register_user, mock_email: Mock):
    """Register a user and return its id, email, password and issued tokens."""
    result = register_user("test@example.com")
    mock_email.reset_mock()
    return {
        "id": result.user.id,
        "email": result.user.email,
        "password": TEST_PASSWORD,
        "access_token": result.tokens.access_token,
        "refresh_token": result.tokens.refresh_token,
    }


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(test_user: dict) -> dict:
    return {"Authorization": f"Bearer {test_user['access_token']}"}
