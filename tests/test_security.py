"""Tests for password hashing, input validators and JWT handling."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.config import Settings, get_settings
from app.exceptions import InvalidTokenError
from app.models.user import UserRole
from app.schemas.auth import AuthUser
from app.services.jwt import JWTService, generate_password_reset_token, hash_reset_token
from app.services.password import PasswordHasher
from app.services.validators import is_valid_email, validate_password_strength


@pytest.fixture(name="hasher")
def hasher_fixture() -> PasswordHasher:
    return PasswordHasher(get_settings())


@pytest.fixture(name="jwt_service")
def jwt_service_fixture() -> JWTService:
    return JWTService(get_settings())


@pytest.fixture(name="auth_user")
def auth_user_fixture() -> AuthUser:
    return AuthUser(
        id="user-1",
        email="pm@example.com",
        first_name="Pat",
        last_name="Manager",
        role=UserRole.PROPERTY_MANAGER,
        company_id="company-1",
        is_active=True,
    )


class TestPasswordHasher:
    """Tests for bcrypt hashing."""

    @pytest.mark.parametrize("password", ["Password123", "", "ünïcödé-Pässwörd1", "x" * 100])
    def test_hash_then_verify(self, hasher: PasswordHasher, password: str):
        assert hasher.verify(password, hasher.hash(password))

    def test_hash_is_salted(self, hasher: PasswordHasher):
        assert hasher.hash("Password123") != hasher.hash("Password123")

    def test_hash_is_not_plaintext(self, hasher: PasswordHasher):
        hashed = hasher.hash("Password123")
        assert "Password123" not in hashed
        assert hashed.startswith("$2")

    def test_wrong_password(self, hasher: PasswordHasher):
        assert not hasher.verify("Password124", hasher.hash("Password123"))

    def test_malformed_hash_returns_false(self, hasher: PasswordHasher):
        assert hasher.verify("Password123", "not-a-bcrypt-hash") is False

    def test_configured_cost_factor(self):
        hasher = PasswordHasher(Settings(BCRYPT_ROUNDS=5))
        assert hasher.hash("Password123").split("$")[2] == "05"


class TestPasswordStrength:
    """Tests for the password policy."""

    def test_strong_password(self):
        result = validate_password_strength("Abc12345")
        assert result.is_valid
        assert result.errors == []

    def test_weak_reports_every_violation(self):
        result = validate_password_strength("weak")
        assert not result.is_valid
        assert result.errors == [
            "Password must be at least 8 characters long",
            "Password must contain at least one uppercase letter",
            "Password must contain at least one number",
        ]

    def test_missing_lowercase(self):
        result = validate_password_strength("ABCDEFG1")
        assert result.errors == ["Password must contain at least one lowercase letter"]

    def test_empty_password_breaks_every_rule(self):
        assert len(validate_password_strength("").errors) == 4


class TestEmailValidator:
    """Tests for email shape checks."""

    @pytest.mark.parametrize("email", ["a@x.com", "first.last+tag@sub.example.org", "user_1%x@domain.io"])
    def test_valid(self, email: str):
        assert is_valid_email(email)

    @pytest.mark.parametrize(
        "email",
        [
            "plainaddress",
            "a@x",
            "a..b@x.com",
            ".a@x.com",
            "a.@x.com",
            "a@.x.com",
            "a@x.com.",
            "a@x..com",
            "a b@x.com",
            "a@x.c",
        ],
    )
    def test_invalid(self, email: str):
        assert not is_valid_email(email)


class TestJWTService:
    """Tests for access and refresh tokens."""

    def test_access_token_round_trip(self, jwt_service: JWTService, auth_user: AuthUser):
        payload = jwt_service.verify_access_token(jwt_service.create_access_token(auth_user))
        assert payload["id"] == "user-1"
        assert payload["email"] == "pm@example.com"
        assert payload["role"] == "PROPERTY_MANAGER"
        assert payload["companyId"] == "company-1"
        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_refresh_token_round_trip(self, jwt_service: JWTService):
        payload = jwt_service.verify_refresh_token(jwt_service.create_refresh_token("user-1"))
        assert payload["userId"] == "user-1"
        assert payload["type"] == "refresh"
        assert payload["exp"] - payload["iat"] == 7 * 24 * 60 * 60

    def test_refresh_tokens_are_unique(self, jwt_service: JWTService):
        assert jwt_service.create_refresh_token("user-1") != jwt_service.create_refresh_token("user-1")

    def test_secrets_are_not_interchangeable(self, jwt_service: JWTService, auth_user: AuthUser):
        with pytest.raises(InvalidTokenError):
            jwt_service.verify_refresh_token(jwt_service.create_access_token(auth_user))
        with pytest.raises(InvalidTokenError):
            jwt_service.verify_access_token(jwt_service.create_refresh_token("user-1"))

    def test_wrong_secret_fails(self, jwt_service: JWTService, auth_user: AuthUser):
        other = JWTService(Settings(JWT_SECRET="some-other-secret"))
        with pytest.raises(InvalidTokenError):
            jwt_service.verify_access_token(other.create_access_token(auth_user))

    def test_expired_token_fails(self, jwt_service: JWTService):
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        token = jwt.encode(
            {"id": "user-1", "type": "access", "iat": past - timedelta(minutes=15), "exp": past},
            get_settings().JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            jwt_service.verify_access_token(token)

    def test_wrong_type_claim_fails(self, jwt_service: JWTService):
        token = jwt.encode({"id": "user-1", "type": "refresh"}, get_settings().JWT_SECRET, algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            jwt_service.verify_access_token(token)

    def test_malformed_token(self, jwt_service: JWTService):
        with pytest.raises(InvalidTokenError):
            jwt_service.verify_access_token("not.a.token")

    def test_auth_tokens(self, jwt_service: JWTService, auth_user: AuthUser):
        tokens = jwt_service.create_auth_tokens(auth_user)
        assert tokens.expires_in == 900
        assert jwt_service.verify_access_token(tokens.access_token)["id"] == "user-1"
        assert jwt_service.verify_refresh_token(tokens.refresh_token)["userId"] == "user-1"


class TestResetTokens:
    """Tests for password reset token generation and hashing."""

    def test_reset_token_shape(self):
        token = generate_password_reset_token()
        assert len(token) == 64
        int(token, 16)

    def test_reset_tokens_are_random(self):
        assert len({generate_password_reset_token() for _ in range(50)}) == 50

    def test_hash_is_deterministic(self):
        token = generate_password_reset_token()
        assert hash_reset_token(token) == hash_reset_token(token)
        assert len(hash_reset_token(token)) == 64
        assert hash_reset_token(token) != token

    def test_distinct_tokens_distinct_hashes(self):
        tokens = [generate_password_reset_token() for _ in range(50)]
        assert len({hash_reset_token(t) for t in tokens}) == 50
