"""Configuration settings for PropEase."""

import os
import secrets
from functools import lru_cache
from typing import Any

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables.

    Keyword overrides replace individual values, which keeps services testable
    without touching the process environment.
    """

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./propease.db")

    # JWT
    JWT_SECRET: str = os.getenv("JWT_SECRET", secrets.token_urlsafe(32))
    JWT_REFRESH_SECRET: str = os.getenv("JWT_REFRESH_SECRET", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
    REFRESH_TOKEN_EXPIRE_DAYS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    PASSWORD_RESET_EXPIRE_MINUTES: int = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60"))

    # Password hashing
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # Email (SMTP)
    EMAIL_HOST: str = os.getenv("EMAIL_HOST", "smtp.gmail.com")
    EMAIL_PORT: int = int(os.getenv("EMAIL_PORT", "587"))
    EMAIL_USER: str = os.getenv("EMAIL_USER", "")
    EMAIL_PASS: str = os.getenv("EMAIL_PASS", "")
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "noreply@propease.com")
    EMAIL_TIMEOUT_SECONDS: int = int(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))

    # Public URLs
    APP_URL: str = os.getenv("APP_URL", "http://localhost:5173")
    API_URL: str = os.getenv("API_URL", "http://localhost:8000/api")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Rate limits (slowapi limit strings)
    LOGIN_RATE_LIMIT: str = os.getenv("LOGIN_RATE_LIMIT", "10/15minutes")
    REGISTRATION_RATE_LIMIT: str = os.getenv("REGISTRATION_RATE_LIMIT", "5/hour")
    PASSWORD_RESET_RATE_LIMIT: str = os.getenv("PASSWORD_RESET_RATE_LIMIT", "3/hour")
    REFRESH_RATE_LIMIT: str = os.getenv("REFRESH_RATE_LIMIT", "20/15minutes")

    # Application
    APP_NAME: str = os.getenv("APP_NAME", "PropEase")
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def __init__(self, **overrides: Any) -> None:
        for name, value in overrides.items():
            if not hasattr(type(self), name):
                raise AttributeError(f"Unknown setting '{name}'")
            setattr(self, name, value)

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if not os.getenv("JWT_SECRET"):
            errors.append("JWT_SECRET is not set - using auto-generated key (not persistent across restarts)")
        if not os.getenv("JWT_REFRESH_SECRET"):
            errors.append("JWT_REFRESH_SECRET is not set - using auto-generated key (not persistent across restarts)")
        if self.JWT_SECRET == self.JWT_REFRESH_SECRET:
            errors.append("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        if self.BCRYPT_ROUNDS < 12 and not self.is_development:
            errors.append(f"BCRYPT_ROUNDS={self.BCRYPT_ROUNDS} is below the recommended minimum of 12")
        if not self.EMAIL_USER:
            errors.append("EMAIL_USER is not set - outgoing email will fail")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
