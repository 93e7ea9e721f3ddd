"""Python client for the PropEase auth API."""

from app.client.auth import TokenRefreshAuth
from app.client.session import AuthClient, AuthClientError, is_token_expired
from app.client.storage import SessionStorage

__all__ = ["AuthClient", "AuthClientError", "SessionStorage", "TokenRefreshAuth", "is_token_expired"]
