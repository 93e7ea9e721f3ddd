"""Client session manager for the PropEase API.

Wraps an ``httpx.Client`` whose base URL points at the API root (``.../api``),
keeps the session in a ``SessionStorage`` and reports user-facing outcomes
through a ``notify(level, message)`` callback.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx
from jose import JWTError, jwt

from app.client.auth import TokenRefreshAuth
from app.client.storage import SessionStorage

logger = logging.getLogger("propease")

Notify = Callable[[str, str], None]


class AuthClientError(Exception):
    """API call failed. ``code`` is the server's error code when one was returned."""

    def __init__(self, code: str, message: str, status_code: int | None = None, details: Any = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(f"{code}: {message}")


def _log_notification(level: str, message: str) -> None:
    logger.info("[%s] %s", level, message)


def is_token_expired(token: str) -> bool:
    """Check the unverified ``exp`` claim. Unreadable tokens count as expired."""
    try:
        claims = jwt.get_unverified_claims(token)
        return float(claims["exp"]) < time.time()
    except (JWTError, KeyError, TypeError, ValueError):
        return True


class AuthClient:
    """Login, logout and password flows with automatic token refresh."""

    def __init__(
        self,
        http: httpx.Client,
        storage: SessionStorage | None = None,
        notify: Notify | None = None,
        on_session_expired: Callable[[], None] | None = None,
    ) -> None:
        self.http = http
        self.storage = storage or SessionStorage()
        self.notify = notify or _log_notification
        self.on_session_expired = on_session_expired
        self.user: dict[str, Any] | None = None
        self.auth = TokenRefreshAuth(
            self.storage,
            self.http.base_url.join("auth/refresh"),
            on_session_expired=self._handle_session_expired,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def _handle_session_expired(self) -> None:
        self.user = None
        if self.on_session_expired is not None:
            self.on_session_expired()

    def _request(self, method: str, path: str, payload: dict | None = None, authenticated: bool = True) -> dict:
        kwargs: dict[str, Any] = {"json": payload} if payload is not None else {}
        if authenticated:
            kwargs["auth"] = self.auth
        response = self.http.request(method, path.lstrip("/"), **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.is_success or not body.get("success", False):
            error = body.get("error") or {}
            raise AuthClientError(
                error.get("code", "REQUEST_FAILED"),
                error.get("message", f"Request failed with status {response.status_code}"),
                status_code=response.status_code,
                details=error.get("details"),
            )
        return body

    def _start_session(self, data: dict) -> None:
        tokens = data["tokens"]
        self.storage.save_tokens(tokens["accessToken"], tokens["refreshToken"])
        self.storage.save_user(data["user"])
        self.user = data["user"]

    def _clear(self) -> None:
        self.storage.clear()
        self.user = None

    def _run(self, call: Callable[[], dict], success: str | None, failure: str) -> dict:
        """Run an API call, notifying the outcome. Errors are re-raised after notifying."""
        try:
            body = call()
        except AuthClientError as e:
            self.notify("error", e.message or failure)
            raise
        if success:
            self.notify("success", success)
        return body

    # --- Operations ---

    def login(self, email: str, password: str) -> dict:
        body = self._run(
            lambda: self._request("POST", "auth/login", {"email": email, "password": password}, authenticated=False),
            None,
            "Login failed. Please try again.",
        )
        self._start_session(body["data"])
        self.notify("success", "Login successful!")
        return self.user

    def register(self, **fields: Any) -> dict:
        """Register with camelCase fields (email, firstName, lastName, password, confirmPassword, ...)."""
        body = self._run(
            lambda: self._request("POST", "auth/register", fields, authenticated=False),
            None,
            "Registration failed. Please try again.",
        )
        self._start_session(body["data"])
        self.notify("success", "Registration successful! Welcome to PropEase!")
        return self.user

    def logout(self) -> None:
        """Forget the local session and revoke its refresh token on the server when possible."""
        refresh_token = self.storage.refresh_token
        if refresh_token and self.storage.access_token:
            try:
                self._request("POST", "auth/logout", {"refreshToken": refresh_token})
                rotated = self.storage.refresh_token
                if rotated and rotated != refresh_token:
                    # The call refreshed an expired access token; revoke the pair it issued too.
                    self._request("POST", "auth/logout", {"refreshToken": rotated})
            except (AuthClientError, httpx.HTTPError) as e:
                logger.info("Server-side logout failed: %s", e)
        self._clear()
        self.notify("success", "Logged out successfully")

    def logout_all(self) -> None:
        self._run(
            lambda: self._request("POST", "auth/logout-all"),
            None,
            "Failed to logout from all devices",
        )
        self._clear()
        self.notify("success", "Logged out from all devices successfully")

    def forgot_password(self, email: str) -> None:
        self._run(
            lambda: self._request("POST", "auth/forgot-password", {"email": email}, authenticated=False),
            "If an account with that email exists, a password reset link has been sent.",
            "Failed to send password reset email",
        )

    def reset_password(self, token: str, password: str, confirm_password: str) -> None:
        payload = {"token": token, "password": password, "confirmPassword": confirm_password}
        self._run(
            lambda: self._request("POST", "auth/reset-password", payload, authenticated=False),
            "Password reset successfully! You can now log in with your new password.",
            "Failed to reset password",
        )

    def change_password(self, current_password: str, new_password: str, confirm_password: str) -> None:
        """Change the password; the server revokes every session, so the local one is dropped too."""
        payload = {
            "currentPassword": current_password,
            "newPassword": new_password,
            "confirmPassword": confirm_password,
        }
        self._run(
            lambda: self._request("POST", "auth/change-password", payload),
            "Password changed successfully! Please log in again.",
            "Failed to change password",
        )
        self._clear()

    def refresh_user(self) -> dict | None:
        """Reload the profile from ``/auth/me``. A failure signs the client out."""
        try:
            body = self._request("GET", "auth/me")
        except AuthClientError as e:
            logger.warning("Failed to refresh user data: %s", e)
            self._clear()
            return None
        self.user = body["data"]["user"]
        self.storage.save_user(self.user)
        return self.user

    def initialize(self) -> dict | None:
        """Restore a stored session on startup.

        An expired access token is refreshed before the stored user is trusted;
        if that fails the session is cleared without notifying.
        """
        access_token = self.storage.access_token
        refresh_token = self.storage.refresh_token
        stored_user = self.storage.user
        if not access_token or not refresh_token or not stored_user:
            return None

        if not is_token_expired(access_token):
            self.user = stored_user
            return self.user

        try:
            body = self._request("POST", "auth/refresh", {"refreshToken": refresh_token}, authenticated=False)
            tokens = body["data"]["tokens"]
            self.storage.save_tokens(tokens["accessToken"], tokens["refreshToken"])
            body = self._request("GET", "auth/me")
        except (AuthClientError, httpx.HTTPError) as e:
            logger.info("Stored session could not be restored: %s", e)
            self._clear()
            return None

        self.user = body["data"]["user"]
        self.storage.save_user(self.user)
        return self.user
