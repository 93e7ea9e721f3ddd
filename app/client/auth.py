"""httpx authentication flow that keeps the access token fresh.

Every request carries the stored access token. A 401 on such a request
triggers one refresh-token rotation followed by a single retry; if the
refresh fails the stored session is cleared and ``on_session_expired`` runs.
Works with both ``httpx.Client`` and ``httpx.AsyncClient``; each side
serializes rotations with its own lock.
"""

import asyncio
import logging
import threading
from collections.abc import AsyncGenerator, Callable, Generator

import httpx

from app.client.storage import SessionStorage

logger = logging.getLogger("propease")


class TokenRefreshAuth(httpx.Auth):
    requires_response_body = True

    def __init__(
        self,
        storage: SessionStorage,
        refresh_url: str | httpx.URL,
        on_session_expired: Callable[[], None] | None = None,
    ) -> None:
        self.storage = storage
        self.refresh_url = httpx.URL(str(refresh_url))
        self.on_session_expired = on_session_expired
        self._lock = threading.Lock()
        self._async_lock = asyncio.Lock()

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self.storage.access_token
        if not token:
            yield request
            return

        request.headers["Authorization"] = f"Bearer {token}"
        response = yield request
        if response.status_code != 401:
            return

        with self._lock:
            current = self.storage.access_token
            if current and current != token:
                # Another request already rotated the tokens.
                new_token = current
            else:
                new_token = yield from self._refresh()
        if not new_token:
            return

        request.headers["Authorization"] = f"Bearer {new_token}"
        yield request

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = self.storage.access_token
        if not token:
            yield request
            return

        request.headers["Authorization"] = f"Bearer {token}"
        response = yield request
        if response.status_code != 401:
            return

        new_token = None
        async with self._async_lock:
            current = self.storage.access_token
            if current and current != token:
                new_token = current
            else:
                # Drive the shared refresh steps, reading each body before handing it back.
                steps = self._refresh()
                try:
                    refresh_request = next(steps)
                    while True:
                        refresh_response = yield refresh_request
                        await refresh_response.aread()
                        refresh_request = steps.send(refresh_response)
                except StopIteration as done:
                    new_token = done.value
        if not new_token:
            return

        request.headers["Authorization"] = f"Bearer {new_token}"
        yield request

    def _refresh(self) -> Generator[httpx.Request, httpx.Response, str | None]:
        refresh_token = self.storage.refresh_token
        if not refresh_token:
            self._expire()
            return None

        response = yield httpx.Request("POST", self.refresh_url, json={"refreshToken": refresh_token})
        if response.status_code != 200:
            logger.info("Token refresh rejected with %d", response.status_code)
            self._expire()
            return None

        tokens = response.json()["data"]["tokens"]
        self.storage.save_tokens(tokens["accessToken"], tokens["refreshToken"])
        return tokens["accessToken"]

    def _expire(self) -> None:
        self.storage.clear()
        if self.on_session_expired is not None:
            self.on_session_expired()
