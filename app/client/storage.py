"""Client-side persistence of the signed-in session."""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger("propease")

ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"


class SessionStorage:
    """Holds accessToken, refreshToken and user, mirrored to a JSON file when a path is given."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._data: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data), encoding="utf-8")

    @property
    def access_token(self) -> str | None:
        return self._data.get(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> str | None:
        return self._data.get(REFRESH_TOKEN_KEY)

    @property
    def user(self) -> dict[str, Any] | None:
        return self._data.get(USER_KEY)

    def save_tokens(self, access_token: str, refresh_token: str) -> None:
        self._data[ACCESS_TOKEN_KEY] = access_token
        self._data[REFRESH_TOKEN_KEY] = refresh_token
        self._write()

    def save_user(self, user: dict[str, Any]) -> None:
        self._data[USER_KEY] = user
        self._write()

    def clear(self) -> None:
        self._data = {}
        if self.path is not None and self.path.exists():
            self.path.unlink()
