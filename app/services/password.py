"""Password hashing with bcrypt."""

import bcrypt

from app.config import Settings, get_settings

# bcrypt only reads the first 72 bytes of its input; newer releases raise instead of truncating.
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """One-way salted password hashing."""

    def __init__(self, settings: Settings) -> None:
        self.rounds = settings.BCRYPT_ROUNDS

    def hash(self, password: str) -> str:
        """Hash a password with a fresh random salt."""
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. Malformed hashes verify as False."""
        try:
            return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
        except ValueError:
            return False


_password_hasher: PasswordHasher | None = None


def get_password_hasher() -> PasswordHasher:
    """Get singleton password hasher instance."""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = PasswordHasher(get_settings())
    return _password_hasher
