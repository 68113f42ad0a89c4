"""Password hashing service."""

from functools import cached_property

import bcrypt

from app.config import get_settings
from app.errors import HashingError

# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """One-way salted password hashing with constant-time verification."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt."""
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")
        except ValueError as exc:
            raise HashingError("Could not hash password") from exc

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. A mismatch is False, never an error."""
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            # Stored hashes only ever cover passwords within the limit.
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError as exc:
            raise HashingError("Stored password hash is malformed") from exc

    @cached_property
    def dummy_hash(self) -> str:
        """A hash at this hasher's cost that no submitted password is expected to match."""
        return self.hash("not-a-real-account")


_password_hasher: PasswordHasher | None = None


def get_password_hasher() -> PasswordHasher:
    """Get singleton password hasher instance."""
    global _password_hasher
    if _password_hasher is None:
        _password_hasher = PasswordHasher(rounds=get_settings().BCRYPT_ROUNDS)
    return _password_hasher
