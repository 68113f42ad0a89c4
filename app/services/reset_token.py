"""Password reset secret generation."""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.config import get_settings


@dataclass(frozen=True)
class ResetToken:
    """A freshly generated reset secret.

    ``secret`` goes to the user once; only ``digest`` and ``expires_at`` are stored.
    """

    secret: str
    digest: str
    expires_at: datetime


class ResetTokenService:
    """Generates single-use, time-limited password reset secrets."""

    def __init__(self, expire_minutes: int = 10) -> None:
        self.expire_minutes = expire_minutes

    def generate(self) -> ResetToken:
        """Create a 256-bit secret, its digest and an absolute expiry."""
        secret = secrets.token_hex(32)
        return ResetToken(
            secret=secret,
            digest=self.digest(secret),
            expires_at=datetime.utcnow() + timedelta(minutes=self.expire_minutes),
        )

    @staticmethod
    def digest(secret: str) -> str:
        """Deterministic SHA-256 digest, suitable for exact-match lookup."""
        return hashlib.sha256(secret.encode("utf-8")).hexdigest()

    def match(self, secret: str, stored_digest: str | None) -> bool:
        if not stored_digest:
            return False
        return hmac.compare_digest(self.digest(secret), stored_digest)


_reset_token_service: ResetTokenService | None = None


def get_reset_token_service() -> ResetTokenService:
    """Get singleton reset token service instance."""
    global _reset_token_service
    if _reset_token_service is None:
        _reset_token_service = ResetTokenService(expire_minutes=get_settings().RESET_TOKEN_EXPIRE_MINUTES)
    return _reset_token_service
