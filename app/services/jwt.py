"""JWT Token Service."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.config import get_settings
from app.errors import TokenExpired, TokenInvalid


@dataclass(frozen=True)
class TokenClaims:
    """Verified token contents."""

    subject_id: str
    issued_at: datetime  # naive UTC, whole seconds


class TokenService:
    """Issues and verifies signed bearer tokens.

    Tokens carry only the subject id and issue time. Expiry is derived at
    verification time from ``iat`` plus the configured lifetime, so changing
    the lifetime applies to tokens already in circulation. Rotating the
    signing secret invalidates every outstanding token.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 480) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, subject_id: str, issued_at: datetime | None = None) -> str:
        """Create a token for the given account id."""
        issued_at = issued_at or datetime.utcnow()
        payload = {
            "sub": str(subject_id),
            "iat": issued_at,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify signature and lifetime. Raises TokenInvalid or TokenExpired."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise TokenInvalid("Token signature or format is invalid") from exc

        subject_id = payload.get("sub")
        iat = payload.get("iat")
        if not subject_id or not isinstance(iat, int):
            raise TokenInvalid("Token is missing required claims")

        issued_at = datetime.fromtimestamp(iat, tz=timezone.utc).replace(tzinfo=None)
        if issued_at + timedelta(minutes=self.expire_minutes) <= datetime.utcnow():
            raise TokenExpired("Token has expired")

        return TokenClaims(subject_id=subject_id, issued_at=issued_at)


_token_service: TokenService | None = None


def get_token_service() -> TokenService:
    """Get singleton token service instance."""
    global _token_service
    if _token_service is None:
        settings = get_settings()
        _token_service = TokenService(
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            expire_minutes=settings.JWT_EXPIRE_MINUTES,
        )
    return _token_service
