"""Authentication dependencies for FastAPI routes."""

from collections.abc import Callable

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.models.user import User
from app.services.auth import AuthService
from app.services.auth_gate import AUTH_COOKIE_NAME, extract_token, get_auth_gate
from app.services.email import EmailService, get_email_service
from app.services.users import UserAdminService


def get_auth_service(email_service: EmailService = Depends(get_email_service)) -> AuthService:
    """Auth service wired to the request's email collaborator."""
    return AuthService(mailer=email_service)


def get_user_admin_service(auth_service: AuthService = Depends(get_auth_service)) -> UserAdminService:
    return UserAdminService(auth_service)


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """Extract and validate user from Bearer token or cookie. Raises 401 if invalid."""
    user = get_auth_gate().authenticate(db, extract_token(request))
    request.state.user = user
    return user


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User | None:
    """Like get_current_user, but anonymous callers get None instead of a 401."""
    user = get_auth_gate().authenticate_optional(db, extract_token(request))
    request.state.user = user
    return user


def require_role(*roles: str) -> Callable[..., User]:
    """Build a dependency that admits only authenticated users holding one of ``roles``."""

    def dependency(user: User = Depends(get_current_user)) -> User:
        return get_auth_gate().require_role(user, roles)

    return dependency


require_admin = require_role("admin")


def set_auth_cookie(response: Response, token: str) -> None:
    """Set the authentication cookie."""
    settings = get_settings()
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.AUTH_COOKIE_SECURE,
        max_age=settings.JWT_EXPIRE_MINUTES * 60,
    )


def clear_auth_cookie(response: Response) -> None:
    """Clear the authentication cookie."""
    response.delete_cookie(key=AUTH_COOKIE_NAME)
