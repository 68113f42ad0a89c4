"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import (
    clear_auth_cookie,
    get_auth_service,
    get_current_user,
    get_optional_user,
    set_auth_cookie,
)
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    UpdateMeRequest,
    UpdatePasswordRequest,
)
from app.schemas.user import UserResponse
from app.services.auth import AuthResult, AuthService

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _token_response(response: Response, result: AuthResult) -> AuthResponse:
    set_auth_cookie(response, result.token)
    return AuthResponse(token=result.token, user=UserResponse.model_validate(result.user))


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    body: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Register a new user account."""
    result = auth_service.register(db, body.email, body.password, body.first_name, body.last_name, body.role)
    return _token_response(response, result)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Authenticate and receive a JWT token."""
    result = auth_service.authenticate(db, body.email, body.password)
    return _token_response(response, result)


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response) -> MessageResponse:
    """Clear the auth cookie. Bearer tokens stay valid until they expire."""
    clear_auth_cookie(response)
    return MessageResponse(message="Logged out")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Email a single-use password reset link."""
    auth_service.request_password_reset(db, body.email)
    return MessageResponse(message="Token sent to email!")


@router.patch("/reset-password/{secret}", response_model=AuthResponse)
def reset_password(
    secret: str,
    body: ResetPasswordRequest,
    response: Response,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Reset password using a valid secret. Returns a fresh JWT."""
    result = auth_service.reset_password(db, secret, body.password)
    return _token_response(response, result)


@router.get("/me", response_model=UserResponse)
def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated account."""
    return UserResponse.model_validate(user)


@router.patch("/update-me", response_model=UserResponse)
def update_me(
    body: UpdateMeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Update the authenticated account's profile."""
    updated = auth_service.update_profile(db, user, body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(updated)


@router.patch("/update-password", response_model=AuthResponse)
def update_password(
    body: UpdatePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Change password. Tokens issued before the change stop working."""
    result = auth_service.change_password(db, user, body.current_password, body.new_password)
    return _token_response(response, result)


@router.get("/session", response_model=SessionResponse)
def session(user: User | None = Depends(get_optional_user)) -> SessionResponse:
    """Report who is calling without rejecting anonymous requests."""
    if user is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, user=UserResponse.model_validate(user))
