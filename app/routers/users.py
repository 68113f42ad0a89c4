"""Admin user management endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_user_admin_service, require_admin
from app.schemas.user import CreateUserRequest, UpdateUserRequest, UserListResponse, UserResponse
from app.services.users import UserAdminService

router = APIRouter(prefix="/api/v1/users", tags=["Users"], dependencies=[Depends(require_admin)])


@router.get("", response_model=UserListResponse)
def list_users(
    db: Session = Depends(get_db),
    service: UserAdminService = Depends(get_user_admin_service),
) -> UserListResponse:
    """List all live accounts."""
    users = service.list_users(db)
    return UserListResponse(results=len(users), users=[UserResponse.model_validate(u) for u in users])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    body: CreateUserRequest,
    db: Session = Depends(get_db),
    service: UserAdminService = Depends(get_user_admin_service),
) -> UserResponse:
    """Create an account."""
    user = service.create_user(db, body.email, body.password, body.first_name, body.last_name, body.role)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    service: UserAdminService = Depends(get_user_admin_service),
) -> UserResponse:
    """Get a single account."""
    return UserResponse.model_validate(service.get_user(db, str(user_id)))


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: UUID,
    body: UpdateUserRequest,
    db: Session = Depends(get_db),
    service: UserAdminService = Depends(get_user_admin_service),
) -> UserResponse:
    """Update profile, role or active flag of an account."""
    user = service.update_user(db, str(user_id), body.model_dump(exclude_unset=True))
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    service: UserAdminService = Depends(get_user_admin_service),
) -> Response:
    """Soft-delete an account."""
    service.delete_user(db, str(user_id))
    return Response(status_code=204)


@router.patch("/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    service: UserAdminService = Depends(get_user_admin_service),
) -> UserResponse:
    """Block an account from logging in."""
    return UserResponse.model_validate(service.deactivate_user(db, str(user_id)))


@router.patch("/{user_id}/reactivate", response_model=UserResponse)
def reactivate_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    service: UserAdminService = Depends(get_user_admin_service),
) -> UserResponse:
    """Re-enable an account, restoring it if it was deleted."""
    return UserResponse.model_validate(service.reactivate_user(db, str(user_id)))
