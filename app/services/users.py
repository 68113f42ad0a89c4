"""Admin user management service."""

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.user import User
from app.services.auth import AuthService
from app.services.user_store import UserStore, get_user_store

logger = logging.getLogger("user_management")

ADMIN_UPDATE_FIELDS = ("first_name", "last_name", "email", "role", "is_active")


class UserAdminService:
    """CRUD over accounts for administrators. Deletion is always soft."""

    def __init__(self, auth_service: AuthService, store: UserStore | None = None) -> None:
        self.auth_service = auth_service
        self.store = store or get_user_store()

    def list_users(self, db: Session) -> list[User]:
        return self.store.list_users(db)

    def get_user(self, db: Session, user_id: str, include_deleted: bool = False) -> User:
        """Get an account or raise NotFoundError."""
        user = self.store.find_by_id(db, user_id, include_deleted=include_deleted)
        if user is None:
            raise NotFoundError("No user found with that ID")
        return user

    def create_user(
        self,
        db: Session,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: str | None = None,
    ) -> User:
        """Create an account on behalf of someone else. No token is issued."""
        user = self.store.create(db, self.auth_service.new_user(email, password, first_name, last_name, role))
        logger.info("Admin created user %s (role=%s)", user.id, user.role)
        return user

    def update_user(self, db: Session, user_id: str, changes: dict[str, Any]) -> User:
        """Apply an admin update. Passwords are never changed through this path."""
        unknown = sorted(set(changes) - set(ADMIN_UPDATE_FIELDS))
        if unknown:
            raise ValidationError("These fields cannot be updated here", detail={"fields": unknown})

        user = self.get_user(db, user_id)
        if changes.get("email"):
            email = changes["email"].strip().lower()
            if email != user.email and self.store.email_taken(db, email, exclude_id=user.id):
                raise ConflictError("Email already in use")
            user.email = email
        for field in ("first_name", "last_name"):
            if field in changes:
                setattr(user, field, changes[field].strip() if changes[field] else None)
        if changes.get("role") is not None:
            user.role = changes["role"]
        if changes.get("is_active") is not None:
            user.is_active = changes["is_active"]

        return self.store.save(db, user)

    def delete_user(self, db: Session, user_id: str) -> None:
        self.store.soft_delete(db, self.get_user(db, user_id))

    def deactivate_user(self, db: Session, user_id: str) -> User:
        user = self.get_user(db, user_id)
        user.is_active = False
        logger.info("Deactivated user %s", user.id)
        return self.store.save(db, user)

    def reactivate_user(self, db: Session, user_id: str) -> User:
        """Restore a soft-deleted account if needed, then mark it active."""
        user = self.get_user(db, user_id, include_deleted=True)
        if user.is_deleted:
            user = self.store.restore(db, user)
        user.is_active = True
        logger.info("Reactivated user %s", user.id)
        return self.store.save(db, user)
