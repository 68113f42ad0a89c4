"""User account model."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Index, String, text
from sqlalchemy.orm import deferred

from app.database import Base

# Deferred column group holding credential material.
CREDENTIALS = "credentials"


class UserRole(str, enum.Enum):
    """Account roles."""

    USER = "user"
    ADMIN = "admin"


class User(Base):
    """Application user account."""

    __tablename__ = "user"
    __table_args__ = (
        # Email is unique among live accounts only; soft-deleted rows keep theirs.
        Index(
            "uq_user_email_live",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    email = Column(String(256), nullable=False, index=True)
    password_hash = deferred(Column(String(256), nullable=False), group=CREDENTIALS)
    role = Column(String(16), nullable=False, default=UserRole.USER.value)  # user, admin
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)
    password_reset_digest = deferred(Column(String(64), nullable=True, index=True), group=CREDENTIALS)
    password_reset_expires_at = deferred(Column(DateTime, nullable=True), group=CREDENTIALS)
    deleted_at = Column(DateTime, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def clear_password_reset(self) -> None:
        """Drop any outstanding reset secret."""
        self.password_reset_digest = None
        self.password_reset_expires_at = None

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"
