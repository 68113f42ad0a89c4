"""User record store backed by SQLAlchemy."""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, undefer_group

from app.errors import ConflictError
from app.models.user import CREDENTIALS, User

logger = logging.getLogger("user_management")


class UserStore:
    """Durable account records with soft delete.

    Every write commits a single row. Credential columns are deferred and only
    loaded when a caller asks for them with ``with_credentials=True``.
    """

    def _query(self, db: Session, include_deleted: bool = False, with_credentials: bool = False) -> Query:
        query = db.query(User)
        if with_credentials:
            query = query.options(undefer_group(CREDENTIALS))
        if not include_deleted:
            query = query.filter(User.deleted_at.is_(None))
        return query

    def find_by_id(
        self, db: Session, user_id: str, include_deleted: bool = False, with_credentials: bool = False
    ) -> User | None:
        """Get an account by id. Soft-deleted accounts are hidden unless include_deleted."""
        return (
            self._query(db, include_deleted=include_deleted, with_credentials=with_credentials)
            .filter(User.id == str(user_id))
            .first()
        )

    def find_by_email(self, db: Session, email: str, with_credentials: bool = False) -> User | None:
        """Get a live account by email (case-insensitive)."""
        return (
            self._query(db, with_credentials=with_credentials)
            .filter(User.email == email.strip().lower())
            .first()
        )

    def find_by_reset_digest(self, db: Session, digest: str, now: datetime | None = None) -> User | None:
        """Get the live account holding an unexpired reset digest."""
        now = now or datetime.utcnow()
        return (
            self._query(db, with_credentials=True)
            .filter(User.password_reset_digest == digest, User.password_reset_expires_at > now)
            .first()
        )

    def list_users(self, db: Session, include_deleted: bool = False) -> list[User]:
        """List accounts, newest first."""
        return self._query(db, include_deleted=include_deleted).order_by(User.created_at.desc()).all()

    def email_taken(self, db: Session, email: str, exclude_id: str | None = None) -> bool:
        query = self._query(db).filter(User.email == email.strip().lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return db.query(query.exists()).scalar()

    def create(self, db: Session, user: User) -> User:
        """Insert a new account. Raises ConflictError on a duplicate live email."""
        user.email = user.email.strip().lower()
        if self.email_taken(db, user.email):
            raise ConflictError("Email already in use")
        db.add(user)
        self._commit(db)
        db.refresh(user)
        return user

    def save(self, db: Session, user: User) -> User:
        """Persist all mutated fields of one account atomically."""
        db.add(user)
        self._commit(db)
        db.refresh(user)
        return user

    def soft_delete(self, db: Session, user: User) -> User:
        """Hide an account from default lookups without removing it."""
        user.deleted_at = datetime.utcnow()
        logger.info("Soft-deleted user %s", user.id)
        return self.save(db, user)

    def restore(self, db: Session, user: User) -> User:
        """Bring back a soft-deleted account. Raises ConflictError if its email was reused."""
        if user.deleted_at is None:
            return user
        if self.email_taken(db, user.email, exclude_id=user.id):
            raise ConflictError("Email already in use by another account")
        user.deleted_at = None
        logger.info("Restored user %s", user.id)
        return self.save(db, user)

    def _commit(self, db: Session) -> None:
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("Email already in use") from exc


_user_store: UserStore | None = None


def get_user_store() -> UserStore:
    """Get singleton user store instance."""
    global _user_store
    if _user_store is None:
        _user_store = UserStore()
    return _user_store
