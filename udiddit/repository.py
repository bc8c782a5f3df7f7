"""Generic repository pattern for type-safe database operations.

This module provides a Generic Repository[T] implementation for SQLModel
entities. The repository never commits: callers decide the transaction
boundary, so several repository calls can form one all-or-nothing unit.

Example:
    >>> from udiddit.repository import Repository
    >>> from udiddit.models import Topic, User
    >>> from sqlmodel import Session
    >>>
    >>> user_repo = Repository[User](session, User)
    >>> alice = user_repo.create(User(username="alice"))
    >>> user_repo.find_by(username="alice")
    [User(id=1, username='alice', last_login=None)]
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func
from sqlmodel import Session, SQLModel, select

# =============================================================================
# Type Variables
# =============================================================================

T = TypeVar("T", bound=SQLModel)


# =============================================================================
# Generic Repository
# =============================================================================


class Repository(Generic[T]):
    """Generic repository implementation for SQLModel entities.

    Type Parameter:
        T: SQLModel entity type (User, Topic, Post, Comment, Vote)

    Args:
        session: SQLModel Session instance
        model: SQLModel class (e.g., Post, User)
    """

    def __init__(self, session: Session, model: type[T]):
        """Initialize repository.

        Args:
            session: SQLModel Session for database operations
            model: SQLModel class (e.g., User, Topic, Post)
        """
        self.session = session
        self.model = model

    def get(self, entity_id: int) -> T | None:
        """Get entity by ID, or None if not found."""
        return self.session.get(self.model, entity_id)

    def get_all(self, limit: int = 100, offset: int = 0) -> Sequence[T]:
        """Get entities ordered by primary key with pagination.

        Args:
            limit: Maximum number of results (default 100)
            offset: Number of results to skip (default 0)
        """
        stmt = (
            select(self.model)
            .order_by(self.model.id)  # type: ignore[attr-defined]
            .limit(limit)
            .offset(offset)
        )
        return self.session.exec(stmt).all()

    def create(self, entity: T) -> T:
        """Stage a new entity and flush it so constraints are checked now.

        Args:
            entity: Entity instance to create

        Returns:
            The entity with its generated primary key populated
        """
        self.session.add(entity)
        self.session.flush()
        return entity

    def create_all(self, entities: Sequence[T]) -> int:
        """Stage several entities and flush them together.

        Returns:
            Number of entities written
        """
        self.session.add_all(entities)
        self.session.flush()
        return len(entities)

    def delete(self, entity_id: int) -> bool:
        """Delete entity by ID.

        The DELETE is issued as a single statement so ON DELETE rules of
        the storage layer (cascade, set null) decide the side effects.

        Returns:
            True if deleted, False if not found
        """
        stmt = delete(self.model).where(self.model.id == entity_id)  # type: ignore[attr-defined]
        result = self.session.execute(stmt)
        self.session.expire_all()
        return result.rowcount > 0

    def delete_all(self) -> int:
        """Delete every row of the table and return how many were removed."""
        result = self.session.execute(delete(self.model))
        self.session.expire_all()
        return result.rowcount

    def find_by(self, **filters: Any) -> Sequence[T]:
        """Find entities matching simple equality filters.

        Example:
            >>> votes = vote_repo.find_by(post_id=1, vote=1)
        """
        stmt = select(self.model)
        for key, value in filters.items():
            if hasattr(self.model, key):
                stmt = stmt.where(getattr(self.model, key) == value)
        return self.session.exec(stmt).all()

    def count(self) -> int:
        """Count total number of entities."""
        stmt = select(func.count()).select_from(self.model)
        return self.session.exec(stmt).one()

    def exists(self, entity_id: int) -> bool:
        """Check if entity exists by ID."""
        return self.get(entity_id) is not None


# =============================================================================
# Repository Factory Helper
# =============================================================================


class RepositoryFactory:
    """Factory for creating type-safe repositories bound to one session.

    Example:
        >>> factory = RepositoryFactory(session)
        >>> post_repo = factory.for_entity(Post)
    """

    def __init__(self, session: Session):
        self.session = session

    def for_entity(self, model: type[T]) -> Repository[T]:
        """Create repository for specific entity type."""
        return Repository[T](self.session, model)


__all__ = ["Repository", "RepositoryFactory"]
