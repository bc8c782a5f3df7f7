"""Normalized store for Udiddit.

This module provides the read-write handle on the five normalized tables:
- Engine setup with SQLite foreign key enforcement on every connection
- Schema creation (optionally dropping the existing tables first)
- Transaction boundary translating integrity errors to ConstraintViolation
- Single-row writes and deletes through the constraint engine
- Name-to-id lookups used by the migration's joins

Example:
    >>> from udiddit.database import NormalizedStore
    >>>
    >>> store = NormalizedStore()
    >>> store.initialize()
    >>>
    >>> alice = store.add_user("alice")
    >>> sql = store.add_topic("sql", description="Relational databases")
    >>> post = store.add_post(title="Normal forms", topic_id=sql.id,
    ...                       user_id=alice.id, url="http://example.com")
    >>>
    >>> store.delete_user(alice.id)   # post survives, post.user_id is null
    >>> store.delete_topic(sql.id)    # post is gone
    >>>
    >>> store.close()
"""

import re
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, create_engine, select

from udiddit.config import settings
from udiddit.models import (
    NORMALIZED_MODELS,
    Comment,
    Post,
    Topic,
    User,
    Vote,
    tables_of,
)
from udiddit.repository import RepositoryFactory
from udiddit.types import TableCounts
from udiddit.utils import parse_datetime, utc_now

# =============================================================================
# Errors
# =============================================================================


class MigrationError(Exception):
    """Base class for errors raised by the stores and the migration."""


class ConstraintViolation(MigrationError):
    """A write was rejected by a uniqueness, check, not-null or foreign key rule.

    Attributes:
        kind: One of "unique", "check", "not_null", "foreign_key", "unknown"
        detail: Constraint name or table.column reported by the driver
    """

    _PATTERNS = (
        ("unique", re.compile(r"UNIQUE constraint failed: (?P<detail>.+)", re.I)),
        ("unique", re.compile(r"duplicate key value violates unique constraint \"(?P<detail>[^\"]+)\"", re.I)),
        ("check", re.compile(r"CHECK constraint failed: (?P<detail>.+)", re.I)),
        ("check", re.compile(r"violates check constraint \"(?P<detail>[^\"]+)\"", re.I)),
        ("not_null", re.compile(r"NOT NULL constraint failed: (?P<detail>.+)", re.I)),
        ("not_null", re.compile(r"null value in column \"(?P<detail>[^\"]+)\"", re.I)),
        ("foreign_key", re.compile(r"FOREIGN KEY constraint failed(?P<detail>)", re.I)),
        ("foreign_key", re.compile(r"violates foreign key constraint \"(?P<detail>[^\"]+)\"", re.I)),
    )

    def __init__(self, message: str, kind: str = "unknown", detail: str = ""):
        super().__init__(message)
        self.kind = kind
        self.detail = detail

    @classmethod
    def from_integrity_error(cls, error: IntegrityError) -> "ConstraintViolation":
        """Classify a driver integrity error."""
        message = str(error.orig) if error.orig is not None else str(error)
        for kind, pattern in cls._PATTERNS:
            match = pattern.search(message)
            if match:
                return cls(message, kind=kind, detail=match.group("detail").strip())
        return cls(message)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """Turn on SQLite foreign key enforcement (off by default per connection)."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


# =============================================================================
# Normalized Store
# =============================================================================


class NormalizedStore:
    """Read-write handle on the normalized tables.

    Args:
        database_path: Path to SQLite database (defaults to settings.database_path)
    """

    def __init__(self, database_path: Path | None = None):
        self.database_path = database_path or settings.database_path
        self.engine: Engine | None = None
        self.session: Session | None = None

    def initialize(self, drop_existing: bool = False) -> None:
        """Initialize database engine and create the normalized tables.

        Args:
            drop_existing: Drop the five normalized tables before creating them
        """
        self.close()
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(
            f"sqlite:///{self.database_path}",
            echo=False,
            connect_args={"check_same_thread": False},
        )
        event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        tables = tables_of(NORMALIZED_MODELS)
        if drop_existing:
            SQLModel.metadata.drop_all(self.engine, tables=tables)
            logger.info("🗑️ Dropped existing normalized tables")
        SQLModel.metadata.create_all(self.engine, tables=tables)

        self.session = Session(self.engine)
        logger.info(f"✅ Normalized store initialized at {self.database_path}")

    def close(self) -> None:
        """Close database connection and cleanup resources."""
        if self.session is not None:
            self.session.close()
        if self.engine is not None:
            self.engine.dispose()

    def _require_session(self) -> Session:
        if self.session is None:
            raise RuntimeError("Database not initialized")
        return self.session

    @property
    def repositories(self) -> RepositoryFactory:
        return RepositoryFactory(self._require_session())

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block as one all-or-nothing unit.

        Commits when the block finishes; on any error rolls back, leaving the
        store as it was before the block, and re-raises. Integrity errors are
        re-raised as ConstraintViolation.

        Example:
            >>> with store.transaction() as session:
            ...     session.add(User(username="alice"))
        """
        session = self._require_session()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            violation = ConstraintViolation.from_integrity_error(e)
            logger.error(f"❌ Constraint violation ({violation.kind}): {violation.detail}")
            raise violation from e
        except Exception:
            session.rollback()
            raise

    # =========================================================================
    # Writes
    # =========================================================================

    def add_user(self, username: str, last_login: str | datetime | None = None) -> User:
        """Insert a user."""
        with self.transaction():
            user = self.repositories.for_entity(User).create(
                User(username=username, last_login=parse_datetime(last_login))
            )
        return user

    def record_login(self, user_id: int, at: str | datetime | None = None) -> User:
        """Set a user's last_login (now when ``at`` is omitted).

        Raises:
            LookupError: If the user does not exist
        """
        with self.transaction() as session:
            user = session.get(User, user_id)
            if user is None:
                raise LookupError(f"User {user_id} not found")
            user.last_login = parse_datetime(at) or utc_now()
            session.add(user)
        return user

    def add_topic(self, name: str, description: str | None = None) -> Topic:
        """Insert a topic."""
        with self.transaction():
            topic = self.repositories.for_entity(Topic).create(
                Topic(name=name, description=description)
            )
        return topic

    def add_post(
        self,
        title: str,
        topic_id: int,
        user_id: int | None = None,
        url: str | None = None,
        text_content: str | None = None,
        created_on: str | datetime | None = None,
    ) -> Post:
        """Insert a link post (``url``) or a text post (``text_content``)."""
        with self.transaction():
            post = self.repositories.for_entity(Post).create(
                Post(
                    title=title,
                    topic_id=topic_id,
                    user_id=user_id,
                    url=url,
                    text_content=text_content,
                    created_on=parse_datetime(created_on),
                )
            )
        return post

    def add_comment(
        self,
        post_id: int,
        text_content: str,
        user_id: int | None = None,
        parent_comment_id: int | None = None,
        created_on: str | datetime | None = None,
    ) -> Comment:
        """Insert a comment, optionally as a reply to ``parent_comment_id``."""
        with self.transaction():
            comment = self.repositories.for_entity(Comment).create(
                Comment(
                    post_id=post_id,
                    text_content=text_content,
                    user_id=user_id,
                    parent_comment_id=parent_comment_id,
                    created_on=parse_datetime(created_on),
                )
            )
        return comment

    def add_vote(self, post_id: int, user_id: int | None, vote: int) -> Vote:
        """Insert a +1 or -1 vote."""
        with self.transaction():
            row = self.repositories.for_entity(Vote).create(
                Vote(post_id=post_id, user_id=user_id, vote=vote)
            )
        return row

    # =========================================================================
    # Deletes
    # =========================================================================

    def _delete(self, model: type[SQLModel], entity_id: int) -> bool:
        with self.transaction():
            deleted = self.repositories.for_entity(model).delete(entity_id)
        logger.debug(f"Delete {model.__tablename__}#{entity_id}: {deleted}")
        return deleted

    def delete_user(self, user_id: int) -> bool:
        """Delete a user; their posts, comments and votes become anonymous."""
        return self._delete(User, user_id)

    def delete_topic(self, topic_id: int) -> bool:
        """Delete a topic together with its posts and everything under them."""
        return self._delete(Topic, topic_id)

    def delete_post(self, post_id: int) -> bool:
        """Delete a post together with its comments and votes."""
        return self._delete(Post, post_id)

    def delete_comment(self, comment_id: int) -> bool:
        """Delete a comment together with its whole reply subtree."""
        return self._delete(Comment, comment_id)

    def truncate(self) -> TableCounts:
        """Remove every normalized row, children first.

        Returns:
            Number of rows removed per table
        """
        removed: TableCounts = {}
        with self.transaction():
            factory = self.repositories
            for model in reversed(NORMALIZED_MODELS):
                repo = factory.for_entity(model)
                # rowcount misses rows already removed by a cascade
                removed[model.__tablename__] = repo.count()
                repo.delete_all()
        logger.info(f"🧹 Truncated normalized tables: {removed}")
        return removed

    # =========================================================================
    # Lookups
    # =========================================================================

    def user_ids_by_username(self) -> dict[str, int]:
        """Map every username to its user id."""
        session = self._require_session()
        return {name: uid for uid, name in session.exec(select(User.id, User.username))}

    def topic_ids_by_name(self) -> dict[str, int]:
        """Map every topic name to its topic id."""
        session = self._require_session()
        return {name: tid for tid, name in session.exec(select(Topic.id, Topic.name))}

    def post_ids(self) -> set[int]:
        """Ids of every stored post."""
        session = self._require_session()
        return set(session.exec(select(Post.id)))

    def find(self, model: type[SQLModel], **filters: Any) -> list:
        """Rows of ``model`` matching equality filters."""
        return list(self.repositories.for_entity(model).find_by(**filters))

    def counts(self) -> TableCounts:
        """Row count of each normalized table."""
        factory = self.repositories
        return {
            model.__tablename__: factory.for_entity(model).count()
            for model in NORMALIZED_MODELS
        }


__all__ = ["NormalizedStore", "MigrationError", "ConstraintViolation"]
