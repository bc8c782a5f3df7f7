"""Tests for repository pattern implementation.

This module tests the Repository[T] generic class and RepositoryFactory on
the normalized tables, including that repositories leave the transaction
boundary to the caller.
"""

import pytest
from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine

from udiddit.database import _enable_sqlite_foreign_keys
from udiddit.models import NORMALIZED_MODELS, Comment, Post, Topic, User, tables_of
from udiddit.repository import Repository, RepositoryFactory

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_engine():
    """Create in-memory SQLite engine with foreign keys enforced."""
    engine = create_engine("sqlite:///:memory:")
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    SQLModel.metadata.create_all(engine, tables=tables_of(NORMALIZED_MODELS))
    return engine


@pytest.fixture
def test_session(test_engine):
    """Create a test session."""
    with Session(test_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def user_repo(test_session):
    return Repository[User](test_session, User)


# =============================================================================
# Repository Tests
# =============================================================================


class TestRepository:
    """Tests for Repository[T]."""

    def test_create_assigns_id(self, user_repo):
        """Test create flushes and populates the primary key."""
        user = user_repo.create(User(username="alice"))

        assert user.id is not None
        assert user_repo.get(user.id) is user

    def test_create_all(self, user_repo):
        """Test create_all returns the number of staged rows."""
        assert user_repo.create_all([User(username=n) for n in ("a", "b", "c")]) == 3
        assert user_repo.count() == 3

    def test_create_all_empty(self, user_repo):
        assert user_repo.create_all([]) == 0

    def test_get_missing(self, user_repo):
        assert user_repo.get(404) is None
        assert user_repo.exists(404) is False

    def test_get_all_ordered_and_paginated(self, user_repo):
        """Test get_all orders by id and honours limit/offset."""
        user_repo.create_all([User(username=n) for n in ("c", "a", "b")])

        assert [u.username for u in user_repo.get_all()] == ["c", "a", "b"]
        assert [u.username for u in user_repo.get_all(limit=1, offset=1)] == ["a"]

    def test_find_by(self, user_repo):
        """Test equality filters; unknown attributes are ignored."""
        user_repo.create_all([User(username="alice"), User(username="bob")])

        assert [u.username for u in user_repo.find_by(username="bob")] == ["bob"]
        assert len(user_repo.find_by(nickname="bob")) == 2

    def test_delete(self, user_repo):
        """Test delete removes the row and reports whether it existed."""
        user = user_repo.create(User(username="alice"))
        user_id = user.id

        assert user_repo.delete(user_id) is True
        assert user_repo.exists(user_id) is False
        assert user_repo.delete(user_id) is False

    def test_delete_all(self, user_repo):
        user_repo.create_all([User(username="alice"), User(username="bob")])

        assert user_repo.delete_all() == 2
        assert user_repo.count() == 0

    def test_does_not_commit(self, test_engine, user_repo, test_session):
        """Test rows written through a repository vanish on rollback."""
        user_repo.create(User(username="alice"))

        test_session.rollback()

        with Session(test_engine) as other:
            assert Repository[User](other, User).count() == 0

    def test_delete_applies_storage_cascades(self, test_session):
        """Test deleting a parent row lets ON DELETE rules remove children."""
        factory = RepositoryFactory(test_session)
        topic = factory.for_entity(Topic).create(Topic(name="sql"))
        post = factory.for_entity(Post).create(
            Post(title="t", topic_id=topic.id, url="http://e")
        )
        factory.for_entity(Comment).create(Comment(post_id=post.id, text_content="hi"))

        factory.for_entity(Topic).delete(topic.id)

        assert factory.for_entity(Post).count() == 0
        assert factory.for_entity(Comment).count() == 0


class TestRepositoryFactory:
    """Tests for RepositoryFactory."""

    def test_for_entity(self, test_session):
        """Test factory builds repositories bound to its session."""
        factory = RepositoryFactory(test_session)

        repo = factory.for_entity(Topic)

        assert isinstance(repo, Repository)
        assert repo.model is Topic
        assert repo.session is test_session
