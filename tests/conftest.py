"""Pytest configuration and shared fixtures for Udiddit tests."""

import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from loguru import logger

from udiddit.database import NormalizedStore
from udiddit.legacy import LegacyStore
from udiddit.models import LegacyComment, LegacyPost
from udiddit.types import LegacyCommentData, LegacyPostData


# =============================================================================
# Test Configuration
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_loguru():
    """Reset loguru handlers before each test to prevent I/O errors."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
    )
    yield
    logger.remove()


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Path of a not-yet-created normalized database."""
    return tmp_path / "udiddit.db"


@pytest.fixture
def legacy_db_path(tmp_path: Path) -> Path:
    """Path of a not-yet-created legacy snapshot."""
    return tmp_path / "legacy.db"


@pytest.fixture
def store(temp_db_path: Path) -> Generator[NormalizedStore, None, None]:
    """Initialized normalized store on a temporary database."""
    db = NormalizedStore(database_path=temp_db_path)
    db.initialize()

    yield db

    db.close()


@pytest.fixture
def seeded(store: NormalizedStore) -> dict[str, Any]:
    """A small normalized graph: two users, one topic, one post, a thread, votes.

    Thread shape::

        root (alice)
        └── reply (bob)
            └── nested (alice)
        sibling (bob)
    """
    alice = store.add_user("alice")
    bob = store.add_user("bob")
    topic = store.add_topic("sql", description="Relational databases")
    post = store.add_post(
        title="Normal forms", topic_id=topic.id, user_id=alice.id, url="http://example.com"
    )
    root = store.add_comment(post.id, "First!", user_id=alice.id)
    reply = store.add_comment(post.id, "Second", user_id=bob.id, parent_comment_id=root.id)
    nested = store.add_comment(post.id, "Third", user_id=alice.id, parent_comment_id=reply.id)
    sibling = store.add_comment(post.id, "Unrelated", user_id=bob.id)
    up = store.add_vote(post.id, alice.id, 1)
    down = store.add_vote(post.id, bob.id, -1)

    return {
        "alice": alice.id,
        "bob": bob.id,
        "topic": topic.id,
        "post": post.id,
        "root": root.id,
        "reply": reply.id,
        "nested": nested.id,
        "sibling": sibling.id,
        "votes": [up.id, down.id],
    }


# =============================================================================
# Legacy Snapshot Fixtures
# =============================================================================


@pytest.fixture
def make_legacy(
    legacy_db_path: Path,
) -> Generator[Callable[..., LegacyStore], None, None]:
    """Build a legacy snapshot from row dicts and reopen it read-only."""
    opened: list[LegacyStore] = []

    def _make(
        posts: list[LegacyPostData],
        comments: list[LegacyCommentData] | None = None,
    ) -> LegacyStore:
        snapshot = LegacyStore(database_path=legacy_db_path, read_only=False)
        snapshot.initialize()
        snapshot.create_schema()
        assert snapshot.session is not None
        snapshot.session.add_all([LegacyPost(**row) for row in posts])
        snapshot.session.add_all([LegacyComment(**row) for row in comments or []])
        snapshot.session.commit()
        snapshot.close()

        legacy = LegacyStore(database_path=legacy_db_path)
        opened.append(legacy)
        return legacy

    yield _make

    for legacy in opened:
        legacy.close()


@pytest.fixture
def legacy_posts() -> list[LegacyPostData]:
    """Legacy posts covering link/text bodies, long titles and voter lists."""
    return [
        {
            "id": 1,
            "username": "alice",
            "topic": "sql",
            "title": "x" * 150,
            "url": "http://e",
            "text_content": None,
            "upvotes": "bob,carol",
            "downvotes": "",
        },
        {
            "id": 2,
            "username": "bob",
            "topic": "python",
            "title": "Generators explained",
            "url": None,
            "text_content": "yield all the things",
            "upvotes": "alice",
            "downvotes": "dave,erin,dave",
        },
        {
            "id": 3,
            "username": "carol",
            "topic": "sql",
            "title": "Indexes",
            "url": "http://indexes.example",
            "text_content": None,
            "upvotes": None,
            "downvotes": None,
        },
    ]


@pytest.fixture
def legacy_comments() -> list[LegacyCommentData]:
    """Legacy comments, including one on a post that never existed."""
    return [
        {"id": 1, "username": "bob", "post_id": 1, "text_content": "Nice link"},
        {"id": 2, "username": "frank", "post_id": 2, "text_content": "Agreed"},
        {"id": 3, "username": "alice", "post_id": 99, "text_content": "Lost comment"},
    ]
