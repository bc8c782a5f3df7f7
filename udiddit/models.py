"""Data models for Udiddit.

This module defines the SQLModel tables of both stores.

Models are organized into two sections:
1. Legacy tables (``bad_posts``, ``bad_comments``), read by the migration
2. Normalized tables (``users``, ``topics``, ``posts``, ``comments``, ``votes``)

Every invariant of the normalized layout is declared on the table itself
(unique, check, not-null and foreign-key rules with ON DELETE actions), so
the storage layer rejects bad writes without any application-level checks.
Bounded text columns carry an explicit ``LENGTH`` check because SQLite does
not enforce ``VARCHAR`` widths.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Index, SmallInteger, UniqueConstraint
from sqlmodel import Field, SQLModel

USERNAME_MAX_LENGTH = 25
TOPIC_NAME_MAX_LENGTH = 30
TOPIC_DESCRIPTION_MAX_LENGTH = 500
TITLE_MAX_LENGTH = 100
URL_MAX_LENGTH = 400

UPVOTE = 1
DOWNVOTE = -1


def _not_blank(column: str) -> str:
    return f"LENGTH(TRIM({column})) > 0"


def _blank_if_null(column: str) -> str:
    return f"LENGTH(TRIM(COALESCE({column}, '')))"


# =============================================================================
# Section 1: Legacy Tables
# =============================================================================


class LegacyPost(SQLModel, table=True):
    """Denormalized legacy post.

    Attributes:
        id: Legacy post id (referenced by legacy comments)
        username: Free-text author name
        topic: Free-text topic name
        title: Unbounded title
        url: Link body (mutually exclusive with text_content)
        text_content: Text body
        upvotes: Comma-packed upvoter usernames
        downvotes: Comma-packed downvoter usernames
    """

    __tablename__ = "bad_posts"  # type: ignore[assignment]

    id: int = Field(primary_key=True)
    username: Optional[str] = None
    topic: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    text_content: Optional[str] = None
    upvotes: Optional[str] = None
    downvotes: Optional[str] = None


class LegacyComment(SQLModel, table=True):
    """Denormalized legacy comment.

    Attributes:
        id: Legacy comment id
        username: Free-text author name
        post_id: Legacy post id the comment was written under
        text_content: Comment body
    """

    __tablename__ = "bad_comments"  # type: ignore[assignment]

    id: int = Field(primary_key=True)
    username: Optional[str] = None
    post_id: Optional[int] = None
    text_content: Optional[str] = None


# =============================================================================
# Section 2: Normalized Tables
# =============================================================================


class User(SQLModel, table=True):
    """Registered user.

    Attributes:
        id: Surrogate key
        username: Unique, non-blank, at most 25 characters
        last_login: When the user last logged in
    """

    __tablename__ = "users"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("username", name="unique_usernames"),
        CheckConstraint(_not_blank("username"), name="non_empty_username"),
        CheckConstraint(
            f"LENGTH(username) <= {USERNAME_MAX_LENGTH}", name="username_length"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=USERNAME_MAX_LENGTH, nullable=False)
    last_login: Optional[datetime] = None


class Topic(SQLModel, table=True):
    """Topic that posts are filed under.

    Attributes:
        id: Surrogate key
        name: Unique, non-blank, at most 30 characters
        description: Optional, at most 500 characters
    """

    __tablename__ = "topics"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("name", name="unique_topics"),
        CheckConstraint(_not_blank("name"), name="non_empty_topic_name"),
        CheckConstraint(
            f"LENGTH(name) <= {TOPIC_NAME_MAX_LENGTH}", name="topic_name_length"
        ),
        CheckConstraint(
            f"LENGTH(description) <= {TOPIC_DESCRIPTION_MAX_LENGTH}",
            name="topic_description_length",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=TOPIC_NAME_MAX_LENGTH, nullable=False)
    description: Optional[str] = Field(
        default=None, max_length=TOPIC_DESCRIPTION_MAX_LENGTH
    )


class Post(SQLModel, table=True):
    """Link or text post on a topic.

    Exactly one of ``url`` and ``text_content`` is non-blank. Deleting the
    topic deletes the post; deleting the author only clears ``user_id``.

    Attributes:
        id: Surrogate key (the legacy post id when migrated)
        title: Non-blank, at most 100 characters
        created_on: Creation timestamp
        url: Link, at most 400 characters
        text_content: Text body
        topic_id: Owning topic
        user_id: Author, null once the author is deleted
    """

    __tablename__ = "posts"  # type: ignore[assignment]
    __table_args__ = (
        CheckConstraint(_not_blank("title"), name="non_empty_title"),
        CheckConstraint(f"LENGTH(title) <= {TITLE_MAX_LENGTH}", name="title_length"),
        CheckConstraint(f"LENGTH(url) <= {URL_MAX_LENGTH}", name="url_length"),
        CheckConstraint(
            f"({_blank_if_null('url')} > 0 AND {_blank_if_null('text_content')} = 0)"
            f" OR ({_blank_if_null('url')} = 0 AND {_blank_if_null('text_content')} > 0)",
            name="url_or_text",
        ),
        Index(
            "posts_url_pattern_idx",
            "url",
            postgresql_ops={"url": "varchar_pattern_ops"},
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=TITLE_MAX_LENGTH, nullable=False)
    created_on: Optional[datetime] = None
    url: Optional[str] = Field(default=None, max_length=URL_MAX_LENGTH)
    text_content: Optional[str] = None
    topic_id: int = Field(foreign_key="topics.id", ondelete="CASCADE", nullable=False)
    user_id: Optional[int] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL"
    )


class Comment(SQLModel, table=True):
    """Comment on a post, optionally replying to another comment.

    Deleting the post or the parent comment deletes the comment; deleting
    the author only clears ``user_id``.
    """

    __tablename__ = "comments"  # type: ignore[assignment]
    __table_args__ = (
        CheckConstraint(_not_blank("text_content"), name="non_empty_text_content"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    text_content: str = Field(nullable=False)
    created_on: Optional[datetime] = None
    post_id: int = Field(
        foreign_key="posts.id", ondelete="CASCADE", nullable=False, index=True
    )
    user_id: Optional[int] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL"
    )
    parent_comment_id: Optional[int] = Field(
        default=None, foreign_key="comments.id", ondelete="CASCADE", index=True
    )


class Vote(SQLModel, table=True):
    """A user's +1 or -1 on a post; one per (user, post)."""

    __tablename__ = "votes"  # type: ignore[assignment]
    __table_args__ = (
        CheckConstraint(f"vote = {UPVOTE} OR vote = {DOWNVOTE}", name="vote_plus_or_min"),
        UniqueConstraint("user_id", "post_id", name="one_vote_per_user"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL"
    )
    post_id: int = Field(foreign_key="posts.id", ondelete="CASCADE", nullable=False)
    vote: int = Field(sa_column=Column(SmallInteger, nullable=False))


# Creation order; deletion runs in reverse
NORMALIZED_MODELS: tuple[type[SQLModel], ...] = (User, Topic, Post, Comment, Vote)
LEGACY_MODELS: tuple[type[SQLModel], ...] = (LegacyPost, LegacyComment)


def tables_of(models: tuple[type[SQLModel], ...]) -> list:
    """Return the SQLAlchemy Table objects of the given models."""
    return [model.__table__ for model in models]  # type: ignore[attr-defined]
