"""Udiddit - normalized schema and one-time legacy data migration.

This package defines the normalized layout of a social news aggregator
(users, topics, posts, comments, votes) with every invariant enforced by the
storage layer, and migrates a denormalized legacy snapshot into it.

Example:
    >>> from udiddit import LegacyStore, MigrationPipeline, NormalizedStore
    >>>
    >>> pipeline = MigrationPipeline(LegacyStore(), NormalizedStore())
    >>> pipeline.initialize()
    >>> stats = pipeline.run()
    >>> pipeline.close()
"""

from udiddit.config import settings
from udiddit.database import ConstraintViolation, MigrationError, NormalizedStore
from udiddit.legacy import LegacyStore
from udiddit.models import (
    Comment,
    LegacyComment,
    LegacyPost,
    Post,
    Topic,
    User,
    Vote,
)
from udiddit.pipeline import MigrationPipeline

__version__ = "0.1.0"

__all__ = [
    # Main components
    "MigrationPipeline",
    "NormalizedStore",
    "LegacyStore",
    # Errors
    "MigrationError",
    "ConstraintViolation",
    # Configuration
    "settings",
    # Normalized tables
    "User",
    "Topic",
    "Post",
    "Comment",
    "Vote",
    # Legacy tables
    "LegacyPost",
    "LegacyComment",
]
