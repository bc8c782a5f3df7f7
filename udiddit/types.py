"""Type definitions for Udiddit.

TypedDict definitions for legacy row payloads and migration statistics,
providing IDE autocomplete and type checking for the dictionaries passed
between the stores, the pipeline and the CLI.

Example:
    >>> from udiddit.types import LegacyPostData
    >>> post: LegacyPostData = {
    ...     "id": 1,
    ...     "username": "alice",
    ...     "topic": "sql",
    ...     "title": "Normal forms",
    ...     "url": "http://example.com",
    ...     "upvotes": "bob,carol",
    ...     "downvotes": "",
    ... }
"""

from typing import NotRequired, Required, TypedDict


# =============================================================================
# Legacy Row Types
# =============================================================================


class LegacyPostData(TypedDict, total=False):
    """A ``bad_posts`` row.

    Attributes:
        id: Required legacy post id
        username: Author name
        topic: Topic name
        title: Title of any length
        url: Link body
        text_content: Text body
        upvotes: Comma-packed upvoter names
        downvotes: Comma-packed downvoter names
    """

    id: Required[int]
    username: NotRequired[str | None]
    topic: NotRequired[str | None]
    title: NotRequired[str | None]
    url: NotRequired[str | None]
    text_content: NotRequired[str | None]
    upvotes: NotRequired[str | None]
    downvotes: NotRequired[str | None]


class LegacyCommentData(TypedDict, total=False):
    """A ``bad_comments`` row."""

    id: Required[int]
    username: NotRequired[str | None]
    post_id: NotRequired[int | None]
    text_content: NotRequired[str | None]


# =============================================================================
# Statistics Types
# =============================================================================


class PhaseStats(TypedDict, total=False):
    """Outcome of one migration phase.

    Attributes:
        inserted: Rows written to the normalized store
        excluded: Legacy rows (or voter tokens) dropped because a join key
            did not resolve
        users: Users inserted (users/topics phase only)
        topics: Topics inserted (users/topics phase only)
        upvotes: +1 votes inserted (votes phase only)
        downvotes: -1 votes inserted (votes phase only)
        conflicts: Voters found in both lists of one post (votes phase only)
    """

    inserted: Required[int]
    excluded: Required[int]
    users: NotRequired[int]
    topics: NotRequired[int]
    upvotes: NotRequired[int]
    downvotes: NotRequired[int]
    conflicts: NotRequired[int]


class MigrationStats(TypedDict):
    """Combined outcome of a full migration run."""

    run_id: str
    users_topics: PhaseStats
    posts: PhaseStats
    comments: PhaseStats
    votes: PhaseStats
    total_inserted: int
    total_excluded: int


TableCounts = dict[str, int]


__all__ = [
    "LegacyPostData",
    "LegacyCommentData",
    "PhaseStats",
    "MigrationStats",
    "TableCounts",
]
