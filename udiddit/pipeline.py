"""Migration pipeline orchestration for Udiddit.

This module moves the legacy snapshot into the normalized layout in four
causally ordered phases:
1. Users and topics: every name the later phases will join on
2. Posts: legacy posts resolved against users and topics
3. Comments: legacy comments resolved against users and posts
4. Votes: comma-packed voter lists expanded into one row per voter

Each phase is one all-or-nothing transaction. Legacy rows whose join keys do
not resolve are excluded without error and counted in the phase statistics.
Constraint violations always propagate, leaving the normalized store as it
was before the failing phase.
"""

import uuid
from collections.abc import Sequence

from loguru import logger
from tqdm import tqdm  # type: ignore[import-untyped]

from udiddit.config import settings
from udiddit.database import NormalizedStore
from udiddit.legacy import LegacyStore
from udiddit.logging import clear_run_context, set_run_context
from udiddit.models import (
    DOWNVOTE,
    TITLE_MAX_LENGTH,
    UPVOTE,
    Comment,
    LegacyPost,
    Post,
    Topic,
    User,
    Vote,
)
from udiddit.types import MigrationStats, PhaseStats, TableCounts
from udiddit.utils import distinct_names, split_voters, truncate


class MigrationPipeline:
    """Orchestrates the legacy-to-normalized migration.

    Args:
        legacy: Read-only legacy store (creates one from settings if None)
        store: Normalized store (creates one from settings if None)
        delimiter: Separator of legacy voter lists

    Example:
        >>> pipeline = MigrationPipeline()
        >>> pipeline.initialize()
        >>> stats = pipeline.run()
        >>> print(stats["votes"]["inserted"])
        >>> pipeline.close()
    """

    def __init__(
        self,
        legacy: LegacyStore | None = None,
        store: NormalizedStore | None = None,
        delimiter: str | None = None,
    ):
        self.legacy = legacy or LegacyStore()
        self.store = store or NormalizedStore()
        self.delimiter = delimiter or settings.voter_delimiter

    def initialize(self) -> None:
        """Open both stores."""
        self.legacy.initialize()
        self.store.initialize()
        logger.info("✅ Pipeline initialized")

    def close(self) -> None:
        """Close both stores."""
        self.legacy.close()
        self.store.close()
        logger.info("✅ Pipeline closed")

    def _voters(self, post: LegacyPost) -> tuple[set[str], set[str]]:
        return (
            split_voters(post.upvotes, self.delimiter),
            split_voters(post.downvotes, self.delimiter),
        )

    # =========================================================================
    # Phases
    # =========================================================================

    def populate_users_and_topics(self) -> PhaseStats:
        """Insert every username and topic name the legacy data mentions.

        Usernames are the union of post authors, comment authors, upvoters
        and downvoters. Topic names are the distinct post topics.
        """
        set_run_context(phase="users_topics")
        logger.info("🚀 Populating users and topics")

        posts = self.legacy.posts()
        comments = self.legacy.comments()

        upvoters: set[str] = set()
        downvoters: set[str] = set()
        for post in posts:
            up, down = self._voters(post)
            upvoters |= up
            downvoters |= down

        usernames = distinct_names(
            (p.username for p in posts),
            (c.username for c in comments),
            upvoters,
            downvoters,
        )
        topic_names = distinct_names(p.topic for p in posts)

        with self.store.transaction():
            repos = self.store.repositories
            users = repos.for_entity(User).create_all(
                [User(username=name) for name in usernames]  # type: ignore[arg-type]
            )
            topics = repos.for_entity(Topic).create_all(
                [Topic(name=name) for name in topic_names]  # type: ignore[arg-type]
            )

        stats: PhaseStats = {
            "inserted": users + topics,
            "excluded": 0,
            "users": users,
            "topics": topics,
        }
        logger.info(f"✅ Users and topics populated: {stats}")
        return stats

    def derive_posts(self) -> PhaseStats:
        """Insert one post per legacy post whose author and topic resolve.

        The legacy id is kept as the post id; titles are cut to 100
        characters; url and text_content are copied unchanged.
        """
        set_run_context(phase="posts")
        logger.info("🚀 Deriving posts")

        user_ids = self.store.user_ids_by_username()
        topic_ids = self.store.topic_ids_by_name()

        rows: list[Post] = []
        excluded = 0
        for legacy_post in tqdm(self.legacy.posts(), desc="Deriving posts", unit=" posts"):
            user_id = user_ids.get(legacy_post.username)  # type: ignore[arg-type]
            topic_id = topic_ids.get(legacy_post.topic)  # type: ignore[arg-type]
            if user_id is None or topic_id is None:
                logger.debug(
                    f"Excluding legacy post {legacy_post.id}: "
                    f"unresolved user={legacy_post.username!r} topic={legacy_post.topic!r}"
                )
                excluded += 1
                continue

            rows.append(
                Post(
                    id=legacy_post.id,
                    title=truncate(legacy_post.title, TITLE_MAX_LENGTH),  # type: ignore[arg-type]
                    url=legacy_post.url,
                    text_content=legacy_post.text_content,
                    topic_id=topic_id,
                    user_id=user_id,
                )
            )

        return self._insert_phase("posts", Post, rows, excluded)

    def derive_comments(self) -> PhaseStats:
        """Insert one comment per legacy comment whose author and post resolve."""
        set_run_context(phase="comments")
        logger.info("🚀 Deriving comments")

        user_ids = self.store.user_ids_by_username()
        post_ids = self.store.post_ids()

        rows: list[Comment] = []
        excluded = 0
        for legacy_comment in tqdm(
            self.legacy.comments(), desc="Deriving comments", unit=" comments"
        ):
            user_id = user_ids.get(legacy_comment.username)  # type: ignore[arg-type]
            if user_id is None or legacy_comment.post_id not in post_ids:
                logger.debug(
                    f"Excluding legacy comment {legacy_comment.id}: "
                    f"unresolved user={legacy_comment.username!r} "
                    f"post={legacy_comment.post_id!r}"
                )
                excluded += 1
                continue

            rows.append(
                Comment(
                    post_id=legacy_comment.post_id,  # type: ignore[arg-type]
                    user_id=user_id,
                    text_content=legacy_comment.text_content,  # type: ignore[arg-type]
                )
            )

        return self._insert_phase("comments", Comment, rows, excluded)

    def derive_votes(self) -> PhaseStats:
        """Expand each migrated post's voter lists into +1 and -1 votes.

        A voter present in both lists of one post is reported, then both of
        their votes are inserted so the one-vote-per-user rule rejects the
        phase.
        """
        set_run_context(phase="votes")
        logger.info("🚀 Deriving votes")

        user_ids = self.store.user_ids_by_username()
        post_ids = self.store.post_ids()

        rows: list[Vote] = []
        excluded = 0
        conflicts = 0
        upvotes = 0
        downvotes = 0
        for legacy_post in tqdm(self.legacy.posts(), desc="Deriving votes", unit=" posts"):
            up, down = self._voters(legacy_post)
            if legacy_post.id not in post_ids:
                excluded += len(up) + len(down)
                continue

            for name in sorted(up & down):
                logger.warning(
                    f"⚠️ {name!r} both upvoted and downvoted legacy post {legacy_post.id}"
                )
                conflicts += 1

            for names, value in ((up, UPVOTE), (down, DOWNVOTE)):
                for name in sorted(names):
                    user_id = user_ids.get(name)
                    if user_id is None:
                        excluded += 1
                        continue
                    rows.append(Vote(post_id=legacy_post.id, user_id=user_id, vote=value))
                    if value == UPVOTE:
                        upvotes += 1
                    else:
                        downvotes += 1

        stats = self._insert_phase("votes", Vote, rows, excluded)
        stats.update(upvotes=upvotes, downvotes=downvotes, conflicts=conflicts)
        return stats

    def _insert_phase(
        self,
        name: str,
        model: type,
        rows: Sequence,
        excluded: int,
    ) -> PhaseStats:
        with self.store.transaction():
            inserted = self.store.repositories.for_entity(model).create_all(rows)

        stats: PhaseStats = {"inserted": inserted, "excluded": excluded}
        if excluded:
            logger.info(f"⏭️ Excluded {excluded} unresolved legacy rows from {name}")
        logger.info(f"✅ {name.capitalize()} derived: {stats}")
        return stats

    # =========================================================================
    # Full Run
    # =========================================================================

    def run(self, truncate_first: bool = False) -> MigrationStats:
        """Run all four phases in order.

        Args:
            truncate_first: Empty the normalized tables before migrating

        Returns:
            Combined statistics

        Raises:
            ConstraintViolation: If any phase is rejected by the storage layer
        """
        run_id = uuid.uuid4().hex[:12]
        set_run_context(run_id=run_id)
        logger.info(f"🚀 Starting migration run {run_id}: {self.legacy.counts()}")

        try:
            if truncate_first:
                self.store.truncate()

            users_topics = self.populate_users_and_topics()
            posts = self.derive_posts()
            comments = self.derive_comments()
            votes = self.derive_votes()
        finally:
            clear_run_context()

        phases = (users_topics, posts, comments, votes)
        stats: MigrationStats = {
            "run_id": run_id,
            "users_topics": users_topics,
            "posts": posts,
            "comments": comments,
            "votes": votes,
            "total_inserted": sum(p["inserted"] for p in phases),
            "total_excluded": sum(p["excluded"] for p in phases),
        }

        logger.info(f"✅ Migration complete: {stats}")
        return stats

    def get_statistics(self) -> TableCounts:
        """Row count of each normalized table."""
        return self.store.counts()
