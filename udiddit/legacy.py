"""Legacy store for Udiddit.

The legacy snapshot holds the denormalized ``bad_posts`` and ``bad_comments``
relations. The migration opens it read-only (SQLite ``mode=ro``), so nothing
in a migration run can write to it. A writable handle exists only to build a
snapshot from CSV dumps of the two relations.

Example:
    >>> from udiddit.legacy import LegacyStore
    >>>
    >>> snapshot = LegacyStore(read_only=False)
    >>> snapshot.initialize()
    >>> snapshot.import_csv(Path("bad_posts.csv"), Path("bad_comments.csv"))
    >>> snapshot.close()
    >>>
    >>> legacy = LegacyStore()
    >>> legacy.initialize()
    >>> for post in legacy.posts():
    ...     print(post.title)
"""

from collections.abc import Sequence
from pathlib import Path

import pandas as pd
from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, func, select

from udiddit.config import settings
from udiddit.models import LEGACY_MODELS, LegacyComment, LegacyPost, tables_of
from udiddit.types import TableCounts

LEGACY_POST_COLUMNS = [
    "id",
    "username",
    "topic",
    "title",
    "url",
    "text_content",
    "upvotes",
    "downvotes",
]
LEGACY_COMMENT_COLUMNS = ["id", "username", "post_id", "text_content"]


class LegacyStore:
    """Handle on the legacy snapshot.

    Args:
        database_path: Path to the SQLite snapshot (defaults to
            settings.legacy_database_path)
        read_only: Open the file with ``mode=ro``; the default for migrations
    """

    def __init__(self, database_path: Path | None = None, read_only: bool = True):
        self.database_path = database_path or settings.legacy_database_path
        self.read_only = read_only
        self.engine: Engine | None = None
        self.session: Session | None = None

    def initialize(self) -> None:
        """Open the snapshot.

        Raises:
            FileNotFoundError: If a read-only snapshot does not exist
        """
        self.close()
        if self.read_only:
            if not self.database_path.exists():
                raise FileNotFoundError(f"Legacy snapshot not found: {self.database_path}")
            url = f"sqlite:///file:{self.database_path}?mode=ro&uri=true"
        else:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            url = f"sqlite:///{self.database_path}"

        self.engine = create_engine(url, echo=False)
        self.session = Session(self.engine)
        mode = "read-only" if self.read_only else "writable"
        logger.info(f"✅ Legacy store opened ({mode}) at {self.database_path}")

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

    def _require_writable(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("Database not initialized")
        if self.read_only:
            raise RuntimeError("Legacy store is opened read-only")
        return self.engine

    # =========================================================================
    # Reads
    # =========================================================================

    def posts(self) -> Sequence[LegacyPost]:
        """Every legacy post, ordered by id."""
        session = self._require_session()
        return session.exec(select(LegacyPost).order_by(LegacyPost.id)).all()

    def comments(self) -> Sequence[LegacyComment]:
        """Every legacy comment, ordered by id."""
        session = self._require_session()
        return session.exec(select(LegacyComment).order_by(LegacyComment.id)).all()

    def counts(self) -> TableCounts:
        """Row count of each legacy table."""
        session = self._require_session()
        return {
            model.__tablename__: session.exec(
                select(func.count()).select_from(model)
            ).one()
            for model in LEGACY_MODELS
        }

    # =========================================================================
    # Snapshot Building
    # =========================================================================

    def create_schema(self) -> None:
        """Create the ``bad_posts`` and ``bad_comments`` tables."""
        engine = self._require_writable()
        SQLModel.metadata.create_all(engine, tables=tables_of(LEGACY_MODELS))

    def import_csv(self, posts_csv: Path, comments_csv: Path) -> TableCounts:
        """Load CSV dumps of the legacy relations.

        Empty CSV cells become NULL. Columns not belonging to the legacy
        layout are ignored.

        Args:
            posts_csv: CSV with ``bad_posts`` columns (header row required)
            comments_csv: CSV with ``bad_comments`` columns

        Returns:
            Number of rows loaded per table

        Raises:
            ValueError: If a required column is missing from a CSV
        """
        engine = self._require_writable()
        self.create_schema()

        loaded: TableCounts = {}
        for path, table, columns in (
            (posts_csv, LegacyPost.__tablename__, LEGACY_POST_COLUMNS),
            (comments_csv, LegacyComment.__tablename__, LEGACY_COMMENT_COLUMNS),
        ):
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
            missing = [c for c in columns if c not in df.columns]
            if missing:
                raise ValueError(f"{path} is missing columns: {', '.join(missing)}")

            df = df[columns]
            df = df.where(df != "")
            df["id"] = df["id"].astype(int)
            if "post_id" in df.columns:
                df["post_id"] = pd.to_numeric(df["post_id"]).astype("Int64")

            df.to_sql(table, engine, if_exists="append", index=False)
            loaded[table] = len(df)
            logger.info(f"📥 Loaded {len(df)} rows into {table} from {path}")

        self._require_session().expire_all()
        return loaded


__all__ = ["LegacyStore", "LEGACY_POST_COLUMNS", "LEGACY_COMMENT_COLUMNS"]
