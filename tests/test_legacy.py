"""Unit tests for the legacy snapshot store."""

import pytest
from sqlalchemy.exc import OperationalError

from udiddit.legacy import LegacyStore
from udiddit.models import LegacyComment, LegacyPost

POSTS_CSV = """id,username,topic,title,url,text_content,upvotes,downvotes
1,alice,sql,Normal forms,http://e,,"bob,carol",
2,bob,python,Generators,,yield all the things,alice,"dave,erin"
"""

COMMENTS_CSV = """id,username,post_id,text_content
1,bob,1,Nice link
2,frank,2,Agreed
"""


@pytest.fixture
def csv_files(tmp_path):
    posts = tmp_path / "bad_posts.csv"
    comments = tmp_path / "bad_comments.csv"
    posts.write_text(POSTS_CSV)
    comments.write_text(COMMENTS_CSV)
    return posts, comments


@pytest.fixture
def writable(legacy_db_path):
    snapshot = LegacyStore(database_path=legacy_db_path, read_only=False)
    snapshot.initialize()
    yield snapshot
    snapshot.close()


class TestReadOnly:
    """Tests for the read-only handle used by migrations."""

    def test_missing_snapshot(self, legacy_db_path):
        """Test opening a snapshot that does not exist fails."""
        with pytest.raises(FileNotFoundError):
            LegacyStore(database_path=legacy_db_path).initialize()

    def test_reads_ordered_by_id(self, make_legacy):
        """Test posts and comments come back in id order."""
        legacy = make_legacy(
            [{"id": 2, "title": "b"}, {"id": 1, "title": "a"}],
            [{"id": 5, "post_id": 1}, {"id": 3, "post_id": 2}],
        )
        legacy.initialize()

        assert [p.id for p in legacy.posts()] == [1, 2]
        assert [c.id for c in legacy.comments()] == [3, 5]
        assert legacy.counts() == {"bad_posts": 2, "bad_comments": 2}

    def test_schema_creation_refused(self, make_legacy):
        """Test a read-only handle refuses to build a snapshot."""
        legacy = make_legacy([])
        legacy.initialize()

        with pytest.raises(RuntimeError, match="read-only"):
            legacy.create_schema()

    def test_writes_rejected_by_sqlite(self, make_legacy):
        """Test the file itself cannot be written through a read-only handle."""
        legacy = make_legacy([{"id": 1, "title": "a"}])
        legacy.initialize()

        legacy.session.add(LegacyPost(id=2, title="b"))
        with pytest.raises(OperationalError):
            legacy.session.commit()
        legacy.session.rollback()

        assert legacy.counts()["bad_posts"] == 1

    def test_reads_require_initialize(self, legacy_db_path):
        with pytest.raises(RuntimeError, match="not initialized"):
            LegacyStore(database_path=legacy_db_path).posts()


class TestImportCsv:
    """Tests for building a snapshot from CSV dumps."""

    def test_import(self, writable, csv_files):
        """Test rows are loaded and counted per table."""
        loaded = writable.import_csv(*csv_files)

        assert loaded == {"bad_posts": 2, "bad_comments": 2}
        assert writable.counts() == loaded

    def test_empty_cells_become_null(self, writable, csv_files):
        """Test empty CSV cells are stored as NULL."""
        writable.import_csv(*csv_files)

        first, second = writable.posts()
        assert first.text_content is None
        assert first.downvotes is None
        assert first.upvotes == "bob,carol"
        assert second.url is None
        assert second.downvotes == "dave,erin"

    def test_comment_post_ids_are_integers(self, writable, csv_files):
        writable.import_csv(*csv_files)

        assert [c.post_id for c in writable.comments()] == [1, 2]

    def test_extra_columns_ignored(self, writable, tmp_path, csv_files):
        """Test columns outside the legacy layout are dropped."""
        posts = tmp_path / "wide.csv"
        posts.write_text(
            "id,username,topic,title,url,text_content,upvotes,downvotes,score\n"
            "1,alice,sql,Normal forms,http://e,,bob,,7\n"
        )

        loaded = writable.import_csv(posts, csv_files[1])

        assert loaded["bad_posts"] == 1
        assert writable.posts()[0].upvotes == "bob"

    def test_missing_column(self, writable, tmp_path, csv_files):
        """Test a CSV lacking a legacy column is rejected."""
        posts = tmp_path / "narrow.csv"
        posts.write_text("id,username,topic,title\n1,alice,sql,t\n")

        with pytest.raises(ValueError, match="upvotes"):
            writable.import_csv(posts, csv_files[1])

    def test_round_trip_to_read_only(self, writable, csv_files, legacy_db_path):
        """Test an imported snapshot can be reopened read-only."""
        writable.import_csv(*csv_files)
        writable.close()

        legacy = LegacyStore(database_path=legacy_db_path)
        legacy.initialize()
        try:
            assert legacy.counts() == {"bad_posts": 2, "bad_comments": 2}
            assert isinstance(legacy.comments()[0], LegacyComment)
        finally:
            legacy.close()
