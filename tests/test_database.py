"""Unit tests for the SQLite document database."""

import pytest
from sqlalchemy.exc import IntegrityError

from ither.database import DocumentDatabase, new_document_id
from ither.errors import BackendUnavailableError, DocumentNotFoundError
from ither.types import SERVER_TIMESTAMP, ArrayRemove, ArrayUnion, Increment

BOOKS = "artifacts/test/public/data/books"
POSTS = "artifacts/test/public/data/forumPosts"


class TestLifecycle:
    def test_uninitialized_database_raises(self, temp_db_path):
        db = DocumentDatabase(temp_db_path)

        with pytest.raises(BackendUnavailableError):
            db.get(BOOKS, "book-1")

    def test_initialize_creates_file(self, temp_db_path):
        db = DocumentDatabase(temp_db_path)
        db.initialize()
        try:
            assert temp_db_path.exists()
            assert db.is_initialized
        finally:
            db.close()

        assert not db.is_initialized

    def test_memory_database(self):
        db = DocumentDatabase(":memory:")

        assert db.is_memory

    def test_new_document_id(self):
        first, second = new_document_id(), new_document_id()

        assert len(first) == 20
        assert first != second


class TestReadsAndWrites:
    def test_add_and_get(self, document_db):
        doc_id = document_db.add(BOOKS, {"title": "Clean Code", "createdAt": SERVER_TIMESTAMP})

        doc = document_db.get(BOOKS, doc_id)

        assert doc["title"] == "Clean Code"
        assert isinstance(doc["createdAt"], str)

    def test_add_with_explicit_id_twice_fails(self, memory_db):
        memory_db.add(BOOKS, {"title": "A"}, "book-1")

        with pytest.raises(IntegrityError):
            memory_db.add(BOOKS, {"title": "B"}, "book-1")

    def test_get_missing(self, memory_db):
        assert memory_db.get(BOOKS, "nope") is None

    def test_collections_are_isolated(self, memory_db):
        memory_db.set(BOOKS, "x", {"title": "book"})
        memory_db.set(POSTS, "x", {"title": "post"})

        assert memory_db.get(BOOKS, "x") == {"title": "book"}
        assert memory_db.collection_counts("artifacts/test") == {BOOKS: 1, POSTS: 1}
        assert memory_db.count(BOOKS) == 1

    def test_set_replace_and_merge(self, memory_db):
        memory_db.set(BOOKS, "b1", {"title": "A", "author": "X", "meta": {"a": 1}})

        memory_db.set(BOOKS, "b1", {"meta": {"b": 2}}, merge=True)
        assert memory_db.get(BOOKS, "b1") == {"title": "A", "author": "X", "meta": {"a": 1, "b": 2}}

        memory_db.set(BOOKS, "b1", {"title": "B"})
        assert memory_db.get(BOOKS, "b1") == {"title": "B"}

    def test_delete(self, memory_db):
        memory_db.set(BOOKS, "b1", {"title": "A"})

        assert memory_db.delete(BOOKS, "b1")
        assert not memory_db.delete(BOOKS, "b1")


class TestUpdates:
    def test_transforms_resolved(self, memory_db):
        memory_db.set(POSTS, "p1", {"likeCount": 1, "likedBy": ["u1"]})

        body = memory_db.update(
            POSTS,
            "p1",
            {"likeCount": Increment(1), "likedBy": ArrayUnion(["u2", "u1"]), "updatedAt": SERVER_TIMESTAMP},
        )

        assert body["likeCount"] == 2
        assert body["likedBy"] == ["u1", "u2"]
        assert memory_db.get(POSTS, "p1")["updatedAt"] == body["updatedAt"]

    def test_decrement_clamps_at_zero(self, memory_db):
        memory_db.set(POSTS, "p1", {"likeCount": 0, "likedBy": ["u1"]})

        body = memory_db.update(POSTS, "p1", {"likeCount": Increment(-1), "likedBy": ArrayRemove(["u1"])})

        assert body == {"likeCount": 0, "likedBy": []}

    def test_update_missing_document(self, memory_db):
        with pytest.raises(DocumentNotFoundError):
            memory_db.update(POSTS, "missing", {"likeCount": Increment(1)})


class TestQueries:
    @pytest.fixture
    def posts(self, memory_db):
        memory_db.set(POSTS, "p1", {"userId": "u1", "status": "active", "createdAt": "2024-01-01T00:00:00Z"})
        memory_db.set(POSTS, "p2", {"userId": "u2", "status": "removed", "createdAt": "2024-01-03T00:00:00Z"})
        memory_db.set(
            POSTS,
            "p3",
            {"userId": "u1", "status": "active", "parentId": "p1", "createdAt": "2024-01-02T00:00:00+08:00"},
        )
        return memory_db

    def test_equality_filters(self, posts):
        rows = posts.query(POSTS, {"userId": "u1", "status": "active"})

        assert [doc_id for doc_id, _ in rows] == ["p1", "p3"]

    def test_none_filter_matches_unset(self, posts):
        rows = posts.query(POSTS, {"parentId": None})

        assert [doc_id for doc_id, _ in rows] == ["p1", "p2"]

    def test_order_by_timestamp(self, posts):
        rows = posts.query(POSTS, order_by="createdAt", descending=True)

        assert [doc_id for doc_id, _ in rows] == ["p2", "p3", "p1"]

    def test_empty_collection(self, memory_db):
        assert memory_db.query("artifacts/test/public/data/empty") == []
