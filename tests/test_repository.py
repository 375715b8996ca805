"""Tests for the record store adapters and the repository factory.

Most tests run against both backends through the parametrized ``stores``
fixture; both are seeded with the same records.
"""

import pytest

from ither.database import DocumentDatabase
from ither.errors import BackendUnavailableError
from ither.interfaces import IRecordStore
from ither.metrics import registry
from ither.mirror import LocalStorage
from ither.models import (
    Book,
    ForumPost,
    MarketplaceWishlist,
    Mentorship,
    MentorshipStatus,
    PostStatus,
)
from ither.repository import (
    MockRecordStore,
    RemoteNestedStore,
    RemoteRecordStore,
    RepositoryFactory,
    StoreRegistry,
    load_seed,
)
from ither.types import ArrayUnion, Increment


def error_count(backend: str, collection: str, operation: str) -> float:
    labels = {"backend": backend, "collection": collection, "operation": operation}
    return registry.get_sample_value("store_errors_total", labels) or 0.0


# =============================================================================
# Shared Behavior
# =============================================================================


class TestRecordStore:
    """Behavior both backends must agree on."""

    @pytest.mark.asyncio
    async def test_stores_satisfy_protocol(self, stores):
        assert isinstance(stores.forum_posts, IRecordStore)
        assert stores.forum_posts.name == "forumPosts"

    @pytest.mark.asyncio
    async def test_get_seed_record(self, stores):
        post = await stores.forum_posts.get("post-1")

        assert isinstance(post, ForumPost)
        assert post.likedBy == ["mock-2", "mock-3"]
        assert await stores.forum_posts.get("missing") is None

    @pytest.mark.asyncio
    async def test_list_filters_and_orders(self, stores):
        posts = await stores.forum_posts.list({"status": PostStatus.ACTIVE}, order_by="createdAt", descending=True)

        assert [p.id for p in posts] == ["post-1", "post-2", "post-3", "post-4"]

        mine = await stores.forum_posts.list({"userId": "mock-5"})
        assert [p.id for p in mine] == ["post-3"]

    @pytest.mark.asyncio
    async def test_create_stamps_created_at(self, stores):
        new_id = await stores.books.create(Book(userId="mock-1", title="Refactoring UI"))

        book = await stores.books.get(new_id)

        assert book.title == "Refactoring UI"
        assert book.createdAt is not None

    @pytest.mark.asyncio
    async def test_update_with_transforms(self, stores):
        ok = await stores.forum_posts.update(
            "post-1", {"likeCount": Increment(1), "likedBy": ArrayUnion(["mock-9"])}
        )

        post = await stores.forum_posts.get("post-1")
        assert ok
        assert post.likeCount == 3
        assert post.likedBy == ["mock-2", "mock-3", "mock-9"]

    @pytest.mark.asyncio
    async def test_update_missing_record_fails(self, stores):
        assert await stores.forum_posts.update("missing", {"likeCount": Increment(1)}) is False

    @pytest.mark.asyncio
    async def test_upsert_creates_then_merges(self, stores):
        assert await stores.user_profiles.upsert("user-9", {"userId": "user-9", "nickname": "Nine"})
        assert await stores.user_profiles.upsert("user-9", {"role": "PM"})

        profile = await stores.user_profiles.get("user-9")

        assert profile.nickname == "Nine"
        assert profile.role == "PM"

    @pytest.mark.asyncio
    async def test_remove(self, stores):
        assert await stores.forum_comments.remove("comment-2")
        assert await stores.forum_comments.get("comment-2") is None
        assert await stores.forum_comments.remove("comment-2") is False

    @pytest.mark.asyncio
    async def test_create_with_explicit_id(self, stores):
        record_id = stores.marketplace_wishlist.compound_id("mock-1", "item-3")

        created = await stores.marketplace_wishlist.create(
            MarketplaceWishlist(userId="mock-1", itemId="item-3"), record_id
        )

        assert created == record_id
        assert (await stores.marketplace_wishlist.get(record_id)).itemId == "item-3"


class TestNestedProfiles:
    @pytest.mark.asyncio
    async def test_upsert_and_get(self, stores):
        assert await stores.mentor_profiles.upsert("mock-1", {"expertise": ["Vue.js"], "maxMentees": 2})

        mentor = await stores.mentor_profiles.get("mock-1")

        assert mentor.id == "mock-1"
        assert mentor.expertise == ["Vue.js"]
        assert mentor.maxMentees == 2
        assert [p.id for p in await stores.mentor_profiles.list()] == ["mock-1"]

    @pytest.mark.asyncio
    async def test_missing_profile(self, stores):
        assert await stores.mentee_profiles.get("mock-2") is None
        assert await stores.mentee_profiles.update("mock-2", {"goals": "x"}) is False

    @pytest.mark.asyncio
    async def test_remove(self, stores):
        await stores.mentee_profiles.upsert("mock-2", {"interests": ["Go"]})

        assert await stores.mentee_profiles.remove("mock-2")
        assert await stores.mentee_profiles.get("mock-2") is None


# =============================================================================
# Mock Store
# =============================================================================


class TestMockRecordStore:
    @pytest.mark.asyncio
    async def test_local_ids(self, mock_stores):
        first = await mock_stores.forum_posts.create(ForumPost(userId="mock-1", title="A"))
        second = await mock_stores.forum_posts.create(ForumPost(userId="mock-1", title="B"))

        assert (first, second) == ("local-post-1", "local-post-2")
        assert mock_stores.forum_posts.is_local(first)
        assert not mock_stores.forum_posts.is_local("post-1")

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, mock_stores):
        record = ForumPost(userId="mock-1", title="A")

        assert await mock_stores.forum_posts.create(record, "post-1") is None

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, mock_stores):
        post = await mock_stores.forum_posts.get("post-1")
        post.likeCount = 99

        assert (await mock_stores.forum_posts.get("post-1")).likeCount == 2

    @pytest.mark.asyncio
    async def test_invalid_update_fails_without_mutation(self, mock_stores):
        before = error_count("mock", "forumPosts", "update")

        assert await mock_stores.forum_posts.update("post-1", {"title": None}) is False
        assert (await mock_stores.forum_posts.get("post-1")).title.startswith("大家怎麼看")
        assert error_count("mock", "forumPosts", "update") == before + 1

    @pytest.mark.asyncio
    async def test_compound_id(self, mock_stores):
        assert mock_stores.marketplace_wishlist.compound_id("mock-1", "item-3") == "local-wishlist-mock-1_item-3"

    @pytest.mark.asyncio
    async def test_mirror_persists_across_sessions(self, tmp_path, seed):
        storage = LocalStorage(tmp_path)
        stores = StoreRegistry.build(RepositoryFactory(mock_mode=True, storage=storage), seed)
        record = Mentorship(mentorId="mock-1", menteeId="mock-2", initiatedBy="mock-1", status=MentorshipStatus.PENDING_MENTEE)

        mentorship_id = await stores.mentorships.create(record)
        await stores.mentorships.update(mentorship_id, {"status": MentorshipStatus.ACTIVE})

        reloaded = StoreRegistry.build(RepositoryFactory(mock_mode=True, storage=LocalStorage(tmp_path)))
        restored = await reloaded.mentorships.get(mentorship_id)

        assert restored is not None
        assert restored.status == MentorshipStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_remove_seed_record(self, mock_stores):
        assert await mock_stores.books.remove("book-4")
        assert await mock_stores.books.get("book-4") is None


# =============================================================================
# Remote Store
# =============================================================================


class TestRemoteRecordStore:
    @pytest.mark.asyncio
    async def test_compound_id(self, remote_stores):
        assert remote_stores.marketplace_wishlist.compound_id("mock-1", "item-3") == "mock-1_item-3"

    @pytest.mark.asyncio
    async def test_uninitialized_database_fails_softly(self):
        store = RemoteRecordStore(ForumPost, "forumPosts", DocumentDatabase(":memory:"), "artifacts/x/public/data/forumPosts")
        before = error_count("remote", "forumPosts", "list")

        assert await store.list() == []
        assert await store.get("post-1") is None
        assert await store.create(ForumPost(userId="u", title="t")) is None
        assert await store.update("post-1", {"likeCount": Increment(1)}) is False
        assert await store.remove("post-1") is False
        assert error_count("remote", "forumPosts", "list") == before + 1

    @pytest.mark.asyncio
    async def test_nested_profile_lives_in_user_document(self, remote_stores, memory_db, remote_settings):
        await remote_stores.mentor_profiles.upsert("mock-1", {"bio": "Tech lead"})

        doc = memory_db.get(remote_settings.collection_path("userProfiles"), "mock-1")

        assert doc["nickname"] == "Sophia"
        assert doc["mentorProfile"]["bio"] == "Tech lead"

    @pytest.mark.asyncio
    async def test_invalid_document_skipped(self, remote_stores, memory_db, remote_settings):
        memory_db.set(remote_settings.collection_path("books"), "broken", {"title": None})

        books = await remote_stores.books.list()

        assert "broken" not in [b.id for b in books]
        assert len(books) == 4


# =============================================================================
# Factory and Seeding
# =============================================================================


class TestRepositoryFactory:
    def test_remote_mode_requires_database(self):
        with pytest.raises(BackendUnavailableError):
            RepositoryFactory(mock_mode=False)

    def test_builds_one_backend(self, memory_db, remote_settings):
        mock = RepositoryFactory(mock_mode=True)
        remote = RepositoryFactory(mock_mode=False, database=memory_db, collection_path=remote_settings.collection_path)

        assert isinstance(mock.for_entity(Book, "books"), MockRecordStore)
        assert isinstance(remote.for_entity(Book, "books"), RemoteRecordStore)
        assert isinstance(remote.nested(Book, "x", "userProfiles", "x"), RemoteNestedStore)
        assert remote.for_entity(Book, "books").path == "artifacts/ither-test/public/data/books"

    def test_registry_backend(self, mock_stores, remote_stores):
        assert mock_stores.backend == "mock"
        assert remote_stores.backend == "remote"
        assert set(remote_stores.top_level()) >= {"forumPosts", "books", "marketplaceWishlist"}


class TestLoadSeed:
    def test_counts_per_collection(self, memory_db, seed, remote_settings):
        written = load_seed(memory_db, seed, remote_settings.collection_path)

        assert written["books"] == 4
        assert written["forumPosts"] == 4
        assert sum(written.values()) == seed.total()
        assert memory_db.count(remote_settings.collection_path("marketplaceWishlist")) == 3

    def test_idempotent(self, memory_db, seed, remote_settings):
        load_seed(memory_db, seed, remote_settings.collection_path)
        load_seed(memory_db, seed, remote_settings.collection_path)

        assert memory_db.count(remote_settings.collection_path("books")) == 4
