"""Record store adapters for mock and remote backends.

Every feature module talks to its collections through one interface
(``ither.interfaces.IRecordStore``) with two implementations:

- ``MockRecordStore``: seed records plus a ``LocalMirror`` of records created
  during the session, mutated in place
- ``RemoteRecordStore``: one collection of the document database under
  ``artifacts/{app_id}/public/data/{collection}``

``RemoteNestedStore`` exposes a sub-object of a parent document (mentor and
mentee profiles inside ``userProfiles/{uid}``) through the same interface.

``RepositoryFactory`` picks the implementation once, at composition time, so
actions never branch on the mode flag themselves.

Failures never escape a store: they are logged, counted and returned as
``None``, ``False`` or ``[]``.

Example:
    >>> factory = RepositoryFactory(mock_mode=True)
    >>> posts = factory.for_entity(ForumPost, "forumPosts", seed=seed.forum_posts)
    >>> post_id = await posts.create(ForumPost(userId="u1", title="Hello"))
    >>> post_id
    'local-post-1'
    >>> await posts.update(post_id, {"likeCount": Increment(1)})
    True
"""

import itertools
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ither.config import settings
from ither.errors import BackendUnavailableError, DocumentNotFoundError, StoreError
from ither.interfaces import IDocumentDatabase, IRecordStore
from ither.logging import logger
from ither.metrics import mirror_records, observe_operation
from ither.mirror import (
    MENTEE_PROFILE_KEY,
    MENTOR_PROFILE_KEY,
    MENTORSHIPS_KEY,
    USER_PROFILE_KEY,
    LocalMirror,
    LocalStorage,
    merge_for_read,
)
from ither.models import (
    Book,
    BookReview,
    BookShare,
    BookTopic,
    ForumComment,
    ForumPost,
    MarketplaceComment,
    MarketplaceItem,
    MarketplaceWishlist,
    MenteeProfile,
    MentorPost,
    MentorProfile,
    Mentorship,
    Record,
    UserBookProgress,
    UserProfile,
)
from ither.query import matches
from ither.seed import SeedData
from ither.types import SERVER_TIMESTAMP, Filters, Update, apply_transforms, merge_documents
from ither.utils import timestamp_key, utc_now

# =============================================================================
# Type Variables and Constants
# =============================================================================

T = TypeVar("T", bound=Record)

LOCAL_ID_PREFIX = "local-"

REMOTE_ERRORS = (StoreError, SQLAlchemyError, ValidationError)
"""Exceptions caught at the record store boundary."""


def _sort_key(name: str) -> Callable[[Any], tuple[bool, Any]]:
    def key(record: Any) -> tuple[bool, Any]:
        value = getattr(record, name, None)
        if value is None:
            return (False, 0)
        if name.endswith("At"):
            return (True, timestamp_key(value))
        return (True, value)

    return key


class _Operation:
    """Outcome of one store call; ``fail`` logs and flags the error."""

    def __init__(self, store: "BaseRecordStore[Any]", name: str):
        self.store = store
        self.name = name
        self.status = "success"

    def fail(self, error: BaseException | str) -> None:
        self.status = "error"
        logger.bind(collection=self.store.name, store_operation=self.name).error(
            f"❌ {self.store.backend} {self.store.name}.{self.name} failed: {error}"
        )


# =============================================================================
# Base Store
# =============================================================================


class BaseRecordStore(Generic[T]):
    """Shared bookkeeping for record store implementations.

    Args:
        model: Pydantic record class of the collection
        name: Logical collection name (e.g., "forumPosts")
    """

    backend = "base"

    def __init__(self, model: type[T], name: str):
        self.model = model
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.model.__name__}, {self.name!r})"

    @contextmanager
    def _observe(self, operation: str) -> Iterator[_Operation]:
        op = _Operation(self, operation)
        start = time.perf_counter()
        try:
            yield op
        finally:
            observe_operation(self.backend, self.name, operation, op.status, time.perf_counter() - start)

    def is_local(self, record_id: str) -> bool:
        return record_id.startswith(LOCAL_ID_PREFIX)

    def compound_id(self, *parts: str) -> str:
        """Deterministic id for a record keyed by other ids (e.g. user and book)."""
        return "_".join(parts)


# =============================================================================
# Mock Store
# =============================================================================


class MockRecordStore(BaseRecordStore[T]):
    """Seed records plus a local mirror, evaluated in memory.

    Reads merge seed and mirror records (seed first, de-duplicated by id) and
    return copies; updates mutate the stored record in place and persist the
    mirror when the record lives there.

    Args:
        model: Pydantic record class
        name: Logical collection name
        seed: Demo records for this session (owned by the store)
        mirror: Local mirror for created records (memory-only when omitted)

    Example:
        >>> store = MockRecordStore(Book, "books", seed=make_books())
        >>> await store.update("book-1", {"shareCount": Increment(1)})
        True
    """

    backend = "mock"

    def __init__(
        self,
        model: type[T],
        name: str,
        seed: Iterable[T] = (),
        mirror: LocalMirror[T] | None = None,
    ):
        super().__init__(model, name)
        self.seed: list[T] = list(seed)
        self.mirror: LocalMirror[T] = mirror if mirror is not None else LocalMirror(model)
        self._sequence = itertools.count(1)

    def records(self) -> list[T]:
        """Seed then mirror records, first occurrence of each id wins."""
        return merge_for_read(self.seed, self.mirror.records)

    def _find(self, record_id: str) -> T | None:
        for record in self.records():
            if record.id == record_id:
                return record
        return None

    def next_id(self) -> str:
        """Next unused ``local-{prefix}-{n}`` id."""
        while True:
            candidate = f"{LOCAL_ID_PREFIX}{self.model.id_prefix}-{next(self._sequence)}"
            if self._find(candidate) is None:
                return candidate

    def compound_id(self, *parts: str) -> str:
        return f"{LOCAL_ID_PREFIX}{self.model.id_prefix}-{super().compound_id(*parts)}"

    def _persist(self, record: T) -> None:
        if any(item is record for item in self.mirror.records):
            self.mirror.save()

    async def list(
        self,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[T]:
        with self._observe("list"):
            found = [record.model_copy(deep=True) for record in self.records() if matches(record, filters)]
            if order_by:
                found.sort(key=_sort_key(order_by), reverse=descending)
            return found

    async def get(self, record_id: str) -> T | None:
        with self._observe("get"):
            record = self._find(record_id)
            return record.model_copy(deep=True) if record is not None else None

    async def create(self, record: T, record_id: str | None = None) -> str | None:
        with self._observe("create") as op:
            record_id = record_id or self.next_id()
            if self._find(record_id) is not None:
                op.fail(f"record {record_id} already exists")
                return None
            now = utc_now()
            stored = record.model_copy(deep=True, update={"id": record_id, "createdAt": now})
            self.mirror.add(stored)
            mirror_records.labels(collection=self.name).set(len(self.mirror))
            logger.debug(f"Created local record {self.name}/{record_id}")
            return record_id

    def _apply(self, op: _Operation, record: T, data: dict[str, Any], fields: Update) -> bool:
        try:
            validated = self.model.model_validate(data)
        except ValidationError as e:
            op.fail(e)
            return False
        for name in fields:
            if name in self.model.model_fields:
                setattr(record, name, getattr(validated, name))
        self._persist(record)
        return True

    async def update(self, record_id: str, fields: Update) -> bool:
        with self._observe("update") as op:
            record = self._find(record_id)
            if record is None:
                op.fail(DocumentNotFoundError(self.name, record_id))
                return False
            data = apply_transforms(record.model_dump(), fields)
            return self._apply(op, record, data, fields)

    async def upsert(self, record_id: str, fields: Update) -> bool:
        with self._observe("upsert") as op:
            record = self._find(record_id)
            if record is not None:
                data = merge_documents(record.model_dump(), fields)
                return self._apply(op, record, data, fields)

            data = merge_documents({"id": record_id, "createdAt": utc_now()}, fields)
            try:
                created = self.model.model_validate(data)
            except ValidationError as e:
                op.fail(e)
                return False
            self.mirror.add(created)
            mirror_records.labels(collection=self.name).set(len(self.mirror))
            return True

    async def remove(self, record_id: str) -> bool:
        with self._observe("remove"):
            if self.mirror.remove(record_id):
                mirror_records.labels(collection=self.name).set(len(self.mirror))
                return True
            for index, record in enumerate(self.seed):
                if record.id == record_id:
                    del self.seed[index]
                    return True
            return False


# =============================================================================
# Remote Stores
# =============================================================================


class RemoteRecordStore(BaseRecordStore[T]):
    """One collection of the document database.

    ``createdAt`` is stamped with ``SERVER_TIMESTAMP`` and resolved by the
    database at write time. Updates run inside a single database
    transaction, so ``Increment`` is an atomic counter primitive.

    Args:
        model: Pydantic record class
        name: Logical collection name
        database: Document database (may be uninitialized; calls then fail softly)
        path: Full collection path (defaults to ``settings.collection_path(name)``)
    """

    backend = "remote"

    def __init__(self, model: type[T], name: str, database: IDocumentDatabase, path: str | None = None):
        super().__init__(model, name)
        self.database = database
        self.path = path or settings.collection_path(name)

    def _to_record(self, record_id: str, data: dict[str, Any]) -> T:
        return self.model.from_document(record_id, data)

    async def list(
        self,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[T]:
        with self._observe("list") as op:
            try:
                rows = self.database.query(self.path, filters, order_by, descending)
            except REMOTE_ERRORS as e:
                op.fail(e)
                return []

            records: list[T] = []
            for record_id, data in rows:
                try:
                    records.append(self._to_record(record_id, data))
                except ValidationError as e:
                    logger.warning(f"⚠️  Skipping invalid document {self.path}/{record_id}: {e.error_count()} errors")
            return records

    async def get(self, record_id: str) -> T | None:
        with self._observe("get") as op:
            try:
                data = self.database.get(self.path, record_id)
                return self._to_record(record_id, data) if data is not None else None
            except REMOTE_ERRORS as e:
                op.fail(e)
                return None

    async def create(self, record: T, record_id: str | None = None) -> str | None:
        with self._observe("create") as op:
            data = record.to_document()
            data["createdAt"] = SERVER_TIMESTAMP
            try:
                return self.database.add(self.path, data, record_id)
            except REMOTE_ERRORS as e:
                op.fail(e)
                return None

    async def update(self, record_id: str, fields: Update) -> bool:
        with self._observe("update") as op:
            try:
                self.database.update(self.path, record_id, fields)
                return True
            except REMOTE_ERRORS as e:
                op.fail(e)
                return False

    async def upsert(self, record_id: str, fields: Update) -> bool:
        with self._observe("upsert") as op:
            try:
                self.database.set(self.path, record_id, fields, merge=True)
                return True
            except REMOTE_ERRORS as e:
                op.fail(e)
                return False

    async def remove(self, record_id: str) -> bool:
        with self._observe("remove") as op:
            try:
                return self.database.delete(self.path, record_id)
            except REMOTE_ERRORS as e:
                op.fail(e)
                return False


class RemoteNestedStore(BaseRecordStore[T]):
    """A sub-object of each parent document, addressed by the parent id.

    Example:
        Mentor profiles live at ``userProfiles/{uid}.mentorProfile``:

        >>> store = RemoteNestedStore(MentorProfile, "mentorProfiles", db,
        ...                           parent="userProfiles", field="mentorProfile")
        >>> await store.upsert("u1", {"expertise": ["Python"]})
        True
    """

    backend = "remote"

    def __init__(
        self,
        model: type[T],
        name: str,
        database: IDocumentDatabase,
        parent: str,
        field: str,
        path: str | None = None,
    ):
        super().__init__(model, name)
        self.database = database
        self.field = field
        self.path = path or settings.collection_path(parent)

    def _to_record(self, parent_id: str, data: dict[str, Any] | None) -> T | None:
        sub = (data or {}).get(self.field)
        if not isinstance(sub, dict):
            return None
        return self.model.from_document(parent_id, sub)

    async def list(
        self,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[T]:
        with self._observe("list") as op:
            try:
                rows = self.database.query(self.path)
                records = [self._to_record(parent_id, data) for parent_id, data in rows]
            except REMOTE_ERRORS as e:
                op.fail(e)
                return []
            found = [record for record in records if record is not None and matches(record, filters)]
            if order_by:
                found.sort(key=_sort_key(order_by), reverse=descending)
            return found

    async def get(self, record_id: str) -> T | None:
        with self._observe("get") as op:
            try:
                return self._to_record(record_id, self.database.get(self.path, record_id))
            except REMOTE_ERRORS as e:
                op.fail(e)
                return None

    async def create(self, record: T, record_id: str | None = None) -> str | None:
        with self._observe("create") as op:
            parent_id = record_id or record.id
            if not parent_id:
                op.fail("nested records need the parent document id")
                return None
            data = record.to_document()
            data["createdAt"] = SERVER_TIMESTAMP
            try:
                self.database.set(self.path, parent_id, {self.field: data}, merge=True)
                return parent_id
            except REMOTE_ERRORS as e:
                op.fail(e)
                return None

    async def update(self, record_id: str, fields: Update) -> bool:
        with self._observe("update") as op:
            try:
                if self._to_record(record_id, self.database.get(self.path, record_id)) is None:
                    raise DocumentNotFoundError(f"{self.path}.{self.field}", record_id)
                self.database.set(self.path, record_id, {self.field: dict(fields)}, merge=True)
                return True
            except REMOTE_ERRORS as e:
                op.fail(e)
                return False

    async def upsert(self, record_id: str, fields: Update) -> bool:
        with self._observe("upsert") as op:
            try:
                self.database.set(self.path, record_id, {self.field: dict(fields)}, merge=True)
                return True
            except REMOTE_ERRORS as e:
                op.fail(e)
                return False

    async def remove(self, record_id: str) -> bool:
        with self._observe("remove") as op:
            try:
                if self.database.get(self.path, record_id) is None:
                    return False
                self.database.update(self.path, record_id, {self.field: None})
                return True
            except REMOTE_ERRORS as e:
                op.fail(e)
                return False


# =============================================================================
# Repository Factory
# =============================================================================


class RepositoryFactory:
    """Builds record stores for one backend, chosen once.

    Args:
        mock_mode: Build mock stores (seed + local mirror) instead of remote ones
        database: Document database for remote stores
        storage: Local storage for persisted mirrors in mock mode
        collection_path: Maps a collection name to its remote path

    Example:
        >>> factory = RepositoryFactory(mock_mode=False, database=db)
        >>> books = factory.for_entity(Book, "books")
        >>> isinstance(books, RemoteRecordStore)
        True
    """

    def __init__(
        self,
        mock_mode: bool,
        database: IDocumentDatabase | None = None,
        storage: LocalStorage | None = None,
        collection_path: Callable[[str], str] | None = None,
    ):
        if not mock_mode and database is None:
            raise BackendUnavailableError("Remote mode needs a document database")
        self.mock_mode = mock_mode
        self.database = database
        self.storage = storage if storage is not None else LocalStorage(None)
        self.collection_path = collection_path or settings.collection_path

    @property
    def backend(self) -> str:
        return "mock" if self.mock_mode else "remote"

    def _mirror(self, model: type[T], storage_key: str | None) -> LocalMirror[T]:
        mirror = LocalMirror(model, self.storage if storage_key else None, storage_key)
        mirror.load()
        return mirror

    def for_entity(
        self,
        model: type[T],
        name: str,
        seed: Iterable[T] = (),
        storage_key: str | None = None,
    ) -> IRecordStore[T]:
        """Create the store for one top-level collection.

        Args:
            model: Pydantic record class
            name: Logical collection name
            seed: Demo records (mock mode only)
            storage_key: Local storage key persisting the mirror (mock mode only)
        """
        if self.mock_mode:
            return MockRecordStore(model, name, seed=seed, mirror=self._mirror(model, storage_key))
        return RemoteRecordStore(
            model, name, self.database, self.collection_path(name)  # type: ignore[arg-type]
        )

    def nested(
        self,
        model: type[T],
        name: str,
        parent: str,
        field: str,
        storage_key: str | None = None,
    ) -> IRecordStore[T]:
        """Create the store for a sub-object kept inside ``parent`` documents.

        Mock mode keeps these as a standalone mirror persisted under ``storage_key``.
        """
        if self.mock_mode:
            return MockRecordStore(model, name, mirror=self._mirror(model, storage_key))
        return RemoteNestedStore(
            model,
            name,
            self.database,  # type: ignore[arg-type]
            parent=parent,
            field=field,
            path=self.collection_path(parent),
        )


# =============================================================================
# Store Registry
# =============================================================================

COLLECTIONS: dict[str, tuple[str, type[Record]]] = {
    "mentor_posts": ("mentorPosts", MentorPost),
    "mentorships": ("mentorships", Mentorship),
    "user_profiles": ("userProfiles", UserProfile),
    "books": ("books", Book),
    "book_reviews": ("bookReviews", BookReview),
    "book_shares": ("bookShares", BookShare),
    "book_progress": ("userBookProgress", UserBookProgress),
    "book_topics": ("bookTopics", BookTopic),
    "topic_comments": ("bookTopicComments", ForumComment),
    "forum_posts": ("forumPosts", ForumPost),
    "forum_comments": ("forumComments", ForumComment),
    "marketplace_items": ("marketplaceItems", MarketplaceItem),
    "marketplace_comments": ("marketplaceComments", MarketplaceComment),
    "marketplace_wishlist": ("marketplaceWishlist", MarketplaceWishlist),
}
"""Top-level collections: registry attribute to (collection name, record model)."""

STORAGE_KEYS_BY_COLLECTION = {
    "mentorships": MENTORSHIPS_KEY,
    "user_profiles": USER_PROFILE_KEY,
}


@dataclass
class StoreRegistry:
    """Every record store of one session, built by one factory.

    Example:
        >>> stores = StoreRegistry.build(RepositoryFactory(mock_mode=True), make_seed())
        >>> stores.backend
        'mock'
    """

    backend: str
    mentor_posts: IRecordStore[MentorPost]
    mentorships: IRecordStore[Mentorship]
    mentor_profiles: IRecordStore[MentorProfile]
    mentee_profiles: IRecordStore[MenteeProfile]
    user_profiles: IRecordStore[UserProfile]
    books: IRecordStore[Book]
    book_reviews: IRecordStore[BookReview]
    book_shares: IRecordStore[BookShare]
    book_progress: IRecordStore[UserBookProgress]
    book_topics: IRecordStore[BookTopic]
    topic_comments: IRecordStore[ForumComment]
    forum_posts: IRecordStore[ForumPost]
    forum_comments: IRecordStore[ForumComment]
    marketplace_items: IRecordStore[MarketplaceItem]
    marketplace_comments: IRecordStore[MarketplaceComment]
    marketplace_wishlist: IRecordStore[MarketplaceWishlist]

    @classmethod
    def build(cls, factory: RepositoryFactory, seed: SeedData | None = None) -> "StoreRegistry":
        """Create all stores; seed records are only used by mock stores."""
        seed = seed or SeedData()
        stores: dict[str, Any] = {
            attr: factory.for_entity(
                model,
                name,
                seed=getattr(seed, attr),
                storage_key=STORAGE_KEYS_BY_COLLECTION.get(attr),
            )
            for attr, (name, model) in COLLECTIONS.items()
        }
        stores["mentor_profiles"] = factory.nested(
            MentorProfile, "mentorProfiles", "userProfiles", "mentorProfile", MENTOR_PROFILE_KEY
        )
        stores["mentee_profiles"] = factory.nested(
            MenteeProfile, "menteeProfiles", "userProfiles", "menteeProfile", MENTEE_PROFILE_KEY
        )
        logger.debug(f"Built {len(stores)} {factory.backend} record stores")
        return cls(backend=factory.backend, **stores)

    def top_level(self) -> dict[str, IRecordStore[Any]]:
        """Top-level stores keyed by collection name."""
        return {name: getattr(self, attr) for attr, (name, _) in COLLECTIONS.items()}


def load_seed(
    database: IDocumentDatabase,
    seed: SeedData,
    collection_path: Callable[[str], str] | None = None,
) -> dict[str, int]:
    """Write demo records into the document database, keeping their ids.

    Returns:
        Number of documents written per collection name
    """
    collection_path = collection_path or settings.collection_path
    written: dict[str, int] = {}
    for attr, (name, _) in COLLECTIONS.items():
        records = getattr(seed, attr)
        path = collection_path(name)
        for record in records:
            database.set(path, record.id, record.to_document())
        written[name] = len(records)
    logger.info(f"✅ Seeded {sum(written.values())} documents into {len(written)} collections")
    return written


__all__ = [
    "LOCAL_ID_PREFIX",
    "COLLECTIONS",
    "load_seed",
    "StoreRegistry",
    "BaseRecordStore",
    "MockRecordStore",
    "RemoteRecordStore",
    "RemoteNestedStore",
    "RepositoryFactory",
]
