"""Protocol interfaces for dependency injection.

Feature modules depend on these protocols, never on a concrete backend.
``RepositoryFactory`` decides once which implementation backs each
collection; tests can pass any object with the right methods.

Example:
    >>> from ither.interfaces import IRecordStore
    >>> from ither.repository import MockRecordStore
    >>> isinstance(MockRecordStore(ForumPost, "forumPosts"), IRecordStore)
    True
"""

from pathlib import Path
from typing import Any, Protocol, TypeVar, runtime_checkable

from ither.types import Document, Filters, Update

T = TypeVar("T")


@runtime_checkable
class IRecordStore(Protocol[T]):
    """Uniform async access to one entity collection.

    Implementations never raise for backend failures: they log the error and
    return ``None``, ``False`` or an empty list.
    """

    name: str
    """Logical collection name (e.g., "forumPosts")."""

    backend: str
    """"mock" or "remote"."""

    async def list(
        self,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[T]:
        """List records matching every equality filter."""
        ...

    async def get(self, record_id: str) -> T | None:
        """Fetch a record by id."""
        ...

    async def create(self, record: T, record_id: str | None = None) -> str | None:
        """Store a new record and return its id.

        ``createdAt`` is stamped by the backend: wall clock in mock mode,
        server time in remote mode.
        """
        ...

    async def update(self, record_id: str, fields: Update) -> bool:
        """Apply a partial update (values may be write transforms)."""
        ...

    async def upsert(self, record_id: str, fields: Update) -> bool:
        """Merge fields into a record, creating it when absent."""
        ...

    async def remove(self, record_id: str) -> bool:
        """Hard delete a record."""
        ...

    def is_local(self, record_id: str) -> bool:
        """Whether the id belongs to the local mirror id space."""
        ...

    def compound_id(self, *parts: str) -> str:
        """Deterministic id built from other ids."""
        ...


@runtime_checkable
class IDocumentDatabase(Protocol):
    """Remote document store primitives used by ``RemoteRecordStore``."""

    database_path: Path

    @property
    def is_initialized(self) -> bool:
        ...

    def initialize(self) -> None:
        ...

    def close(self) -> None:
        ...

    def get(self, collection: str, document_id: str) -> Document | None:
        ...

    def query(
        self,
        collection: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[tuple[str, Document]]:
        ...

    def add(self, collection: str, data: Update, document_id: str | None = None) -> str:
        ...

    def set(self, collection: str, document_id: str, data: Update, merge: bool = False) -> None:
        ...

    def update(self, collection: str, document_id: str, fields: Update) -> Document:
        ...

    def delete(self, collection: str, document_id: str) -> bool:
        ...


@runtime_checkable
class ILocalStorage(Protocol):
    """String key/value storage (browser ``localStorage`` semantics)."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def load_json(self, key: str, default: Any = None) -> Any:
        ...

    def save_json(self, key: str, value: Any) -> None:
        ...


__all__ = ["IRecordStore", "IDocumentDatabase", "ILocalStorage"]
