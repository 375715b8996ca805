"""Document database backing the remote record stores.

This module provides a small document store on SQLite with:
- Collection-scoped documents stored as JSON (``DocumentRow``)
- Equality queries evaluated in SQL with ``json_extract``
- Merge/replace writes and partial updates with write transforms
- Atomic counter updates (transforms resolved inside one transaction)

Every method raises ``BackendUnavailableError`` when called before
``initialize()`` and ``DocumentNotFoundError`` when updating a missing
document. Callers in ``ither.repository`` translate both into failure values.

Example:
    >>> from ither.database import DocumentDatabase
    >>> from ither.types import Increment
    >>>
    >>> db = DocumentDatabase()
    >>> db.initialize()
    >>> doc_id = db.add("artifacts/app/public/data/books", {"title": "Clean Code"})
    >>> db.update("artifacts/app/public/data/books", doc_id, {"shareCount": Increment(1)})
    >>> db.get("artifacts/app/public/data/books", doc_id)["shareCount"]
    1
    >>> db.close()
"""

import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from ither.config import settings
from ither.errors import BackendUnavailableError, DocumentNotFoundError
from ither.logging import logger
from ither.models import DocumentRow
from ither.types import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    Document,
    Filters,
    Increment,
    Update,
    apply_transforms,
    merge_documents,
)
from ither.utils import format_iso, timestamp_key, utc_now

MEMORY_PATH = ":memory:"

AUTO_ID_LENGTH = 20
"""Length of generated document ids."""


def new_document_id() -> str:
    """Generate a random document id."""
    return uuid.uuid4().hex[:AUTO_ID_LENGTH]


def to_json_document(data: dict[str, Any]) -> Document:
    """Convert resolved values (datetimes, enums, models) to JSON types."""
    return to_jsonable_python(data)


def encode_value(value: Any) -> Any:
    """Convert a field value to JSON types, keeping transform sentinels."""
    if isinstance(value, Increment) or value is SERVER_TIMESTAMP:
        return value
    if isinstance(value, ArrayUnion):
        return ArrayUnion(to_jsonable_python(value.values))
    if isinstance(value, ArrayRemove):
        return ArrayRemove(to_jsonable_python(value.values))
    if isinstance(value, Mapping):
        return {key: encode_value(item) for key, item in value.items()}
    return to_jsonable_python(value)


def encode_fields(fields: Update) -> dict[str, Any]:
    """Encode an update so list transforms compare against stored JSON values."""
    return {key: encode_value(value) for key, value in fields.items()}


def _order_key(name: str, value: Any) -> tuple[bool, Any]:
    # Missing values sort first; "*At" fields compare as instants, not strings
    if value is None:
        return (False, 0)
    if name.endswith("At"):
        return (True, timestamp_key(value))
    return (True, value)


# =============================================================================
# Document Database
# =============================================================================


class DocumentDatabase:
    """Collection-scoped document store on SQLite.

    Features:
    - One ``documents`` table keyed by (collection, id)
    - Equality filters evaluated in SQL, single-field ordering
    - Partial updates resolving ``Increment``/``ArrayUnion``/``ArrayRemove``/
      ``SERVER_TIMESTAMP`` within a single transaction
    - WAL mode for file databases, a shared static connection for ``:memory:``

    Args:
        database_path: Path to SQLite database file (defaults to settings.database_path)

    Example:
        >>> db = DocumentDatabase(Path("/tmp/ither.db"))
        >>> db.initialize()
        >>> db.set("c", "u1", {"nickname": "Ada"})
        >>> db.set("c", "u1", {"bio": "hi"}, merge=True)
        >>> db.get("c", "u1")
        {'nickname': 'Ada', 'bio': 'hi'}
    """

    def __init__(self, database_path: Path | str | None = None):
        self.database_path = Path(database_path or settings.database_path)
        self.engine: Engine | None = None

    @property
    def is_memory(self) -> bool:
        return str(self.database_path) == MEMORY_PATH

    @property
    def is_initialized(self) -> bool:
        return self.engine is not None

    def initialize(self) -> None:
        """Create the engine and the ``documents`` table.

        This method:
        1. Creates the parent directory for file databases
        2. Creates the engine (static pool for in-memory databases)
        3. Creates tables from SQLModel metadata
        4. Enables WAL mode for file databases
        """
        if self.engine is not None:
            return

        if self.is_memory:
            self.engine = create_engine(
                "sqlite://",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                f"sqlite:///{self.database_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )

        SQLModel.metadata.create_all(self.engine)

        if not self.is_memory:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA journal_mode = WAL;")
                conn.exec_driver_sql("PRAGMA synchronous = NORMAL;")
                conn.commit()

        logger.info(f"✅ Document database initialized at {self.database_path}")

    def close(self) -> None:
        """Dispose of the engine."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def _session(self) -> Session:
        if self.engine is None:
            raise BackendUnavailableError()
        return Session(self.engine)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, collection: str, document_id: str) -> Document | None:
        """Fetch one document body, or None when absent."""
        with self._session() as session:
            row = session.get(DocumentRow, (collection, document_id))
            return dict(row.data) if row else None

    def query(
        self,
        collection: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[tuple[str, Document]]:
        """Run an equality query over one collection.

        Args:
            collection: Full collection path
            filters: Field equality constraints, AND-composed (None matches unset fields)
            order_by: Optional single field to sort by
            descending: Reverse the sort order

        Returns:
            List of ``(document_id, document)`` pairs
        """
        with self._session() as session:
            stmt = select(DocumentRow).where(DocumentRow.collection == collection)
            for name, value in (filters or {}).items():
                column = func.json_extract(DocumentRow.data, f"$.{name}")
                value = to_jsonable_python(value)
                stmt = stmt.where(column.is_(None) if value is None else column == value)
            stmt = stmt.order_by(DocumentRow.createdAt, DocumentRow.id)
            rows = [(row.id, dict(row.data)) for row in session.exec(stmt).all()]

        if order_by:
            rows.sort(key=lambda pair: _order_key(order_by, pair[1].get(order_by)), reverse=descending)
        return rows

    def count(self, collection: str) -> int:
        with self._session() as session:
            stmt = select(func.count()).select_from(DocumentRow).where(
                DocumentRow.collection == collection
            )
            return session.exec(stmt).one()

    def collection_counts(self, prefix: str = "") -> dict[str, int]:
        """Document count per collection path starting with ``prefix``."""
        with self._session() as session:
            stmt = (
                select(DocumentRow.collection, func.count())
                .where(DocumentRow.collection.startswith(prefix))
                .group_by(DocumentRow.collection)
            )
            return {name: total for name, total in session.exec(stmt).all()}

    # =========================================================================
    # Writes
    # =========================================================================

    def add(self, collection: str, data: Update, document_id: str | None = None) -> str:
        """Insert a new document and return its id.

        ``SERVER_TIMESTAMP`` values are resolved to the write time.
        """
        document_id = document_id or new_document_id()
        now = utc_now()
        with self._session() as session:
            body = to_json_document(apply_transforms({}, encode_fields(data), now))
            session.add(
                DocumentRow(
                    collection=collection,
                    id=document_id,
                    data=body,
                    createdAt=format_iso(now),
                    updatedAt=format_iso(now),
                )
            )
            session.commit()
        logger.debug(f"Added {collection}/{document_id}")
        return document_id

    def set(self, collection: str, document_id: str, data: Update, merge: bool = False) -> None:
        """Create or overwrite a document.

        Args:
            collection: Full collection path
            document_id: Document id
            data: Document body, may contain transforms
            merge: Deep-merge into the existing document instead of replacing it
        """
        now = utc_now()
        with self._session() as session:
            row = session.get(DocumentRow, (collection, document_id))
            if row is None:
                body = to_json_document(merge_documents({}, encode_fields(data), now))
                row = DocumentRow(
                    collection=collection,
                    id=document_id,
                    data=body,
                    createdAt=format_iso(now),
                )
            elif merge:
                row.data = to_json_document(merge_documents(dict(row.data), encode_fields(data), now))
            else:
                row.data = to_json_document(apply_transforms({}, encode_fields(data), now))
            row.updatedAt = format_iso(now)
            session.add(row)
            session.commit()

    def update(self, collection: str, document_id: str, fields: Update) -> Document:
        """Apply a partial update to an existing document.

        Transforms are resolved against the stored values inside the same
        transaction, which makes ``Increment`` an atomic counter update.

        Returns:
            The updated document body

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        now = utc_now()
        with self._session() as session:
            row = session.get(DocumentRow, (collection, document_id))
            if row is None:
                raise DocumentNotFoundError(collection, document_id)
            body = to_json_document(apply_transforms(dict(row.data), encode_fields(fields), now))
            row.data = body
            row.updatedAt = format_iso(now)
            session.add(row)
            session.commit()
        return body

    def delete(self, collection: str, document_id: str) -> bool:
        """Delete a document; returns False when it did not exist."""
        with self._session() as session:
            row = session.get(DocumentRow, (collection, document_id))
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.debug(f"Deleted {collection}/{document_id}")
        return True


__all__ = ["DocumentDatabase", "new_document_id", "to_json_document", "encode_fields", "encode_value"]
