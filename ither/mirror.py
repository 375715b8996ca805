"""Local storage and the local mirror of user-created records.

``LocalStorage`` is the durable key/value store used in mock mode: one JSON
file per key under ``settings.local_storage_dir``, or a plain dict when no
directory is configured (testing profile).

``LocalMirror`` holds the records a user created in mock mode for one entity
type. Mirrors with a storage key are written back after every change and
reloaded at initialization; the others live for the session only.

Example:
    >>> storage = LocalStorage(Path("./data/local_storage"))
    >>> mirror = LocalMirror(Mentorship, storage, MENTORSHIPS_KEY)
    >>> mirror.load()
    0
    >>> mirror.add(mentorship)
    >>> merged = merge_for_read(seed, mirror.records)
"""

import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from ither.logging import logger
from ither.query import dedupe_by_id

T = TypeVar("T", bound=BaseModel)

# Persisted keys, one JSON array per key
MENTORSHIPS_KEY = "ither-mentorships"
MENTOR_PROFILE_KEY = "ither-mentor-profile"
MENTEE_PROFILE_KEY = "ither-mentee-profile"
USER_PROFILE_KEY = "ither-user-profile"

STORAGE_KEYS = (MENTORSHIPS_KEY, MENTOR_PROFILE_KEY, MENTEE_PROFILE_KEY, USER_PROFILE_KEY)


class LocalStorage:
    """String key/value storage persisted as files.

    Args:
        directory: Folder holding ``{key}.json`` files, or None for memory only
    """

    def __init__(self, directory: Path | None = None):
        self.directory = directory
        self._memory: dict[str, str] = {}

    def _path(self, key: str) -> Path:
        assert self.directory is not None
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        if self.directory is None:
            return self._memory.get(key)
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        if self.directory is None:
            self._memory[key] = value
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def remove_item(self, key: str) -> None:
        if self.directory is None:
            self._memory.pop(key, None)
            return
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        if self.directory is None:
            return sorted(self._memory)
        if not self.directory.exists():
            return []
        return sorted(path.stem for path in self.directory.glob("*.json"))

    def load_json(self, key: str, default: Any = None) -> Any:
        """Decode a stored value; unreadable JSON is logged and treated as absent."""
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"⚠️  Ignoring corrupt local storage key {key}: {e}")
            return default

    def save_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))


class LocalMirror(Generic[T]):
    """In-memory list of locally created records for one entity type.

    Args:
        model: Pydantic record class stored in this mirror
        storage: Durable storage (None keeps the mirror in memory only)
        key: Storage key (required for persistence)

    Example:
        >>> mirror = LocalMirror(ForumPost)
        >>> mirror.add(post)
        >>> mirror.find(post.id) is post
        True
    """

    def __init__(self, model: type[T], storage: LocalStorage | None = None, key: str | None = None):
        self.model = model
        self.storage = storage
        self.key = key
        self.records: list[T] = []

    @property
    def persistent(self) -> bool:
        return self.storage is not None and self.key is not None

    def load(self) -> int:
        """Reload records from storage, replacing the in-memory list.

        Returns:
            Number of records loaded
        """
        if not self.persistent:
            return len(self.records)

        raw = self.storage.load_json(self.key, default=[])  # type: ignore[union-attr]
        loaded: list[T] = []
        for item in raw if isinstance(raw, list) else []:
            try:
                loaded.append(self.model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"⚠️  Skipping invalid {self.key} entry: {e.error_count()} errors")
        self.records = loaded
        return len(loaded)

    def save(self) -> None:
        if not self.persistent:
            return
        payload = [record.model_dump(mode="json") for record in self.records]
        self.storage.save_json(self.key, payload)  # type: ignore[union-attr]

    def add(self, record: T) -> None:
        self.records.append(record)
        self.save()

    def find(self, record_id: str) -> T | None:
        for record in self.records:
            if getattr(record, "id", None) == record_id:
                return record
        return None

    def remove(self, record_id: str) -> bool:
        """Splice a record out of the mirror."""
        for index, record in enumerate(self.records):
            if getattr(record, "id", None) == record_id:
                del self.records[index]
                self.save()
                return True
        return False

    def __iter__(self) -> Iterator[T]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, record_id: object) -> bool:
        return self.find(record_id) is not None  # type: ignore[arg-type]


def merge_for_read(*sources: Iterable[T]) -> list[T]:
    """Concatenate sources in order and de-duplicate by id (first one wins).

    Sources go in precedence order; mock stores pass seed records, then
    mirror records.

    Example:
        >>> [r.id for r in merge_for_read([a1, b1], [b2, c1])]
        ['a', 'b', 'c']  # b1 kept, b2 dropped
    """
    return dedupe_by_id(record for source in sources for record in source)


__all__ = [
    "LocalStorage",
    "LocalMirror",
    "merge_for_read",
    "MENTORSHIPS_KEY",
    "MENTOR_PROFILE_KEY",
    "MENTEE_PROFILE_KEY",
    "USER_PROFILE_KEY",
    "STORAGE_KEYS",
]
