"""Snapshot store: in-memory index with full atomic rewrite on every mutation."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Generic, TypeVar

from mnemo.core.errors import ErrorCode, StoreError, atomic_write

T = TypeVar("T")


class SnapshotStore(ABC, Generic[T]):
    """File-backed store holding every record in an insertion-ordered dict.

    The whole collection is re-serialized after each mutating call, so the
    file on disk is always a consistent snapshot. Subclasses define the
    on-disk encoding.
    """

    kind = "record"

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._items: dict[str, T] = {}
        self.load()

    @abstractmethod
    def _key(self, item: T) -> str: ...

    @abstractmethod
    def _encode(self, items: list[T]) -> str: ...

    @abstractmethod
    def _decode(self, text: str) -> list[T]: ...

    def load(self) -> None:
        """(Re)load from disk. A missing file yields an empty store."""
        self._items = {}
        if not self.path.exists():
            return
        try:
            text = self.path.read_text()
        except OSError as exc:
            raise StoreError(
                f"Failed to read {self.path.name}: {exc}",
                ErrorCode.OBSERVATION_STORE_FAILED,
                {"path": str(self.path)},
            ) from exc
        if not text.strip():
            return
        try:
            items = self._decode(text)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StoreError(
                f"Failed to parse {self.path.name}: invalid format",
                ErrorCode.OBSERVATION_STORE_FAILED,
                {"path": str(self.path), "error": str(exc)},
            ) from exc
        for item in items:
            self._items[self._key(item)] = item

    def save(self) -> None:
        try:
            atomic_write(self.path, self._encode(list(self._items.values())))
        except OSError as exc:
            raise StoreError(
                f"Failed to write {self.path.name}: {exc}",
                ErrorCode.FILE_WRITE_FAILED,
                {"path": str(self.path)},
            ) from exc

    def _commit(self) -> None:
        """Persist the index; on failure reload so memory matches disk again."""
        try:
            self.save()
        except StoreError:
            self.load()
            raise

    def count(self) -> int:
        return len(self._items)

    def clear(self) -> None:
        self._items.clear()
        self._commit()

    def get_by_id(self, item_id: str) -> T | None:
        return self._items.get(item_id)

    def get_all(self) -> list[T]:
        return list(self._items.values())

    def filter(self, predicate: Callable[[T], bool]) -> list[T]:
        return [item for item in self._items.values() if predicate(item)]

    def delete(self, item_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""
        if item_id not in self._items:
            return False
        del self._items[item_id]
        self._commit()
        return True

    def _require(self, item_id: str) -> T:
        item = self._items.get(item_id)
        if item is None:
            raise StoreError(
                f"{self.kind.capitalize()} not found: {item_id}",
                ErrorCode.OBSERVATION_STORE_FAILED,
                {"id": item_id},
            )
        return item

    def _put(self, item: T) -> T:
        self._items[self._key(item)] = item
        self._commit()
        return item

    def _put_many(self, items: Iterable[T]) -> list[T]:
        stored = []
        for item in items:
            self._items[self._key(item)] = item
            stored.append(item)
        self._commit()
        return stored


def dump_versioned(collection: str, records: list[dict]) -> str:
    """Serialize records as ``{"version": 1, collection: [...]}``."""
    return json.dumps({"version": 1, collection: records}, indent=2)


def load_versioned(text: str, collection: str) -> list[dict]:
    data = json.loads(text)
    if not isinstance(data, dict) or not isinstance(data.get(collection), list):
        raise ValueError(f"expected an object with a {collection!r} list")
    return data[collection]
