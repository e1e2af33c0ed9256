"""Simple in-memory repositories used by the board service layer."""

from __future__ import annotations

from typing import Generic, Iterator, List, MutableMapping, Type, TypeVar

T = TypeVar("T")


class RepositoryError(RuntimeError):
    """Base exception for repository errors."""


class DuplicateRecordError(RepositoryError):
    """Raised when attempting to insert a record that already exists."""


class RecordNotFoundError(RepositoryError):
    """Raised when a requested record is missing."""


class InMemoryRepository(Generic[T]):
    """Generic repository backed by a simple dictionary.

    ``label`` names the record type in error messages and ``not_found_error``
    is raised for missing ids.
    """

    def __init__(
        self,
        label: str = "Record",
        not_found_error: Type[RecordNotFoundError] = RecordNotFoundError,
    ) -> None:
        self._items: MutableMapping[str, T] = {}
        self._label = label
        self.not_found_error = not_found_error

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item_id: str, item: T) -> None:
        if item_id in self._items:
            raise DuplicateRecordError(f"{self._label} with id {item_id!r} already exists")
        self._items[item_id] = item

    def upsert(self, item_id: str, item: T) -> None:
        self._items[item_id] = item

    def get(self, item_id: str) -> T:
        try:
            return self._items[item_id]
        except KeyError as exc:
            raise self.not_found_error(f"{self._label} with id {item_id!r} not found") from exc

    def remove(self, item_id: str) -> None:
        if item_id not in self._items:
            raise self.not_found_error(f"{self._label} with id {item_id!r} not found")
        del self._items[item_id]

    def list(self) -> List[T]:
        return list(self._items.values())

    def __iter__(self) -> Iterator[T]:
        return iter(self._items.values())


__all__ = [
    "InMemoryRepository",
    "RepositoryError",
    "DuplicateRecordError",
    "RecordNotFoundError",
]
