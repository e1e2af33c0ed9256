"""Point-in-time board copies keyed by action card token."""

from __future__ import annotations

import copy
import logging

from .domain import Factory
from .repository import InMemoryRepository, RecordNotFoundError

logger = logging.getLogger(__name__)


class SnapshotNotFoundError(RecordNotFoundError):
    """Raised when no snapshot was ever taken for a token."""


class SnapshotRegistry:
    """Stores deep copies of the board taken right before a card is applied.

    Restoring does not consume the snapshot, so undoing the same token twice
    lands on the same board both times.
    """

    def __init__(self) -> None:
        self._snapshots: InMemoryRepository[Factory] = InMemoryRepository(
            "Snapshot", not_found_error=SnapshotNotFoundError
        )

    def __contains__(self, token: object) -> bool:
        return token in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)

    def snapshot(self, token: str, factory: Factory) -> None:
        self._snapshots.upsert(token, copy.deepcopy(factory))
        logger.debug("Snapshot stored for %s", token)

    def restore(self, token: str) -> Factory:
        return copy.deepcopy(self._snapshots.get(token))

    def discard(self, token: str) -> None:
        self._snapshots.remove(token)


__all__ = ["SnapshotRegistry", "SnapshotNotFoundError"]
