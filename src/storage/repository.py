"""Storage for extracted customs agent cards.

Callers depend on the :class:`CarnetRepository` protocol; the in-memory
implementation is the default backend.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from src.documents.carnet import CarnetAduanero
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoredCarnet:
    """A carnet record together with its storage identity."""

    id: int
    record: CarnetAduanero
    created_at: datetime = field(default_factory=datetime.now)


class CarnetRepository(Protocol):
    """Operations the API and CLI need from carnet storage."""

    def add(self, record: CarnetAduanero) -> StoredCarnet: ...

    def get(self, carnet_id: int) -> StoredCarnet | None: ...

    def list(
        self, page: int = 1, page_size: int = 20, search: str | None = None
    ) -> list[StoredCarnet]: ...

    def delete(self, carnet_id: int) -> bool: ...

    def exists_by_number(self, numero_carne: str) -> bool: ...

    def count(self) -> int: ...

    def statistics(self) -> dict[str, int]: ...


def _matches(stored: StoredCarnet, needle: str) -> bool:
    record = stored.record
    haystacks = (record.nombre_completo, record.rut, record.numero_carne)
    return any(value and needle in value.lower() for value in haystacks)


class InMemoryCarnetRepository:
    """Thread-safe carnet storage kept in a dict.

    Ids start at 1 and are never reused.
    """

    def __init__(self) -> None:
        self._items: dict[int, StoredCarnet] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def add(self, record: CarnetAduanero) -> StoredCarnet:
        with self._lock:
            stored = StoredCarnet(id=self._next_id, record=record)
            self._items[stored.id] = stored
            self._next_id += 1
        logger.info("Stored carnet %d (%s)", stored.id, record.numero_carne)
        return stored

    def get(self, carnet_id: int) -> StoredCarnet | None:
        with self._lock:
            return self._items.get(carnet_id)

    def list(
        self, page: int = 1, page_size: int = 20, search: str | None = None
    ) -> list[StoredCarnet]:
        """Return one page of carnets, newest first.

        Args:
            page: 1-based page number.
            page_size: Items per page.
            search: Case-insensitive substring matched against the
                holder name, RUT, and card number.

        Returns:
            The requested page, possibly empty.
        """
        with self._lock:
            items = list(self._items.values())
        if search:
            needle = search.lower()
            items = [s for s in items if _matches(s, needle)]
        items.sort(key=lambda s: (s.created_at, s.id), reverse=True)
        start = max(page - 1, 0) * page_size
        return items[start : start + page_size]

    def delete(self, carnet_id: int) -> bool:
        with self._lock:
            removed = self._items.pop(carnet_id, None)
        if removed is not None:
            logger.info("Deleted carnet %d", carnet_id)
        return removed is not None

    def exists_by_number(self, numero_carne: str) -> bool:
        with self._lock:
            return any(s.record.numero_carne == numero_carne for s in self._items.values())

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def statistics(self) -> dict[str, int]:
        """Count stored carnets by validity."""
        with self._lock:
            total = len(self._items)
            valid = sum(1 for s in self._items.values() if s.record.valid)
        return {"total": total, "valid": valid, "invalid": total - valid}


def create_repository(backend: str = "memory") -> CarnetRepository:
    """Build the storage backend named in the configuration.

    Raises:
        ValueError: If the backend is unknown.
    """
    if backend == "memory":
        return InMemoryCarnetRepository()
    raise ValueError(f"Unknown storage backend: {backend}")
