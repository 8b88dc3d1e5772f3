"""In-memory repository backed by a dict keyed by entity id.

The repository is the single source of truth for every entity. Callers
receive deep copies; the only way to change stored state is through
``add``, ``upsert`` or ``update``, each of which bumps ``version``.
Writes to the same id are serialised by a per-id lock, and an optional
``expected_version`` turns a write into a compare-and-swap.
"""

import logging
import math
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

import pydantic

from clinic_core.core.errors import ConflictError, NotFoundError, ValidationError
from clinic_core.models.common import Entity

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)

SortDirection = Literal["asc", "desc"]
SortKey = str | Callable[[Any], Any] | None


@dataclass
class Page(Generic[T]):
    """One page of a filtered, sorted result set."""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return math.ceil(self.total / self.page_size)


class InMemoryRepository(Generic[T]):
    """Generic store for one entity type."""

    def __init__(self, model: type[T], entity_type: str | None = None) -> None:
        self.model = model
        self.entity_type = entity_type or model.__name__
        self._items: dict[str, T] = {}
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._items)

    def _lock_for(self, entity_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(entity_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[entity_id] = lock
            return lock

    def get(self, entity_id: str) -> T | None:
        """Return a copy of the entity, or None if unknown."""
        with self._guard:
            item = self._items.get(entity_id)
        return item.model_copy(deep=True) if item is not None else None

    def find(self, entity_id: str) -> T:
        """Return a copy of the entity or raise NotFoundError."""
        item = self.get(entity_id)
        if item is None:
            raise NotFoundError(self.entity_type, entity_id)
        return item

    def all(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        """Unpaged snapshot of the stored entities, optionally filtered."""
        with self._guard:
            snapshot = list(self._items.values())
        return [
            item.model_copy(deep=True)
            for item in snapshot
            if predicate is None or predicate(item)
        ]

    def add(self, entity: T) -> T:
        """Insert a new entity. Duplicate ids are a conflict."""
        with self._lock_for(entity.id):
            if self.get(entity.id) is not None:
                raise ConflictError(f"{self.entity_type} already exists: {entity.id}")
            return self._write(entity, version=1)

    def upsert(self, entity: T, expected_version: int | None = None) -> T:
        """Insert or replace an entity.

        When ``expected_version`` is given the write only succeeds if the
        stored version still matches it.
        """
        with self._lock_for(entity.id):
            current = self.get(entity.id)
            current_version = current.version if current is not None else 0
            if expected_version is not None and expected_version != current_version:
                raise ConflictError(
                    f"{self.entity_type} {entity.id} was modified concurrently",
                    details={"expected_version": expected_version, "current_version": current_version},
                )
            return self._write(entity, version=current_version + 1)

    def update(
        self,
        entity_id: str,
        mutate: Callable[[T], T],
        expected_version: int | None = None,
    ) -> T:
        """Read-modify-write inside the entity's critical section.

        ``mutate`` receives a private copy. If it raises, nothing is
        written and the exception propagates.
        """
        with self._lock_for(entity_id):
            current = self.find(entity_id)
            if expected_version is not None and expected_version != current.version:
                raise ConflictError(
                    f"{self.entity_type} {entity_id} was modified concurrently",
                    details={"expected_version": expected_version, "current_version": current.version},
                )
            updated = mutate(current)
            if updated.id != entity_id:
                raise ValidationError("Entity id cannot change during update")
            return self._write(updated, version=current.version + 1)

    def search(
        self,
        predicate: Callable[[T], bool] | None = None,
        sort_key: SortKey = None,
        sort_direction: SortDirection = "asc",
        page: int = 1,
        page_size: int = 20,
    ) -> Page[T]:
        """Filter, sort and page the stored entities.

        ``total`` is the filtered count before paging. A page past the end
        is empty. Ties on the sort key are broken by id so results are
        reproducible across calls.
        """
        if page < 1:
            raise ValidationError("page must be >= 1")
        if page_size < 1:
            raise ValidationError("page_size must be >= 1")
        if sort_direction not in ("asc", "desc"):
            raise ValidationError(f"Unknown sort direction: {sort_direction}")

        with self._guard:
            snapshot = list(self._items.values())

        filtered = [item for item in snapshot if predicate is None or predicate(item)]
        ordered = self._sort(filtered, sort_key, sort_direction)

        start = (page - 1) * page_size
        items = [item.model_copy(deep=True) for item in ordered[start : start + page_size]]
        return Page(items=items, total=len(filtered), page=page, page_size=page_size)

    def _sort(self, items: list[T], sort_key: SortKey, sort_direction: SortDirection) -> list[T]:
        ordered = sorted(items, key=lambda item: item.id)
        if sort_key is None:
            return ordered

        if isinstance(sort_key, str):
            if sort_key not in self.model.model_fields:
                raise ValidationError(f"Cannot sort {self.entity_type} by '{sort_key}'")
            field_name = sort_key

            def accessor(item: T) -> Any:
                return getattr(item, field_name)

        else:
            accessor = sort_key

        def key(item: T) -> tuple[bool, Any]:
            value = accessor(item)
            # None sorts before any value when ascending
            return (value is not None, value if value is not None else 0)

        # sorted() is stable with reverse=True, so id order survives on ties
        return sorted(ordered, key=key, reverse=sort_direction == "desc")

    def _write(self, entity: T, version: int) -> T:
        try:
            stored = self.model.model_validate(entity.model_dump())
        except pydantic.ValidationError as exc:
            raise ValidationError(
                f"Invalid {self.entity_type}: {exc.errors()[0]['msg']}",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc
        stored.version = version
        with self._guard:
            self._items[stored.id] = stored
        logger.debug(f"Stored {self.entity_type} {stored.id} v{version}")
        return stored.model_copy(deep=True)
