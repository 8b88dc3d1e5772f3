"""Composable search predicates.

Every factory returns ``None`` when its filter value is absent, and
``all_of`` drops ``None`` entries, so callers can pass optional search
parameters straight through.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from enum import Enum
from typing import Any

from clinic_core.utils.time import ensure_aware

Predicate = Callable[[Any], bool]


def all_of(*predicates: Predicate | None) -> Predicate:
    """Conjunction of the given predicates (empty means match everything)."""
    active = [p for p in predicates if p is not None]

    def predicate(item: Any) -> bool:
        return all(p(item) for p in active)

    return predicate


def field_equals(field_name: str, value: Any) -> Predicate | None:
    """Match items whose ``field_name`` equals ``value``."""
    if value is None:
        return None

    def predicate(item: Any) -> bool:
        return getattr(item, field_name) == value

    return predicate


def status_in(statuses: Iterable[Enum | str] | None, field_name: str = "status") -> Predicate | None:
    """Match items whose status is in the given set."""
    if statuses is None:
        return None
    wanted = {s.value if isinstance(s, Enum) else s for s in statuses}
    if not wanted:
        return None

    def predicate(item: Any) -> bool:
        value = getattr(item, field_name)
        return (value.value if isinstance(value, Enum) else value) in wanted

    return predicate


def date_range(
    field_name: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Predicate | None:
    """Match items whose datetime field lies in [start, end] (both inclusive)."""
    if start is None and end is None:
        return None
    lower = ensure_aware(start) if start is not None else None
    upper = ensure_aware(end) if end is not None else None

    def predicate(item: Any) -> bool:
        value = getattr(item, field_name)
        if value is None:
            return False
        if lower is not None and value < lower:
            return False
        if upper is not None and value > upper:
            return False
        return True

    return predicate


def text_match(term: str | None, fields: Sequence[Callable[[Any], Any]]) -> Predicate | None:
    """Case-insensitive substring match against a fixed set of fields.

    Each accessor may return a string, None, or an iterable of strings.
    """
    if not term:
        return None
    needle = term.lower()

    def matches(value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, str):
            return needle in value.lower()
        if isinstance(value, Iterable):
            return any(matches(v) for v in value)
        return needle in str(value).lower()

    def predicate(item: Any) -> bool:
        return any(matches(accessor(item)) for accessor in fields)

    return predicate
