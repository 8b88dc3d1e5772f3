"""Repository and query engine."""

from clinic_core.repository.filters import all_of, date_range, field_equals, status_in, text_match
from clinic_core.repository.memory import InMemoryRepository, Page

__all__ = [
    "InMemoryRepository",
    "Page",
    "all_of",
    "date_range",
    "field_equals",
    "status_in",
    "text_match",
]
