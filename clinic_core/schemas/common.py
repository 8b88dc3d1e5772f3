"""Shared request/response schemas."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from clinic_core.repository import Page

T = TypeVar("T")


class PageResponse(BaseModel, Generic[T]):
    """One page of search results."""

    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page) -> "PageResponse[T]":
        return cls(
            items=page.items,
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            total_pages=page.total_pages,
        )


class ErrorResponse(BaseModel):
    """Error body returned for engine errors."""

    detail: str
    code: str


class VersionedRequest(BaseModel):
    """Base for mutating requests; ``expected_version`` enables compare-and-swap."""

    expected_version: int | None = Field(None, ge=1)


class CancelRequest(VersionedRequest):
    """Request to cancel an entity."""

    reason: str | None = Field(None, max_length=2000)
