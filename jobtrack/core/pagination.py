"""Page slicing shared by the opportunity table and the activity log."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of a derived list plus the numbers a pager needs."""

    items: list[T]
    page: int
    page_size: int
    total_items: int
    total_pages: int

    @property
    def first_index(self) -> int:
        """1-based position of the first item on this page (0 when empty)."""
        return (self.page - 1) * self.page_size + 1 if self.items else 0

    @property
    def last_index(self) -> int:
        return self.first_index + len(self.items) - 1 if self.items else 0


def paginate(items: list[T], page: int, page_size: int) -> Page[T]:
    """Slice *items* for a 1-based *page*, clamping out-of-range pages."""
    if page_size < 1:
        msg = f"page_size must be positive, got {page_size}"
        raise ValueError(msg)
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size
    return Page(
        items=items[start:start + page_size],
        page=page,
        page_size=page_size,
        total_items=len(items),
        total_pages=total_pages,
    )
