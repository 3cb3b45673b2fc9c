from __future__ import annotations

from pydantic import BaseModel

MAX_PAGE_SIZE = 100


def page_window(page: int, limit: int) -> tuple[int, int]:
    """Clamp page/limit query values and return ``(offset, limit)``."""
    page = max(1, int(page))
    limit = max(1, min(MAX_PAGE_SIZE, int(limit)))
    return (page - 1) * limit, limit


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        page = max(1, page)
        total_pages = (total + limit - 1) // limit if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )
