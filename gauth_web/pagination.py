"""Page/limit normalization shared by list endpoints."""

from typing import Tuple

from pydantic import BaseModel

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=(total + limit - 1) // limit,
            total_items=total,
            items_per_page=limit,
        )


def normalize_page(page: int, limit: int) -> Tuple[int, int, int]:
    """
    Clamp paging input.

    page below 1 becomes 1; limit outside 1..MAX_LIMIT falls back to
    DEFAULT_LIMIT.

    Returns:
        (page, limit, offset)
    """
    if page < 1:
        page = 1
    if limit < 1 or limit > MAX_LIMIT:
        limit = DEFAULT_LIMIT
    return page, limit, (page - 1) * limit
