"""
Paginated query results.
"""

import math
from typing import Generic, List, TypeVar
from pydantic import BaseModel, ConfigDict, computed_field

from dataaccess.exceptions import InvalidPageRequest

T = TypeVar("T")


def validate_page(page_index: int, page_size: int) -> None:
    """Reject non-positive page arguments (no clamping)."""
    if page_index < 1 or page_size < 1:
        raise InvalidPageRequest(page_index, page_size)


def page_offset(page_index: int, page_size: int) -> int:
    """Rows to skip before the first row of the page (page_index is 1-based)."""
    return (page_index - 1) * page_size


class PaginatedList(BaseModel, Generic[T]):
    """One page of results plus total-count metadata."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[T]
    page_index: int
    page_size: int
    total_count: int

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @computed_field
    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 1

    @computed_field
    @property
    def has_next_page(self) -> bool:
        return self.page_index < self.total_pages
