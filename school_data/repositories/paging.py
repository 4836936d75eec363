from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, Tuple, TypeVar

T = TypeVar("T")
U = TypeVar("U")


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class PagedResult(Generic[T]):
    """
    One page of a filtered, ordered query.

    Attributes:
      items: the rows of this page, at most page_size of them
      total_count: number of rows matching the filter, ignoring paging
      page_index: zero-based page index
      page_size: requested page size
    """

    items: Tuple[T, ...]
    total_count: int
    page_index: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0

    @property
    def has_next(self) -> bool:
        return (self.page_index + 1) * self.page_size < self.total_count

    def map(self, fn: Callable[[T], U]) -> "PagedResult[U]":
        """Return a new page with ``fn`` applied to every item, metadata unchanged."""
        return PagedResult(
            items=tuple(fn(item) for item in self.items),
            total_count=self.total_count,
            page_index=self.page_index,
            page_size=self.page_size,
        )

    def __len__(self) -> int:
        return len(self.items)
