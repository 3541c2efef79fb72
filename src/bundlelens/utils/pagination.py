"""Generic windowing over an ordered sequence.

Shared by the coverage report (JS and CSS pages) and any renderer that needs
stable page metadata.  Out-of-range page indices clamp to the last valid page
so a caller asking for "page 9" of a 2-page result still sees data.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Sequence

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 5
MAX_PAGE_SIZE = 5


@dataclass(frozen=True)
class PaginationOptions:
    """Requested page window."""

    page_size: int = DEFAULT_PAGE_SIZE
    """Number of items per page (must be at least 1)."""

    page_idx: int = 0
    """0-based page index."""


@dataclass(frozen=True)
class PageResult(Generic[T]):
    """One page of items plus metadata describing where it sits."""

    items: list[T] = field(default_factory=list)
    """The items on this page."""

    start_index: int = 0
    """0-based index of the first item on the page (inclusive)."""

    end_index: int = 0
    """0-based index one past the last item on the page (exclusive)."""

    total_items: int = 0
    """Length of the full, unpaginated sequence."""

    current_page: int = 0
    """0-based index of the page actually returned (after clamping)."""

    total_pages: int = 1
    """Total number of pages; never less than 1."""

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages - 1

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 0

    def showing(self, label: str) -> str:
        """Return a 1-based, human-readable description of this window."""
        return (
            f"Showing {self.start_index + 1}-{self.end_index} of {self.total_items} {label} "
            f"(Page {self.current_page + 1} of {self.total_pages})"
        )


def paginate(items: Sequence[T], options: PaginationOptions | None = None) -> PageResult[T]:
    """Slice *items* into the page described by *options*.

    Raises:
        ValueError: If ``page_size`` is below 1 or ``page_idx`` is negative.
    """
    opts = options or PaginationOptions()
    if opts.page_size < 1:
        raise ValueError(f"page_size must be at least 1 (got: {opts.page_size})")
    if opts.page_idx < 0:
        raise ValueError(f"page_idx must be non-negative (got: {opts.page_idx})")

    total_items = len(items)
    total_pages = max(1, math.ceil(total_items / opts.page_size))
    current_page = min(opts.page_idx, total_pages - 1)

    start = current_page * opts.page_size
    end = min(start + opts.page_size, total_items)

    return PageResult(
        items=list(items[start:end]),
        start_index=start,
        end_index=end,
        total_items=total_items,
        current_page=current_page,
        total_pages=total_pages,
    )
