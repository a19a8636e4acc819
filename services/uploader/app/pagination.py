"""
Page window calculation for the upload history table.

page_window() decides which page-number controls to render: every page when
they all fit, otherwise the first and last page, the current page with its
siblings, and "..." markers for the gaps.

    >>> page_window(10, 1)
    [1, 2, 3, 4, 5, '...', 10]
    >>> page_window(10, 5)
    [1, '...', 4, 5, 6, '...', 10]
    >>> page_window(10, 10)
    [1, '...', 6, 7, 8, 9, 10]
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, TypeVar, Union

DOTS = "..."
SIBLING_COUNT = 1        # pages shown on each side of the current page
DEFAULT_PAGE_SIZE = 5

PageToken = Union[int, str]
T = TypeVar("T")


def total_pages(total_items: int, page_size: int) -> int:
    """Number of pages needed for total_items; 0 for an empty list."""
    if page_size < 1:
        raise ValueError("page_size must be a positive integer")
    return math.ceil(max(0, total_items) / page_size)


def page_window(total_pages: int, current_page: int, sibling_count: int = SIBLING_COUNT) -> List[PageToken]:
    """
    Return the ordered page tokens (page numbers and DOTS) to render.

    total_page_numbers is first + last + current + 2*siblings + one DOTS
    slot, i.e. sibling_count + 5. Up to that many pages are shown in full.
    """
    total_page_numbers = sibling_count + 5

    if total_page_numbers >= total_pages:
        return list(range(1, total_pages + 1))

    left_sibling = max(current_page - sibling_count, 1)
    right_sibling = min(current_page + sibling_count, total_pages)

    show_left_dots = left_sibling > 2
    show_right_dots = right_sibling < total_pages - 1

    edge_count = 3 + 2 * sibling_count

    if not show_left_dots and show_right_dots:
        return [*range(1, edge_count + 1), DOTS, total_pages]

    if show_left_dots and not show_right_dots:
        return [1, DOTS, *range(total_pages - edge_count + 1, total_pages + 1)]

    if show_left_dots and show_right_dots:
        return [1, DOTS, *range(left_sibling, right_sibling + 1), DOTS, total_pages]

    # Unreachable for 1 <= current_page <= total_pages
    return []


@dataclass
class PaginationState:
    """
    Current page over a list of total_items, page_size per page.

    Keeps 1 <= current_page <= max(1, total_pages).
    """
    total_items: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    current_page: int = 1

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be a positive integer")
        self.total_items = max(0, self.total_items)
        self._clamp()

    @property
    def total_pages(self) -> int:
        return total_pages(self.total_items, self.page_size)

    def paginate(self, target_page: int) -> bool:
        """Move to target_page if it exists. Out-of-range requests are ignored."""
        if 1 <= target_page <= self.total_pages:
            self.current_page = target_page
            return True
        return False

    def update_total(self, total_items: int) -> None:
        """Re-evaluate after the list changed size (e.g. history refetched)."""
        self.total_items = max(0, total_items)
        self._clamp()

    def window(self) -> List[PageToken]:
        return page_window(self.total_pages, self.current_page)

    def page_slice(self, items: Sequence[T]) -> List[T]:
        last = self.current_page * self.page_size
        first = last - self.page_size
        return list(items[first:last])

    def _clamp(self) -> None:
        self.current_page = min(max(1, self.current_page), max(1, self.total_pages))
