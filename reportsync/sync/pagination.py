"""Read-only pagination over the items of a section."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class PageWindow:
    """Visible slice ``[start, end)`` of item indexes for one page."""

    page: int
    total_pages: int
    items_per_page: int
    start: int
    end: int

    @property
    def indexes(self) -> range:
        return range(self.start, self.end)


def total_pages(item_count: int, items_per_page: int = 1) -> int:
    if items_per_page < 1:
        raise ValueError(f"items_per_page must be >= 1, got {items_per_page}")
    return max(1, math.ceil(max(item_count, 0) / items_per_page))


def paginate(item_count: int, current_page: int, items_per_page: int = 1) -> PageWindow:
    """Clamp ``current_page`` into range and return its item window."""

    pages = total_pages(item_count, items_per_page)
    page = min(max(current_page, 1), pages)
    start = (page - 1) * items_per_page
    end = min(start + items_per_page, max(item_count, 0))
    return PageWindow(
        page=page,
        total_pages=pages,
        items_per_page=items_per_page,
        start=start,
        end=max(end, start),
    )


def page_after_count_change(
    old_count: int, new_count: int, current_page: int, items_per_page: int = 1
) -> int:
    """Page to show after a resize.

    Growing jumps to the page holding the new last item; shrinking clamps a
    page that no longer exists to the new last page.
    """

    if new_count > old_count:
        return total_pages(new_count, items_per_page)
    if new_count < old_count:
        return min(current_page, total_pages(new_count, items_per_page))
    return current_page
