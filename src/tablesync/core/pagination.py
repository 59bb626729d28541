"""Pagination arithmetic over a visible id list.

Pages are 0-indexed. The printed range of a page is the inclusive span of
visible-id indexes the client shows for it.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from tablesync.errors import InvalidInput
from tablesync.models import PaginationChange

logger = logging.getLogger(__name__)


def check_view(page_size: int, page: int = 0) -> None:
    """Validate page size and page number.

    Raises:
        InvalidInput: If page_size is not positive or page is negative
    """
    if not isinstance(page_size, int) or isinstance(page_size, bool) or page_size <= 0:
        raise InvalidInput(f"Page size must be a positive integer, got {page_size!r}", data="pageSize")
    if not isinstance(page, int) or isinstance(page, bool) or page < 0:
        raise InvalidInput(f"Page must be a non-negative integer, got {page!r}", data="page")


def page_count(n_visible: int, page_size: int) -> int:
    """Number of pages needed to show ``n_visible`` rows."""
    check_view(page_size)
    return math.ceil(n_visible / page_size)


def printed_range(n_visible: int, page_size: int, page: int) -> Tuple[int, int]:
    """Inclusive (begin, end) indexes shown on ``page``.

    ``end`` is clamped to the last visible index, so on an empty or
    past-the-end page ``end < begin``.
    """
    check_view(page_size, page)
    begin = page * page_size
    end = min((page + 1) * page_size - 1, n_visible - 1)
    return begin, end


def page_of(position: int, page_size: int) -> int:
    """Page that shows the visible index ``position``."""
    check_view(page_size)
    return position // page_size


def clamp_page(n_visible: int, page_size: int, page: int) -> int:
    """Step back one page when ``page`` no longer shows any row."""
    begin, end = printed_range(n_visible, page_size, page)
    if end < begin:
        return max(page - 1, 0)
    return page


def page_numbers_text(page: int, n_pages: int) -> str:
    """Pager label, e.g. ``Page 2 of 5``."""
    if n_pages == 0:
        return ""
    return f"Page {page + 1} of {n_pages}"


def pagination_delta(
    old_count: int, new_visible_ids: Sequence[str], page_size: int, page: int
) -> Optional[PaginationChange]:
    """Pagination change record, or None when the page count is unchanged.

    Args:
        old_count: Page count before the mutation
        new_visible_ids: Visible ids after the mutation
        page_size: Rows per page
        page: Page the client was showing

    Returns:
        PaginationChange with the effective page, or None
    """
    new_count = page_count(len(new_visible_ids), page_size)
    if new_count == old_count:
        return None

    effective_page = clamp_page(len(new_visible_ids), page_size, page)
    logger.debug(
        f"Page count changed {old_count} -> {new_count}, page {page} -> {effective_page}"
    )
    return PaginationChange(
        page=effective_page,
        page_count=new_count,
        page_numbers_text=page_numbers_text(effective_page, new_count),
    )


def page_ids(visible_ids: List[str], page_size: int, page: int) -> List[str]:
    """Slice of ``visible_ids`` shown on ``page``."""
    begin, end = printed_range(len(visible_ids), page_size, page)
    return visible_ids[begin:end + 1]
