"""
Paging policy shared by the list endpoints.
"""

from typing import Optional, Tuple

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def clamp_pagination(page: Optional[int], page_size: Optional[int]) -> Tuple[int, int]:
    """Apply the paging policy: page >= 1, 1 <= page_size <= 100, default 10."""
    if not page or page < 1:
        page = 1
    if not page_size or page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    elif page_size > MAX_PAGE_SIZE:
        page_size = MAX_PAGE_SIZE
    return page, page_size
