"""
Cache key derivation for the task cache.

Keys are pure functions of their inputs. Optional segments always appear in
the same order, so two logically identical queries map to the same key no
matter how the request was assembled.

Layout::

    task:<id>
    tasks:list[:status:<s>][:priority:<p>][:user:<id>][:sort:<field>:<dir>]:page:<n>:size:<n>
    tasks:user:<owner>[:status:<s>][:priority:<p>][:sort:<field>:<dir>]:page:<n>:size:<n>
"""

from typing import List, Optional

from ..models import SortSpec, TaskFilter

DELIMITER = ":"
TASK_PREFIX = "task"
LIST_PREFIX = "tasks:list"
OWNER_PREFIX = "tasks:user"

_GLOB_SPECIALS = "\\*?[]"


def task_key(task_id: str) -> str:
    return f"{TASK_PREFIX}{DELIMITER}{task_id}"


def page_key(
    task_filter: TaskFilter,
    page: int,
    page_size: int,
    sort: Optional[SortSpec] = None,
    owner: Optional[str] = None
) -> str:
    """Key for one page of a list query.

    ``owner`` selects the owner-scoped purpose; the filter's own ``user_id``
    is then redundant and left out.
    """
    segments: List[str] = []

    if owner is not None:
        segments.append(OWNER_PREFIX)
        segments.append(owner)
    else:
        segments.append(LIST_PREFIX)

    if task_filter.status is not None:
        segments.append(f"status{DELIMITER}{task_filter.status.value}")
    if task_filter.priority is not None:
        segments.append(f"priority{DELIMITER}{task_filter.priority.value}")
    if owner is None and task_filter.user_id is not None:
        segments.append(f"user{DELIMITER}{task_filter.user_id}")
    if sort is not None and sort.field:
        direction = "desc" if sort.descending else "asc"
        segments.append(f"sort{DELIMITER}{sort.field}{DELIMITER}{direction}")

    segments.append(f"page{DELIMITER}{page}")
    segments.append(f"size{DELIMITER}{page_size}")

    return DELIMITER.join(segments)


def owner_pages_prefix(owner: str) -> str:
    """Prefix shared by every owner-scoped page key of ``owner``."""
    return f"{OWNER_PREFIX}{DELIMITER}{owner}{DELIMITER}"


def owner_pages_pattern(owner: str) -> str:
    """Redis glob matching every owner-scoped page key of ``owner``."""
    escaped = "".join(f"\\{char}" if char in _GLOB_SPECIALS else char for char in owner_pages_prefix(owner))
    return f"{escaped}*"
