"""
Task store interface.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models import SortSpec, Task, TaskFilter

SORTABLE_FIELDS = ("title", "status", "priority", "due_date", "created_at", "updated_at")
DEFAULT_SORT = ("created_at", True)


def resolve_sort(sort: Optional[SortSpec]) -> Tuple[str, bool]:
    """Map a requested sort onto the allow-list.

    Returns ``(column, descending)``. No sort, or an unknown column, means
    newest first.
    """
    if sort is None or not sort.field:
        return DEFAULT_SORT
    if sort.field not in SORTABLE_FIELDS:
        return DEFAULT_SORT
    return sort.field, sort.descending


class TaskStore(ABC):
    """Relational persistence for tasks.

    Owner-scoped reads and deletes treat an owner mismatch exactly like a
    missing record.
    """

    async def start(self):
        """Open connections."""

    async def stop(self):
        """Close connections."""

    async def ping(self) -> bool:
        return True

    @abstractmethod
    async def create(self, task: Task) -> Task:
        """Persist a new task, filling id and timestamps when missing."""

    @abstractmethod
    async def get(self, task_id: str, user_id: Optional[str] = None) -> Optional[Task]:
        """Fetch a task, optionally scoped to its owner."""

    @abstractmethod
    async def update(self, task: Task) -> Optional[Task]:
        """Replace the mutable fields of a task. ``None`` if the id is unknown."""

    @abstractmethod
    async def delete(self, task_id: str, user_id: Optional[str] = None) -> bool:
        """Hard-delete a task. ``False`` if nothing matched."""

    @abstractmethod
    async def list(
        self,
        task_filter: TaskFilter,
        page: int,
        page_size: int,
        sort: Optional[SortSpec] = None
    ) -> Tuple[List[Task], int]:
        """Return one page of matching tasks and the total match count."""
