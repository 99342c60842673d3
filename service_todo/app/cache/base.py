"""
Task cache interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import Task, TaskPage


class CacheError(Exception):
    """A cache operation failed or returned an undecodable entry.

    Never surfaces to API callers; the orchestration records it and carries
    on as if the cache had missed.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class TaskCache(ABC):
    """Look-aside cache for single tasks and list pages.

    A miss is ``None``, never an exception. Infrastructure failures raise
    ``CacheError``.
    """

    async def start(self):
        """Open connections."""

    async def stop(self):
        """Close connections."""

    async def ping(self) -> bool:
        return True

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    async def set_task(self, task: Task) -> None:
        ...

    @abstractmethod
    async def delete_task(self, task_id: str) -> None:
        ...

    @abstractmethod
    async def get_page(self, key: str) -> Optional[TaskPage]:
        ...

    @abstractmethod
    async def set_page(self, key: str, page: TaskPage) -> None:
        ...

    @abstractmethod
    async def invalidate_owner_pages(self, user_id: str) -> int:
        """Drop every cached list page derived for ``user_id``; returns the count."""
