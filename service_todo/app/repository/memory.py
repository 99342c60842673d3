"""
In-memory task store for local runs and tests.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from shared.logging import get_logger
from ..models import SortSpec, Task, TaskFilter
from .base import TaskStore, resolve_sort


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_timestamp(previous: Optional[datetime]) -> datetime:
    """Current time, nudged forward so it is strictly after ``previous``."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class InMemoryTaskStore(TaskStore):
    """Dict-backed task store guarded by an asyncio lock."""

    def __init__(self):
        self._tasks: Dict[str, Task] = {}
        self._lock = asyncio.Lock()
        self.logger = get_logger("todo.store.memory")

    async def create(self, task: Task) -> Task:
        async with self._lock:
            now = utcnow()
            stored = task.model_copy(update={
                "id": task.id or str(uuid.uuid4()),
                "created_at": task.created_at or now,
                "updated_at": task.updated_at or now,
            })
            self._tasks[stored.id] = stored
            self.logger.debug("Task stored", task_id=stored.id)
            return stored.model_copy()

    async def get(self, task_id: str, user_id: Optional[str] = None) -> Optional[Task]:
        task = self._tasks.get(task_id)
        if task is None:
            return None
        if user_id is not None and task.user_id != user_id:
            return None
        return task.model_copy()

    async def update(self, task: Task) -> Optional[Task]:
        async with self._lock:
            current = self._tasks.get(task.id)
            if current is None:
                return None
            stored = task.model_copy(update={
                "user_id": current.user_id,
                "created_at": current.created_at,
                "updated_at": next_timestamp(current.updated_at),
            })
            self._tasks[stored.id] = stored
            return stored.model_copy()

    async def delete(self, task_id: str, user_id: Optional[str] = None) -> bool:
        async with self._lock:
            task = self._tasks.get(task_id)
            if task is None or (user_id is not None and task.user_id != user_id):
                return False
            del self._tasks[task_id]
            return True

    async def list(
        self,
        task_filter: TaskFilter,
        page: int,
        page_size: int,
        sort: Optional[SortSpec] = None
    ) -> Tuple[List[Task], int]:
        matches = [task for task in self._tasks.values() if _matches(task, task_filter)]

        column, descending = resolve_sort(sort)
        matches.sort(key=lambda task: task.id)

        def sort_key(task: Task):
            value = getattr(task, column)
            if isinstance(value, Enum):
                # Enumerations order by declaration, e.g. low < urgent
                return list(type(value)).index(value)
            return value

        # Missing due dates sort last ascending and first descending, as in Postgres
        if column == "due_date":
            present = [task for task in matches if task.due_date is not None]
            missing = [task for task in matches if task.due_date is None]
            present.sort(key=lambda task: task.due_date, reverse=descending)
            matches = missing + present if descending else present + missing
        else:
            matches.sort(key=sort_key, reverse=descending)

        total = len(matches)
        offset = (page - 1) * page_size
        return [task.model_copy() for task in matches[offset:offset + page_size]], total


def _matches(task: Task, task_filter: TaskFilter) -> bool:
    if task_filter.status is not None and task.status != task_filter.status:
        return False
    if task_filter.priority is not None and task.priority != task_filter.priority:
        return False
    if task_filter.user_id is not None and task.user_id != task_filter.user_id:
        return False
    return True
