"""
In-process task cache with a fixed TTL.
"""

import time
from typing import Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from shared.logging import get_logger
from ..models import Task, TaskPage
from .base import CacheError, TaskCache
from .keys import owner_pages_prefix, task_key


class InMemoryTaskCache(TaskCache):
    """Dict-backed cache storing serialized entries, like the Redis adapter."""

    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("todo.cache.memory")
        self._entries: Dict[str, Tuple[float, str]] = {}

    def _get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        return value

    def _set(self, key: str, value: str):
        now = time.monotonic()
        self._purge_expired(now)
        self._entries[key] = (now + self.ttl_seconds, value)

    def _purge_expired(self, now: float) -> int:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def get_task(self, task_id: str) -> Optional[Task]:
        raw = self._get(task_key(task_id))
        if raw is None:
            return None
        try:
            return Task.model_validate_json(raw)
        except PydanticValidationError as e:
            raise CacheError("get_task", f"undecodable entry: {e}")

    async def set_task(self, task: Task) -> None:
        self._set(task_key(task.id), task.model_dump_json())

    async def delete_task(self, task_id: str) -> None:
        self._entries.pop(task_key(task_id), None)

    async def get_page(self, key: str) -> Optional[TaskPage]:
        raw = self._get(key)
        if raw is None:
            return None
        try:
            return TaskPage.model_validate_json(raw)
        except PydanticValidationError as e:
            raise CacheError("get_page", f"undecodable entry: {e}")

    async def set_page(self, key: str, page: TaskPage) -> None:
        self._set(key, page.model_dump_json())

    async def invalidate_owner_pages(self, user_id: str) -> int:
        prefix = owner_pages_prefix(user_id)
        doomed = [key for key in self._entries if key.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        self.logger.debug("Invalidated owner pages", user_id=user_id, count=len(doomed))
        return len(doomed)


class NullTaskCache(TaskCache):
    """Cache that never stores anything; every read misses."""

    async def get_task(self, task_id: str) -> Optional[Task]:
        return None

    async def set_task(self, task: Task) -> None:
        return None

    async def delete_task(self, task_id: str) -> None:
        return None

    async def get_page(self, key: str) -> Optional[TaskPage]:
        return None

    async def set_page(self, key: str, page: TaskPage) -> None:
        return None

    async def invalidate_owner_pages(self, user_id: str) -> int:
        return 0
