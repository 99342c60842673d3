"""
Redis caching layer for the todo service.
"""

from typing import List, Optional

import redis.asyncio as redis
from pydantic import ValidationError as PydanticValidationError

from shared.errors import InternalError
from shared.logging import get_logger
from ..models import Task, TaskPage
from .base import CacheError, TaskCache
from .keys import owner_pages_pattern, task_key


class RedisTaskCache(TaskCache):
    """Redis look-aside cache for tasks and list pages.

    Every entry is written with the same TTL. Failures are raised as
    ``CacheError`` for the caller to record.
    """

    def __init__(self, redis_url: str, ttl_seconds: int = 300, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("todo.cache.redis")
        self.redis: Optional[redis.Redis] = client
        self.scan_batch_size = 100

    async def start(self):
        """Start the Redis cache."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )
        try:
            await self.redis.ping()
        except (redis.RedisError, OSError) as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise InternalError("Failed to connect to Redis", details={"error": str(e)})

        self.logger.info("Redis cache started", ttl_seconds=self.ttl_seconds)

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except (redis.RedisError, OSError):
            return False

    async def get_task(self, task_id: str) -> Optional[Task]:
        raw = await self._call("get_task", self.redis.get(task_key(task_id)))
        if raw is None:
            return None
        try:
            return Task.model_validate_json(raw)
        except PydanticValidationError as e:
            raise CacheError("get_task", f"undecodable entry: {e}")

    async def set_task(self, task: Task) -> None:
        await self._call(
            "set_task",
            self.redis.setex(task_key(task.id), self.ttl_seconds, task.model_dump_json())
        )

    async def delete_task(self, task_id: str) -> None:
        await self._call("delete_task", self.redis.delete(task_key(task_id)))

    async def get_page(self, key: str) -> Optional[TaskPage]:
        raw = await self._call("get_page", self.redis.get(key))
        if raw is None:
            return None
        try:
            return TaskPage.model_validate_json(raw)
        except PydanticValidationError as e:
            raise CacheError("get_page", f"undecodable entry: {e}")

    async def set_page(self, key: str, page: TaskPage) -> None:
        await self._call("set_page", self.redis.setex(key, self.ttl_seconds, page.model_dump_json()))

    async def invalidate_owner_pages(self, user_id: str) -> int:
        pattern = owner_pages_pattern(user_id)
        deleted = 0
        try:
            batch: List[str] = []
            async for key in self.redis.scan_iter(match=pattern, count=self.scan_batch_size):
                batch.append(key)
                if len(batch) >= self.scan_batch_size:
                    deleted += await self.redis.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.redis.delete(*batch)
        except (redis.RedisError, OSError) as e:
            raise CacheError("invalidate_owner_pages", str(e))

        self.logger.debug("Invalidated owner pages", user_id=user_id, pattern=pattern, count=deleted)
        return deleted

    async def _call(self, operation: str, awaitable):
        try:
            return await awaitable
        except (redis.RedisError, OSError) as e:
            raise CacheError(operation, str(e))
