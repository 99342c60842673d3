"""Look-aside cache for tasks and task list pages."""

from .base import CacheError, TaskCache
from .memory import InMemoryTaskCache, NullTaskCache
from .redis_cache import RedisTaskCache

__all__ = [
    "CacheError",
    "TaskCache",
    "InMemoryTaskCache",
    "NullTaskCache",
    "RedisTaskCache",
]
