"""
Shared fixtures for todo service tests.
"""

from collections import Counter
from typing import List, Optional, Tuple

import pytest

from service_todo.app.cache import CacheError, InMemoryTaskCache, TaskCache
from service_todo.app.instrumentation import TaskMetrics
from service_todo.app.models import Task, TaskPage
from service_todo.app.repository import InMemoryTaskStore
from service_todo.app.service import TaskService


class RecordingTaskMetrics(TaskMetrics):
    """Task metrics fake that remembers every call."""

    def __init__(self):
        self.counts = Counter()
        self.cache_error_operations: List[str] = []
        self.store_error_operations: List[str] = []
        self.gauge_moves: List[Tuple[str, Optional[Task], Optional[Task]]] = []

    def cache_hit(self):
        self.counts["cache_hit"] += 1

    def cache_miss(self):
        self.counts["cache_miss"] += 1

    def cache_error(self, operation: str):
        self.counts["cache_error"] += 1
        self.cache_error_operations.append(operation)

    def store_error(self, operation: str):
        self.counts["store_error"] += 1
        self.store_error_operations.append(operation)

    def validation_error(self):
        self.counts["validation_error"] += 1

    def task_created(self, task: Task):
        self.gauge_moves.append(("created", None, task))

    def task_updated(self, before: Task, after: Task):
        self.gauge_moves.append(("updated", before, after))

    def task_deleted(self, task: Task):
        self.gauge_moves.append(("deleted", task, None))


class UnreachableTaskCache(TaskCache):
    """Cache double whose every operation fails like a dead Redis."""

    def __init__(self):
        self.calls: List[str] = []

    def _fail(self, operation: str):
        self.calls.append(operation)
        raise CacheError(operation, "connection refused")

    async def get_task(self, task_id: str) -> Optional[Task]:
        self._fail("get_task")

    async def set_task(self, task: Task) -> None:
        self._fail("set_task")

    async def delete_task(self, task_id: str) -> None:
        self._fail("delete_task")

    async def get_page(self, key: str) -> Optional[TaskPage]:
        self._fail("get_page")

    async def set_page(self, key: str, page: TaskPage) -> None:
        self._fail("set_page")

    async def invalidate_owner_pages(self, user_id: str) -> int:
        self._fail("invalidate_owner_pages")


class ExplodingMetrics(TaskMetrics):
    """Metrics backend that fails on every call."""

    def _explode(self, *args):
        raise RuntimeError("metrics backend down")

    cache_hit = cache_miss = cache_error = store_error = _explode
    validation_error = task_created = task_updated = task_deleted = _explode


@pytest.fixture
def metrics():
    return RecordingTaskMetrics()


@pytest.fixture
def store():
    return InMemoryTaskStore()


@pytest.fixture
def cache():
    return InMemoryTaskCache(ttl_seconds=300)


@pytest.fixture
def task_service(store, cache, metrics):
    return TaskService(store, cache, metrics=metrics)


@pytest.fixture
def unreachable_cache():
    return UnreachableTaskCache()


@pytest.fixture
def degraded_task_service(store, unreachable_cache, metrics):
    return TaskService(store, unreachable_cache, metrics=metrics)


@pytest.fixture
def exploding_metrics():
    return ExplodingMetrics()
