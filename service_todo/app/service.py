"""
Task orchestration: sequences store and cache calls for every task operation.

The store is the source of truth. The cache is advisory: every cache call
goes through ``_best_effort``, which records the failure and lets the
operation continue as if the cache had missed. Store failures abort the
operation as ``InternalError``.
"""

from typing import Any, Awaitable, Callable, Optional, Tuple

from shared.errors import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    TaskManagerException,
    ValidationError,
)
from shared.logging import get_logger
from shared.pagination import clamp_pagination
from shared.tracing import get_tracer, trace_operation
from .cache.base import TaskCache
from .cache.keys import page_key
from .instrumentation import TaskMetrics
from .models import (
    CreateTaskRequest,
    SortSpec,
    Task,
    TaskFilter,
    TaskPage,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    parse_priority,
    parse_status,
    validate_owner,
    validate_title,
)
from .repository.base import TaskStore


class TaskService:
    """Look-aside cache orchestration over a task store."""

    def __init__(
        self,
        store: TaskStore,
        cache: TaskCache,
        metrics: Optional[TaskMetrics] = None,
        logger=None,
        tracer=None
    ):
        self.store = store
        self.cache = cache
        self.metrics = metrics or TaskMetrics()
        self.logger = logger or get_logger("todo.service")
        self.tracer = tracer or get_tracer("todo.service")

    async def create_task(self, request: CreateTaskRequest) -> Task:
        with trace_operation(self.tracer, "TaskService.CreateTask", **{"task.owner": request.user_id}):
            task = self._validated(self._new_task, request)

            created = await self._store_call("create", self.store.create, task)

            await self._best_effort("invalidate_owner_pages", self.cache.invalidate_owner_pages, created.user_id)
            await self._best_effort("set_task", self.cache.set_task, created)
            self._record(self.metrics.task_created, created)

            self.logger.info("Task created", task_id=created.id, user_id=created.user_id)
            return created

    async def get_task(self, task_id: str) -> Task:
        with trace_operation(self.tracer, "TaskService.GetTask", **{"task.id": task_id}):
            self._validated(self._require, "task_id", task_id)

            cached = await self._cached_task(task_id)
            if cached is not None:
                self._record(self.metrics.cache_hit)
                return cached
            self._record(self.metrics.cache_miss)

            task = await self._store_call("get", self.store.get, task_id)
            if task is None:
                raise NotFoundError("Task not found", details={"task_id": task_id})

            await self._best_effort("set_task", self.cache.set_task, task)
            return task

    async def get_task_for_owner(self, task_id: str, user_id: str) -> Task:
        with trace_operation(
            self.tracer, "TaskService.GetTaskByUser", **{"task.id": task_id, "task.owner": user_id}
        ):
            self._validated(self._require, "task_id", task_id)
            self._validated(self._require, "user_id", user_id)

            cached = await self._cached_task(task_id)
            if cached is not None:
                # A cached record of another owner is refused outright, not re-read
                if cached.user_id != user_id:
                    self._deny(task_id, user_id)
                self._record(self.metrics.cache_hit)
                return cached
            self._record(self.metrics.cache_miss)

            task = await self._store_call("get", self.store.get, task_id)
            if task is None:
                raise NotFoundError("Task not found", details={"task_id": task_id})
            if task.user_id != user_id:
                self._deny(task_id, user_id)

            await self._best_effort("set_task", self.cache.set_task, task)
            return task

    async def update_task(self, task_id: str, user_id: str, update: TaskUpdate) -> Task:
        with trace_operation(
            self.tracer, "TaskService.UpdateTask", **{"task.id": task_id, "task.owner": user_id}
        ):
            self._validated(self._require, "task_id", task_id)
            self._validated(self._require, "user_id", user_id)
            changes = self._validated(update.changes)

            current = await self._store_call("get", self.store.get, task_id, user_id)
            if current is None:
                raise NotFoundError("Task not found", details={"task_id": task_id})

            updated = await self._store_call("update", self.store.update, current.model_copy(update=changes))
            if updated is None:
                raise NotFoundError("Task not found", details={"task_id": task_id})

            await self._best_effort("invalidate_owner_pages", self.cache.invalidate_owner_pages, updated.user_id)
            await self._best_effort("set_task", self.cache.set_task, updated)
            self._record(self.metrics.task_updated, current, updated)

            self.logger.info(
                "Task updated",
                task_id=task_id,
                user_id=user_id,
                fields=sorted(changes)
            )
            return updated

    async def delete_task(self, task_id: str) -> None:
        with trace_operation(self.tracer, "TaskService.DeleteTask", **{"task.id": task_id}):
            self._validated(self._require, "task_id", task_id)
            await self._delete(task_id, None)

    async def delete_task_for_owner(self, task_id: str, user_id: str) -> None:
        with trace_operation(
            self.tracer, "TaskService.DeleteTaskByUser", **{"task.id": task_id, "task.owner": user_id}
        ):
            self._validated(self._require, "task_id", task_id)
            self._validated(self._require, "user_id", user_id)
            await self._delete(task_id, user_id)

    async def list_tasks(
        self,
        *,
        task_filter: Optional[TaskFilter] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        sort: Optional[SortSpec] = None
    ) -> TaskPage:
        with trace_operation(self.tracer, "TaskService.ListTasks"):
            return await self._list(task_filter or TaskFilter(), page, page_size, sort, None)

    async def list_tasks_for_owner(
        self,
        user_id: str,
        *,
        task_filter: Optional[TaskFilter] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
        sort: Optional[SortSpec] = None
    ) -> TaskPage:
        with trace_operation(self.tracer, "TaskService.ListTasksByUser", **{"task.owner": user_id}):
            self._validated(self._require, "user_id", user_id)
            scoped = (task_filter or TaskFilter()).model_copy(update={"user_id": user_id})
            return await self._list(scoped, page, page_size, sort, user_id)

    def build_filter(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> TaskFilter:
        """Turn raw query values into a ``TaskFilter``; blanks mean "any"."""
        return self._validated(
            lambda: TaskFilter(
                status=parse_status(status) if status else None,
                priority=parse_priority(priority) if priority else None,
                user_id=user_id or None,
            )
        )

    async def _delete(self, task_id: str, user_id: Optional[str]) -> None:
        current = await self._store_call("get", self.store.get, task_id, user_id)
        if current is None:
            raise NotFoundError("Task not found", details={"task_id": task_id})

        deleted = await self._store_call("delete", self.store.delete, task_id, user_id)
        if not deleted:
            raise NotFoundError("Task not found", details={"task_id": task_id})

        await self._best_effort("delete_task", self.cache.delete_task, task_id)
        await self._best_effort("invalidate_owner_pages", self.cache.invalidate_owner_pages, current.user_id)
        self._record(self.metrics.task_deleted, current)

        self.logger.info("Task deleted", task_id=task_id, user_id=current.user_id)

    async def _list(
        self,
        task_filter: TaskFilter,
        page: Optional[int],
        page_size: Optional[int],
        sort: Optional[SortSpec],
        owner: Optional[str]
    ) -> TaskPage:
        page, page_size = clamp_pagination(page, page_size)
        key = page_key(task_filter, page, page_size, sort, owner)

        _, cached = await self._best_effort("get_page", self.cache.get_page, key)
        if cached is not None:
            self._record(self.metrics.cache_hit)
            return cached
        self._record(self.metrics.cache_miss)

        tasks, total = await self._store_call("list", self.store.list, task_filter, page, page_size, sort)
        result = TaskPage(tasks=tasks, total=total)

        await self._best_effort("set_page", self.cache.set_page, key, result)
        return result

    async def _cached_task(self, task_id: str) -> Optional[Task]:
        _, cached = await self._best_effort("get_task", self.cache.get_task, task_id)
        return cached

    def _new_task(self, request: CreateTaskRequest) -> Task:
        self._require("user_id", request.user_id)
        return Task(
            user_id=validate_owner(request.user_id),
            title=validate_title(request.title),
            description=request.description or "",
            status=parse_status(request.status) if request.status else TaskStatus.CREATED,
            priority=parse_priority(request.priority) if request.priority else TaskPriority.MEDIUM,
            due_date=request.due_date,
        )

    @staticmethod
    def _require(field: str, value: Optional[str]) -> None:
        if not value or not value.strip():
            raise ValidationError(f"{field} is required", details={"field": field})

    def _validated(self, func: Callable, *args):
        try:
            return func(*args)
        except ValidationError as e:
            self._record(self.metrics.validation_error)
            self.logger.info("Rejected task input", message=e.message, details=e.details)
            raise

    def _deny(self, task_id: str, user_id: str) -> None:
        self.logger.warning("Task access denied", task_id=task_id, user_id=user_id)
        raise ForbiddenError("Access denied", details={"task_id": task_id})

    async def _store_call(self, operation: str, func: Callable[..., Awaitable[Any]], *args):
        try:
            return await func(*args)
        except TaskManagerException:
            raise
        except Exception as e:
            self._record(self.metrics.store_error, operation)
            self.logger.error("Task store operation failed", operation=operation, error=str(e))
            raise InternalError(f"Failed to {operation} task") from e

    async def _best_effort(self, operation: str, func: Callable[..., Awaitable[Any]], *args) -> Tuple[bool, Any]:
        """Run a cache call; on failure record it and return ``(False, None)``."""
        try:
            return True, await func(*args)
        except Exception as e:
            self._record(self.metrics.cache_error, operation)
            self.logger.warning("Cache operation failed", operation=operation, error=str(e))
            return False, None

    def _record(self, emit: Callable, *args) -> None:
        # Metrics are a side channel; a broken backend must not fail the request
        try:
            emit(*args)
        except Exception as e:
            self.logger.debug("Metrics emission failed", error=str(e))
