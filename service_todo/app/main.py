"""
Todo service: HTTP surface over the task orchestration.
"""

from typing import Any, Dict, Optional

from fastapi import Query

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.pagination import clamp_pagination
from .cache import InMemoryTaskCache, NullTaskCache, RedisTaskCache, TaskCache
from .instrumentation import PrometheusTaskMetrics
from .models import CreateTaskRequest, SortSpec, Task, UpdateTaskRequest
from .repository import InMemoryTaskStore, PostgresTaskStore, TaskStore
from .service import TaskService


def build_store(config: ServiceConfig) -> TaskStore:
    if config.store_backend == "postgres":
        return PostgresTaskStore(
            config.postgres_dsn,
            min_size=config.postgres_min_pool_size,
            max_size=config.postgres_max_pool_size
        )
    return InMemoryTaskStore()


def build_cache(config: ServiceConfig) -> TaskCache:
    if config.cache_backend == "redis":
        return RedisTaskCache(config.redis_url, ttl_seconds=config.cache_ttl_seconds)
    if config.cache_backend == "none":
        return NullTaskCache()
    return InMemoryTaskCache(ttl_seconds=config.cache_ttl_seconds)


class TodoService(BaseService):
    """Todo service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        store: Optional[TaskStore] = None,
        cache: Optional[TaskCache] = None
    ):
        config = config or get_config("todo", 8020)
        super().__init__("todo", config.port, config=config)
        self.store = store or build_store(self.config)
        self.cache = cache or build_cache(self.config)
        self.task_service = TaskService(
            self.store,
            self.cache,
            metrics=PrometheusTaskMetrics(self.metrics),
            logger=self.logger.bind(component="task_service")
        )
        self._setup_task_routes()

    async def startup(self):
        await self.store.start()
        await self.cache.start()

    async def shutdown(self):
        await self.cache.stop()
        await self.store.stop()

    def _setup_task_routes(self):
        """Set up task routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": "todo",
                "message": "Task Manager - Todo Service",
                "version": "1.0.0",
                "store": type(self.store).__name__,
                "cache": type(self.cache).__name__,
            }

        @self.app.post("/tasks", response_model=Task, status_code=201)
        async def create_task(request: CreateTaskRequest):
            """Create a task."""
            return await self.task_service.create_task(request)

        @self.app.get("/tasks", response_model=Dict[str, Any])
        async def list_tasks(
            page: Optional[int] = Query(None),
            page_size: Optional[int] = Query(None),
            status: Optional[str] = Query(None),
            priority: Optional[str] = Query(None),
            user_id: Optional[str] = Query(None),
            sort_by: Optional[str] = Query(None),
            sort_desc: bool = Query(False)
        ):
            """List tasks across owners."""
            task_filter = self.task_service.build_filter(status, priority, user_id)
            result = await self.task_service.list_tasks(
                task_filter=task_filter,
                page=page,
                page_size=page_size,
                sort=SortSpec(field=sort_by, descending=sort_desc)
            )
            return _page_response(result, page, page_size)

        @self.app.get("/users/{user_id}/tasks", response_model=Dict[str, Any])
        async def list_user_tasks(
            user_id: str,
            page: Optional[int] = Query(None),
            page_size: Optional[int] = Query(None),
            status: Optional[str] = Query(None),
            priority: Optional[str] = Query(None),
            sort_by: Optional[str] = Query(None),
            sort_desc: bool = Query(False)
        ):
            """List one owner's tasks."""
            task_filter = self.task_service.build_filter(status, priority)
            result = await self.task_service.list_tasks_for_owner(
                user_id,
                task_filter=task_filter,
                page=page,
                page_size=page_size,
                sort=SortSpec(field=sort_by, descending=sort_desc)
            )
            return _page_response(result, page, page_size)

        @self.app.get("/tasks/{task_id}", response_model=Task)
        async def get_task(task_id: str, user_id: Optional[str] = Query(None)):
            """Get a task, scoped to ``user_id`` when given."""
            if user_id is not None:
                return await self.task_service.get_task_for_owner(task_id, user_id)
            return await self.task_service.get_task(task_id)

        @self.app.put("/tasks/{task_id}", response_model=Task)
        async def update_task(task_id: str, request: UpdateTaskRequest):
            """Apply a partial update to one of ``user_id``'s tasks."""
            return await self.task_service.update_task(task_id, request.user_id, request)

        @self.app.delete("/tasks/{task_id}")
        async def delete_task(task_id: str, user_id: Optional[str] = Query(None)):
            """Delete a task, scoped to ``user_id`` when given."""
            if user_id is not None:
                await self.task_service.delete_task_for_owner(task_id, user_id)
            else:
                await self.task_service.delete_task(task_id)
            return {"success": True}

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check todo service dependencies."""
        dependencies = {}
        for name, component in (("store", self.store), ("cache", self.cache)):
            try:
                dependencies[name] = "ok" if await component.ping() else "error"
            except Exception as e:
                self.logger.warning("Dependency check failed", dependency=name, error=str(e))
                dependencies[name] = "error"
        return dependencies


def _page_response(result, page: Optional[int], page_size: Optional[int]) -> Dict[str, Any]:
    page, page_size = clamp_pagination(page, page_size)
    return {
        "tasks": [task.model_dump(mode="json") for task in result.tasks],
        "total": result.total,
        "page": page,
        "page_size": page_size,
    }


def create_app():
    """Create todo service application."""
    service = TodoService()
    return service.app


if __name__ == "__main__":
    service = TodoService()
    service.run()
