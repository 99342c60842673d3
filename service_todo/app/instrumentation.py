"""
Metrics seam for the task orchestration.

``TaskService`` reports through a ``TaskMetrics`` instance handed to it at
construction. The base class is a silent no-op; ``PrometheusTaskMetrics``
feeds the service's ``MetricsCollector``.
"""

from typing import Optional

from shared.metrics import MetricsCollector
from .models import Task


class TaskMetrics:
    """No-op task metrics. Subclass and override what you need."""

    def cache_hit(self) -> None:
        pass

    def cache_miss(self) -> None:
        pass

    def cache_error(self, operation: str) -> None:
        pass

    def store_error(self, operation: str) -> None:
        pass

    def validation_error(self) -> None:
        pass

    def task_created(self, task: Task) -> None:
        pass

    def task_updated(self, before: Task, after: Task) -> None:
        pass

    def task_deleted(self, task: Task) -> None:
        pass


class PrometheusTaskMetrics(TaskMetrics):
    """Task metrics backed by the todo service's Prometheus collector."""

    def __init__(self, collector: MetricsCollector):
        self.collector = collector

    def cache_hit(self) -> None:
        self.collector.increment_counter("cache_hits_total")

    def cache_miss(self) -> None:
        self.collector.increment_counter("cache_misses_total")

    def cache_error(self, operation: str) -> None:
        self.collector.increment_counter("cache_errors_total", operation=operation)

    def store_error(self, operation: str) -> None:
        self.collector.increment_counter("database_errors_total", operation=operation)

    def validation_error(self) -> None:
        self.collector.increment_counter("validation_errors_total")

    def task_created(self, task: Task) -> None:
        self._move(None, task)

    def task_updated(self, before: Task, after: Task) -> None:
        self._move(before, after)

    def task_deleted(self, task: Task) -> None:
        self._move(task, None)

    def _move(self, before: Optional[Task], after: Optional[Task]) -> None:
        old_status = before.status if before else None
        new_status = after.status if after else None
        if old_status != new_status:
            if old_status is not None:
                self.collector.adjust_gauge("tasks_by_status", -1, status=old_status.value)
            if new_status is not None:
                self.collector.adjust_gauge("tasks_by_status", 1, status=new_status.value)

        old_priority = before.priority if before else None
        new_priority = after.priority if after else None
        if old_priority != new_priority:
            if old_priority is not None:
                self.collector.adjust_gauge("tasks_by_priority", -1, priority=old_priority.value)
            if new_priority is not None:
                self.collector.adjust_gauge("tasks_by_priority", 1, priority=new_priority.value)
