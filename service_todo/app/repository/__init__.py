"""Task persistence backends."""

from .base import SORTABLE_FIELDS, TaskStore, resolve_sort
from .memory import InMemoryTaskStore
from .postgres import PostgresTaskStore

__all__ = [
    "SORTABLE_FIELDS",
    "TaskStore",
    "resolve_sort",
    "InMemoryTaskStore",
    "PostgresTaskStore",
]
