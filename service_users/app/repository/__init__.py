"""User persistence backends."""

from .base import UserStore
from .memory import InMemoryUserStore
from .postgres import PostgresUserStore

__all__ = ["UserStore", "InMemoryUserStore", "PostgresUserStore"]
