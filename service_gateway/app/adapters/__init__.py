"""Downstream service clients for the gateway."""

from .downstream import DownstreamClient
from .todo_client import TodoServiceClient
from .user_client import UserServiceClient

__all__ = ["DownstreamClient", "TodoServiceClient", "UserServiceClient"]
