"""
Todo service client for Gateway.
"""

from typing import Any, Dict, Optional

import httpx

from shared.metrics import MetricsCollector
from .downstream import DownstreamClient


class TodoServiceClient(DownstreamClient):
    """Client for communicating with the todo service."""

    def __init__(
        self,
        todo_service_url: str,
        timeout: float = 10.0,
        metrics: Optional[MetricsCollector] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__("todo", todo_service_url, timeout=timeout, metrics=metrics, client=client)

    async def create_task(self, user_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/tasks", json={**body, "user_id": user_id})

    async def get_task(self, task_id: str, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/tasks/{task_id}", params={"user_id": user_id})

    async def update_task(self, task_id: str, user_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/tasks/{task_id}", json={**body, "user_id": user_id})

    async def delete_task(self, task_id: str, user_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/tasks/{task_id}", params={"user_id": user_id})

    async def list_tasks(self, **query) -> Dict[str, Any]:
        """List across owners; ``query`` holds page, page_size, status, priority, user_id and sort options."""
        return await self._request("GET", "/tasks", params=query)

    async def list_user_tasks(self, user_id: str, **query) -> Dict[str, Any]:
        return await self._request("GET", f"/users/{user_id}/tasks", params=query)
