"""
User service client for Gateway.
"""

from typing import Any, Dict, Optional

import httpx

from shared.metrics import MetricsCollector
from .downstream import DownstreamClient


class UserServiceClient(DownstreamClient):
    """Client for communicating with the user service."""

    def __init__(
        self,
        user_service_url: str,
        timeout: float = 10.0,
        metrics: Optional[MetricsCollector] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__("users", user_service_url, timeout=timeout, metrics=metrics, client=client)

    async def register(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/auth/register", json=body)

    async def login(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/auth/login", json=body)

    async def validate_token(self, token: str) -> Dict[str, Any]:
        """Returns ``{"valid": bool, "user": {...} | None}``."""
        return await self._request("POST", "/auth/validate", json={"token": token})

    async def create_user(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/users", json=body)

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/users/{user_id}")

    async def update_user(self, user_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/users/{user_id}", json=body)

    async def delete_user(self, user_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/users/{user_id}")

    async def list_users(self, page: Optional[int] = None, page_size: Optional[int] = None) -> Dict[str, Any]:
        return await self._request("GET", "/users", params={"page": page, "page_size": page_size})
