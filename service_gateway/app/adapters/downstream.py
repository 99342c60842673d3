"""
Base HTTP client for calls from the gateway to internal services.
"""

from typing import Any, Dict, Optional

import httpx

from shared.errors import ExternalServiceError, TaskManagerException
from shared.logging import get_logger, request_id_var
from shared.metrics import MetricsCollector


class DownstreamClient:
    """One pooled ``httpx.AsyncClient`` per internal service.

    Error envelopes from the service are re-raised with the same status,
    code and message; transport failures become ``ExternalServiceError``.
    """

    def __init__(
        self,
        service: str,
        base_url: str,
        timeout: float = 10.0,
        metrics: Optional[MetricsCollector] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.service = service
        self.base_url = base_url.rstrip("/")
        self.metrics = metrics
        self.logger = get_logger(f"gateway.{service}_client")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def ping(self) -> bool:
        try:
            response = await self._client.get("/health")
        except httpx.HTTPError as e:
            self.logger.warning("Downstream health check failed", service=self.service, error=str(e))
            return False
        return response.status_code == 200

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        headers = {}
        request_id = request_id_var.get()
        if request_id:
            headers["X-Request-ID"] = request_id

        if params:
            params = {key: value for key, value in params.items() if value is not None}

        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            self._count("unavailable")
            self.logger.error(
                "Downstream request failed",
                service=self.service,
                method=method,
                path=path,
                error=str(e)
            )
            raise ExternalServiceError(self.service, "service unavailable", details={"error": str(e)})

        if response.is_success:
            self._count("success")
            return response.json()

        self._count("error")
        raise self._error_from(response)

    def _error_from(self, response: httpx.Response) -> TaskManagerException:
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict) or "code" not in body:
            self.logger.error(
                "Unexpected downstream error response",
                service=self.service,
                status_code=response.status_code
            )
            return ExternalServiceError(
                self.service,
                f"unexpected status {response.status_code}",
                details={"status_code": response.status_code}
            )

        return TaskManagerException(
            body["code"],
            body.get("message", ""),
            details=body.get("details") or {},
            status_code=response.status_code
        )

    def _count(self, outcome: str) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.increment_counter("downstream_requests_total", service=self.service, outcome=outcome)
        except Exception as e:
            self.logger.debug("Metrics emission failed", error=str(e))
