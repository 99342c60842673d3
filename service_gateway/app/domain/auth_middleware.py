"""
Authentication middleware for Gateway.
"""

from typing import Optional

from fastapi import Request

from shared.errors import AuthenticationError, TaskManagerException
from shared.logging import get_logger, set_user_context
from shared.metrics import MetricsCollector
from ..adapters.user_client import UserServiceClient
from ..auth.tokens import AuthContext, LocalTokenVerifier


class AuthMiddleware:
    """Resolves the bearer token on a request to an ``AuthContext``.

    Tokens are verified locally first; when that fails, or the token carries
    no ``user_id``, the user service decides.
    """

    def __init__(
        self,
        verifier: LocalTokenVerifier,
        user_client: UserServiceClient,
        metrics: Optional[MetricsCollector] = None
    ):
        self.verifier = verifier
        self.user_client = user_client
        self.metrics = metrics
        self.logger = get_logger("gateway.auth_middleware")

    async def authenticate_request(self, request: Request) -> AuthContext:
        """Authenticate incoming request with a JWT bearer token."""
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            self._count("header", "missing")
            raise AuthenticationError("Authorization header is required")

        if not auth_header.startswith("Bearer "):
            self._count("header", "malformed")
            raise AuthenticationError("Invalid authorization header format")

        token = auth_header[7:].strip()
        if not token:
            self._count("header", "malformed")
            raise AuthenticationError("Bearer token is empty")

        try:
            context = self.verifier.verify(token)
            self._count("local", "success")
        except AuthenticationError as e:
            self.logger.debug("Local token verification failed", error=e.message)
            context = await self._delegate(token)

        request.state.user_info = context.as_user_info()
        request.state.auth_context = context
        set_user_context(context.user_id)

        self.logger.debug(
            "Request authenticated",
            user_id=context.user_id,
            method=context.method,
            path=request.url.path
        )
        return context

    async def _delegate(self, token: str) -> AuthContext:
        try:
            result = await self.user_client.validate_token(token)
        except TaskManagerException as e:
            self._count("remote", "error")
            self.logger.warning("Token validation with user service failed", error=e.message)
            raise AuthenticationError("Invalid or expired token")

        user = result.get("user") or {}
        if not result.get("valid") or not user.get("id"):
            self._count("remote", "rejected")
            raise AuthenticationError("Invalid or expired token")

        self._count("remote", "success")
        return AuthContext(
            user_id=user["id"],
            username=user.get("username", ""),
            email=user.get("email", ""),
            method="remote",
            token=token,
        )

    def _count(self, method: str, outcome: str) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.increment_counter("auth_attempts_total", method=method, outcome=outcome)
        except Exception as e:
            self.logger.debug("Metrics emission failed", error=str(e))
