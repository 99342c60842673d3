"""
Unit tests for AuthMiddleware.
"""

from types import SimpleNamespace

import pytest
from jose import jwt
from unittest.mock import AsyncMock, MagicMock, patch

from shared.errors import AuthenticationError, ExternalServiceError
from shared.metrics import MetricsCollector
from service_gateway.app.auth import LocalTokenVerifier
from service_gateway.app.domain.auth_middleware import AuthMiddleware

SECRET = "gateway-secret"


def make_token(secret=SECRET, **claims):
    data = {"user_id": "user-1", "username": "alice", "email": "alice@example.com"}
    data.update(claims)
    return jwt.encode(data, secret, algorithm="HS256")


def make_request(headers):
    return SimpleNamespace(headers=headers, state=SimpleNamespace(), url=SimpleNamespace(path="/api/v1/tasks"))


def attempts(metrics, method, outcome):
    return metrics.registry.get_sample_value(
        "auth_attempts_total", {"method": method, "outcome": outcome}
    ) or 0


class TestAuthMiddleware:
    """Test cases for AuthMiddleware."""

    @pytest.fixture
    def user_client(self):
        return AsyncMock()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("gateway")

    @pytest.fixture
    def auth_middleware(self, user_client, metrics):
        return AuthMiddleware(LocalTokenVerifier(SECRET), user_client, metrics=metrics)

    @pytest.mark.asyncio
    async def test_local_verification(self, auth_middleware, user_client, metrics):
        """Test a token signed with the shared secret never reaches the user service."""
        request = make_request({"Authorization": f"Bearer {make_token()}"})

        with patch("service_gateway.app.domain.auth_middleware.set_user_context") as set_user:
            context = await auth_middleware.authenticate_request(request)

        assert context.user_id == "user-1"
        assert context.method == "local"
        assert request.state.user_info["username"] == "alice"
        set_user.assert_called_once_with("user-1")
        user_client.validate_token.assert_not_called()
        assert attempts(metrics, "local", "success") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Basic abc"},
        {"Authorization": "Bearer "},
    ])
    async def test_bad_headers_rejected(self, auth_middleware, user_client, headers):
        """Test missing or malformed Authorization headers."""
        with pytest.raises(AuthenticationError):
            await auth_middleware.authenticate_request(make_request(headers))

        user_client.validate_token.assert_not_called()

    @pytest.mark.asyncio
    async def test_delegates_when_local_fails(self, auth_middleware, user_client, metrics):
        """Test foreign signatures are checked with the user service."""
        token = make_token(secret="rotated")
        user_client.validate_token = AsyncMock(return_value={
            "valid": True,
            "user": {"id": "user-2", "username": "bob", "email": "bob@example.com"}
        })

        context = await auth_middleware.authenticate_request(make_request({"Authorization": f"Bearer {token}"}))

        user_client.validate_token.assert_awaited_once_with(token)
        assert context.user_id == "user-2"
        assert context.method == "remote"
        assert attempts(metrics, "remote", "success") == 1

    @pytest.mark.asyncio
    async def test_delegates_when_user_id_missing(self, auth_middleware, user_client):
        """Test tokens without user_id are not trusted locally."""
        token = jwt.encode({"username": "alice"}, SECRET, algorithm="HS256")
        user_client.validate_token = AsyncMock(return_value={"valid": False, "user": None})

        with pytest.raises(AuthenticationError):
            await auth_middleware.authenticate_request(make_request({"Authorization": f"Bearer {token}"}))

        user_client.validate_token.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_user_service_unreachable_is_401(self, auth_middleware, user_client, metrics):
        """Test a failed delegation reports authentication failure."""
        user_client.validate_token = AsyncMock(side_effect=ExternalServiceError("users", "service unavailable"))

        with pytest.raises(AuthenticationError) as exc_info:
            await auth_middleware.authenticate_request(make_request({"Authorization": "Bearer garbage"}))

        assert exc_info.value.status_code == 401
        assert attempts(metrics, "remote", "error") == 1

    @pytest.mark.asyncio
    async def test_metrics_failure_does_not_block(self, user_client):
        """Test a broken metrics backend is ignored."""
        metrics = MagicMock()
        metrics.increment_counter.side_effect = RuntimeError("registry gone")
        middleware = AuthMiddleware(LocalTokenVerifier(SECRET), user_client, metrics=metrics)

        context = await middleware.authenticate_request(make_request({"Authorization": f"Bearer {make_token()}"}))

        assert context.user_id == "user-1"
