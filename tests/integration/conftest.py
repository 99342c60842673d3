"""
In-process wiring of the three services for cross-service tests.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from service_gateway.app.adapters import TodoServiceClient, UserServiceClient
from service_gateway.app.main import GatewayService
from service_todo.app.cache import InMemoryTaskCache
from service_todo.app.main import TodoService
from service_todo.app.repository import InMemoryTaskStore
from service_users.app.main import UsersService
from service_users.app.repository import InMemoryUserStore
from service_users.app.security import PasswordHasher

SECRET = "integration-secret"


def asgi_client(app, base_url: str) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=base_url)


@pytest.fixture
def users_service():
    service = UsersService(config=get_config("users", 8021, jwt_secret=SECRET), store=InMemoryUserStore())
    service.user_service.hasher = PasswordHasher(iterations=1000)
    return service


@pytest.fixture
def todo_service():
    return TodoService(
        config=get_config("todo", 8020),
        store=InMemoryTaskStore(),
        cache=InMemoryTaskCache()
    )


@pytest.fixture
def gateway_service(users_service, todo_service):
    config = get_config("gateway", 8000, jwt_secret=SECRET)
    return GatewayService(
        config=config,
        user_client=UserServiceClient(
            "http://users", metrics=None, client=asgi_client(users_service.app, "http://users")
        ),
        todo_client=TodoServiceClient(
            "http://todo", metrics=None, client=asgi_client(todo_service.app, "http://todo")
        ),
    )


@pytest.fixture
def gateway(gateway_service):
    with TestClient(gateway_service.app) as client:
        yield client


@pytest.fixture
def register(gateway):
    """Register an account through the gateway and return (user, headers)."""

    def _register(username: str = "alice"):
        response = gateway.post("/api/v1/auth/register", json={
            "username": username,
            "email": f"{username}@example.com",
            "password": "password1",
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _register
