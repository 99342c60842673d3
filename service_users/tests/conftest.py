"""
Shared fixtures for user service tests.
"""

import pytest

from shared.metrics import MetricsCollector
from service_users.app.repository import InMemoryUserStore
from service_users.app.security import JWTManager, PasswordHasher
from service_users.app.service import UserService

SECRET = "test-secret"


@pytest.fixture
def hasher():
    """Low iteration count keeps the suite fast."""
    return PasswordHasher(iterations=1000)


@pytest.fixture
def jwt_manager():
    return JWTManager(SECRET, expiration_hours=1)


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def metrics():
    return MetricsCollector("users")


@pytest.fixture
def user_service(store, jwt_manager, hasher, metrics):
    return UserService(store, jwt_manager, hasher=hasher, metrics=metrics)
