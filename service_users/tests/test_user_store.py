"""
Unit tests for the user stores.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import asyncpg
import pytest

from shared.errors import ConflictError
from service_users.app.models import User
from service_users.app.repository import InMemoryUserStore, PostgresUserStore

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def make_user(**overrides) -> User:
    data = {"username": "alice", "email": "alice@example.com", "password_hash": "h"}
    data.update(overrides)
    return User(**data)


class TestInMemoryUserStore:
    """Test cases for InMemoryUserStore."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self):
        """Test create fills identity fields."""
        user = await InMemoryUserStore().create(make_user())

        assert user.id
        assert user.created_at is not None
        assert user.updated_at == user.created_at

    @pytest.mark.asyncio
    async def test_lookups(self):
        """Test lookup by id, email and username."""
        store = InMemoryUserStore()
        user = await store.create(make_user())

        assert (await store.get(user.id)).username == "alice"
        assert (await store.get_by_email("alice@example.com")).id == user.id
        assert (await store.get_by_username("alice")).id == user.id
        assert await store.get("missing") is None
        assert await store.get_by_email("bob@example.com") is None

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self):
        """Test email uniqueness."""
        store = InMemoryUserStore()
        await store.create(make_user())

        with pytest.raises(ConflictError):
            await store.create(make_user(username="alice2"))

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self):
        """Test username uniqueness."""
        store = InMemoryUserStore()
        await store.create(make_user())

        with pytest.raises(ConflictError):
            await store.create(make_user(email="other@example.com"))

    @pytest.mark.asyncio
    async def test_update_checks_uniqueness_against_others(self):
        """Test update may keep its own values but not take another user's."""
        store = InMemoryUserStore()
        alice = await store.create(make_user())
        await store.create(make_user(username="bob", email="bob@example.com"))

        same = await store.update(alice.model_copy(update={"full_name": "Alice"}))
        assert same.full_name == "Alice"
        assert same.updated_at > alice.updated_at

        with pytest.raises(ConflictError):
            await store.update(alice.model_copy(update={"email": "bob@example.com"}))

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self):
        """Test update of unknown id."""
        assert await InMemoryUserStore().update(make_user(id="missing")) is None

    @pytest.mark.asyncio
    async def test_delete(self):
        """Test delete reports whether a row went away."""
        store = InMemoryUserStore()
        user = await store.create(make_user())

        assert await store.delete(user.id) is True
        assert await store.delete(user.id) is False

    @pytest.mark.asyncio
    async def test_list_newest_first(self):
        """Test listing order and paging."""
        store = InMemoryUserStore()
        for i in range(3):
            await store.create(make_user(
                username=f"user{i}", email=f"user{i}@example.com", created_at=NOW + timedelta(minutes=i)
            ))

        users, total = await store.list(1, 2)
        assert total == 3
        assert [user.username for user in users] == ["user2", "user1"]

        users, _ = await store.list(2, 2)
        assert [user.username for user in users] == ["user0"]


class FakeConnection:
    """Records queries and replays canned results."""

    def __init__(self):
        self.queries = []
        self.fetchrow_result = None
        self.fetchrow_error = None
        self.execute_result = "DELETE 1"

    async def fetchrow(self, query, *args):
        self.queries.append((query, args))
        if self.fetchrow_error:
            raise self.fetchrow_error
        return self.fetchrow_result

    async def execute(self, query, *args):
        self.queries.append((query, args))
        return self.execute_result


class FakePool:
    def __init__(self, conn):
        self.conn = conn

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


class TestPostgresUserStore:
    """Test cases for PostgresUserStore."""

    @pytest.fixture
    def conn(self):
        return FakeConnection()

    @pytest.fixture
    def store(self, conn):
        store = PostgresUserStore("postgresql://unused")
        store.pool = FakePool(conn)
        return store

    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self, store, conn):
        """Test constraint violations map to ConflictError."""
        conn.fetchrow_error = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(ConflictError):
            await store.create(make_user())

    @pytest.mark.asyncio
    async def test_get_by_email_query(self, store, conn):
        """Test lookups select by the requested column."""
        conn.fetchrow_result = {
            "id": "u1", "username": "alice", "email": "alice@example.com", "password_hash": "h",
            "full_name": None, "created_at": NOW, "updated_at": NOW,
        }

        user = await store.get_by_email("alice@example.com")

        query, args = conn.queries[-1]
        assert "WHERE email = $1" in query
        assert args == ("alice@example.com",)
        assert user.full_name == ""

    @pytest.mark.asyncio
    async def test_delete_parses_command_tag(self, store, conn):
        """Test delete reads the affected row count."""
        conn.execute_result = "DELETE 0"
        assert await store.delete("u1") is False
