"""
Unit tests for the task cache adapters.
"""

import pytest
from unittest.mock import AsyncMock, patch

import redis.asyncio as redis

from shared.errors import InternalError
from service_todo.app.cache import CacheError, InMemoryTaskCache, NullTaskCache, RedisTaskCache
from service_todo.app.cache.keys import page_key, task_key
from service_todo.app.models import Task, TaskFilter, TaskPage


def make_task(task_id="t1", user_id="u1") -> Task:
    return Task(id=task_id, user_id=user_id, title="cache me")


class FakeScanRedis:
    """Stand-in for the parts of redis.asyncio.Redis the cache uses."""

    def __init__(self, keys=None, fail_with=None):
        self.store = dict.fromkeys(keys or [], "x")
        self.fail_with = fail_with
        self.deleted_batches = []

    async def scan_iter(self, match=None, count=None):
        if self.fail_with:
            raise self.fail_with
        prefix = match.rstrip("*")
        for key in list(self.store):
            if key.startswith(prefix):
                yield key

    async def delete(self, *keys):
        self.deleted_batches.append(keys)
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


class TestInMemoryTaskCache:
    """Test cases for InMemoryTaskCache."""

    @pytest.fixture
    def cache(self):
        return InMemoryTaskCache(ttl_seconds=60)

    @pytest.mark.asyncio
    async def test_task_round_trip_and_delete(self, cache):
        """Test set, get and delete of a single task."""
        task = make_task()

        assert await cache.get_task("t1") is None
        await cache.set_task(task)
        assert await cache.get_task("t1") == task

        await cache.delete_task("t1")
        assert await cache.get_task("t1") is None

    @pytest.mark.asyncio
    async def test_entries_expire(self, cache):
        """Test entries vanish after the TTL."""
        with patch("service_todo.app.cache.memory.time.monotonic", return_value=1000.0):
            await cache.set_task(make_task())
        with patch("service_todo.app.cache.memory.time.monotonic", return_value=1059.0):
            assert await cache.get_task("t1") is not None
        with patch("service_todo.app.cache.memory.time.monotonic", return_value=1061.0):
            assert await cache.get_task("t1") is None

    @pytest.mark.asyncio
    async def test_writes_purge_expired_entries(self, cache):
        """Test expired pages nobody reads again are dropped on the next write."""
        page = TaskPage(tasks=[], total=0)
        with patch("service_todo.app.cache.memory.time.monotonic", return_value=1000.0):
            for number in range(1, 6):
                await cache.set_page(page_key(TaskFilter(), number, 10, owner="u1"), page)
        with patch("service_todo.app.cache.memory.time.monotonic", return_value=1030.0):
            await cache.set_task(make_task())
        assert len(cache._entries) == 6

        with patch("service_todo.app.cache.memory.time.monotonic", return_value=1061.0):
            await cache.set_task(make_task("t2"))

        assert sorted(cache._entries) == [task_key("t1"), task_key("t2")]

    @pytest.mark.asyncio
    async def test_invalidate_owner_pages_only(self, cache):
        """Test the owner sweep leaves other owners, global pages and tasks alone."""
        page = TaskPage(tasks=[make_task()], total=1)
        mine = page_key(TaskFilter(), 1, 10, owner="u1")
        mine_filtered = page_key(TaskFilter(status="done"), 2, 5, owner="u1")
        other = page_key(TaskFilter(), 1, 10, owner="u10")
        global_page = page_key(TaskFilter(user_id="u1"), 1, 10)
        for key in (mine, mine_filtered, other, global_page):
            await cache.set_page(key, page)
        await cache.set_task(make_task())

        assert await cache.invalidate_owner_pages("u1") == 2

        assert await cache.get_page(mine) is None
        assert await cache.get_page(mine_filtered) is None
        assert await cache.get_page(other) == page
        assert await cache.get_page(global_page) == page
        assert await cache.get_task("t1") is not None

    @pytest.mark.asyncio
    async def test_corrupt_entry_raises_cache_error(self, cache):
        """Test undecodable data is reported, not returned."""
        cache._set(task_key("t1"), "{not json")

        with pytest.raises(CacheError):
            await cache.get_task("t1")


class TestNullTaskCache:
    """Test cases for NullTaskCache."""

    @pytest.mark.asyncio
    async def test_always_misses(self):
        """Test nothing is ever stored."""
        cache = NullTaskCache()
        await cache.set_task(make_task())
        await cache.set_page("k", TaskPage())

        assert await cache.get_task("t1") is None
        assert await cache.get_page("k") is None
        assert await cache.invalidate_owner_pages("u1") == 0


class TestRedisTaskCache:
    """Test cases for RedisTaskCache."""

    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.fixture
    def cache(self, client):
        return RedisTaskCache("redis://localhost:6379/0", ttl_seconds=120, client=client)

    @pytest.mark.asyncio
    async def test_set_task_uses_ttl(self, cache, client):
        """Test entity writes go through SETEX with the configured TTL."""
        task = make_task()

        await cache.set_task(task)

        client.setex.assert_awaited_once_with("task:t1", 120, task.model_dump_json())

    @pytest.mark.asyncio
    async def test_get_task_hit_and_miss(self, cache, client):
        """Test decoding a hit and passing through a miss."""
        task = make_task()
        client.get.return_value = task.model_dump_json()
        assert await cache.get_task("t1") == task

        client.get.return_value = None
        assert await cache.get_task("t1") is None

    @pytest.mark.asyncio
    async def test_page_round_trip_format(self, cache, client):
        """Test page values carry tasks and total."""
        page = TaskPage(tasks=[make_task()], total=7)

        await cache.set_page("tasks:list:page:1:size:10", page)

        _, ttl, payload = client.setex.await_args.args
        assert ttl == 120
        assert '"total":7' in payload
        client.get.return_value = payload
        assert await cache.get_page("tasks:list:page:1:size:10") == page

    @pytest.mark.asyncio
    async def test_redis_failure_becomes_cache_error(self, cache, client):
        """Test connection errors surface as CacheError."""
        client.get.side_effect = redis.ConnectionError("refused")

        with pytest.raises(CacheError) as exc_info:
            await cache.get_task("t1")

        assert exc_info.value.operation == "get_task"

    @pytest.mark.asyncio
    async def test_corrupt_page_becomes_cache_error(self, cache, client):
        """Test undecodable page data surfaces as CacheError."""
        client.get.return_value = '{"tasks": "nope"}'

        with pytest.raises(CacheError):
            await cache.get_page("k")

    @pytest.mark.asyncio
    async def test_invalidate_owner_pages_scans_owner_pattern(self):
        """Test the sweep deletes exactly the owner's page keys."""
        fake = FakeScanRedis(keys=[
            "tasks:user:u1:page:1:size:10",
            "tasks:user:u1:status:done:page:1:size:10",
            "tasks:user:u10:page:1:size:10",
            "tasks:list:user:u1:page:1:size:10",
            "task:t1",
        ])
        cache = RedisTaskCache("redis://unused", client=fake)

        assert await cache.invalidate_owner_pages("u1") == 2
        assert sorted(fake.store) == [
            "task:t1",
            "tasks:list:user:u1:page:1:size:10",
            "tasks:user:u10:page:1:size:10",
        ]

    @pytest.mark.asyncio
    async def test_invalidate_deletes_in_batches(self):
        """Test large sweeps are deleted batch by batch."""
        keys = [f"tasks:user:u1:page:{index}:size:10" for index in range(5)]
        fake = FakeScanRedis(keys=keys)
        cache = RedisTaskCache("redis://unused", client=fake)
        cache.scan_batch_size = 2

        assert await cache.invalidate_owner_pages("u1") == 5
        assert [len(batch) for batch in fake.deleted_batches] == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_invalidate_failure_becomes_cache_error(self):
        """Test scan failures surface as CacheError."""
        cache = RedisTaskCache("redis://unused", client=FakeScanRedis(fail_with=redis.ConnectionError("down")))

        with pytest.raises(CacheError):
            await cache.invalidate_owner_pages("u1")

    @pytest.mark.asyncio
    async def test_start_failure_is_internal_error(self, cache, client):
        """Test an unreachable Redis at startup is fatal."""
        client.ping.side_effect = redis.ConnectionError("refused")

        with pytest.raises(InternalError):
            await cache.start()

    @pytest.mark.asyncio
    async def test_ping_reports_health(self, cache, client):
        """Test ping maps errors to False."""
        client.ping.return_value = True
        assert await cache.ping() is True

        client.ping.side_effect = redis.ConnectionError("refused")
        assert await cache.ping() is False
