"""Tests for parse job store backends."""

import asyncio

import pytest

from services.parse_jobs.store import InMemoryJobStore, RedisJobStore, create_job_store
from shared.enums import JobStatus
from shared.models import ParsedItem, ParseJob
from shared.utils import config


def make_job(job_id: str = "job_1", **overrides) -> ParseJob:
    return ParseJob(job_id=job_id, input="Tea, 200", **overrides)


@pytest.fixture(params=["memory", "redis"])
def store(request):
    if request.param == "memory":
        return InMemoryJobStore(ttl=60)
    return RedisJobStore(redis_url="redis://fake:6379/0", ttl=60, namespace="tenant-a")


class TestJobStoreContract:
    """Behaviour shared by every backend."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, store) -> None:
        await store.put(make_job())
        job = await store.get("job_1")
        assert job is not None
        assert job.status == JobStatus.PENDING
        assert job.input == "Tea, 200"

    @pytest.mark.asyncio
    async def test_get_unknown_returns_none(self, store) -> None:
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_put_replaces_whole_record(self, store) -> None:
        await store.put(make_job())
        done = make_job(status=JobStatus.DONE, result=[ParsedItem(name="Tea", price=200.0)])
        await store.put(done)

        job = await store.get("job_1")
        assert job.status == JobStatus.DONE
        assert job.result[0].name == "Tea"

    @pytest.mark.asyncio
    async def test_reads_are_independent_copies(self, store) -> None:
        await store.put(make_job())
        first = await store.get("job_1")
        first.error = "changed by caller"
        second = await store.get("job_1")
        assert second.error is None

    @pytest.mark.asyncio
    async def test_delete(self, store) -> None:
        await store.put(make_job())
        await store.delete("job_1")
        await store.delete("never-existed")
        assert await store.get("job_1") is None

    @pytest.mark.asyncio
    async def test_expire(self, store) -> None:
        await store.put(make_job())
        assert await store.expire("job_1", 1) is True
        assert await store.expire("missing", 1) is False

        await asyncio.sleep(1.1)
        assert await store.get("job_1") is None

    @pytest.mark.asyncio
    async def test_put_with_ttl(self, store) -> None:
        await store.put(make_job(), ttl=1)
        await asyncio.sleep(1.1)
        assert await store.get("job_1") is None


class TestInMemoryJobStore:
    """In-memory specifics."""

    @pytest.mark.asyncio
    async def test_put_evicts_expired_unread_records(self) -> None:
        store = InMemoryJobStore(ttl=60)
        await store.put(make_job("job_old"), ttl=1)
        await asyncio.sleep(1.1)

        await store.put(make_job("job_new"))

        assert store.size() == 1
        assert await store.get("job_new") is not None


class TestRedisJobStore:
    """Redis specifics."""

    @pytest.mark.asyncio
    async def test_keys_are_namespaced(self) -> None:
        store = RedisJobStore(redis_url="redis://fake:6379/0", namespace="tenant-a")
        await store.put(make_job("job_42"))
        assert store.redis.keys() == ["parse:job:tenant-a:job_42"]

    @pytest.mark.asyncio
    async def test_tenants_do_not_share_records(self) -> None:
        shared_client = RedisJobStore(redis_url="redis://fake:6379/0").redis
        store_a = RedisJobStore(namespace="a", client=shared_client)
        store_b = RedisJobStore(namespace="b", client=shared_client)

        await store_a.put(make_job())
        assert await store_b.get("job_1") is None
        assert await store_a.get("job_1") is not None

    @pytest.mark.asyncio
    async def test_connection_failure_raises_connection_error(self) -> None:
        store = RedisJobStore(redis_url="redis://fake:6379/0")

        async def refuse() -> bool:
            raise OSError("connection refused")

        store.redis.ping = refuse
        with pytest.raises(ConnectionError):
            await store.put(make_job())

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        store = RedisJobStore(redis_url="redis://fake:6379/0")
        await store.close()
        assert store.redis.closed is True


def test_create_job_store_defaults_to_memory() -> None:
    assert isinstance(create_job_store(), InMemoryJobStore)


def test_create_job_store_redis_backend() -> None:
    config.set("job_store_backend", "redis")
    store = create_job_store(namespace="tenant-a")
    assert isinstance(store, RedisJobStore)
    assert store.key_prefix == "parse:job:tenant-a:"
