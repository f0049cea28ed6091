"""Job record persistence.

Records are stored as serialized JSON snapshots, so a reader always gets a
complete record: either the one before an update or the one after it.
"""

import asyncio
from abc import ABC, abstractmethod

import redis.asyncio as aioredis

from shared.cache import Cache
from shared.models import ParseJob
from shared.utils import config, setup_logging

logger = setup_logging("job-store")

DEFAULT_JOB_TTL_SECONDS = 3600
DEFAULT_KEY_PREFIX = "parse:job:"


class JobStore(ABC):
    """Key-value persistence for parse job records, with expiry."""

    def __init__(self, ttl: int = DEFAULT_JOB_TTL_SECONDS) -> None:
        self.ttl = ttl

    @abstractmethod
    async def put(self, job: ParseJob, ttl: int | None = None) -> None:
        """Insert or replace a record."""

    @abstractmethod
    async def get(self, job_id: str) -> ParseJob | None:
        """Return the record, or None when unknown or expired."""

    @abstractmethod
    async def delete(self, job_id: str) -> None:
        """Remove a record; unknown ids are ignored."""

    @abstractmethod
    async def expire(self, job_id: str, ttl: int) -> bool:
        """Reset a record's remaining lifetime; False when it does not exist."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryJobStore(JobStore):
    """Process-local store; records do not survive a restart."""

    def __init__(self, ttl: int = DEFAULT_JOB_TTL_SECONDS) -> None:
        super().__init__(ttl)
        self._cache = Cache(default_ttl=ttl)

    async def put(self, job: ParseJob, ttl: int | None = None) -> None:
        # Expired records that were never read back are evicted here.
        self._cache.cleanup_expired()
        self._cache.set(job.job_id, job.model_dump_json(), ttl=ttl or self.ttl)

    async def get(self, job_id: str) -> ParseJob | None:
        raw = self._cache.get(job_id)
        if raw is None:
            return None
        return ParseJob.model_validate_json(raw)

    async def delete(self, job_id: str) -> None:
        self._cache.delete(job_id)

    async def expire(self, job_id: str, ttl: int) -> bool:
        return self._cache.expire(job_id, ttl)

    async def close(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return self._cache.size()


class RedisJobStore(JobStore):
    """Redis-backed store shared by every process pointing at the same server."""

    def __init__(
        self,
        redis_url: str | None = None,
        ttl: int = DEFAULT_JOB_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        namespace: str | None = None,
        client: aioredis.Redis | None = None,
    ) -> None:
        super().__init__(ttl)
        self.redis_url = redis_url or config.get("redis_url", "redis://localhost:6379/0")
        self.key_prefix = f"{key_prefix}{namespace}:" if namespace else key_prefix
        self.redis = client or aioredis.Redis.from_url(self.redis_url, decode_responses=True)
        self._connection_checked = False

    def _key(self, job_id: str) -> str:
        return f"{self.key_prefix}{job_id}"

    async def _ensure_connection(self) -> None:
        """Lazy connection check with retry logic."""
        if self._connection_checked:
            return

        max_retries = 3
        retry_delay = 0.5

        for attempt in range(max_retries):
            try:
                await self.redis.ping()
                self._connection_checked = True
                logger.info(f"Connected to Redis job store at {self.redis_url}")
                return
            except Exception as e:
                if attempt == max_retries - 1:
                    logger.error(f"Failed to connect to Redis at {self.redis_url} after {max_retries} attempts: {e}")
                    raise ConnectionError(f"Redis connection failed: {e}") from e
                logger.warning(f"Redis connection attempt {attempt + 1} failed, retrying in {retry_delay}s: {e}")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2

    async def put(self, job: ParseJob, ttl: int | None = None) -> None:
        try:
            await self._ensure_connection()
            await self.redis.set(self._key(job.job_id), job.model_dump_json(), ex=ttl or self.ttl)
        except ConnectionError:
            self._connection_checked = False
            raise
        except Exception as e:
            logger.error(f"Failed to store job '{job.job_id}': {e}")
            # Force a reconnect check on the next call
            self._connection_checked = False
            raise ConnectionError(f"Redis job store write failed: {e}") from e

    async def get(self, job_id: str) -> ParseJob | None:
        await self._ensure_connection()
        raw = await self.redis.get(self._key(job_id))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return ParseJob.model_validate_json(raw)

    async def delete(self, job_id: str) -> None:
        await self._ensure_connection()
        await self.redis.delete(self._key(job_id))

    async def expire(self, job_id: str, ttl: int) -> bool:
        await self._ensure_connection()
        return bool(await self.redis.expire(self._key(job_id), ttl))

    async def close(self) -> None:
        await self.redis.aclose()


def create_job_store(namespace: str | None = None) -> JobStore:
    """Build the configured job store backend."""
    ttl = int(config.get_pipeline_value("jobs.ttl_seconds", DEFAULT_JOB_TTL_SECONDS))
    backend = str(config.get("job_store_backend", "memory")).lower()
    if backend == "redis":
        key_prefix = config.get_pipeline_value("jobs.key_prefix", DEFAULT_KEY_PREFIX)
        return RedisJobStore(ttl=ttl, key_prefix=key_prefix, namespace=namespace)
    return InMemoryJobStore(ttl=ttl)
