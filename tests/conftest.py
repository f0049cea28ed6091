import sys
import time
from pathlib import Path
from typing import Generator

import pytest
import redis.asyncio as aioredis

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from services.parse_jobs.app import registry as parse_registry
from shared.utils import config as service_config, ensure_directory

AI_ENV_VARS = (
    "OPENAI_API_KEY",
    "AI_API_KEY",
    "AZURE_OPENAI_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "USE_AZURE_OPENAI",
    "REDIS_URL",
    "JOB_STORE_BACKEND",
)


class FakeAsyncRedis:
    """In-memory stand-in for the async redis client used by the job store."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[str, float | None]] = {}
        self.closed = False

    def _live(self, key: str) -> str | None:
        item = self._store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and time.monotonic() >= expires_at:
            self._store.pop(key, None)
            return None
        return value

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._store[key] = (value, time.monotonic() + ex if ex else None)
        return True

    async def delete(self, *keys: str) -> int:
        return sum(1 for key in keys if self._store.pop(key, None) is not None)

    async def expire(self, key: str, seconds: int) -> bool:
        value = self._live(key)
        if value is None:
            return False
        self._store[key] = (value, time.monotonic() + seconds)
        return True

    async def aclose(self) -> None:
        self.closed = True

    def keys(self) -> list[str]:
        return list(self._store)


@pytest.fixture(scope="session", autouse=True)
def fake_redis() -> Generator[None, None, None]:
    """Patch the async redis client to use in-memory storage for tests."""
    original_from_url = aioredis.Redis.from_url

    def fake_from_url(cls, url: str, *args, **kwargs):  # type: ignore[unused-argument]
        return FakeAsyncRedis()

    aioredis.Redis.from_url = classmethod(fake_from_url)  # type: ignore[assignment]
    try:
        yield
    finally:
        aioredis.Redis.from_url = original_from_url  # type: ignore[assignment]


@pytest.fixture(autouse=True)
def test_environment(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run every test without AI credentials, on the in-memory job store, with isolated storage."""
    for name in AI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    drafts_dir = tmp_path_factory.mktemp("local") / "drafts"
    ensure_directory(str(drafts_dir))

    original = dict(service_config.config)
    service_config.set("openai_api_key", None)
    service_config.set("azure_openai_key", None)
    service_config.set("azure_openai_endpoint", None)
    service_config.set("use_azure_openai", False)
    service_config.set("redis_url", None)
    service_config.set("job_store_backend", "memory")
    service_config.set("local_drafts_dir", str(drafts_dir))

    parse_registry.reset()
    try:
        yield
    finally:
        parse_registry.reset()
        service_config.config = original


@pytest.fixture
def sample_menu() -> str:
    return "Jollof Rice - ₦3,500\nChapman $5.50\n\nFried Plantain\n"

