"""Tests for the parse job manager."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.extraction import ItemExtractor
from services.parse_jobs import InMemoryJobStore, ParseJobManager, RedisJobStore
from shared.enums import JobStatus
from shared.models import ParsedItem


def make_manager(**kwargs) -> ParseJobManager:
    kwargs.setdefault("store", InMemoryJobStore())
    kwargs.setdefault("use_ai", False)
    return ParseJobManager(**kwargs)


class TestParseJobManager:
    """Job lifecycle."""

    @pytest.mark.asyncio
    async def test_create_returns_pending_job(self) -> None:
        manager = make_manager()
        job = await manager.create_job_from_text("Tea, 200")

        assert job.status == JobStatus.PENDING
        assert job.job_id.startswith("job_")
        assert job.result is None
        await manager.shutdown()

    @pytest.mark.asyncio
    async def test_job_reaches_done(self, sample_menu: str) -> None:
        manager = make_manager()
        job = await manager.create_job_from_text(sample_menu)

        finished = await manager.wait_for_job(job.job_id, timeout=5)

        assert finished.status == JobStatus.DONE
        assert [item.name for item in finished.result] == ["Jollof Rice", "Chapman", "Fried Plantain"]
        assert finished.error is None
        assert finished.completed_at is not None

    @pytest.mark.asyncio
    async def test_buffer_text_job(self) -> None:
        manager = make_manager()
        job = await manager.create_job_from_buffer_text("Chapman $5.50\n" * 3)
        finished = await manager.wait_for_job(job.job_id, timeout=5)
        assert finished.status == JobStatus.DONE
        assert len(finished.result) == 3

    @pytest.mark.asyncio
    async def test_empty_text_completes_with_empty_result(self) -> None:
        manager = make_manager()
        job = await manager.create_job_from_text("")
        finished = await manager.wait_for_job(job.job_id, timeout=5)
        assert finished.status == JobStatus.DONE
        assert finished.result == []

    @pytest.mark.asyncio
    async def test_ai_path_used_for_jobs(self) -> None:
        extractor = MagicMock(spec=ItemExtractor)
        extractor.extract_ai = AsyncMock(return_value=[ParsedItem(name="Tea", price=200.0, confidence=0.9)])
        manager = make_manager(extractor=extractor, use_ai=True)

        job = await manager.create_job_from_text("Tea two hundred")
        finished = await manager.wait_for_job(job.job_id, timeout=5)

        assert finished.result[0].confidence == 0.9
        extractor.extract_ai.assert_awaited_once_with("Tea two hundred")

    @pytest.mark.asyncio
    async def test_extraction_error_marks_job_failed(self) -> None:
        extractor = MagicMock(spec=ItemExtractor)
        extractor.extract_ai = AsyncMock(side_effect=RuntimeError("extractor crashed"))
        manager = make_manager(extractor=extractor, use_ai=True)

        job = await manager.create_job_from_text("anything")
        finished = await manager.wait_for_job(job.job_id, timeout=5)

        assert finished.status == JobStatus.FAILED
        assert finished.error == "extractor crashed"
        assert finished.result is None

    @pytest.mark.asyncio
    async def test_get_unknown_job_returns_none(self) -> None:
        manager = make_manager()
        assert await manager.get_job("job_doesnotexist") is None
        assert await manager.get_job("") is None

    @pytest.mark.asyncio
    async def test_polling_terminal_job_is_idempotent(self) -> None:
        manager = make_manager()
        job = await manager.create_job_from_text("Tea, 200\nCoffee, 300")
        await manager.wait_for_job(job.job_id, timeout=5)

        first = await manager.get_job(job.job_id)
        second = await manager.get_job(job.job_id)
        third = await manager.get_job(job.job_id)

        assert first.model_dump() == second.model_dump() == third.model_dump()

    @pytest.mark.asyncio
    async def test_terminal_record_is_never_overwritten(self) -> None:
        manager = make_manager()
        job = await manager.create_job_from_text("Tea, 200")
        done = await manager.wait_for_job(job.job_id, timeout=5)

        await manager._finish(job, error="late failure")

        again = await manager.get_job(job.job_id)
        assert again.status == JobStatus.DONE
        assert again.model_dump() == done.model_dump()

    @pytest.mark.asyncio
    async def test_caller_cannot_mutate_stored_job(self) -> None:
        manager = make_manager()
        job = await manager.create_job_from_text("Tea, 200")
        job.input = "tampered"
        stored = await manager.get_job(job.job_id)
        assert stored.input == "Tea, 200"
        await manager.shutdown()

    @pytest.mark.asyncio
    async def test_create_does_not_wait_for_extraction(self) -> None:
        release = asyncio.Event()

        async def slow_extract(text: str) -> list[ParsedItem]:
            await release.wait()
            return []

        extractor = MagicMock(spec=ItemExtractor)
        extractor.extract_ai = AsyncMock(side_effect=slow_extract)
        manager = make_manager(extractor=extractor, use_ai=True)

        job = await manager.create_job_from_text("slow")
        assert (await manager.get_job(job.job_id)).status == JobStatus.PENDING
        assert manager.pending_tasks == 1

        release.set()
        finished = await manager.wait_for_job(job.job_id, timeout=5)
        assert finished.status == JobStatus.DONE

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_running_jobs(self) -> None:
        manager = make_manager()
        await manager.create_job_from_text("Tea, 200")
        store = manager.store

        await manager.shutdown()

        assert manager.pending_tasks == 0
        assert store.size() == 0

    @pytest.mark.asyncio
    async def test_redis_backed_manager(self) -> None:
        store = RedisJobStore(redis_url="redis://fake:6379/0", namespace="tenant-a")
        manager = make_manager(store=store)

        job = await manager.create_job_from_text("Chapman $5.50")
        finished = await manager.wait_for_job(job.job_id, timeout=5)

        assert finished.status == JobStatus.DONE
        assert finished.result[0].currency == "USD"
        assert store.redis.keys() == [f"parse:job:tenant-a:{job.job_id}"]


class FlakyJobStore(InMemoryJobStore):
    """Fails the listed ``put`` calls (1-based) with a connection error."""

    def __init__(self, failing_puts: set[int] | None = None, fail_done: bool = False) -> None:
        super().__init__()
        self.failing_puts = failing_puts or set()
        self.fail_done = fail_done
        self.puts = 0

    async def put(self, job, ttl=None) -> None:
        self.puts += 1
        if self.puts in self.failing_puts or (self.fail_done and job.status == JobStatus.DONE):
            raise ConnectionError("redis unavailable")
        await super().put(job, ttl)


class TestTerminalWrites:
    """Jobs reach a terminal state even when the store is briefly unavailable."""

    @pytest.mark.asyncio
    async def test_failed_terminal_write_is_retried(self) -> None:
        store = FlakyJobStore(failing_puts={2})
        manager = make_manager(store=store)
        manager.terminal_write_delay = 0

        job = await manager.create_job_from_text("Chapman $5.50")
        finished = await manager.wait_for_job(job.job_id, timeout=5)

        assert finished.status == JobStatus.DONE
        assert finished.result[0].price == 5.5
        assert store.puts == 3

    @pytest.mark.asyncio
    async def test_unstorable_result_is_recorded_as_failed(self) -> None:
        store = FlakyJobStore(fail_done=True)
        manager = make_manager(store=store)
        manager.terminal_write_delay = 0

        job = await manager.create_job_from_text("Chapman $5.50")
        finished = await manager.wait_for_job(job.job_id, timeout=5)

        assert finished.status == JobStatus.FAILED
        assert finished.result is None
        assert finished.error == "Could not store extraction result"

    @pytest.mark.asyncio
    async def test_completion_is_only_logged_once_stored(self) -> None:
        store = FlakyJobStore(fail_done=True)
        manager = make_manager(store=store)
        manager.terminal_write_delay = 0

        with patch("services.parse_jobs.manager.logger") as logger:
            await manager.create_job_from_text("Tea, 200")
            await manager.shutdown()

        logged = [call.args[0] for call in logger.info.call_args_list]
        assert not any("completed" in message for message in logged)
