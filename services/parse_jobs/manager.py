"""Parse job manager: decouples expensive extraction from the request cycle."""

import asyncio
import time
from datetime import UTC, datetime
from uuid import uuid4

from services.extraction import ItemExtractor
from services.parse_jobs.store import JobStore, create_job_store
from shared.enums import JobStatus
from shared.models import ParsedItem, ParseJob
from shared.utils import config, setup_logging

logger = setup_logging("parse-job-manager")


class ParseJobManager:
    """Create parse jobs, run extraction in the background, and serve polling reads.

    Every job is driven to ``done`` or ``failed`` by exactly one background task;
    once terminal a record is never written again.
    """

    terminal_write_retries = 3
    terminal_write_delay = 0.5

    def __init__(
        self,
        store: JobStore | None = None,
        extractor: ItemExtractor | None = None,
        use_ai: bool | None = None,
        tenant_id: str = "default",
    ):
        self.tenant_id = tenant_id
        self.store = store or create_job_store(namespace=tenant_id)
        self.extractor = extractor or ItemExtractor()
        self.use_ai = (
            bool(config.get_pipeline_value("parse.use_ai_for_jobs", True)) if use_ai is None else use_ai
        )
        self._tasks: set[asyncio.Task] = set()

    @staticmethod
    def _new_job_id() -> str:
        return f"job_{uuid4().hex[:16]}"

    async def create_job_from_text(self, text: str) -> ParseJob:
        """Store a pending job and schedule its extraction; returns immediately."""
        job = ParseJob(job_id=self._new_job_id(), input=text or "")
        await self.store.put(job)

        task = asyncio.create_task(self._run_extraction(job), name=f"parse-job-{job.job_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(f"Queued parse job {job.job_id} for tenant {self.tenant_id} ({len(job.input)} chars)")
        return job.model_copy(deep=True)

    async def create_job_from_buffer_text(self, text: str) -> ParseJob:
        """Same as :meth:`create_job_from_text`, for text decoded from an uploaded file."""
        logger.info(f"Creating parse job from file buffer ({len(text or '')} chars)")
        return await self.create_job_from_text(text)

    async def get_job(self, job_id: str) -> ParseJob | None:
        """Return the current record, or None for an unknown or expired id."""
        if not job_id:
            return None
        return await self.store.get(job_id)

    async def wait_for_job(self, job_id: str, timeout: float = 10.0, interval: float = 0.05) -> ParseJob | None:
        """Poll until the job is terminal or ``timeout`` elapses; returns the last record seen."""
        deadline = time.monotonic() + timeout
        job = await self.get_job(job_id)
        while job is not None and not job.is_terminal and time.monotonic() < deadline:
            await asyncio.sleep(interval)
            job = await self.get_job(job_id)
        return job

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def _extract(self, text: str) -> list[ParsedItem]:
        if self.use_ai:
            return await self.extractor.extract_ai(text)
        return await asyncio.to_thread(self.extractor.extract, text)

    async def _run_extraction(self, job: ParseJob) -> None:
        start_time = time.time()
        try:
            items = await self._extract(job.input)
        except asyncio.CancelledError:
            await self._finish(job, error="Extraction cancelled")
            raise
        except Exception as e:
            logger.error(f"Parse job {job.job_id} failed: {e!s}")
            await self._finish(job, error=str(e) or e.__class__.__name__)
        else:
            if await self._finish(job, result=items):
                logger.info(
                    f"Parse job {job.job_id} completed with {len(items)} item(s) "
                    f"in {time.time() - start_time:.2f}s"
                )

    async def _finish(
        self,
        job: ParseJob,
        result: list[ParsedItem] | None = None,
        error: str | None = None,
    ) -> bool:
        """Write the terminal record in a single store operation.

        Returns True when the intended outcome was recorded. If a successful
        result cannot be stored, a ``failed`` record is written in its place so
        pollers never see the job stay pending.
        """
        try:
            current = await self.store.get(job.job_id)
        except Exception as e:
            logger.warning(f"Could not read parse job {job.job_id} before finishing: {e!s}")
            current = None
        if current is not None and current.is_terminal:
            logger.warning(f"Parse job {job.job_id} already {current.status.value}; ignoring update")
            return False

        finished = job.model_copy(
            update={
                "status": JobStatus.FAILED if error is not None else JobStatus.DONE,
                "result": list(result) if error is None else None,
                "error": error,
                "completed_at": datetime.now(UTC),
            }
        )
        if await self._put_terminal(finished):
            return True
        if error is not None:
            return False

        fallback = finished.model_copy(
            update={"status": JobStatus.FAILED, "result": None, "error": "Could not store extraction result"}
        )
        if await self._put_terminal(fallback):
            logger.warning(f"Parse job {job.job_id} recorded as failed: its result could not be stored")
        return False

    async def _put_terminal(self, job: ParseJob) -> bool:
        """Store a terminal record, retrying with backoff."""
        retry_delay = self.terminal_write_delay
        for attempt in range(self.terminal_write_retries):
            try:
                await self.store.put(job)
                return True
            except Exception as e:
                if attempt == self.terminal_write_retries - 1:
                    logger.error(
                        f"Could not record {job.status.value} outcome of parse job {job.job_id} "
                        f"after {self.terminal_write_retries} attempts: {e!s}"
                    )
                    return False
                logger.warning(
                    f"Recording parse job {job.job_id} failed (attempt {attempt + 1}), "
                    f"retrying in {retry_delay}s: {e!s}"
                )
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
        return False

    async def shutdown(self) -> None:
        """Let running extractions finish, then release the store."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.store.close()
