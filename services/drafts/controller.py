"""Offline-first autosave for a single logical draft."""

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

from services.drafts.client import DraftStoreClient
from services.drafts.errors import DraftStoreError
from services.drafts.outbox import Outbox, RetryPolicy
from services.drafts.snapshot_store import InMemorySnapshotStore, LocalSnapshotStore
from shared.enums import LOCAL_DRAFT_ID_PREFIX, OutboxAction, SaveStatus
from shared.models import DraftSnapshot, OutboxEntry, RemoteDraft
from shared.utils import config, epoch_millis, setup_logging, to_epoch_millis

logger = setup_logging("autosave-drafts")

DEFAULT_DEBOUNCE_SECONDS = 2.0

StatusListener = Callable[[SaveStatus], Any]
RemoteNewerCallback = Callable[[RemoteDraft, DraftSnapshot | None], Any]


def is_server_id(draft_id: str | None) -> bool:
    """Ids minted locally (``local-...``) were never acknowledged by the server."""
    return bool(draft_id) and not draft_id.startswith(LOCAL_DRAFT_ID_PREFIX)


class AutosaveDraftController:
    """Keeps one draft durably saved locally and eventually synced remotely.

    Every edit is written to the local snapshot store immediately. Remote
    writes are debounced, coalesced through a single-slot :class:`Outbox` and
    sent by one worker task at a time, so at most one write per key is ever
    in flight and the last edit always wins.

    Must be used from inside a running event loop.
    """

    def __init__(
        self,
        key: str,
        client: DraftStoreClient,
        snapshot_store: LocalSnapshotStore | None = None,
        *,
        debounce_seconds: float | None = None,
        retry_policy: RetryPolicy | None = None,
        metadata: dict[str, Any] | None = None,
        on_remote_newer: RemoteNewerCallback | None = None,
        on_status_change: StatusListener | None = None,
    ) -> None:
        if not key:
            raise ValueError("Draft key is required")

        self.key = key
        self.client = client
        self.snapshot_store = snapshot_store or InMemorySnapshotStore()
        if debounce_seconds is None:
            debounce_seconds = float(
                config.get_pipeline_value("drafts.debounce_seconds", DEFAULT_DEBOUNCE_SECONDS)
            )
        self.debounce_seconds = debounce_seconds
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self.metadata = metadata
        self.on_remote_newer = on_remote_newer

        self._listeners: list[StatusListener] = []
        if on_status_change is not None:
            self._listeners.append(on_status_change)

        self._status = SaveStatus.IDLE
        self._draft_id: str | None = None
        self._content: Any = None
        self._updated_at = 0
        self._dirty = False
        self._last_error: str | None = None
        self._last_synced_at: int | None = None

        self._outbox = Outbox(key, self.snapshot_store)
        self._timer: asyncio.TimerHandle | None = None
        self._worker: asyncio.Task | None = None
        self._mounted = False
        self._closed = False

        self._restore_local()

    # State
    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def draft_id(self) -> str | None:
        return self._draft_id

    @property
    def content(self) -> Any:
        return self._content

    @property
    def updated_at(self) -> int:
        return self._updated_at

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def last_synced_at(self) -> int | None:
        return self._last_synced_at

    @property
    def pending(self) -> OutboxEntry | None:
        return self._outbox.pending

    @property
    def _server_id(self) -> str | None:
        return self._draft_id if is_server_id(self._draft_id) else None

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # Lifecycle
    async def mount(self) -> None:
        """Check the server for a newer copy and resume any persisted outbox entry."""
        if self._mounted:
            return
        self._mounted = True
        await self._check_remote_newer()
        if self._outbox.peek() is not None:
            logger.info(f"Resuming pending {self._outbox.pending.type.value} for draft key {self.key}")
            self._kick()

    def set_content(self, content: Any) -> None:
        """Record an edit locally and (re)start the debounce timer."""
        self._content = content
        self._updated_at = max(epoch_millis(), self._updated_at + 1)
        self._dirty = True
        self._persist_snapshot()

        if self._closed:
            logger.debug(f"Controller for draft key {self.key} is closed; edit kept locally only")
            return
        self._restart_timer()

    async def delete(self) -> None:
        """Delete the draft; local-only drafts never touch the server."""
        self._cancel_timer()
        self._dirty = False

        in_flight = self._worker is not None and not self._worker.done()
        if self._server_id is None and not in_flight:
            self._outbox.clear()
            self._reset_local()
            self._last_error = None
            self._set_status(SaveStatus.IDLE)
            logger.info(f"Discarded local-only draft for key {self.key}")
            return

        self._outbox.enqueue(OutboxEntry(type=OutboxAction.DELETE, id=self._server_id))
        await self.process()

    async def flush(self) -> None:
        """Skip the debounce and save the latest edit now."""
        self._cancel_timer()
        self._enqueue_latest()
        await self.process()

    async def process(self) -> None:
        """Drain the outbox and wait until the worker goes idle."""
        if self._status == SaveStatus.ERROR:
            self._outbox.reset_attempts()
        self._kick()
        worker = self._worker
        if worker is not None and not worker.done():
            # The write carries on if the caller is cancelled.
            await asyncio.shield(worker)

    def close(self) -> None:
        """Stop scheduling saves; in-flight writes are left to complete."""
        self._closed = True
        self._cancel_timer()

    async def aclose(self) -> None:
        self.close()
        worker = self._worker
        if worker is not None and not worker.done():
            await asyncio.shield(worker)

    async def __aenter__(self) -> "AutosaveDraftController":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # Internals
    def _restore_local(self) -> None:
        snapshot = self.snapshot_store.load_snapshot(self.key)
        if snapshot is None:
            return
        self._draft_id = snapshot.draft_id
        self._content = snapshot.content
        self._updated_at = snapshot.updated_at
        self._last_synced_at = snapshot.synced_at

    def _persist_snapshot(self) -> None:
        snapshot = DraftSnapshot(
            draft_id=self._draft_id,
            content=self._content,
            updated_at=self._updated_at,
            synced_at=self._last_synced_at,
        )
        self.snapshot_store.save_snapshot(self.key, snapshot)

    def _reset_local(self) -> None:
        self._draft_id = None
        self._last_synced_at = None
        if self._dirty:
            # Edited while the delete was in flight: keep the edit as a new draft.
            self._persist_snapshot()
            return
        self._content = None
        self._updated_at = 0
        self.snapshot_store.clear_snapshot(self.key)

    def _restart_timer(self) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_debounce)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_debounce(self) -> None:
        self._timer = None
        if self._closed:
            return
        self._enqueue_latest()
        self._kick()

    def _enqueue_latest(self) -> None:
        if not self._dirty:
            return
        pending = self._outbox.peek()
        if pending is not None and pending[0].type == OutboxAction.DELETE:
            return

        action = OutboxAction.UPDATE if self._server_id else OutboxAction.CREATE
        self._outbox.enqueue(
            OutboxEntry(type=action, id=self._server_id, payload=self._content, metadata=self.metadata)
        )
        self._dirty = False

    def _kick(self) -> None:
        if self._worker is not None and not self._worker.done():
            return
        if self._outbox.peek() is None:
            return
        self._worker = asyncio.create_task(self._drain(), name=f"autosave-{self.key}")

    async def _drain(self) -> None:
        settled = SaveStatus.SAVED
        while True:
            pending = self._outbox.peek()
            if pending is None:
                if self._status == SaveStatus.SAVING:
                    self._set_status(settled)
                return

            entry, revision = pending
            self._set_status(SaveStatus.SAVING)
            try:
                await self._apply(entry)
            except Exception as e:
                transient = e.transient if isinstance(e, DraftStoreError) else True
                attempts = self._outbox.record_failure(revision, str(e))
                if attempts == 0:
                    continue

                if not transient or attempts >= self.retry_policy.max_attempts:
                    logger.error(
                        f"Giving up on {entry.type.value} for draft key {self.key} "
                        f"after {attempts} attempt(s): {e!s}"
                    )
                    self._last_error = str(e)
                    self._set_status(SaveStatus.ERROR)
                    return

                delay = self.retry_policy.delay_for(attempts)
                logger.warning(
                    f"{entry.type.value} for draft key {self.key} failed (attempt {attempts}), "
                    f"retrying in {delay}s: {e!s}"
                )
                await asyncio.sleep(delay)
                continue

            self._outbox.ack(revision)
            self._last_error = None
            if entry.type == OutboxAction.DELETE:
                settled = SaveStatus.IDLE
                if self._dirty:
                    self._enqueue_latest()
            else:
                settled = SaveStatus.SAVED

    async def _apply(self, entry: OutboxEntry) -> None:
        if entry.type == OutboxAction.DELETE:
            target = entry.id if is_server_id(entry.id) else self._server_id
            if target:
                try:
                    await self.client.delete_draft(target)
                except DraftStoreError as e:
                    if not e.not_found:
                        raise
                    logger.info(f"Draft {target} already gone on server")
            self._reset_local()
            logger.info(f"Deleted draft for key {self.key}")
            return

        if self._server_id:
            result = await self.client.update_draft(self._server_id, entry.payload, entry.metadata)
        else:
            result = await self.client.create_draft(self.key, entry.payload, entry.metadata)
            self._draft_id = result.id
            logger.info(f"Created draft {result.id} for key {self.key}")

        self._last_synced_at = to_epoch_millis(result.updated_at) if result.updated_at else epoch_millis()
        self._persist_snapshot()

    async def _check_remote_newer(self) -> None:
        try:
            drafts = await self.client.get_drafts(self.key)
        except Exception as e:
            logger.warning(f"Could not fetch remote drafts for key {self.key}: {e!s}")
            return
        if not drafts:
            return

        newest = max(drafts, key=lambda draft: to_epoch_millis(draft.updated_at))
        local = self.snapshot_store.load_snapshot(self.key)
        # A snapshot already reflects the server copy it last wrote.
        local_known_at = local.known_at if local else 0
        if to_epoch_millis(newest.updated_at) <= local_known_at:
            return

        logger.info(f"Server copy {newest.id} of draft key {self.key} is newer than the local snapshot")
        if self.on_remote_newer is not None:
            await self._invoke(self.on_remote_newer, newest, local)

    def _set_status(self, status: SaveStatus) -> None:
        if status == self._status:
            return
        self._status = status
        for listener in list(self._listeners):
            try:
                result = listener(status)
                if inspect.isawaitable(result):
                    asyncio.ensure_future(result)
            except Exception as e:
                logger.error(f"Status listener failed for draft key {self.key}: {e!s}")

    async def _invoke(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Callback failed for draft key {self.key}: {e!s}")
