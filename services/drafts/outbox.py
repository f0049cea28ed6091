"""Per-key outbox of pending draft mutations."""

from dataclasses import dataclass

from services.drafts.errors import OutboxConflictError
from services.drafts.snapshot_store import LocalSnapshotStore
from shared.enums import OutboxAction
from shared.models import OutboxEntry
from shared.utils import config

DEFAULT_RETRY_DELAYS = (1.0, 2.0, 4.0)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule for transient write failures.

    One initial attempt plus one retry per delay, so the default allows four
    attempts waiting 1s, 2s and 4s between them.
    """

    delays: tuple[float, ...] = DEFAULT_RETRY_DELAYS

    @property
    def max_attempts(self) -> int:
        return len(self.delays) + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the ``attempt``-th failure (1-based)."""
        if not self.delays:
            return 0.0
        index = min(max(attempt, 1), len(self.delays)) - 1
        return float(self.delays[index])

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        delays = config.get_pipeline_value("drafts.retry_delays", list(DEFAULT_RETRY_DELAYS))
        return cls(delays=tuple(float(delay) for delay in delays))


class Outbox:
    """Holds at most one pending mutation for a draft key.

    Newer upserts replace older ones (latest content wins) and a delete
    supersedes any pending upsert. Every enqueue bumps ``revision`` so a writer
    can tell whether the entry it sent is still the one pending when its
    request resolves.
    """

    def __init__(self, key: str, store: LocalSnapshotStore | None = None) -> None:
        self.key = key
        self.store = store
        self._entry: OutboxEntry | None = store.load_outbox(key) if store else None
        self._revision = 0

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def pending(self) -> OutboxEntry | None:
        return self._entry.model_copy() if self._entry else None

    def __len__(self) -> int:
        return 0 if self._entry is None else 1

    def peek(self) -> tuple[OutboxEntry, int] | None:
        if self._entry is None:
            return None
        return self._entry.model_copy(), self._revision

    def enqueue(self, entry: OutboxEntry) -> int:
        """Replace the pending slot with ``entry`` and return the new revision."""
        if (
            entry.type != OutboxAction.DELETE
            and self._entry is not None
            and self._entry.type == OutboxAction.DELETE
        ):
            raise OutboxConflictError(f"Delete pending for draft key {self.key}")

        self._entry = entry.model_copy(update={"attempts": 0, "last_error": None})
        self._revision += 1
        self._persist()
        return self._revision

    def ack(self, revision: int) -> bool:
        """Clear the slot if ``revision`` is still current; False when superseded."""
        if self._entry is None or revision != self._revision:
            return False
        self._entry = None
        self._persist()
        return True

    def record_failure(self, revision: int, error: str) -> int:
        """Count a failed attempt; returns the attempt total, or 0 when superseded."""
        if self._entry is None or revision != self._revision:
            return 0
        self._entry = self._entry.model_copy(
            update={"attempts": self._entry.attempts + 1, "last_error": error}
        )
        self._persist()
        return self._entry.attempts

    def reset_attempts(self) -> None:
        if self._entry is not None and self._entry.attempts:
            self._entry = self._entry.model_copy(update={"attempts": 0})
            self._persist()

    def clear(self) -> None:
        self._entry = None
        self._revision += 1
        self._persist()

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save_outbox(self.key, self._entry)
