"""Per-tenant registry of parse job managers."""

from collections.abc import Callable
from dataclasses import dataclass

from services.parse_jobs.manager import ParseJobManager
from shared.utils import setup_logging

logger = setup_logging("parse-job-registry")


@dataclass
class _Lease:
    manager: ParseJobManager
    refs: int = 0


class ParseJobRegistry:
    """Hands out one :class:`ParseJobManager` per tenant key.

    ``acquire`` creates the manager on first use and counts references;
    the matching ``release`` of the last reference shuts it down.
    """

    def __init__(self, factory: Callable[[str], ParseJobManager] | None = None) -> None:
        self._factory = factory or (lambda key: ParseJobManager(tenant_id=key))
        self._leases: dict[str, _Lease] = {}

    def acquire(self, key: str) -> ParseJobManager:
        lease = self._leases.get(key)
        if lease is None:
            lease = _Lease(manager=self._factory(key))
            self._leases[key] = lease
            logger.info(f"Created parse job manager for tenant {key}")
        lease.refs += 1
        return lease.manager

    async def release(self, key: str) -> None:
        lease = self._leases.get(key)
        if lease is None:
            return
        lease.refs -= 1
        if lease.refs > 0:
            return
        del self._leases[key]
        await lease.manager.shutdown()
        logger.info(f"Released parse job manager for tenant {key}")

    def get(self, key: str) -> ParseJobManager | None:
        lease = self._leases.get(key)
        return lease.manager if lease else None

    def refcount(self, key: str) -> int:
        lease = self._leases.get(key)
        return lease.refs if lease else 0

    def keys(self) -> list[str]:
        return list(self._leases)

    async def close(self) -> None:
        """Shut down every manager regardless of outstanding references."""
        leases = list(self._leases.values())
        self._leases.clear()
        for lease in leases:
            await lease.manager.shutdown()

    def reset(self) -> None:
        """Forget all managers without awaiting them (primarily for tests)."""
        self._leases.clear()
