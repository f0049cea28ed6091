"""Background parse jobs: store backends, manager and tenant registry."""

from .manager import ParseJobManager
from .registry import ParseJobRegistry
from .store import InMemoryJobStore, JobStore, RedisJobStore, create_job_store

__all__ = [
    "InMemoryJobStore",
    "JobStore",
    "ParseJobManager",
    "ParseJobRegistry",
    "RedisJobStore",
    "create_job_store",
]
