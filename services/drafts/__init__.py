"""Offline-first draft autosave: local snapshots, outbox and remote Draft Store client."""

from .client import DraftStoreClient, HTTPDraftStoreClient
from .controller import AutosaveDraftController, is_server_id
from .errors import DraftStoreError, OutboxConflictError
from .outbox import Outbox, RetryPolicy
from .snapshot_store import (
    FileSnapshotStore,
    InMemorySnapshotStore,
    LocalSnapshotStore,
    outbox_key,
    snapshot_key,
)

__all__ = [
    "AutosaveDraftController",
    "DraftStoreClient",
    "DraftStoreError",
    "FileSnapshotStore",
    "HTTPDraftStoreClient",
    "InMemorySnapshotStore",
    "LocalSnapshotStore",
    "Outbox",
    "OutboxConflictError",
    "RetryPolicy",
    "is_server_id",
    "outbox_key",
    "snapshot_key",
]
