"""Durable client-side key-value storage for draft snapshots and outboxes.

Mirrors browser ``localStorage``: string keys, JSON values, synchronous calls.
Draft state lives under ``drafts-local-<key>``, the pending outbox entry under
``drafts-outbox-<key>``.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from shared.enums import LOCAL_SNAPSHOT_PREFIX, OUTBOX_PREFIX
from shared.models import DraftSnapshot, OutboxEntry
from shared.utils import config, ensure_directory, sanitize_filename, setup_logging

logger = setup_logging("snapshot-store")


def snapshot_key(key: str) -> str:
    return f"{LOCAL_SNAPSHOT_PREFIX}{key}"


def outbox_key(key: str) -> str:
    return f"{OUTBOX_PREFIX}{key}"


class LocalSnapshotStore(ABC):
    """Synchronous JSON key-value store."""

    @abstractmethod
    def get_item(self, name: str) -> Any | None:
        pass

    @abstractmethod
    def set_item(self, name: str, value: Any) -> None:
        pass

    @abstractmethod
    def remove_item(self, name: str) -> None:
        pass

    def load_snapshot(self, key: str) -> DraftSnapshot | None:
        raw = self.get_item(snapshot_key(key))
        if raw is None:
            return None
        try:
            return DraftSnapshot.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable snapshot for draft key {key}: {e!s}")
            return None

    def save_snapshot(self, key: str, snapshot: DraftSnapshot) -> None:
        self.set_item(snapshot_key(key), snapshot.to_storage())

    def clear_snapshot(self, key: str) -> None:
        self.remove_item(snapshot_key(key))

    def load_outbox(self, key: str) -> OutboxEntry | None:
        raw = self.get_item(outbox_key(key))
        if raw is None:
            return None
        try:
            return OutboxEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Dropping unreadable outbox entry for draft key {key}: {e!s}")
            return None

    def save_outbox(self, key: str, entry: OutboxEntry | None) -> None:
        if entry is None:
            self.remove_item(outbox_key(key))
        else:
            self.set_item(outbox_key(key), entry.to_storage())


class InMemorySnapshotStore(LocalSnapshotStore):
    """Process-local store; values are JSON round-tripped so callers never share state."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, name: str) -> Any | None:
        raw = self._items.get(name)
        return None if raw is None else json.loads(raw)

    def set_item(self, name: str, value: Any) -> None:
        self._items[name] = json.dumps(value)

    def remove_item(self, name: str) -> None:
        self._items.pop(name, None)

    def keys(self) -> list[str]:
        return list(self._items)


class FileSnapshotStore(LocalSnapshotStore):
    """One JSON file per key; writes replace the file atomically."""

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory or config.get("local_drafts_dir", "./.drafts"))
        ensure_directory(str(self.directory))

    def _path(self, name: str) -> Path:
        return self.directory / f"{sanitize_filename(name)}.json"

    def get_item(self, name: str) -> Any | None:
        path = self._path(name)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                return json.load(stream)
        except FileNotFoundError:
            return None
        except ValueError as e:
            logger.warning(f"Corrupt local draft file {path}: {e!s}")
            return None

    def set_item(self, name: str, value: Any) -> None:
        path = self._path(name)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                json.dump(value, stream)
                stream.flush()
                os.fsync(stream.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def remove_item(self, name: str) -> None:
        self._path(name).unlink(missing_ok=True)
