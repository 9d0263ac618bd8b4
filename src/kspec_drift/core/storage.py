"""Drift history persistence: in-memory and JSON file stores."""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from kspec_drift.exceptions import ConfigurationError
from kspec_drift.models.drift import DriftEvent, DriftHistory, DriftStats, utcnow

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


@dataclass
class StorageConfig:
    type: str = "memory"  # "memory" or "file"
    path: str = ""
    retention: timedelta | None = None


@runtime_checkable
class Storage(Protocol):
    def store(self, event: DriftEvent) -> None: ...

    def get_history(self, since: datetime | None = None) -> DriftHistory: ...

    def clear(self) -> None: ...


def _build_history(events: list[DriftEvent], since: datetime | None) -> DriftHistory:
    if since is not None and since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    filtered = [e for e in events if since is None or e.timestamp >= since]
    return DriftHistory(events=filtered, stats=DriftStats.from_events(filtered))


def _prune(events: list[DriftEvent], retention: timedelta | None) -> list[DriftEvent]:
    if retention is None:
        return events
    cutoff = utcnow() - retention
    return [e for e in events if e.timestamp >= cutoff]


class MemoryStorage:
    """Keeps drift history for the lifetime of the process."""

    def __init__(self, retention: timedelta | None = None):
        self.retention = retention
        self._lock = threading.Lock()
        self._events: list[DriftEvent] = []

    def store(self, event: DriftEvent) -> None:
        with self._lock:
            self._events.append(copy.deepcopy(event))
            self._events = _prune(self._events, self.retention)

    def get_history(self, since: datetime | None = None) -> DriftHistory:
        with self._lock:
            return _build_history(copy.deepcopy(self._events), since)

    def clear(self) -> None:
        with self._lock:
            self._events = []


class FileStorage:
    """Stores drift history in a single JSON file.

    Single writer, whole-file read-modify-write. The file is replaced
    atomically so a crash never leaves a half-written history behind.
    """

    def __init__(self, path: Path | str, retention: timedelta | None = None):
        self.path = Path(path)
        self.retention = retention
        self._lock = threading.Lock()

    def store(self, event: DriftEvent) -> None:
        with self._lock:
            events = self._load()
            events.append(event)
            self._save(_prune(events, self.retention))

    def get_history(self, since: datetime | None = None) -> DriftHistory:
        with self._lock:
            return _build_history(self._load(), since)

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)

    def _load(self) -> list[DriftEvent]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        data = json.loads(raw)

        # Unversioned files hold a bare array of events
        if isinstance(data, list):
            records = data
        else:
            version = data.get("schema_version", SCHEMA_VERSION)
            if version > SCHEMA_VERSION:
                raise ConfigurationError(
                    f"history file {self.path} has schema version {version}, "
                    f"newer than supported {SCHEMA_VERSION}"
                )
            records = data.get("events", []) or []
        return [DriftEvent.from_dict(r) for r in records]

    def _save(self, events: list[DriftEvent]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "schema_version": SCHEMA_VERSION,
            "events": [e.to_dict() for e in events],
        }
        fd, tmp = tempfile.mkstemp(prefix=".history-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2, default=str)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d drift events to %s", len(events), self.path)


def new_storage(config: StorageConfig | None = None) -> Storage:
    """Create a storage based on configuration."""
    if config is None:
        return MemoryStorage()
    if config.type in ("memory", ""):
        return MemoryStorage(retention=config.retention)
    if config.type == "file":
        if not config.path:
            raise ConfigurationError("file storage requires path")
        return FileStorage(config.path, retention=config.retention)
    raise ConfigurationError(f"unsupported storage type: {config.type}")
