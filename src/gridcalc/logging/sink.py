"""Filesystem NDJSON event sink with concurrency-safe appends.

Events are appended as one JSON line per event.  Two log destinations:

- ``<log_dir>/events.ndjson``  -- global event log
- ``<log_dir>/recalcs/<recalc_id>.ndjson``  -- per-recalculation log

Writes use ``json.dumps(sort_keys=True)`` for deterministic output.  Each
append holds an exclusive ``fcntl.flock`` on the target file; reads hold a
shared lock.
"""

from __future__ import annotations

import fcntl
import json
import os
import re
from pathlib import Path
from typing import Any

from gridcalc.logging.events import CalcEvent

# Path-component validation: reject anything that could escape the log dir
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


class EventSink:
    """Append-only NDJSON log writer with file locking."""

    def __init__(self, log_dir: Path, *, fsync: bool = False) -> None:
        self.log_dir = log_dir
        self._fsync = fsync

        self.log_dir.mkdir(parents=True, exist_ok=True)
        (self.log_dir / "recalcs").mkdir(exist_ok=True)

    @property
    def global_path(self) -> Path:
        return self.log_dir / "events.ndjson"

    def write(self, event: CalcEvent, *, recalc_id: str | None = None) -> None:
        """Append *event* to the global log and optionally a per-recalc log."""
        line = json.dumps(event.model_dump(mode="json"), sort_keys=True, default=str) + "\n"

        self._append(self.global_path, line)

        if recalc_id and _SAFE_ID_RE.match(recalc_id):
            self._append(self.log_dir / "recalcs" / f"{recalc_id}.ndjson", line)

    # ------------------------------------------------------------------
    # Query helpers (used by the CLI and tests)
    # ------------------------------------------------------------------

    def read_events(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        address: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Read events from the global log, most-recent-first, with filters."""
        events = self._read_ndjson(self.global_path)

        if level:
            events = [e for e in events if e.get("level") == level]
        if event_type:
            events = [e for e in events if e.get("event_type") == event_type]
        if address:
            events = [
                e for e in events
                if e.get("context", {}).get("address") == address
            ]

        events.reverse()
        return events[:limit]

    def read_recalc_log(self, recalc_id: str) -> list[dict[str, Any]]:
        """Read all events for one recalculation, oldest first."""
        if not _SAFE_ID_RE.match(recalc_id):
            return []
        return self._read_ndjson(self.log_dir / "recalcs" / f"{recalc_id}.ndjson")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _append(self, path: Path, line: str) -> None:
        """Append a single line to *path* under exclusive file lock."""
        fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_APPEND)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            os.write(fd, line.encode("utf-8"))
            if self._fsync:
                os.fsync(fd)
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

    def _read_ndjson(self, path: Path) -> list[dict[str, Any]]:
        """Read an NDJSON file under shared lock, skipping unparseable lines."""
        if not path.exists():
            return []

        fd = os.open(str(path), os.O_RDONLY)
        try:
            fcntl.flock(fd, fcntl.LOCK_SH)
            size = os.fstat(fd).st_size
            raw = os.read(fd, size).decode("utf-8", errors="replace")
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)

        events: list[dict[str, Any]] = []
        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return events
