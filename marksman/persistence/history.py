"""Session history file-based storage."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from ..scoring.records import SessionRecord
from .summary import format_summary

logger = logging.getLogger(__name__)


class SessionSink(Protocol):
    """Durable storage for finalized sessions."""

    def reserve_name(self, session_name: str) -> str: ...

    def save(self, session: SessionRecord, snapshot: bytes | None = None) -> SessionRecord: ...


class SessionHistory:
    """File-based storage for session records.

    Each session is stored as `<name>.json` (structured record),
    `<name>.txt` (plain-text summary) and, when given, `<name>.png`
    (snapshot image).

    `reserve_name` hands out a collision-free name before the write
    happens; a save under a reserved name keeps it, and the reservation
    is released once the record is on disk.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._reserved: set[str] = set()

    def _path_for(self, session_name: str, suffix: str = ".json") -> Path:
        return self.directory / f"{session_name}{suffix}"

    def _taken(self, name: str) -> bool:
        return name in self._reserved or self._path_for(name).exists()

    def unique_name(self, session_name: str) -> str:
        """Append `_<n>` when a session with this name is already stored or reserved."""
        name = session_name
        n = 1
        while self._taken(name):
            name = f"{session_name}_{n}"
            n += 1
        return name

    def reserve_name(self, session_name: str) -> str:
        with self._lock:
            name = self.unique_name(session_name)
            self._reserved.add(name)
        return name

    def save(self, session: SessionRecord, snapshot: bytes | None = None) -> SessionRecord:
        """Save a session (record, summary, optional snapshot). Returns the record as stored."""
        with self._lock:
            if session.session_name in self._reserved:
                name = session.session_name
            else:
                name = self.unique_name(session.session_name)
                self._reserved.add(name)
        snapshot_ref = f"{name}.png" if snapshot is not None else session.snapshot_ref
        if name != session.session_name or snapshot_ref != session.snapshot_ref:
            session = dataclasses.replace(session, session_name=name, snapshot_ref=snapshot_ref)

        if snapshot is not None:
            self._path_for(name, ".png").write_bytes(snapshot)
        with open(self._path_for(name, ".txt"), "w", encoding="utf-8") as f:
            f.write(format_summary(session))
        # Record last: its presence marks a complete save.
        with open(self._path_for(name), "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2)
        # A failed write keeps the reservation, so a retry lands under the same name.
        with self._lock:
            self._reserved.discard(name)

        logger.info(f"Saved {name} ({len(session.shots)} shots) to {self.directory}")
        return session

    def load(self, session_name: str) -> SessionRecord | None:
        """Load a session record by name."""
        path = self._path_for(session_name)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return SessionRecord.from_dict(json.load(f))

    def load_summary(self, session_name: str) -> str | None:
        path = self._path_for(session_name, ".txt")
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def list_recent(self, limit: int = 50) -> list[SessionRecord]:
        """List recent sessions, most recently finalized first. Unreadable files are skipped."""
        records: list[SessionRecord] = []
        for path in self.directory.glob("session_*.json"):
            try:
                with open(path, encoding="utf-8") as f:
                    records.append(SessionRecord.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable session file {path.name}: {e}")

        records.sort(key=lambda r: r.finalized_at, reverse=True)
        return records[:limit]
