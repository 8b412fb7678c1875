"""Off-tick session writes with retained failures."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from ..errors import PersistenceError
from ..scoring.records import SessionRecord
from .history import SessionSink

logger = logging.getLogger(__name__)


@dataclass
class FailedWrite:
    session: SessionRecord
    snapshot: bytes | None
    error: PersistenceError
    attempts: int = 1


class SessionWriter:
    """
    Hands finalized sessions to a sink on a single background worker.

    Sessions are immutable snapshots, so the tick never waits on disk and
    shots fired after a reload cannot leak into the session being written.
    A failed write is kept in `failed` until `retry_failed()` or
    `discard_failed()`; the tick picks new failures up with
    `poll_failures()`.
    """

    def __init__(self, sink: SessionSink, executor: Executor | None = None) -> None:
        self.sink = sink
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="marksman-writer")
        self._lock = threading.Lock()
        self._inflight: list[Future] = []
        self.saved: list[SessionRecord] = []
        self.failed: list[FailedWrite] = []
        self._unreported: list[FailedWrite] = []

    def reserve_name(self, session_name: str) -> str:
        """Claim the name the sink will store `session_name` under. Called on the tick, before submit."""
        return self.sink.reserve_name(session_name)

    def submit(self, session: SessionRecord, snapshot: bytes | None = None, attempts: int = 1) -> Future:
        fut = self._executor.submit(self._write, session, snapshot, attempts)
        with self._lock:
            self._inflight = [f for f in self._inflight if not f.done()]
            self._inflight.append(fut)
        return fut

    def _write(self, session: SessionRecord, snapshot: bytes | None, attempts: int) -> SessionRecord | None:
        try:
            stored = self.sink.save(session, snapshot)
        except Exception as e:
            error = PersistenceError(session.session_name, e)
            logger.error(f"{error} (attempt {attempts}); keeping it for retry")
            failure = FailedWrite(session=session, snapshot=snapshot, error=error, attempts=attempts)
            with self._lock:
                self.failed.append(failure)
                self._unreported.append(failure)
            return None
        with self._lock:
            self.saved.append(stored)
        return stored

    def poll_failures(self) -> list[FailedWrite]:
        """Failures not yet reported to the caller."""
        with self._lock:
            out = self._unreported
            self._unreported = []
        return out

    def retry_failed(self) -> list[Future]:
        with self._lock:
            pending = self.failed
            self.failed = []
        return [self.submit(f.session, f.snapshot, attempts=f.attempts + 1) for f in pending]

    def discard_failed(self) -> list[FailedWrite]:
        with self._lock:
            dropped = self.failed
            self.failed = []
        for f in dropped:
            logger.warning(f"Discarding unsaved session {f.session.session_name} ({len(f.session.shots)} shots)")
        return dropped

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for in-flight writes. Returns False on timeout."""
        with self._lock:
            inflight = list(self._inflight)
        _done, not_done = wait(inflight, timeout=timeout)
        return not not_done

    def close(self) -> None:
        self.flush()
        if self._owns_executor:
            self._executor.shutdown(wait=True)
