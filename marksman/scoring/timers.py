"""Cancelable delayed tasks on the simulation clock."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class ScheduledTask:
    due_s: float
    callback: Callable[[], None] = field(repr=False)
    key: int = 0  # session generation the task belongs to
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class Scheduler:
    """Runs callbacks once simulated time passes their due time.

    Time only moves through `advance`, so firing order is deterministic.
    """

    def __init__(self) -> None:
        self.time_s = 0.0
        self._tasks: list[ScheduledTask] = []

    def schedule(self, delay_s: float, callback: Callable[[], None], key: int = 0) -> ScheduledTask:
        task = ScheduledTask(due_s=self.time_s + max(0.0, float(delay_s)), callback=callback, key=key)
        self._tasks.append(task)
        return task

    def cancel_key(self, key: int) -> int:
        """Cancel every pending task scheduled under `key`."""
        n = 0
        for task in self._tasks:
            if task.key == key and task.pending:
                task.cancel()
                n += 1
        return n

    def advance(self, dt: float) -> int:
        self.time_s += dt
        due = [t for t in self._tasks if t.pending and t.due_s <= self.time_s + 1e-9]
        due.sort(key=lambda t: t.due_s)
        for task in due:
            # An earlier callback may have cancelled this one.
            if not task.pending:
                continue
            task.fired = True
            task.callback()
        self._tasks = [t for t in self._tasks if t.pending]
        return len(due)

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._tasks if t.pending)
