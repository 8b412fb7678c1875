"""
Magazine, shot bookkeeping and session lifecycle.

The ledger is the single owner of the magazine and of every ShotRecord.
A shot is registered when fired (pending, with its predicted aim point),
completed exactly once by a hit or miss report, and collected into the
active session. Reload closes the magazine cycle: the session is frozen,
handed to the writer, and all per-cycle state is reset.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from ..config import RIFLE_PRESET, WeaponPreset
from ..constants import EMPTY_MAG_LOCK_DELAY_S, MARKER_OFFSET_M
from ..errors import LoadoutLockedError, UnknownShotIdError
from ..sim.vecmath import normalize, vec3
from .events import EventBus, EventType
from .metrics import compute_metrics, explain_hit, explain_miss
from .records import MagazineState, SessionRecord, ShotOutcome, ShotRecord, to_point
from .timers import Scheduler, ScheduledTask

if TYPE_CHECKING:
    from ..persistence.writer import SessionWriter
    from ..sim.target import TargetMotionModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Marker:
    """Impact marker placement request, offset off the surface."""

    shot_id: int
    position: tuple[float, float, float]
    normal: tuple[float, float, float]
    target_label: str


class MarkerRegistry:
    """Placed markers of the current magazine cycle, keyed by shot id."""

    def __init__(self) -> None:
        self._markers: dict[int, Marker] = {}

    def place(self, marker: Marker) -> None:
        self._markers[marker.shot_id] = marker

    def get(self, shot_id: int) -> Marker | None:
        return self._markers.get(shot_id)

    def clear(self) -> list[Marker]:
        removed = list(self._markers.values())
        self._markers.clear()
        return removed

    def __len__(self) -> int:
        return len(self._markers)

    def __iter__(self):
        return iter(self._markers.values())


class ShotLedger:
    def __init__(
        self,
        *,
        events: EventBus | None = None,
        writer: SessionWriter | None = None,
        motion: TargetMotionModel | None = None,
        preset: WeaponPreset = RIFLE_PRESET,
        max_ammo: int | None = None,
        lock_delay_s: float = EMPTY_MAG_LOCK_DELAY_S,
        marker_offset_m: float = MARKER_OFFSET_M,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.events = events or EventBus()
        self.writer = writer
        self.motion = motion
        self.preset = preset
        self.lock_delay_s = float(lock_delay_s)
        self.marker_offset_m = float(marker_offset_m)
        self.clock = clock

        self.magazine = MagazineState(max_ammo=preset.magazine_size if max_ammo is None else max_ammo)
        self.scheduler = Scheduler()
        self.markers = MarkerRegistry()

        self.generation = 0
        self.aim_locked = False
        self.reload_prompt_visible = False
        self.last_session: SessionRecord | None = None

        self._pending: dict[int, ShotRecord] = {}
        self._completed: list[ShotRecord] = []
        # Ids keep counting across reloads, so a late report from an old
        # cycle can never complete a shot of the new one.
        self._next_shot_id = 1
        self._shots_registered = 0
        self._session_created_at: float | None = None
        self._target_moved = False
        self._lock_task: ScheduledTask | None = None

    # ---------- Magazine ----------

    @property
    def current_ammo(self) -> int:
        return self.magazine.current_ammo

    @property
    def max_ammo(self) -> int:
        return self.magazine.max_ammo

    @property
    def ammo_text(self) -> str:
        return f"Ammo: {self.magazine.current_ammo}/{self.magazine.max_ammo}"

    @property
    def session_active(self) -> bool:
        return self._shots_registered > 0

    def can_fire(self) -> bool:
        return self.magazine.current_ammo > 0

    def set_ammo(self, max_ammo: int, current_ammo: int) -> None:
        if max_ammo < 0 or not 0 <= current_ammo <= max(max_ammo, 0):
            logger.debug(f"Clamping magazine config max={max_ammo} current={current_ammo}")
        self.magazine.configure(max_ammo, current_ammo)
        if not self.magazine.empty and self._lock_task is not None and self._lock_task.pending:
            self._lock_task.cancel()
            self._lock_task = None
            logger.debug("Magazine refilled before the lock delay; lock cancelled")

    def set_loadout(self, preset: WeaponPreset) -> None:
        """Equip a weapon preset and a full magazine. Refused mid-session."""
        if self.session_active:
            raise LoadoutLockedError(f"cannot switch to {preset.display_name!r} before reloading")
        self.preset = preset
        self.set_ammo(preset.magazine_size, preset.magazine_size)
        logger.info(f"Weapon equipped: {preset.display_name}")

    def notify_shot_fired(self) -> None:
        before = self.magazine.current_ammo
        after = self.magazine.consume()
        if before > 0 and after == 0:
            self._schedule_lock()

    def _schedule_lock(self) -> None:
        if self._lock_task is not None and self._lock_task.pending:
            return
        generation = self.generation

        def lock() -> None:
            if generation != self.generation or not self.magazine.empty:
                return
            self.aim_locked = True
            self.reload_prompt_visible = True
            logger.info("Magazine empty, aiming locked until reload")
            self.events.emit(EventType.MAGAZINE_EMPTY, generation=generation)

        self._lock_task = self.scheduler.schedule(self.lock_delay_s, lock, key=generation)

    def tick(self, dt: float) -> None:
        """Advance the ledger clock (lock timer) and surface persistence failures."""
        self.scheduler.advance(dt)
        if self.writer is not None:
            for failure in self.writer.poll_failures():
                self.events.emit(
                    EventType.PERSISTENCE_FAILED,
                    session_name=failure.session.session_name,
                    error=str(failure.error.cause),
                    attempts=failure.attempts,
                )

    # ---------- Shots ----------

    def register_shot_fired(
        self,
        origin: np.ndarray,
        aim_direction: np.ndarray,
        muzzle_velocity: float,
        target_distance: float,
        target_is_moving: bool,
    ) -> int:
        origin = vec3(origin)
        predicted = origin + normalize(vec3(aim_direction)) * float(target_distance)

        shot_id = self._next_shot_id
        self._next_shot_id += 1
        now = self.clock()
        first = self._shots_registered == 0
        self._shots_registered += 1
        if first:
            self._session_created_at = now
        self._target_moved = self._target_moved or bool(target_is_moving)

        self._pending[shot_id] = ShotRecord(
            shot_id=shot_id,
            fired_at=now,
            origin=to_point(origin),
            predicted_point=to_point(predicted),
            target_distance=float(target_distance),
            target_moving=bool(target_is_moving),
            muzzle_velocity=float(muzzle_velocity),
        )
        if first:
            self.events.emit(EventType.FIRST_SHOT, shot_id=shot_id, generation=self.generation)
        return shot_id

    def pending(self, shot_id: int) -> ShotRecord:
        try:
            return self._pending[shot_id]
        except KeyError:
            raise UnknownShotIdError(shot_id) from None

    @property
    def pending_ids(self) -> list[int]:
        return sorted(self._pending)

    @property
    def completed(self) -> tuple[ShotRecord, ...]:
        return tuple(self._completed)

    def _take_pending(self, shot_id: int, kind: str) -> ShotRecord | None:
        record = self._pending.pop(shot_id, None)
        if record is None:
            logger.warning(f"Ignoring {kind} for shot {shot_id}: not pending")
        return record

    def _complete(self, record: ShotRecord) -> ShotRecord:
        self._completed.append(record)
        self.events.emit(EventType.SHOT_COMPLETED, record=record)
        return record

    def register_hit(
        self,
        shot_id: int,
        hit_point: np.ndarray,
        hit_normal: np.ndarray,
        target_label: str,
        energy_j: float,
    ) -> ShotRecord | None:
        record = self._take_pending(shot_id, "hit")
        if record is None:
            return None

        point = vec3(hit_point)
        normal = normalize(vec3(hit_normal))
        metrics = compute_metrics(record.origin, record.predicted_point, point, record.target_distance)
        record = dataclasses.replace(
            record,
            outcome=ShotOutcome.HIT,
            actual_point=to_point(point),
            target_label=target_label,
            energy_j=max(0.0, float(energy_j)),
            explanation=explain_hit(target_label, metrics),
            **dataclasses.asdict(metrics),
        )

        marker = Marker(
            shot_id=shot_id,
            position=to_point(point + normal * self.marker_offset_m),
            normal=to_point(normal),
            target_label=target_label,
        )
        self.markers.place(marker)
        self.events.emit(EventType.MARKER_PLACED, marker=marker)
        return self._complete(record)

    def register_miss(self, shot_id: int, final_position: np.ndarray, expired: bool = False) -> ShotRecord | None:
        record = self._take_pending(shot_id, "miss")
        if record is None:
            return None

        point = vec3(final_position)
        metrics = compute_metrics(record.origin, record.predicted_point, point, record.target_distance)
        record = dataclasses.replace(
            record,
            outcome=ShotOutcome.EXPIRED if expired else ShotOutcome.MISS,
            actual_point=to_point(point),
            explanation=explain_miss(metrics, expired=expired),
            **dataclasses.asdict(metrics),
        )
        return self._complete(record)

    # ---------- Session ----------

    def _finalize(self, snapshot: bytes | None) -> SessionRecord:
        now = self.clock()
        target_moved = self._target_moved or (self.motion is not None and self.motion.was_ever_moved)
        name = SessionRecord.name_for(now)
        if self.writer is not None:
            # Name as it will be stored, so loading by it finds this session.
            name = self.writer.reserve_name(name)
        return SessionRecord(
            session_name=name,
            created_at=self._session_created_at if self._session_created_at is not None else now,
            finalized_at=now,
            weapon=self.preset.descriptor,
            magazine_size=self.magazine.max_ammo,
            target_moved=target_moved,
            shots=tuple(self._completed),
            snapshot_ref=f"{name}.png" if snapshot is not None else None,
        )

    def reload(self, snapshot: bytes | None = None) -> SessionRecord | None:
        """Close the magazine cycle. Returns the finalized session, if any shots were fired."""
        session = None
        if self._shots_registered > 0:
            session = self._finalize(snapshot)
            if self._pending:
                logger.info(f"{len(self._pending)} shot(s) still in flight dropped from {session.session_name}")
            if self.writer is not None:
                self.writer.submit(session, snapshot)
            self.last_session = session

        self._pending.clear()
        self._completed = []
        self.markers.clear()
        self._shots_registered = 0
        self._session_created_at = None
        self._target_moved = False

        self.magazine.refill()
        self.scheduler.cancel_key(self.generation)
        self._lock_task = None
        self.generation += 1
        self.aim_locked = False
        self.reload_prompt_visible = False
        if self.motion is not None:
            self.motion.clear_session_flag()

        self.events.emit(
            EventType.RELOADED,
            session_name=session.session_name if session is not None else None,
            generation=self.generation,
        )
        return session
