"""Plain-text session summary: a header, then one line per shot."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..scoring.records import SessionRecord, ShotRecord


def format_shot_line(shot: ShotRecord) -> str:
    kind = "Hit" if shot.hit else "Miss"
    moving = " (Target moving)" if shot.target_moving else ""
    label = shot.target_label or "none"
    return (
        f"{kind} in '{label}'{moving} at {shot.target_distance:.1f} m | "
        f"Deviation: {shot.deviation_m:.3f} m ({shot.deviation_pct:.2f}%) | "
        f"Offset H:{shot.offset_h:.3f} m V:{shot.offset_v:.3f} m | "
        f"Angular error: {shot.angular_error_deg:.3f}° ({shot.angular_error_moa:.2f} MOA) | "
        f"Energy: {shot.energy_j:.1f} J"
    )


def format_header(session: SessionRecord) -> list[str]:
    created = datetime.fromtimestamp(session.created_at).strftime("%Y-%m-%d %H:%M:%S")
    return [
        f"Session: {session.session_name}",
        f"Started: {created}",
        f"Weapon: {session.weapon}",
        f"Magazine: {session.magazine_size} | Shots: {len(session.shots)} | "
        f"Hits: {session.hit_count} | Misses: {session.miss_count}",
        f"Target moved: {'yes' if session.target_moved else 'no'}",
        f"Mean deviation: {session.mean_deviation_m:.3f} m | "
        f"Mean angular error: {session.mean_angular_error_moa:.2f} MOA | "
        f"Group size: {session.group_size_m:.3f} m",
        "-" * 72,
    ]


def format_summary(session: SessionRecord) -> str:
    lines = format_header(session)
    lines.extend(format_shot_line(s) for s in session.shots)
    return "\n".join(lines) + "\n"
