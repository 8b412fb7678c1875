# ruff: noqa: E402
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from marksman import PRESETS, RangeSim
from marksman.constants import DEFAULT_TARGET_DISTANCE_M, PRESET_DISTANCES_M
from marksman.persistence import SessionHistory, SessionWriter
from marksman.persistence.summary import format_shot_line
from marksman.scoring.events import EventType
from marksman.settings import settings
from marksman.sim.trajectory import predict_trajectory, predicted_point_at_distance


def run_magazine(sim: RangeSim, origin: np.ndarray, direction: np.ndarray) -> int:
    """Empty one magazine at the target, letting each round land before the next."""
    fired = 0
    while sim.ledger.can_fire():
        if sim.fire(origin, direction) is None:
            break
        fired += 1
        sim.run_until_idle()
    # Let the empty-magazine lock fire.
    sim.run_for(sim.config.lock_delay_s + sim.dt)
    return fired


def main() -> None:
    parser = argparse.ArgumentParser(description="Fire magazines down a simulated lane and score them")
    parser.add_argument("--magazines", type=int, default=1)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument(
        "--distance",
        type=float,
        default=DEFAULT_TARGET_DISTANCE_M,
        help=f"Target distance (m); range presets are {', '.join(f'{d:.0f}' for d in PRESET_DISTANCES_M)}",
    )
    parser.add_argument(
        "--preset", type=str, default=PRESETS[-1].display_name, choices=[p.display_name for p in PRESETS]
    )
    parser.add_argument("--moving", action="store_true", help="Sweep the target laterally")
    parser.add_argument("--dispersion", action="store_true", help="Apply the weapon's MOA dispersion")
    parser.add_argument("--out", type=str, default=str(settings.SESSIONS_DIR), help="Output directory for sessions")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    preset = next(p for p in PRESETS if p.display_name == args.preset)
    cfg = settings.range_config(
        preset=preset,
        target_distance_m=args.distance,
        apply_dispersion=args.dispersion,
        seed=args.seed,
    )
    writer = SessionWriter(SessionHistory(Path(args.out)))
    sim = RangeSim.build(cfg, writer=writer)
    sim.events.subscribe(EventType.SHOT_COMPLETED, lambda e: print(format_shot_line(e.payload["record"])))
    sim.events.subscribe(EventType.MAGAZINE_EMPTY, lambda e: print("Magazine empty - reload"))

    if args.moving:
        sim.motion.start()

    origin = np.array([0.0, 1.5, 0.0])
    direction = np.array([0.0, 0.0, 1.0])
    aim_line = predict_trajectory(
        origin,
        direction,
        preset.muzzle_velocity,
        time_step=settings.PREVIEW_TIME_STEP_S,
        max_segments=settings.PREVIEW_MAX_SEGMENTS,
        max_distance=settings.PREVIEW_MAX_DISTANCE_M,
    )
    expected = predicted_point_at_distance(
        origin,
        direction,
        preset.muzzle_velocity,
        args.distance,
        time_step=settings.PREVIEW_TIME_STEP_S,
        max_segments=settings.PREVIEW_MAX_SEGMENTS,
    )
    print(
        f"{preset.descriptor} @ {preset.muzzle_velocity:.0f} m/s: "
        f"drop {origin[1] - expected[1]:.3f} m at {args.distance:.0f} m "
        f"(aim line {len(aim_line)} points)"
    )

    for mag in range(args.magazines):
        fired = run_magazine(sim, origin, direction)
        session = sim.reload()
        if session is not None:
            print(
                f"magazine {mag}: {fired} rounds, {session.hit_count} hits, "
                f"mean deviation {session.mean_deviation_m:.3f} m -> {session.session_name}"
            )

    writer.close()
    if writer.failed:
        print(f"{len(writer.failed)} session(s) could not be saved", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
