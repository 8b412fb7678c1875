"""Integration tests for the fixed-tick range simulation."""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np
import pytest

from marksman.config import CARBINE_PRESET, PISTOL_PRESET, RangeConfig
from marksman.scoring.events import EventType
from marksman.scoring.records import ShotOutcome
from marksman.sim.range import TARGET_ID, TARGET_LABEL, RangeSim


@pytest.fixture
def sim(quiet_config, clock, recording_writer) -> RangeSim:
    sim = RangeSim.build(quiet_config, writer=recording_writer, clock=clock)
    sim.events.keep_history = True
    return sim


def event_types(sim: RangeSim) -> list[EventType]:
    return [e.type for e in sim.events.history]


class TestFiring:
    def test_level_shot_hits_the_paper_target(self, sim, straight_down_range):
        origin, direction = straight_down_range

        shot_id = sim.fire(origin, direction)
        events = sim.run_until_idle()

        assert shot_id == 1
        assert [e["type"] for e in events] == ["projectile_hit"]
        assert events[0]["target"] == TARGET_ID

        (record,) = sim.ledger.completed
        assert record.outcome is ShotOutcome.HIT
        assert record.target_label == TARGET_LABEL
        assert record.actual_point[2] == pytest.approx(24.95)
        # Gravity drop over 25 m at rifle velocity is a few millimetres.
        assert -0.02 < record.offset_v < 0.0
        assert record.offset_h == pytest.approx(0.0, abs=1e-9)
        assert record.energy_j > 0.0
        assert record.explanation.startswith(f"Hit on '{TARGET_LABEL}'")
        assert len(sim.ledger.markers) == 1

    def test_shot_over_the_target_ends_in_the_berm(self, sim):
        sim.fire(np.array([0.0, 1.5, 0.0]), np.array([0.0, 0.025, 1.0]))
        sim.run_until_idle()

        (record,) = sim.ledger.completed
        assert record.outcome is ShotOutcome.HIT
        assert record.target_label == "Backstop berm"
        assert record.actual_point[2] == pytest.approx(110.0, abs=1e-6)

    def test_shot_into_the_sky_expires(self, quiet_config, clock, recording_writer):
        cfg = replace(quiet_config, projectile_lifetime_s=0.5)
        sim = RangeSim.build(cfg, writer=recording_writer, clock=clock)

        sim.fire(np.array([0.0, 1.5, 0.0]), np.array([0.0, 1.0, 0.0]))
        events = sim.run_until_idle()

        assert [e["type"] for e in events] == ["projectile_expired"]
        (record,) = sim.ledger.completed
        assert record.outcome is ShotOutcome.EXPIRED
        assert record.explanation.startswith("Miss: projectile expired")

    def test_each_shot_consumes_one_round(self, sim, straight_down_range):
        for _ in range(3):
            sim.fire(*straight_down_range)

        assert sim.ledger.current_ammo == sim.ledger.max_ammo - 3
        assert sim.ledger.ammo_text == "Ammo: 7/10"
        assert len(sim.projectiles) == 3

    def test_cannot_fire_on_empty_magazine(self, sim, straight_down_range):
        for _ in range(10):
            assert sim.fire(*straight_down_range) is not None

        assert sim.fire(*straight_down_range) is None
        assert sim.ledger.current_ammo == 0

    def test_fire_from_observer(self, sim):
        @dataclass
        class Scope:
            is_aiming: bool
            aim_origin: np.ndarray
            aim_direction: np.ndarray

        scope = Scope(False, np.array([0.0, 1.5, 0.0]), np.array([0.0, 0.0, 1.0]))

        assert sim.fire_from(scope) is None
        scope.is_aiming = True
        assert sim.fire_from(scope) == 1


class TestMagazineCycle:
    def test_empty_magazine_locks_aim_after_delay(self, sim, straight_down_range):
        for _ in range(10):
            sim.fire(*straight_down_range)
            sim.run_until_idle()

        assert not sim.ledger.aim_locked
        sim.run_for(sim.config.lock_delay_s + sim.dt)

        assert sim.ledger.aim_locked
        assert sim.ledger.reload_prompt_visible
        assert event_types(sim).count(EventType.MAGAZINE_EMPTY) == 1

    def test_reload_persists_the_session_and_unlocks(self, sim, straight_down_range, recording_writer):
        for _ in range(10):
            sim.fire(*straight_down_range)
            sim.run_until_idle()
        sim.run_for(1.0)

        session = sim.reload()

        assert session is not None
        assert len(session.shots) == 10
        assert session.hit_count == 10
        assert session.weapon == sim.preset.descriptor
        assert session.magazine_size == 10
        assert recording_writer.submitted == [(session, None)]
        assert not sim.ledger.aim_locked
        assert sim.ledger.current_ammo == 10
        assert len(sim.ledger.markers) == 0
        assert sim.fire(*straight_down_range) == 11

    def test_in_flight_shots_are_dropped_on_reload(self, sim, straight_down_range):
        sim.fire(*straight_down_range)
        sim.step()

        session = sim.reload()
        events = sim.run_until_idle()

        assert session is not None
        assert session.shots == ()
        assert events == []
        assert sim.ledger.completed == ()
        assert sim.projectiles == []

    def test_reload_without_shots_saves_nothing(self, sim, recording_writer):
        assert sim.reload() is None
        assert recording_writer.submitted == []


class TestTargetMotion:
    def test_moving_target_flags_shot_and_session(self, sim, straight_down_range):
        sim.motion.start()
        sim.run_for(0.2)

        sim.fire(*straight_down_range)
        sim.run_until_idle()
        session = sim.reload()

        assert session.shots[0].target_moving is True
        assert session.target_moved is True

    def test_target_box_follows_motion(self, sim):
        sim.motion.start()
        sim.run_for(0.3)

        box = sim.scene.targets[TARGET_ID]
        np.testing.assert_allclose(box.center, sim.motion.position)
        assert box.center[0] != 0.0

    def test_place_target_moves_box_and_aim_distance(self, sim, straight_down_range):
        sim.place_target(50.0)

        sim.fire(*straight_down_range)
        sim.run_until_idle()

        assert sim.target_distance == 50.0
        (record,) = sim.ledger.completed
        assert record.target_distance == 50.0
        assert record.predicted_point == (0.0, 1.5, 50.0)
        assert record.actual_point[2] == pytest.approx(49.95)


class TestClock:
    def test_advance_runs_whole_ticks_and_carries_remainder(self, sim):
        sim.advance(0.025)
        assert sim.tick == 2

        sim.advance(0.005)
        assert sim.tick == 3

    def test_advance_ignores_negative_frame_time(self, sim):
        sim.advance(-1.0)

        assert sim.tick == 0

    def test_advance_drops_backlog_past_max_steps(self, sim, caplog):
        sim.advance(5.0, max_steps=100)

        assert sim.tick == 100
        assert "Dropping" in caplog.text
        sim.advance(0.0)
        assert sim.tick == 100

    def test_frame_rate_does_not_change_outcome(self, quiet_config, straight_down_range):
        coarse = RangeSim.build(quiet_config)
        fine = RangeSim.build(quiet_config)

        coarse.fire(*straight_down_range)
        fine.fire(*straight_down_range)
        for _ in range(10):
            coarse.advance(1 / 30)
        for _ in range(100):
            fine.advance(1 / 300)

        a = coarse.ledger.completed[0]
        b = fine.ledger.completed[0]
        assert a.actual_point == b.actual_point


class TestDeterminism:
    @pytest.mark.parametrize("preset", [PISTOL_PRESET, CARBINE_PRESET])
    def test_same_seed_same_group(self, preset, straight_down_range):
        cfg = RangeConfig(preset=preset, apply_dispersion=True, seed=11)

        def shoot() -> list[tuple[float, float, float]]:
            sim = RangeSim.build(cfg)
            for _ in range(5):
                sim.fire(*straight_down_range)
                sim.run_until_idle()
            return [s.actual_point for s in sim.ledger.completed]

        assert shoot() == shoot()

    def test_different_seeds_differ(self, straight_down_range):
        def shoot(seed: int) -> list[tuple[float, float, float]]:
            sim = RangeSim.build(RangeConfig(preset=PISTOL_PRESET, apply_dispersion=True, seed=seed))
            for _ in range(3):
                sim.fire(*straight_down_range)
                sim.run_until_idle()
            return [s.actual_point for s in sim.ledger.completed]

        assert shoot(1) != shoot(2)


@pytest.mark.parametrize(("index", "distance"), [(0, 25.0), (1, 50.0), (2, 100.0)])
def test_preset_distances(sim, index, distance):
    assert sim.place_target_at_preset(index) == distance
    assert sim.scene.targets[TARGET_ID].center[2] == distance
    assert sim.motion.max_offset_m == pytest.approx(np.tan(np.radians(2.0)) * distance)
