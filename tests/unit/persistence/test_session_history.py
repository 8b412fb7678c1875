"""Tests for file-based session storage."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from marksman.persistence.history import SessionHistory
from marksman.scoring.records import SessionRecord, ShotOutcome, ShotRecord


def make_shot(shot_id: int, hit: bool = True, **kwargs) -> ShotRecord:
    values = dict(
        shot_id=shot_id,
        fired_at=1_767_225_600.0 + shot_id,
        origin=(0.0, 1.5, 0.0),
        predicted_point=(0.0, 1.5, 25.0),
        target_distance=25.0,
        muzzle_velocity=838.0,
        outcome=ShotOutcome.HIT if hit else ShotOutcome.MISS,
        actual_point=(0.01 * shot_id, 1.49, 24.95),
        target_label="Paper target" if hit else "",
        deviation_m=0.05,
        deviation_pct=0.2,
        energy_j=3300.0 if hit else 0.0,
    )
    values.update(kwargs)
    return ShotRecord(**values)


def make_session(name: str = "session_20260101_000010", finalized_at: float = 1_767_225_610.0, n: int = 3):
    return SessionRecord(
        session_name=name,
        created_at=finalized_at - 10.0,
        finalized_at=finalized_at,
        weapon="Marksman Rifle / M80 147gr (7.62x51mm)",
        magazine_size=10,
        target_moved=False,
        shots=tuple(make_shot(i, hit=i % 2 == 1) for i in range(1, n + 1)),
    )


@pytest.fixture
def history(tmp_path: Path) -> SessionHistory:
    return SessionHistory(tmp_path / "sessions")


def test_creates_directory(tmp_path: Path):
    SessionHistory(tmp_path / "a" / "b")

    assert (tmp_path / "a" / "b").is_dir()


def test_save_and_load(history: SessionHistory):
    session = make_session()

    stored = history.save(session)
    loaded = history.load(session.session_name)

    assert stored == session
    assert loaded == session
    assert loaded.shots[0].outcome is ShotOutcome.HIT
    assert loaded.shots[1].actual_point == (0.02, 1.49, 24.95)


def test_writes_summary_next_to_record(history: SessionHistory):
    session = make_session()

    history.save(session)

    summary = history.load_summary(session.session_name)
    assert summary is not None
    assert summary.startswith(f"Session: {session.session_name}\n")
    assert summary.count("\nHit in 'Paper target'") == 2
    assert summary.count("\nMiss in 'none'") == 1


def test_json_layout(history: SessionHistory):
    session = make_session(n=1)

    history.save(session)

    data = json.loads((history.directory / f"{session.session_name}.json").read_text())
    assert data["session_name"] == session.session_name
    assert data["magazine_size"] == 10
    assert data["shots"][0]["outcome"] == "hit"
    assert data["shots"][0]["hit"] is True
    assert data["snapshot_ref"] is None


def test_snapshot_saved_and_referenced(history: SessionHistory):
    session = make_session()

    stored = history.save(session, snapshot=b"\x89PNG\r\n")

    assert stored.snapshot_ref == f"{session.session_name}.png"
    assert (history.directory / stored.snapshot_ref).read_bytes() == b"\x89PNG\r\n"
    assert history.load(session.session_name).snapshot_ref == stored.snapshot_ref


def test_name_collision_gets_a_suffix(history: SessionHistory):
    session = make_session()

    first = history.save(session)
    second = history.save(session)
    third = history.save(session, snapshot=b"img")

    assert first.session_name == session.session_name
    assert second.session_name == f"{session.session_name}_1"
    assert third.session_name == f"{session.session_name}_2"
    assert third.snapshot_ref == f"{session.session_name}_2.png"
    assert history.load(second.session_name).session_name == second.session_name


def test_load_missing(history: SessionHistory):
    assert history.load("session_19700101_000000") is None
    assert history.load_summary("session_19700101_000000") is None


def test_list_recent_orders_by_finalize_time(history: SessionHistory):
    history.save(make_session("session_20260101_000010", 1_767_225_610.0))
    history.save(make_session("session_20260101_000030", 1_767_225_630.0))
    history.save(make_session("session_20260101_000020", 1_767_225_620.0))

    recent = history.list_recent()

    assert [r.session_name for r in recent] == [
        "session_20260101_000030",
        "session_20260101_000020",
        "session_20260101_000010",
    ]
    assert len(history.list_recent(limit=1)) == 1


def test_list_recent_empty(history: SessionHistory):
    assert history.list_recent() == []


def test_list_recent_skips_unreadable_files(history: SessionHistory, caplog):
    history.save(make_session("session_20260101_000010", 1_767_225_610.0))
    (history.directory / "session_20260101_000020.json").write_text('{"session_name": "session_2026', encoding="utf-8")
    (history.directory / "session_20260101_000030.json").write_text('{"shots": []}', encoding="utf-8")

    recent = history.list_recent()

    assert [r.session_name for r in recent] == ["session_20260101_000010"]
    assert "Skipping unreadable session file session_20260101_000020.json" in caplog.text
    assert "Skipping unreadable session file session_20260101_000030.json" in caplog.text


def test_reserved_names_are_not_handed_out_twice(history: SessionHistory):
    first = history.reserve_name("session_20260101_000010")
    second = history.reserve_name("session_20260101_000010")

    assert first == "session_20260101_000010"
    assert second == "session_20260101_000010_1"


def test_save_keeps_a_reserved_name(history: SessionHistory):
    session = make_session()
    history.reserve_name(session.session_name)
    name = history.reserve_name(session.session_name)

    stored = history.save(make_session(name))

    assert stored.session_name == name
    assert history.load(name) == stored
    assert history.load(session.session_name) is None
