"""Tests for the drag-free aim-line preview."""

from __future__ import annotations

import numpy as np
import pytest

from marksman.sim.trajectory import predict_trajectory, predicted_point_at_distance

ORIGIN = np.array([0.0, 1.5, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])


def test_starts_at_origin():
    points = predict_trajectory(ORIGIN, FORWARD, 800.0)

    np.testing.assert_array_equal(points[0], ORIGIN)
    assert points.shape[1] == 3


def test_straight_line_without_gravity_stops_at_max_distance():
    points = predict_trajectory(ORIGIN, FORWARD, 100.0, time_step=0.05, max_distance=148.0, gravity=np.zeros(3))

    # 5 m per sample: 148 m is passed on the 31st sample.
    assert len(points) == 31
    np.testing.assert_allclose(points[:, 0], 0.0)
    np.testing.assert_allclose(points[:, 1], 1.5)
    assert points[-1, 2] == pytest.approx(150.0)


def test_gravity_bends_the_line_down():
    points = predict_trajectory(ORIGIN, FORWARD, 300.0)

    assert np.all(np.diff(points[:, 1]) <= 0.0)
    assert np.all(np.diff(points[:, 2]) > 0.0)


def test_segment_cap():
    points = predict_trajectory(ORIGIN, FORWARD, 1.0, max_segments=64)

    assert len(points) == 64


def test_zero_direction_collapses_to_origin():
    points = predict_trajectory(ORIGIN, np.zeros(3), 800.0, gravity=np.zeros(3), max_segments=4)

    np.testing.assert_allclose(points, np.repeat(ORIGIN[None, :], 4, axis=0))


def test_predicted_point_at_distance():
    point = predicted_point_at_distance(ORIGIN, FORWARD, 100.0, 27.0, time_step=0.05, gravity=np.zeros(3))

    np.testing.assert_allclose(point, [0.0, 1.5, 30.0])


def test_predicted_point_falls_back_to_last_sample():
    point = predicted_point_at_distance(
        ORIGIN, FORWARD, 1.0, 1000.0, time_step=0.05, max_segments=10, gravity=np.zeros(3)
    )

    np.testing.assert_allclose(point, [0.0, 1.5, 0.45])
