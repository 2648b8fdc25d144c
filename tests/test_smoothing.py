"""Tests for the circular heading smoother."""

from __future__ import annotations

import math

import pytest

from smoothing import AngleSmoother, coefficient_for, deadzone_for


def test_first_sample_is_taken_as_is():
    smoother = AngleSmoother()
    assert smoother.advance(80.0, 0.2) == 80.0
    assert smoother.tracked == 80.0


def test_first_sample_is_normalized():
    assert AngleSmoother().advance(-10.0) == pytest.approx(350.0)


def test_idempotent_at_rest():
    smoother = AngleSmoother()
    smoother.advance(123.0)
    for _ in range(50):
        assert smoother.advance(123.0, 0.3) == 123.0


def test_wraps_through_north():
    smoother = AngleSmoother()
    smoother.advance(359.0)
    result = smoother.advance(1.0, 1.0)
    assert result == pytest.approx(359.24)
    for _ in range(100):
        result = smoother.advance(1.0, 1.0)
        distance = abs(((result - 359.0 + 180.0) % 360.0) - 180.0)
        assert distance <= 2.0
    assert result < 1.0 or result > 359.0


def test_deadzone_suppresses_small_changes():
    smoother = AngleSmoother()
    smoother.advance(100.0)
    assert smoother.advance(100.24, 1.0) == 100.0
    assert smoother.advance(99.76, 1.0) == 100.0


def test_step_uses_coefficient():
    smoother = AngleSmoother()
    smoother.advance(0.0)
    assert smoother.advance(10.0, 1.0) == pytest.approx(1.2)

    smoother = AngleSmoother()
    smoother.advance(0.0)
    assert smoother.advance(10.0, 0.0) == pytest.approx(3.0)


def test_low_quality_widens_deadzone():
    smoother = AngleSmoother()
    smoother.advance(0.0)
    assert smoother.advance(1.0, 0.0) == 0.0


def test_parameter_clamps():
    assert deadzone_for(1.0) == pytest.approx(0.25)
    assert deadzone_for(0.0) == pytest.approx(1.45)
    assert deadzone_for(-5.0) == 2.0
    assert coefficient_for(1.0) == pytest.approx(0.12)
    assert coefficient_for(0.0) == pytest.approx(0.30)
    assert coefficient_for(2.0) == 0.08


def test_non_finite_target_is_ignored():
    smoother = AngleSmoother()
    assert smoother.advance(math.nan) is None
    smoother.advance(45.0)
    assert smoother.advance(math.inf) == 45.0


def test_reset():
    smoother = AngleSmoother()
    smoother.advance(45.0)
    smoother.reset()
    assert smoother.tracked is None
    assert smoother.advance(200.0) == 200.0
