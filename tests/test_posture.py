"""Tests for posture classification and quality grading."""

from __future__ import annotations

import pytest

from models import Posture, PostureReading
from posture import evaluate


def test_flat_is_full_quality():
    assert evaluate(0, 0) == PostureReading(Posture.FLAT, 1.0)


def test_flat_boundary_is_inclusive():
    reading = evaluate(25, 25)
    assert reading.posture is Posture.FLAT
    assert reading.quality == 1.0
    assert evaluate(-25, -25).posture is Posture.FLAT


def test_upright_is_vertical_and_low_quality():
    reading = evaluate(90, 0)
    assert reading.posture is Posture.VERTICAL
    assert reading.quality <= 0.50
    assert reading.quality == pytest.approx(0.25)


def test_vertical_threshold():
    reading = evaluate(60, 0)
    assert reading.posture is Posture.VERTICAL
    assert reading.quality == pytest.approx(0.50)
    assert evaluate(-75, 10).quality == pytest.approx(0.375)


def test_tilted_quality_range():
    assert evaluate(26, 0).posture is Posture.TILTED
    assert evaluate(26, 0).quality == pytest.approx(0.85 - 0.35 / 45)
    assert evaluate(40, 0).quality == pytest.approx(0.85 - 0.35 * 15 / 45)
    # rolled hard sideways while beta stays low
    reading = evaluate(0, 80)
    assert reading.posture is Posture.TILTED
    assert reading.quality == pytest.approx(0.50)


def test_quality_decreases_with_tilt():
    qualities = [evaluate(beta, 0).quality for beta in range(0, 91, 5)]
    assert all(a >= b for a, b in zip(qualities, qualities[1:]))
    assert all(0.0 <= q <= 1.0 for q in qualities)


def test_beyond_upright_is_clamped():
    assert evaluate(170, 0).quality == pytest.approx(0.25)
