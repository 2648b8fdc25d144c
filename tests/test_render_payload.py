"""Tests for the render sink payload."""

from __future__ import annotations

from models import Posture, TickResult
from render_payload import build_payload


def test_both_display_styles_from_one_result():
    result = TickResult(
        smoothed_heading=80.04,
        relative_bearing=342.96,
        target_bearing=63.0,
        posture=Posture.TILTED,
        quality=0.7333,
        is_true_north=False,
        degraded=True,
    )
    payload = build_payload(result)

    assert payload == {
        "heading": 80.0,
        "qibla": 63.0,
        "relative": 343.0,
        "dial_rotation": -80.0,
        "arrow_rotation": 343.0,
        "posture": "tilted",
        "quality": 0.73,
        "true_north": False,
        "degraded": True,
    }
