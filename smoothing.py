"""Circular low-pass filter for the displayed heading."""

import math
from typing import Optional

from geodesy import normalize, signed_delta

DEADZONE_MIN_DEG = 0.25
DEADZONE_MAX_DEG = 2.0
DEADZONE_GAIN = 1.2

COEFF_BASE = 0.12
COEFF_MIN = 0.08
COEFF_MAX = 0.30
COEFF_GAIN = 0.18


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def deadzone_for(quality: float) -> float:
    return _clamp(DEADZONE_MIN_DEG + (1.0 - quality) * DEADZONE_GAIN, DEADZONE_MIN_DEG, DEADZONE_MAX_DEG)


def coefficient_for(quality: float) -> float:
    return _clamp(COEFF_BASE + (1.0 - quality) * COEFF_GAIN, COEFF_MIN, COEFF_MAX)


class AngleSmoother:
    """Exponential smoothing on the circle with a quality-driven dead-zone.

    Works on the shortest signed difference, so 359° and 1° average to 0°,
    not 180°.
    """

    def __init__(self):
        self.tracked: Optional[float] = None

    def reset(self) -> None:
        self.tracked = None

    def advance(self, raw_target: float, quality: float = 1.0) -> Optional[float]:
        """Move the tracked angle towards *raw_target* and return it."""
        if not math.isfinite(raw_target):
            return self.tracked
        quality = _clamp(quality, 0.0, 1.0) if math.isfinite(quality) else 0.0

        if self.tracked is None:
            self.tracked = normalize(raw_target)
            return self.tracked

        d = signed_delta(self.tracked, raw_target)
        if abs(d) < deadzone_for(quality):
            return self.tracked

        self.tracked = normalize(self.tracked + d * coefficient_for(quality))
        return self.tracked
