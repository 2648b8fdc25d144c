"""Grade magnetometer trustworthiness from the device attitude.

A phone lying flat gives the most reliable magnetic heading; the further it
is tilted towards upright, the less the reading is trusted.
"""

from models import Posture, PostureReading

FLAT_LIMIT_DEG = 25.0       # |beta| and |gamma| at or below: flat
VERTICAL_LIMIT_DEG = 60.0   # |beta| at or above: vertical

TILTED_QUALITY_MAX = 0.85
TILTED_QUALITY_SPAN = 0.35
TILTED_RANGE_DEG = 45.0

VERTICAL_QUALITY_MAX = 0.50
VERTICAL_QUALITY_SPAN = 0.25
VERTICAL_RANGE_DEG = 30.0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def evaluate(beta: float, gamma: float) -> PostureReading:
    """Classify attitude (beta, gamma in degrees) into posture and quality."""
    ab, ag = abs(beta), abs(gamma)

    if ab <= FLAT_LIMIT_DEG and ag <= FLAT_LIMIT_DEG:
        return PostureReading(Posture.FLAT, 1.0)

    if ab >= VERTICAL_LIMIT_DEG:
        t = _clamp((ab - VERTICAL_LIMIT_DEG) / VERTICAL_RANGE_DEG, 0.0, 1.0)
        quality = VERTICAL_QUALITY_MAX - VERTICAL_QUALITY_SPAN * t
        return PostureReading(Posture.VERTICAL, _clamp(quality, 0.0, 1.0))

    excess = max(ab - FLAT_LIMIT_DEG, ag - FLAT_LIMIT_DEG)
    t = _clamp(excess / TILTED_RANGE_DEG, 0.0, 1.0)
    quality = TILTED_QUALITY_MAX - TILTED_QUALITY_SPAN * t
    return PostureReading(Posture.TILTED, _clamp(quality, 0.0, 1.0))
