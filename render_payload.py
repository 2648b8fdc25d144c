"""Build the per-frame payload handed to the render sink.

Both display styles come from the same TickResult:
  dial_rotation   rotate a north-locked dial by -heading
  arrow_rotation  rotate a fixed arrow by the relative bearing to the target
"""

from models import TickResult


def build_payload(result: TickResult, ndigits: int = 1) -> dict:
    """Convert a TickResult into the dict consumed by the renderer."""
    return {
        "heading": round(result.smoothed_heading, ndigits),
        "qibla": round(result.target_bearing, ndigits),
        "relative": round(result.relative_bearing, ndigits),
        "dial_rotation": round(-result.smoothed_heading, ndigits),
        "arrow_rotation": round(result.relative_bearing, ndigits),
        "posture": result.posture.value,
        "quality": round(result.quality, 2),
        "true_north": result.is_true_north,
        "degraded": result.degraded,
    }
