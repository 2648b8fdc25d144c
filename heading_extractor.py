"""Turn raw orientation samples into one canonical heading.

Host runtimes deliver orientation in different shapes:

  {"webkitCompassHeading": h}           true-north heading (iOS Safari)
  {"heading": h}                        true-north heading (native hosts)
  {"alpha": a, "beta": b, "gamma": g,   Euler angles, magnetic or relative
   "absolute": bool}                    (Android, desktop)

parse_sample() maps such a dict onto the OrientationSample union;
HeadingExtractor.extract() reduces a sample to a HeadingReading.
"""

import math
from typing import Callable, Optional

from errors import MalformedSample
from geodesy import normalize
from models import EulerSample, HeadingReading, OrientationSample, TrueHeadingSample
from posture import VERTICAL_LIMIT_DEG

# Tilt from upright over which the back axis is blended into the heading
UPRIGHT_BAND_DEG = 90.0 - VERTICAL_LIMIT_DEG
_UPRIGHT_BAND_COS = math.sin(math.radians(UPRIGHT_BAND_DEG))   # |cos beta| at the band edge


def _finite(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_sample(payload: dict) -> OrientationSample:
    """Convert a raw host orientation event into an OrientationSample.

    Raises:
        MalformedSample: if the payload carries neither recognised shape.
    """
    if not isinstance(payload, dict):
        raise MalformedSample(f"Expected a dict, got {type(payload).__name__}")

    for key in ("webkitCompassHeading", "heading"):
        heading = _finite(payload.get(key))
        if heading is not None:
            return TrueHeadingSample(
                heading_deg=heading,
                accuracy_deg=_finite(payload.get("webkitCompassAccuracy")),
            )

    alpha = _finite(payload.get("alpha"))
    if alpha is not None:
        beta = _finite(payload.get("beta"))
        gamma = _finite(payload.get("gamma"))
        return EulerSample(
            alpha=alpha,
            beta=beta if beta is not None else 0.0,
            gamma=gamma if gamma is not None else 0.0,
            absolute=bool(payload.get("absolute", False)),
        )

    raise MalformedSample(f"No usable orientation fields in {sorted(payload)}")


def normalize_screen_rotation(angle) -> int:
    """Snap a screen rotation angle to 0/90/180/270."""
    value = _finite(angle)
    if value is None:
        return 0
    return int(round(value / 90.0)) % 4 * 90


def euler_heading(alpha: float, beta: float, gamma: float) -> float:
    """Compass heading (degrees, unnormalized) from Z-X'-Y'' Euler angles.

    Projects the device Y axis (top edge) of R = Rz(alpha)·Rx(beta)·Ry(gamma)
    onto the horizontal plane. Within UPRIGHT_BAND_DEG of upright the back
    (-Z) axis projection is blended in, reaching full weight at |beta| = 90,
    and past upright the top edge counts pointing away from the user. The
    result is continuous as the device tips through vertical.
    """
    a, b, g = math.radians(alpha), math.radians(beta), math.radians(gamma)
    sa, ca = math.sin(a), math.cos(a)
    sb, cb = math.sin(b), math.cos(b)
    sg, cg = math.sin(g), math.cos(g)

    # R·e_y, east/north components, flipped past upright
    east, north = -sa * abs(cb), ca * abs(cb)

    weight = max(0.0, 1.0 - abs(cb) / _UPRIGHT_BAND_COS) * sb
    if weight:
        # -R·e_z
        east += weight * (-ca * sg - sa * sb * cg)
        north += weight * (-sa * sg + ca * sb * cg)
    return math.degrees(math.atan2(east, north))


class HeadingExtractor:
    """Dispatches on the sample variant and yields a HeadingReading."""

    def __init__(
        self,
        screen_rotation: Optional[Callable[[], int]] = None,
        invert_alpha: bool = False,
    ):
        self._screen_rotation = screen_rotation or (lambda: 0)
        self.invert_alpha = invert_alpha

    def extract(self, sample: OrientationSample) -> Optional[HeadingReading]:
        """Return the heading carried by *sample*, or None if unusable."""
        if isinstance(sample, TrueHeadingSample):
            heading = _finite(sample.heading_deg)
            if heading is None:
                return None
            return HeadingReading(heading_deg=normalize(heading), is_true_north=True)

        if isinstance(sample, EulerSample):
            alpha, beta, gamma = (_finite(v) for v in (sample.alpha, sample.beta, sample.gamma))
            if alpha is None or beta is None or gamma is None:
                return None
            if self.invert_alpha:
                alpha = -alpha
            heading = euler_heading(alpha, beta, gamma)
            heading += normalize_screen_rotation(self._screen_rotation())
            return HeadingReading(
                heading_deg=normalize(heading),
                is_true_north=False,
                attitude=(beta, gamma),
                absolute=sample.absolute,
            )

        return None
