"""Initial bearing between two points on the WGS84 ellipsoid.

Primary use-case: compute the true-north bearing from the device position to
the target location.

Methods:
  vincenty   : Vincenty inverse formula, iterated on the ellipsoid. Default.
  geod       : pyproj's geodesic solver (Karney). Used automatically when
               Vincenty does not converge (nearly antipodal pairs).
  spherical  : great-circle approximation on a sphere. Only when ellipsoidal
               precision is explicitly not required.

Every result carries the method that produced it.
"""

import logging
import math
from dataclasses import dataclass

from pyproj import Geod

from models import GeoPoint

logger = logging.getLogger(__name__)

# WGS84 flattening
WGS84_F = 1 / 298.257223563

VINCENTY_TOLERANCE = 1e-12   # radians
VINCENTY_MAX_ITER = 100

_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class BearingResult:
    bearing_deg: float   # [0, 360)
    method: str


class VincentyNotConverged(ArithmeticError):
    pass


def normalize(deg: float) -> float:
    """Fold *deg* into [0, 360)."""
    deg %= 360.0
    # -1e-17 % 360.0 == 360.0
    return 0.0 if deg >= 360.0 else deg


def signed_delta(from_deg: float, to_deg: float) -> float:
    """Shortest signed angular difference from *from_deg* to *to_deg*, [-180, 180)."""
    return ((to_deg - from_deg + 180.0) % 360.0) - 180.0


# ---------------------------------------------------------------------------
# Vincenty
# ---------------------------------------------------------------------------

def vincenty_inverse(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing in degrees [0, 360) via the Vincenty inverse formula.

    Coincident points return 0.

    Raises:
        VincentyNotConverged: if λ does not settle within the iteration cap.
    """
    f = WGS84_F
    L = math.radians(lon2 - lon1)

    U1 = math.atan((1 - f) * math.tan(math.radians(lat1)))
    U2 = math.atan((1 - f) * math.tan(math.radians(lat2)))
    sinU1, cosU1 = math.sin(U1), math.cos(U1)
    sinU2, cosU2 = math.sin(U2), math.cos(U2)

    lam = L
    for _ in range(VINCENTY_MAX_ITER):
        sin_lam, cos_lam = math.sin(lam), math.cos(lam)
        sin_sigma = math.sqrt(
            (cosU2 * sin_lam) ** 2
            + (cosU1 * sinU2 - sinU1 * cosU2 * cos_lam) ** 2
        )
        if sin_sigma == 0:
            return 0.0

        cos_sigma = sinU1 * sinU2 + cosU1 * cosU2 * cos_lam
        sigma = math.atan2(sin_sigma, cos_sigma)

        sin_alpha = cosU1 * cosU2 * sin_lam / sin_sigma
        cos2_alpha = 1 - sin_alpha ** 2
        # equatorial line: cos²α == 0
        cos_2sigma_m = cos_sigma - 2 * sinU1 * sinU2 / cos2_alpha if cos2_alpha else 0.0

        C = f / 16 * cos2_alpha * (4 + f * (4 - 3 * cos2_alpha))
        lam_prev = lam
        lam = L + (1 - C) * f * sin_alpha * (
            sigma + C * sin_sigma * (cos_2sigma_m + C * cos_sigma * (-1 + 2 * cos_2sigma_m ** 2))
        )
        if abs(lam - lam_prev) < VINCENTY_TOLERANCE:
            break
    else:
        raise VincentyNotConverged(
            f"Vincenty did not converge for ({lat1}, {lon1}) -> ({lat2}, {lon2})"
        )

    alpha1 = math.atan2(
        cosU2 * math.sin(lam),
        cosU1 * sinU2 - sinU1 * cosU2 * math.cos(lam),
    )
    return normalize(math.degrees(alpha1))


# ---------------------------------------------------------------------------
# Alternatives
# ---------------------------------------------------------------------------

def spherical_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle initial bearing on a sphere, degrees [0, 360)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dlon = math.radians(lon2 - lon1)
    y = math.sin(dlon) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlon)
    if x == 0 and y == 0:
        return 0.0
    return normalize(math.degrees(math.atan2(y, x)))


def geod_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing from pyproj's geodesic inverse, degrees [0, 360)."""
    az12, _az21, dist = _GEOD.inv(lon1, lat1, lon2, lat2)
    if dist == 0:
        return 0.0
    return normalize(az12)


def geodesic_distance(origin: GeoPoint, target: GeoPoint) -> float:
    """Ellipsoidal distance in metres (diagnostics only)."""
    _az12, _az21, dist = _GEOD.inv(
        origin.longitude_deg, origin.latitude_deg,
        target.longitude_deg, target.latitude_deg,
    )
    return dist


def initial_bearing(
    origin: GeoPoint,
    target: GeoPoint,
    method: str = "vincenty",
) -> BearingResult:
    """Initial bearing from *origin* to *target*.

    Args:
        origin: Start point (device position).
        target: Destination point.
        method: "vincenty" (default), "geod" or "spherical".

    Returns:
        BearingResult whose ``method`` names the solver actually used.
    """
    args = (origin.latitude_deg, origin.longitude_deg, target.latitude_deg, target.longitude_deg)

    if method == "spherical":
        return BearingResult(spherical_bearing(*args), "spherical")
    if method == "geod":
        return BearingResult(geod_bearing(*args), "geod")
    if method != "vincenty":
        raise ValueError(f"Unknown bearing method: {method}")

    try:
        return BearingResult(vincenty_inverse(*args), "vincenty")
    except VincentyNotConverged as exc:
        logger.warning("%s; using geodesic solver", exc)
        return BearingResult(geod_bearing(*args), "geod")
