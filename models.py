"""Data models for the qibla direction engine."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 geographic position from a single position fix."""
    latitude_deg: float            # decimal degrees, [-90, 90]
    longitude_deg: float           # decimal degrees, [-180, 180]
    altitude_m: float = 0.0        # metres above the ellipsoid

    def __post_init__(self):
        for name in ("latitude_deg", "longitude_deg", "altitude_m"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        if not -90.0 <= self.latitude_deg <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude_deg}")
        if not -180.0 <= self.longitude_deg <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude_deg}")


# ---------------------------------------------------------------------------
# Orientation samples (tagged union)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrueHeadingSample:
    """Compass heading already referenced to true north (e.g. iOS)."""
    heading_deg: float
    accuracy_deg: Optional[float] = None


@dataclass(frozen=True)
class EulerSample:
    """Platform Euler angles, Z-X'-Y'' convention (deviceorientation)."""
    alpha: float    # around Z, [0, 360)
    beta: float     # around X, [-180, 180)
    gamma: float    # around Y, [-90, 90)
    absolute: bool = False


OrientationSample = Union[TrueHeadingSample, EulerSample]


@dataclass(frozen=True)
class HeadingReading:
    """Canonical heading extracted from one orientation sample."""
    heading_deg: float
    is_true_north: bool
    attitude: Optional[Tuple[float, float]] = None   # (beta, gamma)
    absolute: bool = True

    @property
    def source_rank(self) -> int:
        if self.is_true_north:
            return 2
        return 1 if self.absolute else 0


# ---------------------------------------------------------------------------
# Posture
# ---------------------------------------------------------------------------

class Posture(Enum):
    FLAT = "flat"
    TILTED = "tilted"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class PostureReading:
    posture: Posture
    quality: float   # [0, 1]


# ---------------------------------------------------------------------------
# Declination
# ---------------------------------------------------------------------------

class DeclinationSource(Enum):
    CACHE = "cache"
    COMPUTED = "computed"


class DeclinationStatus(Enum):
    NOT_NEEDED = "not_needed"
    PENDING = "pending"
    READY = "ready"
    UNAVAILABLE = "unavailable"


@dataclass
class DeclinationRecord:
    """One cached declination value for a grid cell and month."""
    offset_deg: float             # signed, east-positive
    computed_at_epoch_day: int    # days since 1970-01-01
    grid_lat_deg: float
    grid_lon_deg: float
    model: str = ""


@dataclass(frozen=True)
class DeclinationResult:
    offset_deg: float
    source: DeclinationSource
    model: str = ""


# ---------------------------------------------------------------------------
# Engine state
# ---------------------------------------------------------------------------

class EngineStatus(Enum):
    UNINITIALIZED = "uninitialized"
    AWAITING_POSITION = "awaiting_position"
    AWAITING_FIRST_SAMPLE = "awaiting_first_sample"
    TRACKING = "tracking"
    CLOSED = "closed"


@dataclass
class EngineState:
    """Complete mutable state of one direction-finding session."""
    target_bearing: Optional[float] = None
    raw_heading: Optional[float] = None
    smoothed_heading: Optional[float] = None
    posture: Posture = Posture.FLAT
    quality: float = 1.0
    is_true_north: bool = False
    source_rank: int = -1
    last_sample_at: float = 0.0     # monotonic seconds of the last applied sample
    declination_offset: float = 0.0
    declination_status: DeclinationStatus = DeclinationStatus.NOT_NEEDED
    bearing_method: str = ""

    @property
    def ready(self) -> bool:
        return self.target_bearing is not None and self.raw_heading is not None


@dataclass(frozen=True)
class TickResult:
    """Values handed to the render sink once per frame."""
    smoothed_heading: float
    relative_bearing: float
    target_bearing: float
    posture: Posture = Posture.FLAT
    quality: float = 1.0
    is_true_north: bool = False
    degraded: bool = False
