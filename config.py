"""Configuration dataclasses for the qibla direction engine."""

from dataclasses import dataclass, field
from typing import Optional

from models import GeoPoint

# Fixed target: the Kaaba, Mecca.
KAABA_LOCATION = GeoPoint(latitude_deg=21.422487, longitude_deg=39.826206)


@dataclass
class DeclinationConfig:
    grid_step_deg: float = 0.2
    ttl_days: int = 30
    # NOAA geomag-web calculator (WMM); skipped when no key is set
    noaa_api_key: Optional[str] = None
    noaa_url: str = "https://www.ngdc.noaa.gov/geomag-web/calculators/calculateDeclination"
    noaa_timeout_s: float = 6.0
    # +1: true = magnetic + declination (east-positive)
    sign: int = 1


@dataclass
class EngineConfig:
    target: GeoPoint = KAABA_LOCATION
    bearing_method: str = "vincenty"    # "vincenty" or "spherical"
    # ignore lower-ranked orientation sources for this long after a
    # higher-ranked one delivered
    source_hold_s: float = 1.0
    # some device families report alpha clockwise
    invert_alpha: bool = False
    declination: DeclinationConfig = field(default_factory=DeclinationConfig)


@dataclass
class SessionConfig:
    frame_ms: int = 16
    position_timeout_s: float = 15.0
    orientation_timeout_s: float = 5.0
