"""Resolve the magnetic declination for a position and date.

Strategy (in priority order):
  1. NOAA geomag-web calculator (World Magnetic Model): precise, needs an
     API key and network access; skipped when no key is configured.
  2. Dipole approximation: bearing towards the geomagnetic north pole on a
     sphere. Closed-form, always local, a few degrees off in most places.
  3. Nothing finite → DeclinationUnavailable; the caller carries on with a
     zero offset and flags the heading as degraded.

Results are cached per grid cell (0.2°) and calendar month, and reused while
younger than the TTL (30 days). The cache can be saved to and loaded from a
local JSON file.

Declination is east-positive: true heading = magnetic heading + declination.
"""

import datetime as dt
import json
import logging
import math
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from config import DeclinationConfig
from errors import DeclinationUnavailable
from geodesy import spherical_bearing
from models import DeclinationRecord, DeclinationResult, DeclinationSource, GeoPoint

logger = logging.getLogger(__name__)

_EPOCH = dt.date(1970, 1, 1)

# IGRF geomagnetic (dipole) north pole, epoch 2025
GEOMAGNETIC_POLE_LAT = 80.8
GEOMAGNETIC_POLE_LON = -72.8

CacheKey = Tuple[float, float, int, int]
DeclinationModel = Callable[[GeoPoint, dt.date], Optional[float]]


def epoch_day(day: dt.date) -> int:
    """Days since 1970-01-01."""
    if isinstance(day, dt.datetime):
        day = day.date()
    return (day - _EPOCH).days


def snap(value: float, step: float) -> float:
    """Round *value* to the nearest multiple of *step*."""
    return round(round(value / step) * step, 6)


def _wrap180(deg: float) -> float:
    """Fold *deg* into (-180, 180]."""
    deg = math.fmod(deg, 360.0)
    if deg > 180.0:
        deg -= 360.0
    elif deg <= -180.0:
        deg += 360.0
    return deg


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def dipole_declination(point: GeoPoint, as_of: dt.date) -> Optional[float]:
    """Declination under a centred-dipole field, degrees east-positive.

    Under a dipole, a compass needle points along the great circle towards
    the geomagnetic pole, so the declination is that circle's initial
    bearing. Undefined at the pole itself (returns None).
    """
    if (abs(point.latitude_deg - GEOMAGNETIC_POLE_LAT) < 1e-9
            and abs(point.longitude_deg - GEOMAGNETIC_POLE_LON) < 1e-9):
        return None
    if abs(point.latitude_deg) >= 90.0:
        return None
    bearing = spherical_bearing(
        point.latitude_deg, point.longitude_deg,
        GEOMAGNETIC_POLE_LAT, GEOMAGNETIC_POLE_LON,
    )
    return _wrap180(bearing)


def make_noaa_model(config: DeclinationConfig) -> Optional[DeclinationModel]:
    """Return a NOAA geomag-web model bound to *config*, or None without a key."""
    if not config.noaa_api_key:
        return None

    def noaa_declination(point: GeoPoint, as_of: dt.date) -> Optional[float]:
        import requests
        params = {
            "lat1": point.latitude_deg,
            "lon1": point.longitude_deg,
            "elevation": point.altitude_m,
            "elevationUnits": "M",
            "model": "WMM",
            "startYear": as_of.year,
            "startMonth": as_of.month,
            "startDay": as_of.day,
            "resultFormat": "json",
            "key": config.noaa_api_key,
        }
        try:
            resp = requests.get(config.noaa_url, params=params, timeout=config.noaa_timeout_s)
            resp.raise_for_status()
            results = resp.json().get("result") or []
        except (requests.RequestException, ValueError) as exc:
            logger.warning("NOAA declination lookup failed: %s", exc)
            return None
        if not results:
            return None
        try:
            return float(results[0]["declination"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Unexpected NOAA response: %r", results[0])
            return None

    return noaa_declination


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class DeclinationProvider:
    """Cached declination lookup over a chain of models."""

    def __init__(
        self,
        config: Optional[DeclinationConfig] = None,
        models: Optional[List[Tuple[str, DeclinationModel]]] = None,
    ):
        self.config = config if config is not None else DeclinationConfig()
        if models is None:
            models = []
            noaa = make_noaa_model(self.config)
            if noaa is not None:
                models.append(("noaa-wmm", noaa))
            models.append(("dipole", dipole_declination))
        self.models = models
        self._cache: Dict[CacheKey, DeclinationRecord] = {}
        self._lock = threading.Lock()

    def cache_key(self, point: GeoPoint, as_of: dt.date) -> CacheKey:
        step = self.config.grid_step_deg
        return (
            snap(point.latitude_deg, step),
            snap(point.longitude_deg, step),
            as_of.year,
            as_of.month,
        )

    def get_declination(self, point: GeoPoint, as_of: dt.date) -> DeclinationResult:
        """Return the declination for *point* on *as_of*.

        Raises:
            DeclinationUnavailable: if no model yields a finite value.
        """
        key = self.cache_key(point, as_of)
        today = epoch_day(as_of)

        with self._lock:
            record = self._cache.get(key)
        if record is not None and 0 <= today - record.computed_at_epoch_day <= self.config.ttl_days:
            return DeclinationResult(record.offset_deg, DeclinationSource.CACHE, record.model)

        name, offset = self._compute(point, as_of)
        record = DeclinationRecord(
            offset_deg=offset,
            computed_at_epoch_day=today,
            grid_lat_deg=key[0],
            grid_lon_deg=key[1],
            model=name,
        )
        with self._lock:
            self._cache[key] = record
        logger.info(
            "Declination %.2f° at (%.1f, %.1f) from %s",
            offset, key[0], key[1], name,
        )
        return DeclinationResult(offset, DeclinationSource.COMPUTED, name)

    def _compute(self, point: GeoPoint, as_of: dt.date) -> Tuple[str, float]:
        for name, model in self.models:
            try:
                value = model(point, as_of)
            except Exception as exc:
                logger.warning("Declination model %s raised: %s", name, exc)
                continue
            if value is not None and math.isfinite(value):
                return name, float(value)
            logger.debug("Declination model %s gave no result", name)
        raise DeclinationUnavailable(
            f"No declination model could resolve ({point.latitude_deg}, {point.longitude_deg})"
        )

    # -----------------------------------------------------------------------
    # Local result cache
    # -----------------------------------------------------------------------

    def save_cache(self, path) -> int:
        """Write all cached records to *path* as JSON. Returns the record count."""
        with self._lock:
            items = list(self._cache.items())
        payload = [
            {
                "key": list(key),
                "offset_deg": rec.offset_deg,
                "computed_at_epoch_day": rec.computed_at_epoch_day,
                "grid_lat_deg": rec.grid_lat_deg,
                "grid_lon_deg": rec.grid_lon_deg,
                "model": rec.model,
            }
            for key, rec in items
        ]
        Path(path).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return len(payload)

    def load_cache(self, path) -> int:
        """Merge records from a JSON file written by save_cache().

        A missing file loads nothing. Returns the record count loaded.
        """
        path = Path(path)
        if not path.exists():
            return 0
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            loaded = {
                (float(e["key"][0]), float(e["key"][1]), int(e["key"][2]), int(e["key"][3])):
                    DeclinationRecord(
                        offset_deg=float(e["offset_deg"]),
                        computed_at_epoch_day=int(e["computed_at_epoch_day"]),
                        grid_lat_deg=float(e["grid_lat_deg"]),
                        grid_lon_deg=float(e["grid_lon_deg"]),
                        model=e.get("model", ""),
                    )
                for e in payload
            }
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ValueError(f"Invalid declination cache file {path}: {exc}") from exc
        with self._lock:
            self._cache.update(loaded)
        return len(loaded)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
