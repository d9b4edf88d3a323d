"""astro_core
================================================================================
Chart construction for the synastry engine.

Purpose
-------
Turns birth data (date, time, place or coordinates) into a fully classified
natal chart: house cusps, Ascendant/Midheaven, and the ten classical bodies
with sign, degree, retrograde flag and house placement.

Public API (stable)
-------------------
build_chart(request, *, providers, config=DEFAULT_CONFIG) -> Chart
    Resolve location, timezone and instant through the external collaborators,
    ask the ephemeris for houses and bodies, and classify everything.
point_longitude(chart, name) -> float | None
    Longitude of a planet or angle ("Ascendant", "Midheaven") in a chart.
ephemeris_config(source, house_system) -> EphemerisConfig
    Build calculation flags for the built-in Moshier or file-based Swiss ephemeris.

Data Structures
---------------
ChartPoint:
    A classified longitude (sign, degree in sign). Used for angles and cusps.
PointReading:
    A classified body position plus speed, retrograde flag and house.
BodyError:
    Per-body failure marker recorded in place of a PointReading.
Chart:
    Immutable result of one build; never cached or shared.

Errors
------
InvalidInput, LocationUnresolved, InvalidDateTime and HouseCalculationFailed
abort the build and name the failing stage. A single body failing does not:
it is recorded inline as a BodyError.

Thread Safety
-------------
No module-level mutable state. EphemerisConfig is frozen and passed explicitly,
so builds may run concurrently.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

import swisseph as swe

from astro_core.angles import classify, normalize
from astro_core.houses import as_12_cusps, house_for_longitude
from astro_core.providers import GeocoderError, Providers

logger = logging.getLogger(__name__)

# --- Planets: Sun..Pluto (geocentric, ecliptic longitudes) ---
PLANETS: Tuple[Tuple[str, int], ...] = (
    ("Sun", swe.SUN),
    ("Moon", swe.MOON),
    ("Mercury", swe.MERCURY),
    ("Venus", swe.VENUS),
    ("Mars", swe.MARS),
    ("Jupiter", swe.JUPITER),
    ("Saturn", swe.SATURN),
    ("Uranus", swe.URANUS),
    ("Neptune", swe.NEPTUNE),
    ("Pluto", swe.PLUTO),
)

ANGLE_NAMES = ("Ascendant", "Midheaven")


# ---------------- Ephemeris config ----------------

@dataclass(frozen=True)
class EphemerisConfig:
    house_system: str = "P"
    flags: int = swe.FLG_SPEED | swe.FLG_MOSEPH


def ephemeris_config(source: str = "moshier", house_system: str = "P") -> EphemerisConfig:
    """
    Flags honoring the ephemeris source.

    - "moshier": built-in analytical ephemeris, no data files needed.
    - "swiss":   Swiss Ephemeris files (set EPHE_PATH); falls back to Moshier
                 inside the library when files are missing.
    """
    base = swe.FLG_SWIEPH if (source or "").lower() == "swiss" else swe.FLG_MOSEPH
    return EphemerisConfig(house_system=house_system or "P", flags=base | swe.FLG_SPEED)


DEFAULT_CONFIG = EphemerisConfig()


# ---------------- Errors ----------------

class AstroError(Exception):
    stage = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_failure(self) -> Dict[str, str]:
        return {"stage": self.stage, "message": self.message}


class InvalidInput(AstroError):
    stage = "input"


class ChartBuildError(AstroError):
    """A chart-build stage failed; the whole chart is abandoned."""


class LocationUnresolved(ChartBuildError):
    stage = "location"


class InvalidDateTime(ChartBuildError):
    stage = "datetime"


class HouseCalculationFailed(ChartBuildError):
    stage = "houses"


# ---------------- Data model ----------------

@dataclass(frozen=True)
class ChartRequest:
    date: str                      # 'YYYY-MM-DD'
    time: str                      # 'HH:MM' or 'HH:MM:SS'
    place: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    house_system: Optional[str] = None


@dataclass(frozen=True)
class ChartPoint:
    longitude: float
    sign: str
    degree: float

    @classmethod
    def at(cls, lon: float) -> "ChartPoint":
        sign, deg = classify(lon)
        return cls(longitude=normalize(lon), sign=sign, degree=deg)


@dataclass(frozen=True)
class PointReading:
    longitude: float
    sign: str
    degree: float
    speed: float
    retrograde: bool
    house: Optional[int]


@dataclass(frozen=True)
class BodyError:
    error: str


@dataclass(frozen=True)
class Angles:
    ascendant: ChartPoint
    midheaven: ChartPoint


@dataclass(frozen=True)
class ChartInput:
    date: str
    time: str
    place: str
    latitude: float
    longitude: float
    timezone: str


@dataclass(frozen=True)
class Chart:
    input: ChartInput
    utc: str
    jd_ut: float
    house_system: str
    cusps: Tuple[float, ...]
    angles: Angles
    planets: Mapping[str, Union[PointReading, BodyError]] = field(default_factory=dict)

    def __post_init__(self):
        # read-only view so a built chart cannot be mutated by consumers
        object.__setattr__(self, "planets", MappingProxyType(dict(self.planets)))


def point_longitude(chart: Chart, name: str) -> Optional[float]:
    """Longitude of a planet or an angle, or None when absent/failed."""
    if name == "Ascendant":
        return chart.angles.ascendant.longitude
    if name == "Midheaven":
        return chart.angles.midheaven.longitude
    reading = chart.planets.get(name)
    if isinstance(reading, PointReading):
        return reading.longitude
    return None


# ---------------- Build steps ----------------

def _resolve_location(request: ChartRequest, providers: Providers) -> Tuple[float, float, str]:
    if request.latitude is not None and request.longitude is not None:
        return float(request.latitude), float(request.longitude), "coords"
    if not request.place:
        raise InvalidInput("location_required: give latitude/longitude or a place")
    try:
        loc = providers.geocoder.resolve(request.place)
    except GeocoderError as e:
        raise LocationUnresolved(f"geocode_failed: {e}") from e
    if loc is None:
        raise LocationUnresolved(f"geocode_failed: no match for '{request.place}'")
    return loc.latitude, loc.longitude, loc.label


def _houses_and_angles(
    providers: Providers, jd_ut: float, lat: float, lon: float, house_system: str
) -> Tuple[Tuple[float, ...], float, float]:
    try:
        cusps, ascmc = providers.ephemeris.houses(jd_ut, lat, lon, house_system)
        cusps12 = as_12_cusps(cusps)
        ascmc = list(ascmc)
        if len(ascmc) < 2:
            raise ValueError(f"invalid_houses_result: expected ASC and MC, got {len(ascmc)} points")
        asc, mc = float(ascmc[0]), float(ascmc[1])
        if not all(math.isfinite(x) for x in (asc, mc, *cusps12)):
            raise ValueError("invalid_houses_result: non-finite cusp or angle")
        return cusps12, asc, mc
    except Exception as e:
        raise HouseCalculationFailed(f"houses_calc_failed: {e}") from e


def _read_body(
    providers: Providers, jd_ut: float, name: str, body_id: int, flags: int, cusps: Sequence[float]
) -> Union[PointReading, BodyError]:
    try:
        xx = providers.ephemeris.position(jd_ut, body_id, flags)
        xx = list(xx) if xx is not None else []
    except Exception as e:
        logger.warning("Ephemeris failed for %s at jd=%.6f: %s", name, jd_ut, e)
        return BodyError(error=str(e) or "exception")
    if len(xx) < 4:
        logger.warning("Ephemeris returned %d components for %s; expected >= 4", len(xx), name)
        return BodyError(error="no_data")
    try:
        raw_lon, speed = float(xx[0]), float(xx[3])
    except (TypeError, ValueError):
        raw_lon = speed = math.nan
    if not (math.isfinite(raw_lon) and math.isfinite(speed)):
        logger.warning("Ephemeris returned non-numeric longitude/speed for %s: %r", name, xx[:4])
        return BodyError(error="no_data")

    lon = normalize(raw_lon)
    sign, deg = classify(lon)
    house = house_for_longitude(lon, cusps)
    if house is None:
        logger.warning("%s at %.4f fell outside every house arc", name, lon)
    return PointReading(
        longitude=lon,
        sign=sign,
        degree=deg,
        speed=speed,
        retrograde=speed < 0,
        house=house,
    )


# --------------- Public API ----------------------

def build_chart(
    request: ChartRequest,
    *,
    providers: Providers,
    config: EphemerisConfig = DEFAULT_CONFIG,
) -> Chart:
    """
    Build a natal chart. Raises a ChartBuildError subclass (or InvalidInput)
    naming the failing stage; per-body failures are recorded as BodyError.
    """
    if not request.date or not request.time:
        raise InvalidInput("date and time are required")
    house_system = request.house_system or config.house_system

    lat, lon, label = _resolve_location(request, providers)
    try:
        tz = providers.timezones.zone_for(lat, lon)
    except Exception as e:
        raise LocationUnresolved(f"timezone_lookup_failed: {e}") from e

    utc_dt = providers.clock.to_utc_instant(request.date, request.time, tz)
    if utc_dt is None:
        raise InvalidDateTime(f"invalid_datetime: '{request.date} {request.time}' in {tz}")

    frac_hour = utc_dt.hour + utc_dt.minute / 60.0 + utc_dt.second / 3600.0 + utc_dt.microsecond / 3_600_000_000.0
    try:
        jd_ut = providers.ephemeris.julian_day(utc_dt.year, utc_dt.month, utc_dt.day, frac_hour)
    except Exception as e:
        raise InvalidDateTime(f"julian_day_failed: {e}") from e

    cusps, asc, mc = _houses_and_angles(providers, jd_ut, lat, lon, house_system)

    planets: Dict[str, Any] = {}
    for name, body_id in PLANETS:
        planets[name] = _read_body(providers, jd_ut, name, body_id, config.flags, cusps)

    return Chart(
        input=ChartInput(
            date=request.date,
            time=request.time,
            place=label,
            latitude=lat,
            longitude=lon,
            timezone=tz,
        ),
        utc=utc_dt.isoformat(),
        jd_ut=jd_ut,
        house_system=house_system,
        cusps=cusps,
        angles=Angles(ascendant=ChartPoint.at(asc), midheaven=ChartPoint.at(mc)),
        planets=planets,
    )
