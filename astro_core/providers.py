"""External collaborators consumed by the chart builder.

Each collaborator is a small Protocol so tests can swap in deterministic fakes.
The default adapters wrap geopy (Nominatim), timezonefinder, zoneinfo and
Swiss Ephemeris (pyswisseph).
"""
from __future__ import annotations
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import swisseph as swe
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim
from timezonefinder import TimezoneFinder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float
    label: str


class GeocoderError(Exception):
    """Geocoding service failed (timeout, unavailable, quota...)."""


class Geocoder(Protocol):
    def resolve(self, place: str) -> Optional[GeoLocation]: ...


class TimezoneResolver(Protocol):
    def zone_for(self, latitude: float, longitude: float) -> str: ...


class Clock(Protocol):
    def to_utc_instant(self, date: str, time: str, zone: str) -> Optional[dt.datetime]: ...


class Ephemeris(Protocol):
    def julian_day(self, year: int, month: int, day: int, hour: float) -> float: ...

    def houses(
        self, jd_ut: float, latitude: float, longitude: float, house_system: str
    ) -> Tuple[Sequence[float], Sequence[float]]: ...

    def position(self, jd_ut: float, body_id: int, flags: int) -> Sequence[float]: ...


# ---------------------------- default adapters ----------------------------

class NominatimGeocoder:
    """OSM/Nominatim lookup via geopy; returns the first hit."""

    def __init__(self, user_agent: str, timeout: float = 10.0):
        self._geolocator = Nominatim(user_agent=user_agent, timeout=timeout)

    def resolve(self, place: str) -> Optional[GeoLocation]:
        try:
            loc = self._geolocator.geocode(place)
        except GeopyError as e:
            raise GeocoderError(f"{type(e).__name__}: {e}") from e
        if loc is None:
            return None
        return GeoLocation(latitude=loc.latitude, longitude=loc.longitude, label=loc.address or place)


class TimezoneFinderResolver:
    """IANA zone from coordinates; open sea falls back to the nautical Etc/GMT±N zone."""

    def __init__(self):
        self._tf = TimezoneFinder()

    def zone_for(self, latitude: float, longitude: float) -> str:
        zone = self._tf.timezone_at(lng=longitude, lat=latitude)
        if zone:
            return zone
        return nautical_zone(longitude)


def nautical_zone(longitude: float) -> str:
    """Etc/GMT zone for a longitude (POSIX sign convention: east is negative)."""
    offset = int(round(longitude / 15.0))
    offset = max(-12, min(12, offset))
    if offset == 0:
        return "Etc/GMT"
    return f"Etc/GMT{-offset:+d}"


def parse_time(t: Optional[str]) -> Tuple[int, int, int]:
    if not t:
        return (0, 0, 0)
    parts = [int(x) for x in t.split(":")]
    if len(parts) == 2:
        h, m = parts; s = 0
    elif len(parts) == 3:
        h, m, s = parts
    else:
        raise ValueError("time must be 'HH:MM' or 'HH:MM:SS'")
    return (h, m, s)


class ZoneInfoClock:
    """Local civil time in an IANA zone -> aware UTC datetime."""

    def to_utc_instant(self, date: str, time: str, zone: str) -> Optional[dt.datetime]:
        try:
            tz = ZoneInfo(zone)
            d = dt.date.fromisoformat(date)
            h, m, s = parse_time(time)
            local_dt = dt.datetime(d.year, d.month, d.day, h, m, s, tzinfo=tz)
        except (ValueError, TypeError, ZoneInfoNotFoundError) as e:
            logger.debug("Unparseable local time %r %r in %r: %s", date, time, zone, e)
            return None
        utc_dt = local_dt.astimezone(dt.timezone.utc)
        # Wall times inside a DST gap do not survive the round trip
        if utc_dt.astimezone(tz).replace(tzinfo=None) != local_dt.replace(tzinfo=None):
            return None
        return utc_dt


class SwissEphemeris:
    """pyswisseph adapter."""

    def __init__(self, ephe_path: str = ""):
        swe.set_ephe_path(ephe_path)

    def julian_day(self, year: int, month: int, day: int, hour: float) -> float:
        return swe.julday(year, month, day, hour, swe.GREG_CAL)

    def houses(self, jd_ut, latitude, longitude, house_system):
        if not isinstance(house_system, str) or len(house_system) != 1:
            raise ValueError("house system code must be a 1-char string like 'P','E','O','K', etc.")
        cusps, ascmc = swe.houses(jd_ut, latitude, longitude, house_system.encode("ascii"))
        return cusps, ascmc

    def position(self, jd_ut, body_id, flags):
        xx, _ = swe.calc_ut(jd_ut, body_id, flags)
        return xx


@dataclass(frozen=True)
class Providers:
    """Bundle of collaborators handed to build_chart."""
    geocoder: Geocoder
    timezones: TimezoneResolver
    ephemeris: Ephemeris
    clock: Clock = field(default_factory=ZoneInfoClock)


def default_providers(
    *, user_agent: str, geocoder_timeout: float = 10.0, ephe_path: str = ""
) -> Providers:
    return Providers(
        geocoder=NominatimGeocoder(user_agent, timeout=geocoder_timeout),
        timezones=TimezoneFinderResolver(),
        ephemeris=SwissEphemeris(ephe_path),
        clock=ZoneInfoClock(),
    )
