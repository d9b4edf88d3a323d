from __future__ import annotations
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import pytest
import swisseph as swe

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from astro_core.astro_core import (  # noqa: E402
    Angles,
    Chart,
    ChartInput,
    ChartPoint,
    PointReading,
)
from astro_core.angles import classify  # noqa: E402
from astro_core.providers import GeoLocation, Providers, ZoneInfoClock  # noqa: E402

# Equal 30° houses starting at 100° (house 9 wraps through 0°)
EQUAL_CUSPS = tuple(float((100 + 30 * i) % 360) for i in range(12))

FAKE_POSITIONS: Dict[int, Tuple[float, float]] = {
    swe.SUN: (280.5, 1.02),
    swe.MOON: (223.3, 13.1),
    swe.MERCURY: (300.0, 1.5),
    swe.VENUS: (271.0, -0.5),
    swe.MARS: (15.0, 0.7),
    swe.JUPITER: (75.0, -0.1),
    swe.SATURN: (5.0, 0.05),
    swe.URANUS: (355.0, 0.04),
    swe.NEPTUNE: (100.0, 0.02),
    swe.PLUTO: (-10.0, 0.01),
}


class FakeGeocoder:
    def __init__(self, hits: Optional[Dict[str, GeoLocation]] = None, error: Optional[Exception] = None):
        self.hits = hits or {}
        self.error = error
        self.calls = []

    def resolve(self, place: str) -> Optional[GeoLocation]:
        self.calls.append(place)
        if self.error is not None:
            raise self.error
        return self.hits.get(place)


class FakeTimezones:
    def __init__(self, zone: str = "UTC", error: Optional[Exception] = None):
        self.zone = zone
        self.error = error

    def zone_for(self, latitude: float, longitude: float) -> str:
        if self.error is not None:
            raise self.error
        return self.zone


class FakeEphemeris:
    """Fixed cusps/angles and body positions.

    ``fail`` maps body id -> exception, 'short', or a raw tuple returned as-is.
    """

    def __init__(
        self,
        cusps: Sequence[float] = EQUAL_CUSPS,
        ascmc: Sequence[float] = (100.0, 10.0),
        positions: Optional[Dict[int, Tuple[float, float]]] = None,
        fail: Optional[Dict[int, object]] = None,
        houses_error: Optional[Exception] = None,
        julday_error: Optional[Exception] = None,
    ):
        self.julday_error = julday_error
        self.cusps = cusps
        self.ascmc = ascmc
        self.positions = positions if positions is not None else dict(FAKE_POSITIONS)
        self.fail = fail or {}
        self.houses_error = houses_error
        self.julday_args = None

    def julian_day(self, year, month, day, hour):
        self.julday_args = (year, month, day, hour)
        if self.julday_error is not None:
            raise self.julday_error
        return 2451545.0

    def houses(self, jd_ut, latitude, longitude, house_system):
        if self.houses_error is not None:
            raise self.houses_error
        return self.cusps, self.ascmc

    def position(self, jd_ut, body_id, flags):
        f = self.fail.get(body_id)
        if isinstance(f, Exception):
            raise f
        if f == "short":
            return (1.0, 2.0)
        if isinstance(f, tuple):
            return f
        lon, speed = self.positions[body_id]
        return (lon, 0.0, 1.0, speed, 0.0, 0.0)


def make_providers(**kw) -> Providers:
    return Providers(
        geocoder=kw.pop("geocoder", FakeGeocoder()),
        timezones=kw.pop("timezones", FakeTimezones()),
        ephemeris=kw.pop("ephemeris", FakeEphemeris()),
        clock=ZoneInfoClock(),
    )


@pytest.fixture
def providers() -> Providers:
    return make_providers()


@pytest.fixture
def make_chart():
    """Factory for hand-made charts: make_chart({"Sun": 10.0, ...}, asc=..., mc=...)."""

    def _make(longitudes: Dict[str, float], asc: float = 0.0, mc: float = 270.0, missing: Sequence[str] = ()) -> Chart:
        from astro_core.astro_core import BodyError

        planets = {}
        for name, lon in longitudes.items():
            sign, deg = classify(lon)
            planets[name] = PointReading(longitude=lon % 360.0, sign=sign, degree=deg, speed=1.0, retrograde=False, house=1)
        for name in missing:
            planets[name] = BodyError(error="no_data")
        return Chart(
            input=ChartInput(date="2000-01-01", time="12:00", place="coords", latitude=0.0, longitude=0.0, timezone="UTC"),
            utc="2000-01-01T12:00:00+00:00",
            jd_ut=2451545.0,
            house_system="P",
            cusps=EQUAL_CUSPS,
            angles=Angles(ascendant=ChartPoint.at(asc), midheaven=ChartPoint.at(mc)),
            planets=planets,
        )

    return _make
