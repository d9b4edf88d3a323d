from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Tuple, Union

from astro_core.angles import format_longitude
from astro_core.astro_core import (
    ANGLE_NAMES,
    PLANETS,
    AstroError,
    BodyError,
    Chart,
    ChartPoint,
    ChartRequest,
    DEFAULT_CONFIG,
    EphemerisConfig,
    PointReading,
    build_chart,
)
from astro_core.providers import Providers
from schemas import (
    AnglesOut,
    BodyErrorOut,
    ChartInputOut,
    ChartPointOut,
    ChartRequestIn,
    HousesOut,
    NatalChartData,
    NatalChartOut,
    PlanetReadingOut,
)

logger = logging.getLogger(__name__)

KNOWN_POINTS = frozenset([name for name, _ in PLANETS] + list(ANGLE_NAMES))


def to_chart_request(payload: ChartRequestIn) -> ChartRequest:
    return ChartRequest(
        date=payload.date,
        time=payload.time,
        place=payload.place,
        latitude=payload.latitude,
        longitude=payload.longitude,
        house_system=payload.houseSystem,
    )


def _point_out(p: ChartPoint) -> ChartPointOut:
    return ChartPointOut(
        longitude=round(p.longitude, 6),
        sign=p.sign,
        degree=round(p.degree, 6),
        formatted=format_longitude(p.longitude),
    )


def _planet_out(name: str, r: Union[PointReading, BodyError]) -> Union[PlanetReadingOut, BodyErrorOut]:
    if isinstance(r, BodyError):
        return BodyErrorOut(error=r.error)
    return PlanetReadingOut(
        planetName=name,
        longitude=round(r.longitude, 6),
        sign=r.sign,
        degree=round(r.degree, 6),
        formatted=format_longitude(r.longitude),
        speed=round(r.speed, 6),
        retrograde=r.retrograde,
        house=r.house,
    )


def chart_to_data(chart: Chart) -> NatalChartData:
    planets: Dict[str, Union[PlanetReadingOut, BodyErrorOut]] = {
        name: _planet_out(name, r) for name, r in chart.planets.items()
    }
    return NatalChartData(
        input=ChartInputOut(
            date=chart.input.date,
            time=chart.input.time,
            place=chart.input.place,
            latitude=chart.input.latitude,
            longitude=chart.input.longitude,
            timeZone=chart.input.timezone,
        ),
        utc=chart.utc,
        jdUt=chart.jd_ut,
        angles=AnglesOut(
            ascendant=_point_out(chart.angles.ascendant),
            midheaven=_point_out(chart.angles.midheaven),
        ),
        houses=HousesOut(
            system=chart.house_system,
            cusps=[_point_out(ChartPoint.at(c)) for c in chart.cusps],
        ),
        planets=planets,
    )


def calculate_natal_chart(
    payload: ChartRequestIn,
    *,
    providers: Providers,
    config: EphemerisConfig = DEFAULT_CONFIG,
) -> NatalChartOut:
    chart = build_chart(to_chart_request(payload), providers=providers, config=config)
    return NatalChartOut(data=chart_to_data(chart))


def build_chart_pair(
    person_a: ChartRequestIn,
    person_b: ChartRequestIn,
    *,
    providers: Providers,
    config: EphemerisConfig = DEFAULT_CONFIG,
) -> Tuple[Chart, Chart]:
    """
    Build both charts in parallel; neither depends on the other.
    If either fails, the first failure (personA before personB) is raised,
    re-tagged with the person it belongs to.
    """
    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = {
            label: executor.submit(build_chart, to_chart_request(p), providers=providers, config=config)
            for label, p in (("personA", person_a), ("personB", person_b))
        }
        charts = {}
        for label, future in futures.items():
            try:
                charts[label] = future.result()
            except AstroError as e:
                logger.warning("Chart build failed for %s at stage %s: %s", label, e.stage, e.message)
                raise type(e)(f"{label}: {e.message}") from e
    return charts["personA"], charts["personB"]
