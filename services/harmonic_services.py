"""
Harmonic resonance scoring between two charts.

Each tracked point's longitude is multiplied by the harmonic number and
re-normalized; close same-point conjunctions in that harmonic space score
points on a simple ramp (exact = orb + 1, edge of orb = 1). The raw total is
divided by a fixed normalizer and clamped to 0..10.
"""
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from astro_core.angles import angular_separation, normalize
from astro_core.astro_core import Chart, EphemerisConfig, DEFAULT_CONFIG, InvalidInput, point_longitude
from astro_core.providers import Providers
from schemas import HarmonicBreakdownOut, HarmonicData, HarmonicIn, HarmonicOut
from services.natal_services import build_chart_pair

SCORING_POLICY_VERSION = "harmonic-v1"

HARMONIC_POINTS: Tuple[str, ...] = ("Sun", "Moon", "Venus", "Mars", "Saturn")
DEFAULT_HARMONICS: Tuple[int, ...] = (7, 11, 17)
DEFAULT_ORB_DEG = 3.0

# Fixed divisor; does not scale with the number of harmonics or points.
HARMONIC_NORMALIZER = 6.0

NOTES: Tuple[str, ...] = (
    "Scores close conjunctions of the same point in both charts (Sun-Sun, Moon-Moon, ...) after "
    "projecting longitudes into each harmonic.",
    "Each hit earns (orb - separation + 1); the total is divided by 6 and capped at 10, so the "
    "ceiling is not tied to how many harmonics were requested.",
)


@dataclass(frozen=True)
class HarmonicBreakdown:
    harmonic: int
    points_checked: int
    hits_within_orb: int


@dataclass(frozen=True)
class HarmonicResult:
    score10: float
    raw: float
    breakdown: Tuple[HarmonicBreakdown, ...]
    notes: Tuple[str, ...] = NOTES


def harmonic_longitude(lon: float, h: int) -> float:
    return normalize(lon * h)


def _round_half_up_1(x: float) -> float:
    # one decimal, exact halves round up (0.25 -> 0.3)
    return math.floor(x * 10.0 + 0.5) / 10.0


def score_harmonic(
    chart_a: Optional[Chart],
    chart_b: Optional[Chart],
    harmonics: Sequence[int] = DEFAULT_HARMONICS,
    orb_deg: float = DEFAULT_ORB_DEG,
    points: Sequence[str] = HARMONIC_POINTS,
) -> HarmonicResult:
    if chart_a is None or chart_b is None:
        raise InvalidInput("harmonic match needs two charts")
    if orb_deg < 0:
        raise InvalidInput(f"orb must be >= 0, got {orb_deg}")
    bad = [h for h in harmonics if int(h) != h or h < 1]
    if bad:
        raise InvalidInput(f"harmonics must be positive integers, got {bad}")

    raw = 0.0
    breakdown: List[HarmonicBreakdown] = []
    for h in harmonics:
        h = int(h)
        checked = hits = 0
        for p in points:
            a = point_longitude(chart_a, p)
            b = point_longitude(chart_b, p)
            if a is None or b is None:
                continue
            checked += 1
            d = angular_separation(harmonic_longitude(a, h), harmonic_longitude(b, h))
            if d <= orb_deg:
                hits += 1
                raw += orb_deg - d + 1.0
        breakdown.append(HarmonicBreakdown(harmonic=h, points_checked=checked, hits_within_orb=hits))

    score10 = max(0.0, min(10.0, _round_half_up_1(raw / HARMONIC_NORMALIZER)))
    return HarmonicResult(score10=score10, raw=raw, breakdown=tuple(breakdown))


def calculate_harmonic_match(
    payload: HarmonicIn,
    *,
    providers: Providers,
    config: EphemerisConfig = DEFAULT_CONFIG,
) -> HarmonicOut:
    chart_a, chart_b = build_chart_pair(payload.personA, payload.personB, providers=providers, config=config)
    result = score_harmonic(chart_a, chart_b, payload.harmonics, payload.orbDeg)
    return HarmonicOut(data=HarmonicData(
        score10=result.score10,
        breakdown=[
            HarmonicBreakdownOut(harmonic=b.harmonic, pointsChecked=b.points_checked, hitsWithinOrb=b.hits_within_orb)
            for b in result.breakdown
        ],
        notes=list(result.notes),
        policyVersion=SCORING_POLICY_VERSION,
    ))
