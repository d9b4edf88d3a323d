"""
Synastry (chart-to-chart compatibility) scoring.

This module compares a fixed list of cross-chart point pairs against the five
classical aspects, keeps the best-fitting aspect for each pair, and folds the
strengths into a 0–100 compatibility score.

Public API
----------
score_synastry(chart_a: Chart, chart_b: Chart, pairs=FOCUS_PAIRS) -> SynastryResult
    Pure scoring over two already-built charts.

best_aspect(sep: float) -> tuple[AspectDef, float, float] | None
    Strongest aspect definition matching an angular separation.

calculate_synastry(payload: SynastryIn, *, providers, config) -> SynastryOut
    Request pipeline: build both charts concurrently -> score -> response model.

Notes
-----
- The aspect table and weights are an empirically tuned scoring policy
  (SCORING_POLICY_VERSION). Change them deliberately, never incidentally.
- Pairs whose points are missing in either chart are skipped and do not count
  towards the denominator; pairs without any aspect still count.
"""
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from astro_core.angles import angular_separation
from astro_core.astro_core import Chart, EphemerisConfig, DEFAULT_CONFIG, InvalidInput, point_longitude
from astro_core.providers import Providers
from schemas import AspectMatchOut, SynastryData, SynastryIn, SynastryOut
from services.natal_services import KNOWN_POINTS, build_chart_pair

SCORING_POLICY_VERSION = "synastry-v1"


@dataclass(frozen=True)
class AspectDef:
    name: str
    angle: float
    orb: float
    weight: float


# Order matters: on equal strength the earlier definition wins.
ASPECT_DEFS: Tuple[AspectDef, ...] = (
    AspectDef("Conjunction", 0.0, 8.0, 1.0),
    AspectDef("Opposition", 180.0, 8.0, 0.9),
    AspectDef("Trine", 120.0, 7.0, 0.9),
    AspectDef("Square", 90.0, 6.0, 0.7),
    AspectDef("Sextile", 60.0, 5.0, 0.6),
)

FOCUS_PAIRS: Tuple[Tuple[str, str], ...] = (
    ("Sun", "Moon"),
    ("Moon", "Sun"),
    ("Venus", "Mars"),
    ("Mars", "Venus"),
    ("Moon", "Venus"),
    ("Venus", "Moon"),
    ("Sun", "Ascendant"),
    ("Moon", "Ascendant"),
)

MAX_HIGHLIGHTS = 12


@dataclass(frozen=True)
class AspectMatch:
    point_a: str
    point_b: str
    aspect: str
    exact_angle: float
    orb: float
    strength: float


@dataclass(frozen=True)
class SynastryResult:
    score: int
    evaluated_pairs: int
    highlights: Tuple[AspectMatch, ...]


def best_aspect(sep: float) -> Optional[Tuple[AspectDef, float, float]]:
    """(definition, orb, strength) of the strongest matching aspect, or None."""
    best: Optional[Tuple[AspectDef, float, float]] = None
    for a in ASPECT_DEFS:
        orb = abs(sep - a.angle)
        if orb > a.orb:
            continue
        strength = (1.0 - orb / a.orb) * a.weight
        if best is None or strength > best[2]:
            best = (a, orb, strength)
    return best


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def score_synastry(
    chart_a: Optional[Chart],
    chart_b: Optional[Chart],
    pairs: Sequence[Tuple[str, str]] = FOCUS_PAIRS,
) -> SynastryResult:
    if chart_a is None or chart_b is None:
        raise InvalidInput("synastry needs two charts")

    matches: List[AspectMatch] = []
    evaluated = 0
    total = 0.0
    for name_a, name_b in pairs:
        lon_a = point_longitude(chart_a, name_a)
        lon_b = point_longitude(chart_b, name_b)
        if lon_a is None or lon_b is None:
            continue
        evaluated += 1
        hit = best_aspect(angular_separation(lon_a, lon_b))
        if hit is None:
            continue
        a, orb, strength = hit
        total += strength
        matches.append(AspectMatch(
            point_a=name_a,
            point_b=name_b,
            aspect=a.name,
            exact_angle=a.angle,
            orb=orb,
            strength=strength,
        ))

    score = 0
    if evaluated:
        score = max(0, min(100, _round_half_up(100.0 * total / evaluated)))

    # stable sort keeps pair order among equal strengths
    matches.sort(key=lambda m: m.strength, reverse=True)
    return SynastryResult(score=score, evaluated_pairs=evaluated, highlights=tuple(matches[:MAX_HIGHLIGHTS]))


# ---------------------------- request pipeline ----------------------------

def _validate_pairs(pairs: Optional[List[Tuple[str, str]]]) -> Tuple[Tuple[str, str], ...]:
    if not pairs:
        return FOCUS_PAIRS
    unknown = sorted({n for pair in pairs for n in pair if n not in KNOWN_POINTS})
    if unknown:
        raise InvalidInput(f"Unknown point names: {', '.join(unknown)}")
    return tuple((a, b) for a, b in pairs)


def calculate_synastry(
    payload: SynastryIn,
    *,
    providers: Providers,
    config: EphemerisConfig = DEFAULT_CONFIG,
) -> SynastryOut:
    pairs = _validate_pairs(payload.pairs)
    chart_a, chart_b = build_chart_pair(payload.personA, payload.personB, providers=providers, config=config)
    result = score_synastry(chart_a, chart_b, pairs)
    return SynastryOut(data=SynastryData(
        score=result.score,
        evaluatedPairs=result.evaluated_pairs,
        highlights=[
            AspectMatchOut(
                pointA=m.point_a,
                pointB=m.point_b,
                aspect=m.aspect,
                exactAngle=m.exact_angle,
                orb=round(m.orb, 3),
                strength=round(m.strength, 3),
            )
            for m in result.highlights
        ],
        policyVersion=SCORING_POLICY_VERSION,
    ))
