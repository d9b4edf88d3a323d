"""House placement against a 12-cusp set.

A house is the forward arc from its cusp to the next one, wrapping through
0°. Cusps arrive either 0-based (12 entries) or Swiss-style with an unused
slot at index 0 (13 entries).
"""
from __future__ import annotations
import logging
from typing import Optional, Sequence, Tuple

from astro_core.angles import normalize

logger = logging.getLogger(__name__)


def as_12_cusps(cusps_obj: Sequence[float]) -> Tuple[float, ...]:
    """
    Normalize Swiss Ephemeris cusp outputs to a 12-length, 0-based tuple.
    Accepts 12-length (0..11) or 13-length (0..12 with cusps[0] unused).
    """
    seq = list(cusps_obj)
    if len(seq) == 13:
        seq = seq[1:13]
    elif len(seq) != 12:
        raise ValueError(f"Unexpected number of cusps: {len(seq)} (expected 12 or 13)")
    return tuple(normalize(x) for x in seq)


def in_arc(start: float, end: float, x: float) -> bool:
    """True if x lies in the half-open arc start -> end going forward (wrapping 360)."""
    if start <= end:
        return start <= x < end
    return x >= start or x < end


def house_for_longitude(lon: float, cusps: Sequence[float]) -> Optional[int]:
    """
    House (1..12) whose arc cusp[i] -> cusp[i+1] contains lon.

    Arcs are tested in cusp order and the first match wins, which only matters
    when cusps are duplicated. A malformed cusp set that leaves a gap yields
    None instead of raising; callers treat it as a data-quality signal.
    """
    c = as_12_cusps(cusps)
    L = normalize(lon)
    for i in range(12):
        if in_arc(c[i], c[(i + 1) % 12], L):
            return i + 1
    logger.debug("No house arc contains %.6f for cusps %s", L, c)
    return None
