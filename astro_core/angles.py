"""Angle helpers on the ecliptic circle.

Every longitude handled by the charts and the scorers passes through
``normalize`` first, so the rest of the code can assume ``0 <= lon < 360``.
"""
from __future__ import annotations
from typing import Tuple

SIGN_NAMES = [
    "Aries","Taurus","Gemini","Cancer","Leo","Virgo",
    "Libra","Scorpio","Sagittarius","Capricorn","Aquarius","Pisces"
]


def normalize(x: float) -> float:
    """Fold any real angle into [0, 360)."""
    v = float(x) % 360.0
    # -1e-15 % 360 rounds to 360.0 in floating point
    return 0.0 if v >= 360.0 else v


def angular_separation(a: float, b: float) -> float:
    """Minimum absolute circular distance between two angles in degrees [0..180]."""
    d = abs(normalize(a) - normalize(b))
    return 360.0 - d if d > 180.0 else d


def sign_index(lon: float) -> int:
    """0..11 for Aries..Pisces."""
    return int(normalize(lon) // 30.0)


def classify(lon: float) -> Tuple[str, float]:
    """Return (sign_name, degree_in_sign) with degree in [0, 30)."""
    L = normalize(lon)
    return SIGN_NAMES[int(L // 30.0)], L % 30.0


def sign_of_longitude(lon: float) -> str:
    return SIGN_NAMES[sign_index(lon)]


def format_longitude(lon: float) -> str:
    """
    Render a longitude as "DD° MM' Sign".
    Rounds to the nearest arc-minute; 60' rolls into the degree and 30° into the next sign.
    """
    L = normalize(lon)
    idx = int(L // 30)
    total_minutes = int(round((L - 30 * idx) * 60))
    deg, minutes = divmod(total_minutes, 60)
    if deg == 30:
        idx = (idx + 1) % 12
        deg = 0
    return f"{deg:02d}° {minutes:02d}' {SIGN_NAMES[idx]}"
