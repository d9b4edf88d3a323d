from __future__ import annotations

import pytest

from astro_core.astro_core import InvalidInput
from services.harmonic_services import (
    DEFAULT_HARMONICS,
    HARMONIC_POINTS,
    harmonic_longitude,
    score_harmonic,
)

FIVE = {"Sun": 280.5, "Moon": 223.3, "Venus": 271.0, "Mars": 15.0, "Saturn": 5.0}


def test_harmonic_longitude_wraps():
    assert harmonic_longitude(10.0, 7) == pytest.approx(70.0)
    assert harmonic_longitude(100.0, 7) == pytest.approx(340.0)
    assert harmonic_longitude(-10.0, 2) == pytest.approx(340.0)


def test_identical_charts_hit_everywhere(make_chart):
    chart = make_chart(FIVE)
    res = score_harmonic(chart, chart)
    assert res.score10 == 10.0
    assert [b.harmonic for b in res.breakdown] == list(DEFAULT_HARMONICS)
    for b in res.breakdown:
        assert b.points_checked == len(HARMONIC_POINTS)
        assert b.hits_within_orb == len(HARMONIC_POINTS)
    # 3 harmonics * 5 points * (3 - 0 + 1)
    assert res.raw == pytest.approx(60.0)
    assert res.notes


def test_ramp_rewards_closer_hits(make_chart):
    a = make_chart({"Sun": 10.0})
    b = make_chart({"Sun": 10.2})
    res = score_harmonic(a, b)
    # H7 sep 1.4 -> 2.6, H11 sep 2.2 -> 1.8, H17 sep 3.4 -> miss
    assert [x.hits_within_orb for x in res.breakdown] == [1, 1, 0]
    assert [x.points_checked for x in res.breakdown] == [1, 1, 1]
    assert res.raw == pytest.approx(4.4)
    assert res.score10 == 0.7


def test_exact_half_rounds_up(make_chart):
    a = make_chart({"Sun": 0.0})
    b = make_chart({"Sun": 2.5})
    res = score_harmonic(a, b, harmonics=[1])
    # 3 - 2.5 + 1 = 1.5; 1.5 / 6 = 0.25
    assert res.raw == pytest.approx(1.5)
    assert res.score10 == 0.3


def test_resonance_hidden_at_base_frequency(make_chart):
    a = make_chart({"Venus": 0.0})
    b = make_chart({"Venus": 360.0 / 7})
    res = score_harmonic(a, b, harmonics=[1, 7])
    assert [x.hits_within_orb for x in res.breakdown] == [0, 1]
    assert res.raw == pytest.approx(4.0)


def test_missing_points_not_checked(make_chart):
    a = make_chart({k: v for k, v in FIVE.items() if k != "Saturn"}, missing=["Saturn"])
    b = make_chart(FIVE)
    res = score_harmonic(a, b)
    assert all(x.points_checked == 4 for x in res.breakdown)
    assert res.score10 == 8.0  # 3 * 4 * 4 / 6


def test_only_tracked_points_count(make_chart):
    a = make_chart({"Jupiter": 10.0, "Mercury": 20.0})
    res = score_harmonic(a, a)
    assert res.score10 == 0.0
    assert all(x.points_checked == 0 for x in res.breakdown)


def test_score_saturates_at_ten(make_chart):
    chart = make_chart(FIVE)
    res = score_harmonic(chart, chart, harmonics=range(1, 20))
    assert res.score10 == 10.0
    assert len(res.breakdown) == 19


def test_zero_orb_counts_exact_hits_only(make_chart):
    a = make_chart({"Sun": 0.0, "Moon": 0.0})
    b = make_chart({"Sun": 0.0, "Moon": 0.01})
    res = score_harmonic(a, b, harmonics=[7], orb_deg=0)
    assert res.breakdown[0].hits_within_orb == 1
    assert res.raw == pytest.approx(1.0)


def test_no_harmonics_scores_zero(make_chart):
    chart = make_chart(FIVE)
    res = score_harmonic(chart, chart, harmonics=[])
    assert res.score10 == 0.0 and res.breakdown == ()


@pytest.mark.parametrize("kwargs", [{"harmonics": [0]}, {"harmonics": [7, -3]}, {"harmonics": [2.5]}, {"orb_deg": -1}])
def test_invalid_parameters(make_chart, kwargs):
    chart = make_chart(FIVE)
    with pytest.raises(InvalidInput):
        score_harmonic(chart, chart, **kwargs)


def test_missing_chart_fails_fast(make_chart):
    with pytest.raises(InvalidInput):
        score_harmonic(None, make_chart(FIVE))


@pytest.mark.parametrize("shift", [0.0, 0.37, 1.0, 13.0, 90.0, 179.9])
def test_score_bounded(make_chart, shift):
    a = make_chart(FIVE)
    b = make_chart({k: v + shift for k, v in FIVE.items()})
    res = score_harmonic(a, b, harmonics=[2, 3, 5, 7, 11, 17, 19])
    assert 0.0 <= res.score10 <= 10.0
