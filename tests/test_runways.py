import json

import pytest

from airfieldwatch.models import Runway
from airfieldwatch.services.runways import (
    DEFAULT_RUNWAYS,
    determine_runway,
    heading_difference,
    load_runways,
    runway_score,
)

RADIUS = 50_000


def test_perfect_alignment_scores_one():
    assert runway_score(0.0, 0.0, RADIUS) == pytest.approx(1.0)


def test_score_decreases_with_distance_and_heading():
    distances = [runway_score(d, 10.0, RADIUS) for d in (0, 1_000, 10_000, 40_000)]
    headings = [runway_score(1_000, h, RADIUS) for h in (0, 10, 30, 44)]

    assert distances == sorted(distances, reverse=True)
    assert headings == sorted(headings, reverse=True)
    assert runway_score(RADIUS * 2, 90.0, RADIUS) == 0.0


def test_unknown_heading_contributes_nothing():
    assert runway_score(0.0, None, RADIUS) == pytest.approx(0.7)


def test_heading_difference_wraps():
    assert heading_difference(350, 10) == pytest.approx(20)
    assert heading_difference(10, 350) == pytest.approx(20)
    assert heading_difference(0, 180) == pytest.approx(180)


def test_ties_keep_configuration_order():
    assignment = determine_runway(55.52, -4.5867, None, DEFAULT_RUNWAYS, RADIUS)

    assert assignment is not None
    assert assignment.runway_id == "12"


def test_nearest_aligned_runway_wins():
    runways = [
        Runway(id="A", name="Far", heading=90, threshold_lat=55.60, threshold_lon=-4.5867, length_m=2000),
        Runway(id="B", name="Near", heading=90, threshold_lat=55.51, threshold_lon=-4.5867, length_m=2000),
    ]

    # Aircraft south of both thresholds, flying north towards them.
    assignment = determine_runway(55.50, -4.5867, 0.0, runways, RADIUS)

    assert assignment.runway_id == "B"
    assert assignment.heading_diff_deg == pytest.approx(0.0, abs=1e-6)
    assert 0 < assignment.score <= 1


def test_out_of_range_without_heading_has_no_runway():
    assert determine_runway(57.0, -4.5867, None, DEFAULT_RUNWAYS, RADIUS) is None


def test_load_runways_preserves_file_order(tmp_path):
    path = tmp_path / "runways.json"
    path.write_text(
        json.dumps(
            [
                {"id": "30", "heading": 300, "threshold": {"lat": 55.50, "lon": -4.57}, "length_m": 2987},
                {"id": "12", "name": "Runway 12", "heading": 120, "threshold": {"lat": 55.52, "lon": -4.60}},
            ]
        )
    )

    runways = load_runways(path)

    assert [r.id for r in runways] == ["30", "12"]
    assert runways[0].name == "Runway 30"
    assert runways[1].threshold_lon == pytest.approx(-4.60)
