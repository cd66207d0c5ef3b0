"""
Tests for MDS/RCS scoring and the tolerance filter.
"""

import math

import pytest

from refassign.models.league import League
from refassign.services.difficulty import (
    compute_match_mds_from_teams,
    compute_mds_for_match,
    compute_rcs,
    evaluate_central_rcs,
    filter_by_mds,
    referee_tier_to_rcs,
    resolve_tolerances,
)
from tests.factories import add_base_hierarchy, add_match, add_team, make_candidate


@pytest.mark.parametrize(
    "tier,expected",
    [
        ("DEBUTANTE", 1),
        ("en_desarrollo", 2),
        (" EXPERIMENTADO ", 3),
        ("MUY_EXPERIMENTADO", 4),
        ("NO_ELEGIBLE", None),
        (None, None),
        ("", None),
    ],
)
def test_referee_tier_to_rcs(tier, expected):
    assert referee_tier_to_rcs(tier) == expected


def test_unknown_referee_tier_logs_warning(caplog):
    assert referee_tier_to_rcs("LEGENDARIO") is None
    assert "Unrecognized referee tier" in caplog.text


def test_compute_rcs_override():
    assert compute_rcs("DEBUTANTE", 5.5) == 5.5
    assert compute_rcs("DEBUTANTE", None) == 1
    assert compute_rcs("DEBUTANTE", math.nan) == 1


def test_match_mds_from_team_tiers():
    assert compute_match_mds_from_teams("TRANQUILO", "MUY_COMPLICADO") == 4
    assert compute_match_mds_from_teams("REGULARES", None) == 2
    assert compute_match_mds_from_teams(None, "complicado") == 3
    assert compute_match_mds_from_teams(None, "DESCONOCIDO") is None


def test_compute_mds_for_match_prefers_stored_value(session):
    add_base_hierarchy(session)
    match = add_match(session, "M1", mds=2.5)
    assert compute_mds_for_match(session, match) == 2.5


def test_compute_mds_for_match_from_teams(session):
    add_base_hierarchy(session)
    add_team(session, "T3", tier="COMPLICADO")
    add_team(session, "T4", tier="REGULARES")
    match = add_match(session, "M1", home="T3", away="T4")

    assert compute_mds_for_match(session, match) == 3


def test_compute_mds_for_match_without_tiers(session):
    add_base_hierarchy(session)
    match = add_match(session, "M1")
    assert compute_mds_for_match(session, match) is None


def test_mds_filter_scenario():
    """MDS=5, tolerance=1 -> threshold 4: R1(6) and R2(4) pass, R3(3) does not."""
    candidates = [make_candidate("R1", rcs=6), make_candidate("R2", rcs=4), make_candidate("R3", rcs=3)]

    eligible = filter_by_mds(candidates, mds=5, tolerance=1)

    assert [c.id for c in eligible] == ["R1", "R2"]


def test_mds_filter_falls_back_to_unfiltered_when_empty():
    candidates = [make_candidate("R1", rcs=1), make_candidate("R2", rcs=2)]

    eligible = filter_by_mds(candidates, mds=4, tolerance=1)

    assert [c.id for c in eligible] == ["R1", "R2"]


def test_mds_filter_without_mds_keeps_everyone():
    candidates = [make_candidate("R1", rcs=1)]
    assert filter_by_mds(candidates, mds=None, tolerance=0) == candidates


def test_resolve_tolerances_defaults():
    assert resolve_tolerances(League(id="L", name="x", central_tolerance=0.5, assistants_tolerance=2)) == (0.5, 2.0)
    assert resolve_tolerances(League(id="L", name="x")) == (1.0, 1.0)
    assert resolve_tolerances(League(id="L", name="x", central_tolerance=math.inf)) == (1.0, 1.0)


def test_evaluate_central_rcs():
    below = evaluate_central_rcs(mds=5, rcs=3, tolerance=1)
    assert below.threshold == 4
    assert below.below_threshold is True

    ok = evaluate_central_rcs(mds=5, rcs=4, tolerance=1)
    assert ok.below_threshold is False

    no_mds = evaluate_central_rcs(mds=None, rcs=None, tolerance=1)
    assert no_mds.threshold is None
    assert no_mds.below_threshold is False
