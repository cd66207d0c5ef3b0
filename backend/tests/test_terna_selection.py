"""
Tests for league classification, deterministic ordering and usage-aware picking.
"""

from refassign.models.league import League
from refassign.services.internal_rules import MatchRuleContext, parse_internal_rule
from refassign.services.terna_selection import (
    choose_terna,
    filter_pool_for_league,
    is_feminine_league,
    is_tdp_femenil_league,
    is_tdp_league,
    pick_assistant_avoiding_pairs,
    pick_assistant_with_companions,
    pick_first_not_used,
    rank_with_internal_rules,
    rotate_by_key,
    should_assign_assessor,
    sort_for_tdp_femenil,
    sort_with_league_priority,
    stable_id_hash,
)
from refassign.services.terna_types import (
    REASON_NOT_ENOUGH_ASSISTANTS,
    REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT,
    BatchUsage,
)
from tests.factories import make_candidate

CTX = MatchRuleContext(league_id="L1", municipality=None, weekday="S", home_team_id="T1", away_team_id="T2")

TDP = League(id="L1", name="Tercera Division", category="TDP")
TDP_FEM = League(id="L2", name="TDP Femenil", slug="tdp-femenil")
OPEN = League(id="L3", name="Liga Municipal")


def ids(candidates):
    return [c.id for c in candidates]


def test_league_classification():
    assert is_tdp_league(TDP)
    assert is_tdp_league(League(id="x", name="x", slug="liga-tdp"))
    assert not is_tdp_league(OPEN)
    assert is_feminine_league(TDP_FEM)

    assert should_assign_assessor(TDP)
    assert not should_assign_assessor(TDP_FEM)
    assert not should_assign_assessor(OPEN)


def test_tdp_leagues_exclude_liga_premier():
    pool = [
        make_candidate("A", category="LP"),
        make_candidate("B", category="Liga Premier"),
        make_candidate("C", category="TDP"),
        make_candidate("D"),
    ]

    assert ids(filter_pool_for_league(pool, TDP)) == ["C", "D"]
    assert ids(filter_pool_for_league(pool, OPEN)) == ["A", "B", "C", "D"]


def test_stable_id_hash_is_deterministic():
    assert stable_id_hash("R1") == stable_id_hash("R1")
    assert stable_id_hash("R1") != stable_id_hash("R2")


def test_sort_by_rcs_then_hash():
    pool = [make_candidate("LOW", rcs=1), make_candidate("X", rcs=3), make_candidate("Y", rcs=3)]

    ordered = sort_with_league_priority(pool, OPEN)

    assert ordered[-1].id == "LOW"
    tie = sorted(["X", "Y"], key=stable_id_hash)
    assert ids(ordered[:2]) == tie
    assert ids(sort_with_league_priority(list(reversed(pool)), OPEN)) == ids(ordered)


def test_sort_puts_tdp_category_first_in_tdp_leagues():
    pool = [make_candidate("HIGH", rcs=4), make_candidate("LOCAL", rcs=2, category="TDP")]

    assert ids(sort_with_league_priority(pool, TDP)) == ["LOCAL", "HIGH"]
    assert ids(sort_with_league_priority(pool, OPEN)) == ["HIGH", "LOCAL"]


def test_rotate_by_key_keeps_members():
    pool = [make_candidate(f"R{i}") for i in range(5)]

    rotated = rotate_by_key(pool, "L1#G1#MD1#M1#seed#CENTRAL")

    assert sorted(ids(rotated)) == sorted(ids(pool))
    assert rotated == rotate_by_key(pool, "L1#G1#MD1#M1#seed#CENTRAL")
    assert rotate_by_key([], "x") == []


def test_rank_without_rules_keeps_order():
    pool = [make_candidate("A", rcs=4), make_candidate("B", rcs=3), make_candidate("C", rcs=2)]
    assert ids(rank_with_internal_rules(pool, {}, CTX, tdp_priority=False)) == ["A", "B", "C"]


def test_rank_removes_vetoed_and_reweights():
    rules = {
        "A": [parse_internal_rule({"id": "1", "referee_id": "A", "type": "RA_equipos_prohibidos", "params": {"teamIds": ["T1"]}})],
        "C": [
            parse_internal_rule(
                {"id": "2", "referee_id": "C", "type": "RA_equipos_preferidos", "params": {"teamIds": ["T2"], "pesoExtra": 3}}
            )
        ],
    }
    pool = [make_candidate("A", rcs=4), make_candidate("B", rcs=3), make_candidate("C", rcs=2)]

    assert ids(rank_with_internal_rules(pool, rules, CTX, tdp_priority=False)) == ["C", "B"]


def test_pick_first_not_used():
    pool = [make_candidate("A"), make_candidate("B")]
    assert pick_first_not_used(pool, BatchUsage(used_ids=frozenset({"A"}))).id == "B"
    assert pick_first_not_used(pool, BatchUsage(used_ids=frozenset({"A", "B"}))) is None


def test_pick_assistant_avoiding_pairs_cascade():
    pool = [make_candidate("A1"), make_candidate("A2"), make_candidate("A3")]
    pair_c_a2 = frozenset({frozenset({"C", "A2"})})

    # unused and pair-free
    usage = BatchUsage(used_ids=frozenset({"A1"}), used_pairs=pair_c_a2)
    assert pick_assistant_avoiding_pairs(pool, usage, "C").id == "A3"

    # unused only
    usage = BatchUsage(used_ids=frozenset({"A1", "A3"}), used_pairs=pair_c_a2)
    assert pick_assistant_avoiding_pairs(pool, usage, "C").id == "A2"

    # top-ranked regardless
    usage = BatchUsage(used_ids=frozenset({"A1", "A2", "A3"}), used_pairs=pair_c_a2)
    assert pick_assistant_avoiding_pairs(pool, usage, "C").id == "A1"

    assert pick_assistant_avoiding_pairs([], BatchUsage(), "C") is None


def test_pick_assistant_checks_pair_with_other_assistant():
    pool = [make_candidate("A2"), make_candidate("A3")]
    usage = BatchUsage(used_pairs=frozenset({frozenset({"A1", "A2"})}))

    assert pick_assistant_avoiding_pairs(pool, usage, "C", other_assistant_id="A1").id == "A3"


def test_mandatory_companion_ignores_pair_reuse():
    pool = [make_candidate("A1"), make_candidate("A2")]
    usage = BatchUsage(used_pairs=frozenset({frozenset({"C", "A2"})}))

    assert pick_assistant_with_companions(pool, usage, "C", [{"A2"}]).id == "A2"
    # Unsatisfiable mandatory set falls back to the plain pick
    assert pick_assistant_with_companions(pool, usage, "C", [{"ZZ"}]).id == "A1"
    assert pick_assistant_with_companions(pool, usage, "C", [set()]).id == "A1"


def test_batch_usage_is_immutable():
    empty = BatchUsage()
    used = empty.with_terna("C", "A1", "A2", "S")

    assert empty.used_ids == frozenset()
    assert used.used_ids == {"C", "A1", "A2", "S"}
    assert used.pair_used("A1", "C")
    assert used.pair_used("A2", "A1")
    assert not used.pair_used("S", "C")


# ============================================================================
# Role-restricted assistants
# ============================================================================


def test_assistants_only_take_roles_they_hold():
    centrals = [make_candidate("R1", rcs=5, roles=("CENTRAL",))]
    assistants = [
        make_candidate("ONLY_AA2", rcs=4, roles=("AA2",)),
        make_candidate("ONLY_AA1", rcs=3, roles=("AA1",)),
    ]

    pick = choose_terna(centrals, assistants, BatchUsage(), {}, CTX, False, REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT)

    assert pick.failure_reason is None
    assert pick.aa1.id == "ONLY_AA1"
    assert pick.aa2.id == "ONLY_AA2"


def test_aa1_leaves_an_aa2_capable_referee():
    centrals = [make_candidate("R1", rcs=5, roles=("CENTRAL",))]
    assistants = [
        make_candidate("BOTH", rcs=4, roles=("AA1", "AA2")),
        make_candidate("ONLY_AA1", rcs=3, roles=("AA1",)),
    ]

    pick = choose_terna(centrals, assistants, BatchUsage(), {}, CTX, False, REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT)

    assert (pick.aa1.id, pick.aa2.id) == ("ONLY_AA1", "BOTH")


def test_no_aa2_capable_assistant_is_not_enough_assistants():
    centrals = [make_candidate("R1", rcs=5, roles=("CENTRAL",))]
    assistants = [make_candidate("X1", roles=("AA1",)), make_candidate("X2", roles=("AA1",))]

    pick = choose_terna(centrals, assistants, BatchUsage(), {}, CTX, False, REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT)

    assert pick.central.id == "R1"
    assert pick.failure_reason == REASON_NOT_ENOUGH_ASSISTANTS


# ============================================================================
# TDP femenil
# ============================================================================


def test_tdp_femenil_classification():
    assert is_tdp_femenil_league(TDP_FEM)
    assert not is_tdp_femenil_league(TDP)
    assert not is_tdp_femenil_league(League(id="x", name="Liga Femenil"))


def test_sort_for_tdp_femenil_prefers_tdp_category_with_low_rcs():
    pool = [
        make_candidate("HIGH_OPEN", rcs=6),
        make_candidate("HIGH_TDP", rcs=5, category="TDP"),
        make_candidate("LOW_OPEN", rcs=2),
        make_candidate("LOW_TDP_3", rcs=3, category="TDP"),
        make_candidate("LOW_TDP_1", rcs=1, category="TDP"),
    ]

    assert ids(sort_for_tdp_femenil(pool)) == ["LOW_TDP_1", "LOW_TDP_3", "HIGH_TDP", "LOW_OPEN", "HIGH_OPEN"]


def test_low_rcs_ranking_only_moves_on_rule_adjustments():
    pool = sort_for_tdp_femenil(
        [make_candidate("A", rcs=1, category="TDP"), make_candidate("B", rcs=3, category="TDP")]
    )
    assert ids(rank_with_internal_rules(pool, {}, CTX, tdp_priority=True, low_rcs_first=True)) == ["A", "B"]

    rules = {
        "B": [
            parse_internal_rule(
                {"id": "1", "referee_id": "B", "type": "RA_equipos_preferidos", "params": {"teamIds": ["T1"], "pesoExtra": 2}}
            )
        ]
    }
    assert ids(rank_with_internal_rules(pool, rules, CTX, tdp_priority=True, low_rcs_first=True)) == ["B", "A"]
