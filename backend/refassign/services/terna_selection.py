"""
Terna Selection - ranking and picking officials for one match

Shared by the single-match and batch suggesters. Everything here is pure:
candidates, rules and the BatchUsage accumulator go in, picks come out.

Ranking:
1. sort_with_league_priority: (TDP category first in TDP leagues, RCS desc,
   content hash of the id asc). The hash tie-break keeps the order
   deterministic without favouring names alphabetically.
2. rank_with_internal_rules: drops vetoed candidates and reorders by the
   rule-adjusted score, keeping the league priority band and the sorted
   position as tie-breaks. Without rules the order is unchanged.

TDP femenil overrides step 1: pools skip the MDS filter and are ordered
TDP category with RCS <= 3 first, then by RCS asc (sort_for_tdp_femenil).
Rules then only move candidates by their bonus or penalty, never by raw RCS.
"""

import hashlib
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from refassign.models.league import League
from refassign.services.internal_rules import (
    InternalRule,
    MatchRuleContext,
    apply_internal_rules_to_score,
    mandatory_companions,
    preferred_companion_multiplier,
)
from refassign.services.terna_types import (
    REASON_NO_CENTRAL_AFTER_MDS_FILTER,
    REASON_NO_CENTRAL_AFTER_RA_RULES,
    REASON_NOT_ENOUGH_ASSISTANTS,
    REASON_NOT_ENOUGH_ASSISTANTS_AFTER_RA_RULES,
    BatchUsage,
    CandidateRef,
)
from refassign.utils.conflict_report import ROLE_AA1, ROLE_AA2

RulesByReferee = Dict[str, List[InternalRule]]

TDP_FEMENIL_MAX_RCS = 3


# ============================================================================
# League classification
# ============================================================================


def _league_labels(league: League) -> List[str]:
    return [(value or "").upper() for value in (league.name, league.category, league.slug)]


def is_tdp_league(league: League) -> bool:
    return any("TDP" in label for label in _league_labels(league))


def is_feminine_league(league: League) -> bool:
    # "FEM" also covers "FEMENIL"
    return any("FEM" in label for label in _league_labels(league))


def should_assign_assessor(league: League) -> bool:
    """Automatic assessor only for TDP leagues that are not feminine."""
    return is_tdp_league(league) and not is_feminine_league(league)


def is_tdp_femenil_league(league: League) -> bool:
    return is_tdp_league(league) and is_feminine_league(league)


def _is_tdp_category(candidate: CandidateRef) -> bool:
    return "TDP" in (candidate.category or "").upper()


def is_liga_premier_referee(candidate: CandidateRef) -> bool:
    category = (candidate.category or "").strip().upper()
    return category == "LP" or "PREMIER" in category


def filter_pool_for_league(candidates: List[CandidateRef], league: League) -> List[CandidateRef]:
    """TDP leagues never receive Liga Premier referees."""
    if not is_tdp_league(league):
        return list(candidates)
    return [c for c in candidates if not is_liga_premier_referee(c)]


# ============================================================================
# Deterministic ordering
# ============================================================================


def stable_id_hash(value: str) -> int:
    """Content hash, stable across processes (unlike built-in hash())."""
    return int.from_bytes(hashlib.sha256(value.encode("utf-8")).digest()[:8], "big")


def sort_with_league_priority(candidates: List[CandidateRef], league: League) -> List[CandidateRef]:
    tdp = is_tdp_league(league)

    def sort_key(c: CandidateRef):
        rcs = c.rcs_central if c.rcs_central is not None else 0
        tdp_band = 0 if (tdp and _is_tdp_category(c)) else 1
        return (tdp_band if tdp else 0, -rcs, stable_id_hash(c.id), c.id)

    return sorted(candidates, key=sort_key)


def tdp_femenil_band(c: CandidateRef) -> int:
    """0: TDP and low RCS, 1: TDP, 2: low RCS, 3: the rest."""
    low_rcs = c.rcs_central is not None and c.rcs_central <= TDP_FEMENIL_MAX_RCS
    return (0 if _is_tdp_category(c) else 2) + (0 if low_rcs else 1)


def sort_for_tdp_femenil(candidates: List[CandidateRef]) -> List[CandidateRef]:
    # Stable sort: equal (band, rcs) keep the league-priority order
    return sorted(
        candidates,
        key=lambda c: (tdp_femenil_band(c), c.rcs_central if c.rcs_central is not None else float("inf")),
    )


def rotate_by_key(items: List[CandidateRef], key: str) -> List[CandidateRef]:
    """Rotate a list by a stable offset derived from key."""
    if not items:
        return list(items)
    offset = stable_id_hash(key) % len(items)
    return list(items[offset:]) + list(items[:offset])


def rank_with_internal_rules(
    candidates: List[CandidateRef],
    rules_by_referee: RulesByReferee,
    ctx: MatchRuleContext,
    tdp_priority: bool,
    companion_ids: Optional[List[str]] = None,
    score_multiplier: Optional[Callable[[CandidateRef], float]] = None,
    low_rcs_first: bool = False,
) -> List[CandidateRef]:
    """
    Apply RA-XX rules to an already sorted list.

    Vetoed candidates are removed. The rest are ordered by
    (TDP band, adjusted score desc, sorted position).

    With low_rcs_first (TDP femenil) the band is tdp_femenil_band and only
    the rule adjustment (adjusted score minus RCS) is compared, so a list
    already sorted by RCS asc keeps that order unless a rule moves someone.
    """
    scored = []
    for position, c in enumerate(candidates):
        base = c.rcs_central if c.rcs_central is not None else 0
        result = apply_internal_rules_to_score(ctx, c.id, base, rules_by_referee.get(c.id), companion_ids)
        if not result.allowed:
            continue
        score = result.score
        if score_multiplier is not None:
            score = score * score_multiplier(c)
        if low_rcs_first:
            scored.append((tdp_femenil_band(c), base - score, position, c))
            continue
        band = 0 if (tdp_priority and _is_tdp_category(c)) else 1
        scored.append((band if tdp_priority else 0, -score, position, c))

    scored.sort(key=lambda item: item[:3])
    return [item[3] for item in scored]


# ============================================================================
# Picking with batch usage
# ============================================================================


def pick_first_not_used(candidates: List[CandidateRef], usage: BatchUsage) -> Optional[CandidateRef]:
    for c in candidates:
        if not usage.is_used(c.id):
            return c
    return None


def pick_single_role(candidates: List[CandidateRef], usage: BatchUsage) -> Optional[CandidateRef]:
    """Prefer an unused candidate, fall back to the top-ranked one."""
    return pick_first_not_used(candidates, usage) or (candidates[0] if candidates else None)


def _pair_free(
    candidate: CandidateRef, usage: BatchUsage, central_id: str, other_assistant_id: Optional[str]
) -> bool:
    if usage.pair_used(central_id, candidate.id):
        return False
    if other_assistant_id and usage.pair_used(other_assistant_id, candidate.id):
        return False
    return True


def pick_assistant_avoiding_pairs(
    candidates: List[CandidateRef],
    usage: BatchUsage,
    central_id: str,
    other_assistant_id: Optional[str] = None,
) -> Optional[CandidateRef]:
    """
    Unused and not repeating a pair -> unused only -> top-ranked regardless.
    """
    for c in candidates:
        if not usage.is_used(c.id) and _pair_free(c, usage, central_id, other_assistant_id):
            return c
    return pick_single_role(candidates, usage)


def pick_assistant_with_companions(
    candidates: List[CandidateRef],
    usage: BatchUsage,
    central_id: str,
    required_sets: List[Set[str]],
    other_assistant_id: Optional[str] = None,
) -> Optional[CandidateRef]:
    """
    Assistant pick honouring RA_companeros_obligatorios.

    Every non-empty set in required_sets must contain the candidate. A
    mandatory companion is exempt from pair-reuse avoidance. If nobody
    satisfies the mandatory sets, they are dropped and the plain
    pair-avoiding pick is used.
    """
    active_sets = [s for s in required_sets if s]
    if not active_sets:
        return pick_assistant_avoiding_pairs(candidates, usage, central_id, other_assistant_id)

    def satisfies(c: CandidateRef) -> bool:
        return all(c.id in s for s in active_sets)

    compliant = [c for c in candidates if satisfies(c)]
    for c in compliant:
        # Mandatory link -> pairs may repeat
        if not usage.is_used(c.id):
            return c
    if compliant:
        return compliant[0]

    return pick_assistant_avoiding_pairs(candidates, usage, central_id, other_assistant_id)


# ============================================================================
# Whole-terna choice
# ============================================================================


def _rotated(ranked: List[CandidateRef], rotation_key: Optional[str], role: str) -> List[CandidateRef]:
    if not rotation_key:
        return ranked
    return rotate_by_key(ranked, f"{rotation_key}#{role}")


@dataclass
class TernaPick:
    central: Optional[CandidateRef] = None
    aa1: Optional[CandidateRef] = None
    aa2: Optional[CandidateRef] = None
    # None when the terna is complete
    failure_reason: Optional[str] = None


def choose_terna(
    central_pool: List[CandidateRef],
    assistant_pool: List[CandidateRef],
    usage: BatchUsage,
    rules_by_referee: RulesByReferee,
    ctx: MatchRuleContext,
    tdp_priority: bool,
    aa2_missing_reason: str,
    rotation_key: Optional[str] = None,
    low_rcs_first: bool = False,
) -> TernaPick:
    """
    Choose central, AA1 and AA2 from sorted, MDS-filtered pools.

    No referee appears twice in the trio and each one holds the role it is
    given: AA1 comes from the AA1-capable assistants, AA2 from the
    AA2-capable ones. RA-XX prohibitions are never relaxed; usage and pair
    avoidance are soft. With a rotation_key the ranked lists are rotated per
    role to produce an alternative proposal.
    """
    if not central_pool:
        return TernaPick(failure_reason=REASON_NO_CENTRAL_AFTER_MDS_FILTER)

    ranked_centrals = rank_with_internal_rules(
        central_pool, rules_by_referee, ctx, tdp_priority, low_rcs_first=low_rcs_first
    )
    ranked_centrals = _rotated(ranked_centrals, rotation_key, "CENTRAL")
    central = pick_single_role(ranked_centrals, usage)
    if central is None:
        return TernaPick(failure_reason=REASON_NO_CENTRAL_AFTER_RA_RULES)

    assistants = [a for a in assistant_pool if a.id != central.id]
    aa2_capable = [a for a in assistants if ROLE_AA2 in a.roles_allowed]
    # An AA1 must leave at least one other AA2-capable referee
    aa1_pool = [
        a for a in assistants if ROLE_AA1 in a.roles_allowed and any(b.id != a.id for b in aa2_capable)
    ]
    if not aa1_pool:
        return TernaPick(central=central, failure_reason=REASON_NOT_ENOUGH_ASSISTANTS)

    central_rules = rules_by_referee.get(central.id)
    central_required = mandatory_companions(central_rules)

    ranked_aa1 = rank_with_internal_rules(
        aa1_pool,
        rules_by_referee,
        ctx,
        tdp_priority,
        companion_ids=[central.id],
        score_multiplier=lambda c: preferred_companion_multiplier(central_rules, c.id),
        low_rcs_first=low_rcs_first,
    )
    ranked_aa1 = _rotated(ranked_aa1, rotation_key, "AA1")
    aa1 = pick_assistant_with_companions(ranked_aa1, usage, central.id, [central_required])
    if aa1 is None:
        return TernaPick(central=central, failure_reason=REASON_NOT_ENOUGH_ASSISTANTS_AFTER_RA_RULES)

    aa1_rules = rules_by_referee.get(aa1.id)
    ranked_aa2 = rank_with_internal_rules(
        [a for a in aa2_capable if a.id != aa1.id],
        rules_by_referee,
        ctx,
        tdp_priority,
        companion_ids=[central.id, aa1.id],
        score_multiplier=lambda c: preferred_companion_multiplier(central_rules, c.id)
        * preferred_companion_multiplier(aa1_rules, c.id),
        low_rcs_first=low_rcs_first,
    )
    ranked_aa2 = _rotated(ranked_aa2, rotation_key, "AA2")
    aa2 = pick_assistant_with_companions(
        ranked_aa2, usage, central.id, [central_required, mandatory_companions(aa1_rules)], aa1.id
    )
    if aa2 is None:
        return TernaPick(central=central, aa1=aa1, failure_reason=aa2_missing_reason)

    return TernaPick(central=central, aa1=aa1, aa2=aa2)


def choose_assessor(
    assessor_pool: List[CandidateRef],
    terna_ids: Set[str],
    usage: BatchUsage,
    rules_by_referee: RulesByReferee,
    ctx: MatchRuleContext,
    tdp_priority: bool,
    rotation_key: Optional[str] = None,
) -> Optional[CandidateRef]:
    """Optional assessor: never one of the trio, vetoes respected."""
    pool = [a for a in assessor_pool if a.id not in terna_ids]
    ranked = rank_with_internal_rules(pool, rules_by_referee, ctx, tdp_priority)
    ranked = _rotated(ranked, rotation_key, "ASSESSOR")
    return pick_single_role(ranked, usage)
