"""
Single Match Suggester

Pipeline with early-return reasons:
LEAGUE_NOT_FOUND -> MATCH_NOT_FOUND -> NO_AVAILABLE_REFEREES ->
NO_ROLE_CANDIDATES -> NO_CENTRAL_AFTER_MDS_FILTER / NO_CENTRAL_AFTER_RA_RULES ->
NOT_ENOUGH_ASSISTANTS -> NOT_ENOUGH_ASSISTANTS_AFTER_RA_RULES ->
NOT_ENOUGH_ASSISTANTS_IN_UNIT -> BLOCKED_BY_SCHEDULE_CONFLICT |
BLOCKED_BY_RECENT_TEAM_CONFLICT -> OK

build_terna_for_match() is the per-match step; the batch suggester folds it
over its match list with a BatchUsage accumulator. A single suggestion is
the same step with an empty accumulator.

Conflicts are checked once the trio is chosen. A conflict blocks the match;
there is no retry with another trio.

TDP femenil leagues skip the MDS filter and rank low-RCS TDP referees first.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlmodel import Session

from refassign.models.league import League
from refassign.models.match import Match
from refassign.services.conflict_detector import (
    find_recent_team_conflicts,
    find_same_day_conflicts,
    find_schedule_conflicts,
)
from refassign.services.difficulty import compute_mds_for_match, filter_by_mds, resolve_tolerances
from refassign.services.internal_rules import build_match_rule_context, load_internal_rules_for_referees
from refassign.services.match_lookup import get_league, get_match_for_key, get_matchday_number
from refassign.services.referee_pool import (
    RoleCandidates,
    filter_base_pool,
    load_referee_candidates,
    split_candidates_by_role,
)
from refassign.services.terna_selection import (
    RulesByReferee,
    choose_assessor,
    choose_terna,
    filter_pool_for_league,
    is_tdp_femenil_league,
    is_tdp_league,
    should_assign_assessor,
    sort_for_tdp_femenil,
    sort_with_league_priority,
)
from refassign.services.terna_types import (
    REASON_BLOCKED_BY_RECENT_TEAM_CONFLICT,
    REASON_BLOCKED_BY_SCHEDULE_CONFLICT,
    REASON_LEAGUE_NOT_FOUND,
    REASON_MATCH_NOT_FOUND,
    REASON_NO_AVAILABLE_REFEREES,
    REASON_NO_ROLE_CANDIDATES,
    REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT,
    REASON_OK,
    BatchUsage,
    CandidateRef,
    MatchKey,
    SuggestedTerna,
)

logger = logging.getLogger(__name__)


@dataclass
class SuggestionPools:
    """Referee snapshot and rules loaded once per request."""

    base: List[CandidateRef]
    roles: RoleCandidates
    rules_by_referee: RulesByReferee


def prepare_pools(session: Session, delegate_id: Optional[str] = None) -> SuggestionPools:
    base = filter_base_pool(load_referee_candidates(session, delegate_id))
    return SuggestionPools(
        base=base,
        roles=split_candidates_by_role(base),
        rules_by_referee=load_internal_rules_for_referees(session, [c.id for c in base]),
    )


def variant_rotation_key(key: MatchKey, variant_seed: Optional[str]) -> Optional[str]:
    if not variant_seed:
        return None
    return f"{key.league_id}#{key.group_id}#{key.matchday_id}#{key.match_id}#{variant_seed}"


def build_terna_for_match(
    session: Session,
    key: MatchKey,
    league: League,
    match: Match,
    pools: SuggestionPools,
    usage: BatchUsage,
    aa2_missing_reason: str = REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT,
    check_conflicts: bool = True,
    variant_seed: Optional[str] = None,
    recent_window: Optional[int] = None,
    rollover_hour: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> Tuple[SuggestedTerna, BatchUsage]:
    """
    Suggest a terna for one resolved match.

    Returns the suggestion and the usage to carry forward. Usage only grows
    when the suggestion is OK.
    """
    central_tolerance, assistants_tolerance = resolve_tolerances(league)
    mds = compute_mds_for_match(session, match)
    meta = {
        "mds": mds,
        "central_tolerance": central_tolerance,
        "assistants_tolerance": assistants_tolerance,
    }

    centrals = filter_pool_for_league(pools.roles.central, league)
    assistants = filter_pool_for_league(pools.roles.assistants, league)
    if not centrals or not assistants:
        return SuggestedTerna.empty(key, REASON_NO_ROLE_CANDIDATES, **meta), usage

    tdp_femenil = is_tdp_femenil_league(league)
    if tdp_femenil:
        # No MDS filter; low-RCS TDP referees go first
        eligible_centrals = sort_for_tdp_femenil(sort_with_league_priority(centrals, league))
        eligible_assistants = sort_for_tdp_femenil(sort_with_league_priority(assistants, league))
    else:
        eligible_centrals = sort_with_league_priority(filter_by_mds(centrals, mds, central_tolerance), league)
        eligible_assistants = sort_with_league_priority(filter_by_mds(assistants, mds, assistants_tolerance), league)

    ctx = build_match_rule_context(match, tz_name)
    tdp = is_tdp_league(league)
    rotation_key = variant_rotation_key(key, variant_seed)

    pick = choose_terna(
        eligible_centrals,
        eligible_assistants,
        usage,
        pools.rules_by_referee,
        ctx,
        tdp,
        aa2_missing_reason,
        rotation_key=rotation_key,
        low_rcs_first=tdp_femenil,
    )
    if pick.failure_reason:
        rcs = pick.central.rcs_central if pick.central else None
        return SuggestedTerna.empty(key, pick.failure_reason, rcs_central=rcs, **meta), usage

    central, aa1, aa2 = pick.central, pick.aa1, pick.aa2
    meta["rcs_central"] = central.rcs_central

    if check_conflicts:
        schedule = find_schedule_conflicts(
            session, match.league_id, match.id, match.kickoff, central.id, aa1.id, aa2.id
        )
        recent = find_recent_team_conflicts(
            session,
            match.league_id,
            match.group_id,
            get_matchday_number(session, key),
            match.home_team_id,
            match.away_team_id,
            central.id,
            aa1.id,
            aa2.id,
            current_match_id=match.id,
            window=recent_window,
        )
        if schedule or recent:
            reason = REASON_BLOCKED_BY_SCHEDULE_CONFLICT if schedule else REASON_BLOCKED_BY_RECENT_TEAM_CONFLICT
            logger.info(
                "TERNA_BLOCKED: match_id=%s reason=%s schedule=%s recent=%s",
                match.id,
                reason,
                len(schedule),
                len(recent),
            )
            blocked = SuggestedTerna.empty(
                key, reason, schedule_conflicts=schedule, recent_team_conflicts=recent, **meta
            )
            return blocked, usage

    assessor = None
    if should_assign_assessor(league):
        assessors = sort_with_league_priority(filter_pool_for_league(pools.roles.assessors, league), league)
        assessor = choose_assessor(
            assessors,
            {central.id, aa1.id, aa2.id},
            usage,
            pools.rules_by_referee,
            ctx,
            tdp,
            rotation_key=rotation_key,
        )
    assessor_id = assessor.id if assessor else None

    same_day = []
    if check_conflicts:
        same_day = find_same_day_conflicts(
            session,
            match.league_id,
            match.id,
            match.kickoff,
            central.id,
            aa1.id,
            aa2.id,
            assessor_id=assessor_id,
            rollover_hour=rollover_hour,
            tz_name=tz_name,
        )

    suggestion = SuggestedTerna(
        league_id=key.league_id,
        group_id=key.group_id,
        matchday_id=key.matchday_id,
        match_id=key.match_id,
        central_referee_id=central.id,
        aa1_referee_id=aa1.id,
        aa2_referee_id=aa2.id,
        assessor_referee_id=assessor_id,
        has_suggestion=True,
        reason=REASON_OK,
        same_day_conflicts=same_day,
        **meta,
    )
    logger.debug(
        "TERNA_OK: match_id=%s central=%s aa1=%s aa2=%s assessor=%s",
        match.id,
        central.id,
        aa1.id,
        aa2.id,
        assessor_id,
    )
    return suggestion, usage.with_terna(central.id, aa1.id, aa2.id, assessor_id)


def suggest_terna_for_match(
    session: Session,
    key: MatchKey,
    delegate_id: Optional[str] = None,
    recent_window: Optional[int] = None,
    rollover_hour: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> SuggestedTerna:
    """
    Suggest central, assistants and (optionally) assessor for one match.

    Read-only. Store failures (SQLAlchemyError) propagate to the caller.
    """
    league = get_league(session, key.league_id)
    if league is None:
        return SuggestedTerna.empty(key, REASON_LEAGUE_NOT_FOUND)

    match = get_match_for_key(session, key)
    if match is None:
        return SuggestedTerna.empty(key, REASON_MATCH_NOT_FOUND)

    pools = prepare_pools(session, delegate_id)
    if not pools.base:
        central_tolerance, assistants_tolerance = resolve_tolerances(league)
        return SuggestedTerna.empty(
            key,
            REASON_NO_AVAILABLE_REFEREES,
            central_tolerance=central_tolerance,
            assistants_tolerance=assistants_tolerance,
        )

    suggestion, _ = build_terna_for_match(
        session,
        key,
        league,
        match,
        pools,
        BatchUsage(),
        aa2_missing_reason=REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT,
        check_conflicts=True,
        recent_window=recent_window,
        rollover_hour=rollover_hour,
        tz_name=tz_name,
    )
    return suggestion
