"""
Batch Suggester - balanced ternas for an ordered list of matches

Matches are processed strictly in input order. A BatchUsage accumulator
(referees used, unordered pairs formed) is folded over the list so later
matches prefer referees and pairings not yet proposed in this call.
Reuse is a soft preference: when everyone is used, the top-ranked
candidate is proposed again.

Per-match failures (missing league/match, exhausted pools, conflicts) are
reported as reasons. A store failure aborts the whole batch: nothing is
returned, so the caller never sees a partially folded usage state.
"""

import logging
from typing import Dict, List, Optional

from sqlmodel import Session

from refassign.models.league import League
from refassign.services.difficulty import resolve_tolerances
from refassign.services.match_lookup import get_league, get_match_for_key, list_matchday_keys
from refassign.services.terna_single import build_terna_for_match, prepare_pools
from refassign.services.terna_types import (
    REASON_ALREADY_HAS_ASSIGNMENT,
    REASON_LEAGUE_NOT_FOUND,
    REASON_MATCH_NOT_FOUND,
    REASON_NO_AVAILABLE_REFEREES,
    REASON_NOT_ENOUGH_ASSISTANTS_IN_BATCH,
    BatchMatchRequest,
    BatchUsage,
    SuggestedTerna,
)
from refassign.settings import BATCH_VALIDATE_CONFLICTS

logger = logging.getLogger(__name__)


def suggest_ternas_for_matches_balanced(
    session: Session,
    requests: List[BatchMatchRequest],
    delegate_id: Optional[str] = None,
    validate_conflicts: Optional[bool] = None,
    recent_window: Optional[int] = None,
    rollover_hour: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> List[SuggestedTerna]:
    """
    One SuggestedTerna per request, in request order.

    validate_conflicts=None uses BATCH_VALIDATE_CONFLICTS. When enabled, each
    proposed trio is checked for schedule and recent-team conflicts against
    the stored assignments; in-batch collisions are only discouraged by the
    usage preference.
    """
    if not requests:
        return []

    check_conflicts = BATCH_VALIDATE_CONFLICTS if validate_conflicts is None else validate_conflicts
    pools = prepare_pools(session, delegate_id)

    if not pools.base:
        logger.info("TERNA_BATCH: delegate_id=%s no available referees for %s matches", delegate_id, len(requests))
        return [SuggestedTerna.empty(request, REASON_NO_AVAILABLE_REFEREES) for request in requests]

    league_cache: Dict[str, Optional[League]] = {}
    usage = BatchUsage()
    results: List[SuggestedTerna] = []

    for request in requests:
        if request.league_id not in league_cache:
            league_cache[request.league_id] = get_league(session, request.league_id)
        league = league_cache[request.league_id]
        if league is None:
            results.append(SuggestedTerna.empty(request, REASON_LEAGUE_NOT_FOUND))
            continue

        match = get_match_for_key(session, request)
        if match is None:
            results.append(SuggestedTerna.empty(request, REASON_MATCH_NOT_FOUND))
            continue

        if match.has_terna_assignment() and not request.ignore_existing_assignment:
            central_tolerance, assistants_tolerance = resolve_tolerances(league)
            results.append(
                SuggestedTerna.empty(
                    request,
                    REASON_ALREADY_HAS_ASSIGNMENT,
                    central_tolerance=central_tolerance,
                    assistants_tolerance=assistants_tolerance,
                )
            )
            continue

        suggestion, usage = build_terna_for_match(
            session,
            request,
            league,
            match,
            pools,
            usage,
            aa2_missing_reason=REASON_NOT_ENOUGH_ASSISTANTS_IN_BATCH,
            check_conflicts=check_conflicts,
            variant_seed=request.variant_seed,
            recent_window=recent_window,
            rollover_hour=rollover_hour,
            tz_name=tz_name,
        )
        results.append(suggestion)

    suggested = sum(1 for r in results if r.has_suggestion)
    logger.info(
        "TERNA_BATCH: delegate_id=%s matches=%s suggested=%s used_referees=%s used_pairs=%s",
        delegate_id,
        len(requests),
        suggested,
        len(usage.used_ids),
        len(usage.used_pairs),
    )
    return results


def suggest_ternas_for_matchday(
    session: Session,
    league_id: str,
    group_id: str,
    matchday_id: str,
    delegate_id: Optional[str] = None,
    validate_conflicts: Optional[bool] = None,
    variant_seed: Optional[str] = None,
    ignore_existing_assignment: bool = False,
    recent_window: Optional[int] = None,
    rollover_hour: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> List[SuggestedTerna]:
    """Balanced batch over every match of one matchday, ordered by (kickoff, id)."""
    requests = [
        BatchMatchRequest(
            **key.model_dump(),
            variant_seed=variant_seed,
            ignore_existing_assignment=ignore_existing_assignment,
        )
        for key in list_matchday_keys(session, league_id, group_id, matchday_id)
    ]
    return suggest_ternas_for_matches_balanced(
        session,
        requests,
        delegate_id=delegate_id,
        validate_conflicts=validate_conflicts,
        recent_window=recent_window,
        rollover_hour=rollover_hour,
        tz_name=tz_name,
    )
