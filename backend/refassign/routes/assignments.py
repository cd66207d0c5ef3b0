"""
API Routes for referee assignment suggestions (advisory, read-only)

Nothing here writes officials to a match. The confirmation write path
re-validates with /assignments/conflicts before persisting.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from refassign.database import get_session
from refassign.models.matchday import Matchday
from refassign.services.conflict_detector import check_proposed_officials
from refassign.services.match_lookup import get_match_for_key, get_matchday_number
from refassign.services.terna_batch import suggest_ternas_for_matchday, suggest_ternas_for_matches_balanced
from refassign.services.terna_single import suggest_terna_for_match
from refassign.services.terna_types import BatchMatchRequest, MatchKey, SuggestedTerna
from refassign.utils.conflict_report import ConflictCheckReport

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class SuggestBatchRequest(BaseModel):
    """Ordered match list; order drives balancing"""

    matches: List[BatchMatchRequest] = Field(default_factory=list)
    delegate_id: Optional[str] = None
    validate_conflicts: Optional[bool] = None


class ConflictCheckRequest(MatchKey):
    """Proposed officials for one match"""

    central_referee_id: Optional[str] = None
    aa1_referee_id: Optional[str] = None
    aa2_referee_id: Optional[str] = None
    fourth_referee_id: Optional[str] = None
    assessor_referee_id: Optional[str] = None


def _store_unavailable(exc: SQLAlchemyError, operation: str) -> HTTPException:
    logger.exception("STORE_ERROR: operation=%s error=%s", operation, exc)
    return HTTPException(status_code=503, detail="Assignment store unavailable")


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/assignments/suggest", response_model=SuggestedTerna)
def suggest_single(key: MatchKey, delegate_id: Optional[str] = None, session: Session = Depends(get_session)):
    """
    Suggest a terna (and assessor for TDP leagues) for one match.

    Failures are reported in `reason`, never as HTTP errors.
    """
    try:
        return suggest_terna_for_match(session, key, delegate_id=delegate_id)
    except SQLAlchemyError as exc:
        raise _store_unavailable(exc, "suggest") from exc


@router.post("/assignments/suggest-batch", response_model=List[SuggestedTerna])
def suggest_batch(request: SuggestBatchRequest, session: Session = Depends(get_session)):
    """Balanced suggestions for an ordered list of matches (one result per item, same order)."""
    try:
        return suggest_ternas_for_matches_balanced(
            session,
            request.matches,
            delegate_id=request.delegate_id,
            validate_conflicts=request.validate_conflicts,
        )
    except SQLAlchemyError as exc:
        raise _store_unavailable(exc, "suggest-batch") from exc


@router.post(
    "/leagues/{league_id}/groups/{group_id}/matchdays/{matchday_id}/suggest",
    response_model=List[SuggestedTerna],
)
def suggest_matchday(
    league_id: str,
    group_id: str,
    matchday_id: str,
    delegate_id: Optional[str] = None,
    variant_seed: Optional[str] = None,
    ignore_existing_assignment: bool = False,
    validate_conflicts: Optional[bool] = None,
    session: Session = Depends(get_session),
):
    """Balanced suggestions for every match of a matchday, ordered by kickoff."""
    try:
        matchday = session.get(Matchday, matchday_id)
        if not matchday or matchday.league_id != league_id or matchday.group_id != group_id:
            raise HTTPException(status_code=404, detail="Matchday not found")

        return suggest_ternas_for_matchday(
            session,
            league_id,
            group_id,
            matchday_id,
            delegate_id=delegate_id,
            validate_conflicts=validate_conflicts,
            variant_seed=variant_seed,
            ignore_existing_assignment=ignore_existing_assignment,
        )
    except SQLAlchemyError as exc:
        raise _store_unavailable(exc, "suggest-matchday") from exc


@router.post("/assignments/conflicts", response_model=ConflictCheckReport)
def check_conflicts(request: ConflictCheckRequest, session: Session = Depends(get_session)):
    """
    Run schedule, recent-team and same-day checks for proposed officials.

    Schedule and recent-team conflicts are hard (`has_hard_conflicts`);
    same-day conflicts are informational.
    """
    try:
        match = get_match_for_key(session, request)
        if not match:
            raise HTTPException(status_code=404, detail="Match not found")

        return check_proposed_officials(
            session,
            match,
            get_matchday_number(session, request),
            central_id=request.central_referee_id,
            aa1_id=request.aa1_referee_id,
            aa2_id=request.aa2_referee_id,
            fourth_id=request.fourth_referee_id,
            assessor_id=request.assessor_referee_id,
        )
    except SQLAlchemyError as exc:
        raise _store_unavailable(exc, "conflicts") from exc
