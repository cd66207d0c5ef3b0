"""
Difficulty Scorer - MDS (match) vs RCS (referee)

- MDS is derived from the two teams' difficulty tiers (max of both; a single
  known tier is used alone; no known tier -> None).
- RCS is derived from the referee tier, unless an administrative override is set.
- Candidates below MDS - tolerance are filtered out, but an empty result
  falls back to the unfiltered list: tier mismatch alone never exhausts a pool.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from sqlmodel import Session, select

from refassign.models.league import League
from refassign.models.match import Match
from refassign.models.team import Team
from refassign.services.terna_types import CandidateRef
from refassign.settings import DEFAULT_TOLERANCE

logger = logging.getLogger(__name__)

REFEREE_TIER_RCS = {
    "NO_ELEGIBLE": None,  # never proposed automatically
    "DEBUTANTE": 1,
    "EN_DESARROLLO": 2,
    "EXPERIMENTADO": 3,
    "MUY_EXPERIMENTADO": 4,
}

TEAM_TIER_MDS = {
    "TRANQUILO": 1,
    "REGULARES": 2,
    "COMPLICADO": 3,
    "MUY_COMPLICADO": 4,
}


def _normalize_tier(tier: Optional[str]) -> Optional[str]:
    if not tier or not isinstance(tier, str):
        return None
    return tier.strip().upper() or None


def referee_tier_to_rcs(tier: Optional[str]) -> Optional[float]:
    """Map a referee tier to its RCS; None for NO_ELEGIBLE/unknown."""
    normalized = _normalize_tier(tier)
    if normalized is None:
        return None
    if normalized not in REFEREE_TIER_RCS:
        logger.warning("Unrecognized referee tier %r (normalized %r)", tier, normalized)
        return None
    return REFEREE_TIER_RCS[normalized]


def compute_rcs(tier: Optional[str], rcs_override: Optional[float] = None) -> Optional[float]:
    """RCS for a referee: explicit numeric override wins over the tier mapping."""
    if rcs_override is not None and math.isfinite(rcs_override):
        return rcs_override
    return referee_tier_to_rcs(tier)


def team_tier_to_mds(tier: Optional[str]) -> Optional[int]:
    normalized = _normalize_tier(tier)
    if normalized is None:
        return None
    return TEAM_TIER_MDS.get(normalized)


def compute_match_mds_from_teams(home_tier: Optional[str], away_tier: Optional[str]) -> Optional[int]:
    home = team_tier_to_mds(home_tier)
    away = team_tier_to_mds(away_tier)
    if home is None and away is None:
        return None
    if home is None:
        return away
    if away is None:
        return home
    return max(home, away)


def compute_mds_for_match(session: Session, match: Match) -> Optional[float]:
    """
    MDS for a stored match.

    Uses the match's own `mds` when it is a finite number, otherwise derives
    it from the home/away team tiers. Pure read: nothing is persisted.
    """
    if match.mds is not None and math.isfinite(match.mds):
        return match.mds

    team_ids = [t for t in (match.home_team_id, match.away_team_id) if t]
    if not team_ids:
        return None

    teams = {t.id: t for t in session.exec(select(Team).where(Team.id.in_(team_ids))).all()}
    home = teams.get(match.home_team_id) if match.home_team_id else None
    away = teams.get(match.away_team_id) if match.away_team_id else None

    return compute_match_mds_from_teams(
        home.difficulty_tier if home else None,
        away.difficulty_tier if away else None,
    )


def _tolerance_or_default(raw: Optional[float]) -> float:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool) and math.isfinite(raw):
        return float(raw)
    return DEFAULT_TOLERANCE


def resolve_tolerances(league: League) -> tuple:
    """(central_tolerance, assistants_tolerance) for a league."""
    return (
        _tolerance_or_default(league.central_tolerance),
        _tolerance_or_default(league.assistants_tolerance),
    )


def filter_by_mds(candidates: List[CandidateRef], mds: Optional[float], tolerance: float) -> List[CandidateRef]:
    """
    Keep candidates with rcs >= mds - tolerance.

    No MDS -> everyone passes. Empty result -> unfiltered input is returned.
    """
    if mds is None:
        return list(candidates)

    threshold = mds - tolerance
    filtered = [c for c in candidates if c.rcs_central is not None and c.rcs_central >= threshold]
    return filtered if filtered else list(candidates)


@dataclass
class RcsEvaluation:
    mds: Optional[float]
    rcs: Optional[float]
    tolerance: float
    threshold: Optional[float]
    below_threshold: bool


def evaluate_central_rcs(mds: Optional[float], rcs: Optional[float], tolerance: float) -> RcsEvaluation:
    """
    Compare a central's RCS against the match MDS.

    Informational for the write path (block/warn policy lives there).
    """
    if mds is None:
        return RcsEvaluation(mds=None, rcs=rcs, tolerance=tolerance, threshold=None, below_threshold=False)

    threshold = mds - tolerance
    below = rcs is None or rcs < threshold
    return RcsEvaluation(mds=mds, rcs=rcs, tolerance=tolerance, threshold=threshold, below_threshold=below)
