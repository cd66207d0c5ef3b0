"""
Conflict Detector - read-only checks for a proposed set of officials

- Schedule conflict (hard): a trio member is already central/AA1/AA2 of
  another match of the same league with exactly the same kickoff.
- Recent-team conflict (hard): a trio member already officiated (any
  on-field role) one of the two teams in the last `window` matchdays of the
  group, current matchday included, current match excluded.
- Same-day conflict (soft): any of the five proposed officials works
  another league match on the same operational day in the local timezone.

Every detector returns an empty list when no ids are supplied, and sorts its
output so repeated calls on the same snapshot are byte-identical.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlmodel import Session, select

from refassign.models.match import Match
from refassign.models.matchday import Matchday
from refassign.settings import RECENT_TEAM_WINDOW, SAME_DAY_ROLLOVER_HOUR
from refassign.utils.conflict_report import (
    ROLE_AA1,
    ROLE_AA2,
    ROLE_ASSESSOR,
    ROLE_CENTRAL,
    ROLE_FOURTH,
    ConflictCheckReport,
    RecentTeamConflict,
    SameDayConflict,
    ScheduleConflict,
)
from refassign.utils.dates import local_day_bounds, to_store_instant

logger = logging.getLogger(__name__)


def _terna_assignments(match: Match) -> List[Tuple[str, Optional[str]]]:
    return [
        (ROLE_CENTRAL, match.central_referee_id),
        (ROLE_AA1, match.aa1_referee_id),
        (ROLE_AA2, match.aa2_referee_id),
    ]


def _all_assignments(match: Match) -> List[Tuple[str, Optional[str]]]:
    return _terna_assignments(match) + [
        (ROLE_FOURTH, match.fourth_referee_id),
        (ROLE_ASSESSOR, match.assessor_referee_id),
    ]


def _proposed(pairs: List[Tuple[str, Optional[str]]]) -> List[Tuple[str, str]]:
    return [(role, rid) for role, rid in pairs if rid]


def _role_of(referee_id: str, assignments: List[Tuple[str, Optional[str]]]) -> Optional[str]:
    for role, assigned in assignments:
        if assigned and assigned == referee_id:
            return role
    return None


# ============================================================================
# Schedule conflicts (hard)
# ============================================================================


def find_schedule_conflicts(
    session: Session,
    league_id: str,
    match_id: str,
    kickoff: Optional[datetime],
    central_id: Optional[str] = None,
    aa1_id: Optional[str] = None,
    aa2_id: Optional[str] = None,
) -> List[ScheduleConflict]:
    proposed = _proposed([(ROLE_CENTRAL, central_id), (ROLE_AA1, aa1_id), (ROLE_AA2, aa2_id)])
    if not proposed or kickoff is None:
        return []

    others = session.exec(
        select(Match).where(
            Match.league_id == league_id,
            Match.kickoff == to_store_instant(kickoff),
            Match.id != match_id,
        )
    ).all()

    conflicts: List[ScheduleConflict] = []
    for other in others:
        assigned = _terna_assignments(other)
        for role, referee_id in proposed:
            if _role_of(referee_id, assigned) is None:
                continue
            conflicts.append(
                ScheduleConflict(
                    referee_id=referee_id,
                    role=role,
                    other_match_id=other.id,
                    other_match_kickoff=other.kickoff,
                    other_group_id=other.group_id,
                    other_venue_name=other.venue_name,
                )
            )

    conflicts.sort(key=lambda c: (c.referee_id, c.role, c.other_match_id))
    return conflicts


# ============================================================================
# Recent-team conflicts (hard)
# ============================================================================


def find_recent_team_conflicts(
    session: Session,
    league_id: str,
    group_id: str,
    current_matchday_number: Optional[int],
    home_team_id: Optional[str],
    away_team_id: Optional[str],
    central_id: Optional[str] = None,
    aa1_id: Optional[str] = None,
    aa2_id: Optional[str] = None,
    current_match_id: Optional[str] = None,
    window: Optional[int] = None,
) -> List[RecentTeamConflict]:
    """
    Matchdays numbered [n - window + 1, n] of the group are scanned.

    One conflict per (official, team, earlier match); the role the official
    held in that match is reported as `other_role`.
    """
    proposed = _proposed([(ROLE_CENTRAL, central_id), (ROLE_AA1, aa1_id), (ROLE_AA2, aa2_id)])
    team_ids = [t for t in (home_team_id, away_team_id) if t]
    if not proposed or not team_ids or current_matchday_number is None:
        return []

    window = RECENT_TEAM_WINDOW if window is None else window
    if window < 1:
        return []
    lowest = max(1, current_matchday_number - window + 1)

    matchdays = session.exec(
        select(Matchday).where(
            Matchday.group_id == group_id,
            Matchday.number >= lowest,
            Matchday.number <= current_matchday_number,
        )
    ).all()
    numbers: Dict[str, int] = {md.id: md.number for md in matchdays}
    if not numbers:
        return []

    query = select(Match).where(
        Match.league_id == league_id,
        Match.group_id == group_id,
        Match.matchday_id.in_(list(numbers)),
        or_(Match.home_team_id.in_(team_ids), Match.away_team_id.in_(team_ids)),
    )
    if current_match_id:
        query = query.where(Match.id != current_match_id)
    matches = session.exec(query).all()

    seen = set()
    conflicts: List[RecentTeamConflict] = []
    for other in matches:
        assigned = _terna_assignments(other)
        involved = [t for t in team_ids if t in (other.home_team_id, other.away_team_id)]
        for role, referee_id in proposed:
            other_role = _role_of(referee_id, assigned)
            if other_role is None:
                continue
            for team_id in involved:
                key = (referee_id, role, team_id, other.id)
                if key in seen:
                    continue
                seen.add(key)
                conflicts.append(
                    RecentTeamConflict(
                        referee_id=referee_id,
                        role=role,
                        team_id=team_id,
                        matchday_number=numbers[other.matchday_id],
                        other_match_id=other.id,
                        other_match_kickoff=other.kickoff,
                        other_role=other_role,
                    )
                )

    conflicts.sort(key=lambda c: (c.referee_id, c.role, -c.matchday_number, c.other_match_id, c.team_id))
    return conflicts


# ============================================================================
# Same-day conflicts (soft)
# ============================================================================


def find_same_day_conflicts(
    session: Session,
    league_id: str,
    match_id: str,
    kickoff: Optional[datetime],
    central_id: Optional[str] = None,
    aa1_id: Optional[str] = None,
    aa2_id: Optional[str] = None,
    fourth_id: Optional[str] = None,
    assessor_id: Optional[str] = None,
    rollover_hour: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> List[SameDayConflict]:
    proposed = _proposed(
        [
            (ROLE_CENTRAL, central_id),
            (ROLE_AA1, aa1_id),
            (ROLE_AA2, aa2_id),
            (ROLE_FOURTH, fourth_id),
            (ROLE_ASSESSOR, assessor_id),
        ]
    )
    if not proposed or kickoff is None:
        return []

    rollover = SAME_DAY_ROLLOVER_HOUR if rollover_hour is None else rollover_hour
    start, end = local_day_bounds(kickoff, rollover, tz_name)

    others = session.exec(
        select(Match).where(
            Match.league_id == league_id,
            Match.kickoff >= start,
            Match.kickoff < end,
            Match.id != match_id,
        )
    ).all()

    conflicts: List[SameDayConflict] = []
    for other in others:
        assigned = _all_assignments(other)
        for role, referee_id in proposed:
            other_role = _role_of(referee_id, assigned)
            if other_role is None:
                continue
            conflicts.append(
                SameDayConflict(
                    referee_id=referee_id,
                    role=role,
                    other_match_id=other.id,
                    other_match_kickoff=other.kickoff,
                    other_role=other_role,
                    other_venue_name=other.venue_name,
                    other_home_team_id=other.home_team_id,
                    other_away_team_id=other.away_team_id,
                )
            )

    conflicts.sort(key=lambda c: (c.referee_id, c.role, c.other_match_kickoff or datetime.min, c.other_match_id))
    return conflicts


# ============================================================================
# Combined check (write path pre-validation)
# ============================================================================


def check_proposed_officials(
    session: Session,
    match: Match,
    matchday_number: Optional[int],
    central_id: Optional[str] = None,
    aa1_id: Optional[str] = None,
    aa2_id: Optional[str] = None,
    fourth_id: Optional[str] = None,
    assessor_id: Optional[str] = None,
    window: Optional[int] = None,
    rollover_hour: Optional[int] = None,
    tz_name: Optional[str] = None,
) -> ConflictCheckReport:
    """Run all three detectors for one match and a proposed set of officials."""
    schedule = find_schedule_conflicts(
        session, match.league_id, match.id, match.kickoff, central_id, aa1_id, aa2_id
    )
    recent = find_recent_team_conflicts(
        session,
        match.league_id,
        match.group_id,
        matchday_number,
        match.home_team_id,
        match.away_team_id,
        central_id,
        aa1_id,
        aa2_id,
        current_match_id=match.id,
        window=window,
    )
    same_day = find_same_day_conflicts(
        session,
        match.league_id,
        match.id,
        match.kickoff,
        central_id,
        aa1_id,
        aa2_id,
        fourth_id,
        assessor_id,
        rollover_hour=rollover_hour,
        tz_name=tz_name,
    )

    logger.debug(
        "CONFLICT_CHECK: match_id=%s schedule=%s recent=%s same_day=%s",
        match.id,
        len(schedule),
        len(recent),
        len(same_day),
    )
    return ConflictCheckReport(
        match_id=match.id,
        schedule_conflicts=schedule,
        recent_team_conflicts=recent,
        same_day_conflicts=same_day,
        has_hard_conflicts=bool(schedule or recent),
    )
