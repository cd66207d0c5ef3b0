"""
Match lookup by explicit hierarchical key.

A match is addressed by {league_id, group_id, matchday_id, match_id}; the
key is checked against the stored row instead of walking parent references.
"""

from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from refassign.models.league import League
from refassign.models.match import Match
from refassign.models.matchday import Matchday
from refassign.services.terna_types import MatchKey


def get_league(session: Session, league_id: str) -> Optional[League]:
    return session.get(League, league_id)


def get_match_for_key(session: Session, key: MatchKey) -> Optional[Match]:
    """The match row, or None when it does not exist under this key."""
    match = session.get(Match, key.match_id)
    if match is None:
        return None
    if (match.league_id, match.group_id, match.matchday_id) != (key.league_id, key.group_id, key.matchday_id):
        return None
    return match


def get_matchday_number(session: Session, key: MatchKey) -> Optional[int]:
    matchday = session.get(Matchday, key.matchday_id)
    if matchday is None or matchday.group_id != key.group_id:
        return None
    return matchday.number


def list_matchday_keys(session: Session, league_id: str, group_id: str, matchday_id: str) -> List[MatchKey]:
    """Keys of every match in a matchday ordered by (kickoff, id); unscheduled last."""
    matches = session.exec(
        select(Match).where(
            Match.league_id == league_id,
            Match.group_id == group_id,
            Match.matchday_id == matchday_id,
        )
    ).all()
    matches = sorted(matches, key=lambda m: (m.kickoff is None, m.kickoff or datetime.min, m.id))
    return [
        MatchKey(league_id=m.league_id, group_id=m.group_id, matchday_id=m.matchday_id, match_id=m.id)
        for m in matches
    ]
