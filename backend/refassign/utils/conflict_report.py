"""
Conflict Response Models

Pydantic models shared across:
- ConflictDetector service (refassign.services.conflict_detector)
- SuggestedTerna diagnostics
- Route handlers (assignments.py)

All conflict computation is in refassign.services.conflict_detector.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

# Roles checked by the detectors
ROLE_CENTRAL = "CENTRAL"
ROLE_AA1 = "AA1"
ROLE_AA2 = "AA2"
ROLE_FOURTH = "FOURTH"
ROLE_ASSESSOR = "ASESOR"


class ScheduleConflict(BaseModel):
    """A proposed official already works another league match at the exact same kickoff"""

    referee_id: str
    role: str
    other_match_id: str
    other_match_kickoff: Optional[datetime] = None
    other_group_id: Optional[str] = None
    other_venue_name: Optional[str] = None


class RecentTeamConflict(BaseModel):
    """A proposed official already officiated one of the teams inside the matchday window"""

    referee_id: str
    role: str
    team_id: str
    matchday_number: int
    other_match_id: str
    other_match_kickoff: Optional[datetime] = None
    other_role: Optional[str] = None


class SameDayConflict(BaseModel):
    """A proposed official has another match on the same local day (soft)"""

    referee_id: str
    role: str
    other_match_id: str
    other_match_kickoff: Optional[datetime] = None
    other_role: Optional[str] = None
    other_venue_name: Optional[str] = None
    other_home_team_id: Optional[str] = None
    other_away_team_id: Optional[str] = None


class ConflictCheckReport(BaseModel):
    """All three detectors for one proposed set of officials"""

    match_id: str
    schedule_conflicts: List[ScheduleConflict]
    recent_team_conflicts: List[RecentTeamConflict]
    same_day_conflicts: List[SameDayConflict]
    has_hard_conflicts: bool
