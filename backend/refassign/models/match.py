from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Match(SQLModel, table=True):
    id: str = Field(primary_key=True)
    league_id: str = Field(foreign_key="league.id", index=True)
    group_id: str = Field(foreign_key="league_group.id", index=True)
    matchday_id: str = Field(foreign_key="matchday.id", index=True)

    home_team_id: Optional[str] = Field(default=None, foreign_key="team.id")
    away_team_id: Optional[str] = Field(default=None, foreign_key="team.id")

    # Stored as naive UTC; see refassign.utils.dates for conversions
    kickoff: Optional[datetime] = Field(default=None, index=True)
    municipality: Optional[str] = Field(default=None)
    venue_name: Optional[str] = Field(default=None)

    # Precomputed Match Difficulty Score; derived from team tiers when null
    mds: Optional[float] = Field(default=None)

    # Officials (written only by the confirmation write path)
    central_referee_id: Optional[str] = Field(default=None, index=True)
    aa1_referee_id: Optional[str] = Field(default=None, index=True)
    aa2_referee_id: Optional[str] = Field(default=None, index=True)
    fourth_referee_id: Optional[str] = Field(default=None)
    assessor_referee_id: Optional[str] = Field(default=None)

    def has_terna_assignment(self) -> bool:
        """True when any on-field official is already set"""
        return bool(self.central_referee_id or self.aa1_referee_id or self.aa2_referee_id)
