from typing import Optional

from sqlmodel import Field, SQLModel


class LeagueGroup(SQLModel, table=True):
    __tablename__ = "league_group"

    id: str = Field(primary_key=True)
    league_id: str = Field(foreign_key="league.id", index=True)
    name: str
    season: Optional[str] = Field(default=None)
