from typing import Optional

from sqlmodel import Field, SQLModel


class Team(SQLModel, table=True):
    id: str = Field(primary_key=True)
    league_id: str = Field(foreign_key="league.id", index=True)
    group_id: str = Field(foreign_key="league_group.id", index=True)
    name: str
    # TRANQUILO | REGULARES | COMPLICADO | MUY_COMPLICADO (null = unknown)
    difficulty_tier: Optional[str] = Field(default=None)
    municipality: Optional[str] = Field(default=None)
