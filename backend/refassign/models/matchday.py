from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Matchday(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("group_id", "number", name="uq_group_matchday_number"),)

    id: str = Field(primary_key=True)
    league_id: str = Field(foreign_key="league.id", index=True)
    group_id: str = Field(foreign_key="league_group.id", index=True)
    number: int  # 1-based jornada number within the group
