from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class League(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: str
    category: Optional[str] = Field(default=None)  # e.g. "TDP", "LIGA PREMIER"
    slug: Optional[str] = Field(default=None)
    delegate_id: Optional[str] = Field(default=None, index=True)

    # Assignment tolerances (RCS may fall this far below MDS); null -> default
    central_tolerance: Optional[float] = Field(default=None)
    assistants_tolerance: Optional[float] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
