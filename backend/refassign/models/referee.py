from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class Referee(SQLModel, table=True):
    id: str = Field(primary_key=True)
    name: Optional[str] = Field(default=None)
    first_name: Optional[str] = Field(default=None)
    last_name: Optional[str] = Field(default=None)

    status: str = Field(default="DISPONIBLE")  # DISPONIBLE | LESIONADO | INACTIVO | DUDOSO
    tier: Optional[str] = Field(default=None)  # NO_ELEGIBLE | DEBUTANTE | ... | MUY_EXPERIMENTADO
    roles_allowed: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    can_assess: bool = Field(default=False)
    category: Optional[str] = Field(default=None)  # e.g. "TDP", "LP"

    # Administrative override of the tier-derived competence score
    rcs_override: Optional[float] = Field(default=None)

    delegate_id: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def display_name(self) -> str:
        if self.name and self.name.strip():
            return self.name.strip()
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or "Sin nombre"
