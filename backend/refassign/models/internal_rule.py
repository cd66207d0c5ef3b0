"""
Internal Rule Record - per-referee administrative constraints (RA-XX)

Stored shape only. Params are kept as raw JSON and validated into the typed
rule union by refassign.services.internal_rules when loaded.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class InternalRuleRecord(SQLModel, table=True):
    __tablename__ = "internal_rule"

    id: str = Field(primary_key=True)
    referee_id: str = Field(foreign_key="referee.id", index=True)
    type: str  # RA_municipios_prohibidos | RA_dias_preferidos | ...
    params: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    enabled: bool = Field(default=True)

    updated_by: str = Field(default="system")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = Field(default=None)
