"""
Referee Pool & Eligibility

Loads the referee snapshot (optionally tenant-scoped) and splits it into
role-specific candidate sets. Everything after the load is a pure transform.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlmodel import Session, select

from refassign.models.referee import Referee
from refassign.services.difficulty import compute_rcs
from refassign.services.terna_types import CandidateRef
from refassign.utils.conflict_report import ROLE_AA1, ROLE_AA2, ROLE_ASSESSOR, ROLE_CENTRAL

logger = logging.getLogger(__name__)

STATUS_AVAILABLE = "DISPONIBLE"


@dataclass
class RoleCandidates:
    central: List[CandidateRef]
    assistants: List[CandidateRef]
    assessors: List[CandidateRef]


def referee_to_candidate(referee: Referee) -> CandidateRef:
    roles = referee.roles_allowed if isinstance(referee.roles_allowed, list) else []
    return CandidateRef(
        id=referee.id,
        name=referee.display_name(),
        status=(referee.status or "").strip().upper(),
        roles_allowed=frozenset(str(r).strip().upper() for r in roles if r),
        tier=referee.tier.strip() if isinstance(referee.tier, str) and referee.tier.strip() else None,
        rcs_central=compute_rcs(referee.tier, referee.rcs_override),
        can_assess=bool(referee.can_assess),
        category=referee.category,
    )


def load_referee_candidates(session: Session, delegate_id: Optional[str] = None) -> List[CandidateRef]:
    """
    Load every referee (tenant-scoped when delegate_id is given) as CandidateRef.

    Ordered by id so downstream processing is deterministic.
    """
    query = select(Referee)
    if delegate_id:
        query = query.where(Referee.delegate_id == delegate_id)

    referees = session.exec(query.order_by(Referee.id)).all()
    logger.debug("REFEREE_POOL: delegate_id=%s loaded=%s", delegate_id, len(referees))
    return [referee_to_candidate(r) for r in referees]


def filter_base_pool(candidates: List[CandidateRef]) -> List[CandidateRef]:
    """
    Base pool: available, with a competence score, and with something to do
    (a field role or assessor capability).
    """
    return [
        c
        for c in candidates
        if c.status == STATUS_AVAILABLE and c.rcs_central is not None and (c.roles_allowed or c.can_assess)
    ]


def split_candidates_by_role(candidates: List[CandidateRef]) -> RoleCandidates:
    central: List[CandidateRef] = []
    assistants: List[CandidateRef] = []
    assessors: List[CandidateRef] = []

    for c in candidates:
        if ROLE_CENTRAL in c.roles_allowed:
            central.append(c)
        if ROLE_AA1 in c.roles_allowed or ROLE_AA2 in c.roles_allowed:
            assistants.append(c)
        if ROLE_ASSESSOR in c.roles_allowed or c.can_assess:
            assessors.append(c)

    return RoleCandidates(central=central, assistants=assistants, assessors=assessors)
