"""
Shared types for terna suggestion.

NOTE: The suggestion engine never writes to the store, it only proposes.
A separate write path re-validates and commits a confirmed terna.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Literal, Optional

from pydantic import BaseModel, Field

from refassign.utils.conflict_report import RecentTeamConflict, SameDayConflict, ScheduleConflict

# ============================================================================
# Reason codes (closed set)
# ============================================================================

REASON_OK = "OK"
REASON_LEAGUE_NOT_FOUND = "LEAGUE_NOT_FOUND"
REASON_MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
REASON_ALREADY_HAS_ASSIGNMENT = "ALREADY_HAS_ASSIGNMENT"
REASON_NO_AVAILABLE_REFEREES = "NO_AVAILABLE_REFEREES"
REASON_NO_ROLE_CANDIDATES = "NO_ROLE_CANDIDATES"
REASON_NO_CENTRAL_AFTER_MDS_FILTER = "NO_CENTRAL_AFTER_MDS_FILTER"
REASON_NO_CENTRAL_AFTER_RA_RULES = "NO_CENTRAL_AFTER_RA_RULES"
REASON_NOT_ENOUGH_ASSISTANTS = "NOT_ENOUGH_ASSISTANTS"
REASON_NOT_ENOUGH_ASSISTANTS_AFTER_RA_RULES = "NOT_ENOUGH_ASSISTANTS_AFTER_RA_RULES"
REASON_NOT_ENOUGH_ASSISTANTS_IN_UNIT = "NOT_ENOUGH_ASSISTANTS_IN_UNIT"
REASON_NOT_ENOUGH_ASSISTANTS_IN_BATCH = "NOT_ENOUGH_ASSISTANTS_IN_BATCH"
REASON_BLOCKED_BY_SCHEDULE_CONFLICT = "BLOCKED_BY_SCHEDULE_CONFLICT"
REASON_BLOCKED_BY_RECENT_TEAM_CONFLICT = "BLOCKED_BY_RECENT_TEAM_CONFLICT"

SuggestionReason = Literal[
    "OK",
    "LEAGUE_NOT_FOUND",
    "MATCH_NOT_FOUND",
    "ALREADY_HAS_ASSIGNMENT",
    "NO_AVAILABLE_REFEREES",
    "NO_ROLE_CANDIDATES",
    "NO_CENTRAL_AFTER_MDS_FILTER",
    "NO_CENTRAL_AFTER_RA_RULES",
    "NOT_ENOUGH_ASSISTANTS",
    "NOT_ENOUGH_ASSISTANTS_AFTER_RA_RULES",
    "NOT_ENOUGH_ASSISTANTS_IN_UNIT",
    "NOT_ENOUGH_ASSISTANTS_IN_BATCH",
    "BLOCKED_BY_SCHEDULE_CONFLICT",
    "BLOCKED_BY_RECENT_TEAM_CONFLICT",
]


class SuggestionError(Exception):
    """Base exception for suggestion errors"""

    pass


class SuggestionInputError(SuggestionError):
    """Programmatic input could not be interpreted"""

    pass


# ============================================================================
# Candidates
# ============================================================================


@dataclass(frozen=True)
class CandidateRef:
    """A referee as seen by the suggestion engine."""

    id: str
    name: str
    status: str
    roles_allowed: FrozenSet[str]
    tier: Optional[str]
    rcs_central: Optional[float]
    can_assess: bool
    category: Optional[str] = None


@dataclass(frozen=True)
class BatchUsage:
    """
    Referee/pair usage accumulated across one batch call.

    Immutable: each accepted terna produces a new value, so the batch is a
    left fold of this accumulator over the ordered match list.
    """

    used_ids: FrozenSet[str] = field(default_factory=frozenset)
    used_pairs: FrozenSet[FrozenSet[str]] = field(default_factory=frozenset)

    def is_used(self, referee_id: str) -> bool:
        return referee_id in self.used_ids

    def pair_used(self, a: str, b: str) -> bool:
        return frozenset((a, b)) in self.used_pairs

    def with_terna(
        self, central_id: str, aa1_id: str, aa2_id: str, assessor_id: Optional[str] = None
    ) -> "BatchUsage":
        ids = {central_id, aa1_id, aa2_id}
        if assessor_id:
            ids.add(assessor_id)
        pairs = {
            frozenset((central_id, aa1_id)),
            frozenset((central_id, aa2_id)),
            frozenset((aa1_id, aa2_id)),
        }
        return BatchUsage(used_ids=self.used_ids | ids, used_pairs=self.used_pairs | pairs)


# ============================================================================
# Request / result models
# ============================================================================


class MatchKey(BaseModel):
    """Explicit hierarchical address of a match"""

    league_id: str
    group_id: str
    matchday_id: str
    match_id: str


class BatchMatchRequest(MatchKey):
    """One batch item; extra knobs are optional"""

    variant_seed: Optional[str] = None
    ignore_existing_assignment: bool = False


class SuggestedTerna(BaseModel):
    league_id: str
    group_id: str
    matchday_id: str
    match_id: str

    central_referee_id: Optional[str] = None
    aa1_referee_id: Optional[str] = None
    aa2_referee_id: Optional[str] = None
    assessor_referee_id: Optional[str] = None

    has_suggestion: bool = False
    reason: SuggestionReason

    # Metadata for "why this suggestion"
    mds: Optional[float] = None
    rcs_central: Optional[float] = None
    central_tolerance: float = 0
    assistants_tolerance: float = 0

    # Internal diagnostics only (not user-facing text)
    schedule_conflicts: List[ScheduleConflict] = Field(default_factory=list)
    recent_team_conflicts: List[RecentTeamConflict] = Field(default_factory=list)
    same_day_conflicts: List[SameDayConflict] = Field(default_factory=list)

    @classmethod
    def empty(cls, key: MatchKey, reason: SuggestionReason, **extra) -> "SuggestedTerna":
        """Build a no-suggestion result for a match key."""
        return cls(
            league_id=key.league_id,
            group_id=key.group_id,
            matchday_id=key.matchday_id,
            match_id=key.match_id,
            has_suggestion=False,
            reason=reason,
            **extra,
        )
