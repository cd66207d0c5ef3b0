"""
Internal Rules Engine (RA-XX) - per-referee administrative constraints

Rule kinds:
- RA_municipios_prohibidos / RA_dias_prohibidos / RA_equipos_prohibidos /
  RA_ligas_prohibidas: absolute veto (allowed=False, score=0)
- RA_municipios_preferidos / RA_equipos_preferidos: score x pesoExtra
- RA_dias_preferidos: score + DAY_PREFERENCE_BONUS
- RA_companeros_preferidos: score x pesoExtra when a preferred companion is
  already in the terna, score / pesoExtra when none is
- RA_companeros_obligatorios: not scored here; it restricts the assistant
  pool once the central/AA1 are fixed (see terna_selection)

A referee without enabled rules is scored exactly as the base score.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Dict, Iterable, List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from sqlmodel import Session, select

from refassign.models.internal_rule import InternalRuleRecord
from refassign.models.match import Match
from refassign.services.terna_types import SuggestionInputError
from refassign.utils.dates import weekday_code

logger = logging.getLogger(__name__)

DAY_PREFERENCE_BONUS = 0.25
NEUTRAL_WEIGHT = 1.0

Weekday = Literal["L", "M", "X", "J", "V", "S", "D"]


# ============================================================================
# Typed params per rule kind
# ============================================================================


class _Params(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    comment: Optional[str] = Field(default=None, alias="comentario", max_length=500)


class MunicipalityParams(_Params):
    municipalities: List[str] = Field(alias="municipios", min_length=1)


class WeightedMunicipalityParams(MunicipalityParams):
    weight: float = Field(default=NEUTRAL_WEIGHT, alias="pesoExtra", ge=0.1, le=10)


class DayParams(_Params):
    days: List[Weekday] = Field(alias="dias", min_length=1)


class TeamParams(_Params):
    team_ids: List[str] = Field(alias="teamIds", min_length=1)


class WeightedTeamParams(TeamParams):
    weight: float = Field(default=NEUTRAL_WEIGHT, alias="pesoExtra", ge=0.1, le=10)


class LeagueParams(_Params):
    league_ids: List[str] = Field(alias="leagueIds", min_length=1)


class CompanionParams(_Params):
    referee_ids: List[str] = Field(alias="refereeIds", min_length=1)


class WeightedCompanionParams(CompanionParams):
    weight: float = Field(default=NEUTRAL_WEIGHT, alias="pesoExtra", ge=0.1, le=10)


# ============================================================================
# Rule variants (tagged union on `type`)
# ============================================================================


class _RuleBase(BaseModel):
    id: str
    referee_id: str
    enabled: bool = True
    updated_by: str = "system"
    updated_at: Optional[datetime] = None
    reason: Optional[str] = None


class MunicipalityBanRule(_RuleBase):
    type: Literal["RA_municipios_prohibidos"]
    params: MunicipalityParams


class MunicipalityPreferenceRule(_RuleBase):
    type: Literal["RA_municipios_preferidos"]
    params: WeightedMunicipalityParams


class DayBanRule(_RuleBase):
    type: Literal["RA_dias_prohibidos"]
    params: DayParams


class DayPreferenceRule(_RuleBase):
    type: Literal["RA_dias_preferidos"]
    params: DayParams


class TeamBanRule(_RuleBase):
    type: Literal["RA_equipos_prohibidos"]
    params: TeamParams


class TeamPreferenceRule(_RuleBase):
    type: Literal["RA_equipos_preferidos"]
    params: WeightedTeamParams


class LeagueBanRule(_RuleBase):
    type: Literal["RA_ligas_prohibidas"]
    params: LeagueParams


class CompanionPreferenceRule(_RuleBase):
    type: Literal["RA_companeros_preferidos"]
    params: WeightedCompanionParams


class MandatoryCompanionRule(_RuleBase):
    type: Literal["RA_companeros_obligatorios"]
    params: CompanionParams


InternalRule = Annotated[
    Union[
        MunicipalityBanRule,
        MunicipalityPreferenceRule,
        DayBanRule,
        DayPreferenceRule,
        TeamBanRule,
        TeamPreferenceRule,
        LeagueBanRule,
        CompanionPreferenceRule,
        MandatoryCompanionRule,
    ],
    Field(discriminator="type"),
]

_RULE_ADAPTER = TypeAdapter(InternalRule)


def parse_internal_rule(data: dict) -> InternalRule:
    """Validate a plain dict (type + params + metadata) into its rule variant."""
    try:
        return _RULE_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise SuggestionInputError(f"Invalid internal rule {data.get('id')!r}: {exc}") from exc


def rule_from_record(record: InternalRuleRecord) -> InternalRule:
    return parse_internal_rule(
        {
            "id": record.id,
            "referee_id": record.referee_id,
            "type": record.type,
            "params": record.params or {},
            "enabled": record.enabled,
            "updated_by": record.updated_by,
            "updated_at": record.updated_at,
            "reason": record.reason,
        }
    )


def load_internal_rules_for_referees(session: Session, referee_ids: Iterable[str]) -> Dict[str, List[InternalRule]]:
    """
    Load enabled rules for a set of referees in one query.

    Returns referee_id -> rules (most recently updated first). Referees
    without enabled rules are absent from the map. Stored rules that no
    longer validate are skipped.
    """
    unique_ids = sorted({rid for rid in referee_ids if rid})
    if not unique_ids:
        return {}

    records = session.exec(
        select(InternalRuleRecord)
        .where(InternalRuleRecord.referee_id.in_(unique_ids), InternalRuleRecord.enabled == True)  # noqa: E712
        .order_by(InternalRuleRecord.referee_id, InternalRuleRecord.updated_at.desc(), InternalRuleRecord.id)
    ).all()

    rules_by_referee: Dict[str, List[InternalRule]] = {}
    for record in records:
        try:
            rule = rule_from_record(record)
        except SuggestionInputError as exc:
            logger.warning("Skipping invalid internal rule %s for referee %s: %s", record.id, record.referee_id, exc)
            continue
        rules_by_referee.setdefault(record.referee_id, []).append(rule)

    return rules_by_referee


# ============================================================================
# Match context
# ============================================================================


@dataclass(frozen=True)
class MatchRuleContext:
    league_id: str
    municipality: Optional[str]
    weekday: Optional[str]
    home_team_id: Optional[str]
    away_team_id: Optional[str]


def _normalize_municipality(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip().lower() or None


def build_match_rule_context(match: Match, tz_name: Optional[str] = None) -> MatchRuleContext:
    """Rule-relevant view of a match; weekday is taken in the local calendar."""
    return MatchRuleContext(
        league_id=match.league_id,
        municipality=_normalize_municipality(match.municipality),
        weekday=weekday_code(match.kickoff, tz_name),
        home_team_id=match.home_team_id,
        away_team_id=match.away_team_id,
    )


# ============================================================================
# Scoring
# ============================================================================


@dataclass
class RuleScore:
    allowed: bool
    score: float
    # Internal trace only (never returned to clients)
    trace: List[str] = field(default_factory=list)


def _involves_team(ctx: MatchRuleContext, team_ids: List[str]) -> bool:
    return bool(
        (ctx.home_team_id and ctx.home_team_id in team_ids) or (ctx.away_team_id and ctx.away_team_id in team_ids)
    )


def _veto(referee_id: str, rule: _RuleBase, detail: str, trace: List[str]) -> RuleScore:
    trace.append(f"{rule.type}: {detail}")
    logger.info("RA_VETO: referee_id=%s rule_id=%s type=%s %s", referee_id, rule.id, rule.type, detail)
    return RuleScore(allowed=False, score=0, trace=trace)


def apply_internal_rules_to_score(
    ctx: MatchRuleContext,
    referee_id: str,
    base_score: float,
    rules: Optional[List[InternalRule]],
    companion_ids: Optional[List[str]] = None,
) -> RuleScore:
    """
    Apply a referee's rules to a base score for one match.

    Rules are evaluated in list order; the first matching prohibition returns
    immediately with allowed=False, score=0. Disabled rules are ignored, so
    an empty list and an all-disabled list behave identically.
    """
    active = [r for r in (rules or []) if r.enabled]
    if not active:
        return RuleScore(allowed=True, score=base_score)

    score = base_score
    trace: List[str] = []
    companions = companion_ids or []

    for rule in active:
        match rule:
            case MunicipalityBanRule(params=params):
                banned = {_normalize_municipality(m) for m in params.municipalities}
                if ctx.municipality and ctx.municipality in banned:
                    return _veto(referee_id, rule, f"municipality {ctx.municipality}", trace)

            case MunicipalityPreferenceRule(params=params):
                preferred = {_normalize_municipality(m) for m in params.municipalities}
                if ctx.municipality and ctx.municipality in preferred:
                    score = score * params.weight
                    trace.append(f"{rule.type}: municipality {ctx.municipality} x{params.weight}")

            case DayBanRule(params=params):
                if ctx.weekday and ctx.weekday in params.days:
                    return _veto(referee_id, rule, f"weekday {ctx.weekday}", trace)

            case DayPreferenceRule(params=params):
                if ctx.weekday and ctx.weekday in params.days:
                    score = score + DAY_PREFERENCE_BONUS
                    trace.append(f"{rule.type}: weekday {ctx.weekday} +{DAY_PREFERENCE_BONUS}")

            case TeamBanRule(params=params):
                if _involves_team(ctx, params.team_ids):
                    return _veto(referee_id, rule, f"teams {ctx.home_team_id} vs {ctx.away_team_id}", trace)

            case TeamPreferenceRule(params=params):
                if _involves_team(ctx, params.team_ids):
                    score = score * params.weight
                    trace.append(f"{rule.type}: preferred team x{params.weight}")

            case LeagueBanRule(params=params):
                if ctx.league_id and ctx.league_id in params.league_ids:
                    return _veto(referee_id, rule, f"league {ctx.league_id}", trace)

            case CompanionPreferenceRule(params=params):
                # Neutral without companions yet or with a neutral weight
                if not companions or params.weight == NEUTRAL_WEIGHT:
                    continue
                if any(c in params.referee_ids for c in companions):
                    score = score * params.weight
                    trace.append(f"{rule.type}: preferred companion present x{params.weight}")
                else:
                    score = score / params.weight
                    trace.append(f"{rule.type}: no preferred companion /{params.weight}")

            case MandatoryCompanionRule():
                # Resolved at terna level (assistant pool filter)
                pass

    return RuleScore(allowed=True, score=score, trace=trace)


# ============================================================================
# Companion helpers used by terna selection
# ============================================================================


def mandatory_companions(rules: Optional[List[InternalRule]]) -> Set[str]:
    """Referee ids that must accompany the owner of these rules."""
    required: Set[str] = set()
    for rule in rules or []:
        if isinstance(rule, MandatoryCompanionRule) and rule.enabled:
            required.update(rule.params.referee_ids)
    return required


def preferred_companion_multiplier(rules: Optional[List[InternalRule]], candidate_id: str) -> float:
    """Product of pesoExtra over the owner's companion preferences listing candidate_id."""
    multiplier = NEUTRAL_WEIGHT
    for rule in rules or []:
        if isinstance(rule, CompanionPreferenceRule) and rule.enabled and candidate_id in rule.params.referee_ids:
            multiplier = multiplier * rule.params.weight
    return multiplier
