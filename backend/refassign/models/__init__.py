from refassign.models.group import LeagueGroup
from refassign.models.internal_rule import InternalRuleRecord
from refassign.models.league import League
from refassign.models.match import Match
from refassign.models.matchday import Matchday
from refassign.models.referee import Referee
from refassign.models.team import Team

__all__ = [
    "League",
    "LeagueGroup",
    "Matchday",
    "Match",
    "Team",
    "Referee",
    "InternalRuleRecord",
]
