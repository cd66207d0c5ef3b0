# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from refassign.models.group import LeagueGroup  # noqa: F401
from refassign.models.internal_rule import InternalRuleRecord  # noqa: F401
from refassign.models.league import League  # noqa: F401
from refassign.models.match import Match  # noqa: F401
from refassign.models.matchday import Matchday  # noqa: F401
from refassign.models.referee import Referee  # noqa: F401
from refassign.models.team import Team  # noqa: F401
