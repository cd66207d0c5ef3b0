from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from refassign.settings import DATABASE_URL, SQL_ECHO

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _is_sqlite and DATABASE_URL != "sqlite:///:memory:":
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args=_connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session (read snapshot for one request)"""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from refassign.models.internal_rule import InternalRuleRecord  # noqa: F401
    from refassign.models.group import LeagueGroup  # noqa: F401
    from refassign.models.league import League  # noqa: F401
    from refassign.models.match import Match  # noqa: F401
    from refassign.models.matchday import Matchday  # noqa: F401
    from refassign.models.referee import Referee  # noqa: F401
    from refassign.models.team import Team  # noqa: F401

    SQLModel.metadata.create_all(engine)
