"""
Runtime configuration for the referee assignment engine.

Values come from the environment (optionally a .env file). Everything here is
read once at import time; tests override by passing explicit arguments to the
service functions instead of patching these module globals.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        return float(raw) if raw.strip() else default
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    return raw.lower() in ("true", "1", "yes")


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./referees.db")
SQL_ECHO = _env_bool("SQL_ECHO", False)

# Calendar used for weekday rules and same-day detection
LOCAL_TIMEZONE = os.getenv("LOCAL_TIMEZONE", "America/Mexico_City")

# Matchdays scanned by the recent-team check (current one included)
RECENT_TEAM_WINDOW = _env_int("RECENT_TEAM_WINDOW", 4)

# Kickoffs before this local hour belong to the previous operational day
SAME_DAY_ROLLOVER_HOUR = _env_int("SAME_DAY_ROLLOVER_HOUR", 1)

# Batch mode re-runs schedule/recent-team checks per match when true
BATCH_VALIDATE_CONFLICTS = _env_bool("BATCH_VALIDATE_CONFLICTS", True)

DEFAULT_TOLERANCE = _env_float("DEFAULT_TOLERANCE", 1.0)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
