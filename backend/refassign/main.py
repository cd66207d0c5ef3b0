import logging
from importlib.metadata import PackageNotFoundError, version

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from refassign.database import init_db
from refassign.routes import assignments
from refassign.settings import CORS_ORIGINS

logger = logging.getLogger(__name__)

app = FastAPI(title="Referee Assignment API")


def get_build_info():
    """Installed package version, or "dev" when running from a checkout"""
    try:
        return version("refassign")
    except PackageNotFoundError:
        return "dev"


BUILD_HASH = get_build_info()

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_origins.extend(CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Suggestions and conflict checks (read-only)
app.include_router(assignments.router, prefix="/api", tags=["assignments"])


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables

    for r in app.routes:
        methods = getattr(r, "methods", None)
        path = getattr(r, "path", None)
        if path:
            logger.info("ROUTE: %-20s %s", ", ".join(sorted(methods)) if methods else "N/A", path)
    logger.info("Build: %s", BUILD_HASH)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": "Referee Assignment API", "build_hash": BUILD_HASH, "status": "healthy"}
