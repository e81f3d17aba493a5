"""Entry point. Wires the rate limit store into the limiter and routes.

Persistence strategy:
  - If DATABASE_URL is set  -> PostgreSQL ``rate_limit_logs`` table.
  - Otherwise               -> JSON file fallback (development only).
"""
import os
from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(BASE_DIR)
load_dotenv(os.path.join(PROJECT_DIR, ".env"))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bloggly.api.routes.health_routes import router as health_router, init_health_routes
from bloggly.api.routes.rate_limit_routes import router as rate_limit_router
from bloggly.application.rate_limiter import init_rate_limiter

DATA_DIR = os.path.join(BASE_DIR, "data")

DATABASE_URL = os.environ.get("DATABASE_URL", "")

app = FastAPI(
    title="bloggly-api",
    description="Attempt-windowed rate limiting for the bloggly backend.",
    version="1.0.0",
)

# CORS configuration: read allowed origins from env (comma-separated).
_allowed = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _allowed:
    allow_origins = [o.strip() for o in _allowed.split(",") if o.strip()]
else:
    allow_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Persistence wiring
# ---------------------------------------------------------------------------

db_check = None

if DATABASE_URL:
    from bloggly.infrastructure.database.connection import (
        init_engine, create_tables, dynamic_session_factory, check_health,
    )
    from bloggly.infrastructure.repositories.pg_rate_limit_repository import PgRateLimitRepository

    init_engine()
    create_tables()
    rate_limit_repo = PgRateLimitRepository(dynamic_session_factory)
    db_check = check_health
    _persistence = "postgresql"
else:
    from bloggly.infrastructure.repositories.rate_limit_repository import RateLimitRepository

    rate_limit_repo = RateLimitRepository(
        data_path=os.environ.get("RATE_LIMIT_DATA_PATH")
        or os.path.join(DATA_DIR, "rate_limit_logs.json")
    )
    _persistence = "json"

print(f"[BLOGGLY] Rate limit store: {_persistence}")

init_rate_limiter(rate_limit_repo)
init_health_routes(rate_limit_repo, _persistence, db_check=db_check)

app.include_router(health_router)
app.include_router(rate_limit_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bloggly.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
