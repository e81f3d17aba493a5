"""Health endpoint -- service status and rate limit store reachability."""
from fastapi import APIRouter

router = APIRouter(tags=["health"])

_rate_limit_repo = None
_persistence = "unknown"
_db_check = None


def init_health_routes(rate_limit_repo, persistence: str, db_check=None):
    global _rate_limit_repo, _persistence, _db_check
    _rate_limit_repo = rate_limit_repo
    _persistence = persistence
    _db_check = db_check


def _check_rate_limiting() -> dict:
    try:
        return {"status": "healthy", "logs_count": _rate_limit_repo.count_all()}
    except Exception as exc:
        return {"status": "unhealthy", "error": f"{type(exc).__name__}: {exc}"}


@router.get("/health")
def health():
    rate_limiting = _check_rate_limiting()
    result = {
        "status": "online" if rate_limiting["status"] == "healthy" else "degraded",
        "system": "bloggly-api rate limiter",
        "persistence": _persistence,
        "rate_limiting": rate_limiting,
    }
    if _db_check is not None:
        result["database"] = "connected" if _db_check() else "disconnected"
    return result
