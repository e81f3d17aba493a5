"""FastAPI rate limit dependencies."""
from fastapi import HTTPException, Request, status

from bloggly.application.rate_limiter import get_rate_limiter
from bloggly.domain.rate_limit import RateLimitResult, resolve_limit_type


def client_identifier(request: Request) -> str:
    """Best-effort client IP: first X-Forwarded-For hop, X-Real-IP, then the peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_headers(result: RateLimitResult) -> dict:
    headers = {
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_time),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.reset_time)
    return headers


def raise_if_limited(result: RateLimitResult) -> RateLimitResult:
    if not result.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"message": "Rate limit exceeded.", **result.to_dict()},
            headers=rate_limit_headers(result),
        )
    return result


def create_rate_limit_dependency(limit_type="api_general"):
    """Build a dependency that rejects clients currently blocked under *limit_type*.

    The request is evaluated as a success, so it never adds to the failure
    count; handlers report failures through ``rate_limit_auth`` /
    ``RateLimiter.evaluate(..., success=False)``.
    """
    limit_type = resolve_limit_type(limit_type)

    def dependency(request: Request) -> RateLimitResult:
        result = get_rate_limiter().evaluate(client_identifier(request), True, limit_type)
        return raise_if_limited(result)

    return dependency
