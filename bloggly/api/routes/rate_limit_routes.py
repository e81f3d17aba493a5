"""Rate limit API routes -- consult the limiter over HTTP."""
from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from bloggly.api.dependencies import raise_if_limited, rate_limit_headers
from bloggly.application.rate_limiter import get_rate_limiter
from bloggly.domain.rate_limit import RATE_LIMIT_CONFIGS, RateLimitConfigError


router = APIRouter(prefix="/api/rate-limit", tags=["rate-limit"])


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class EvaluateRequest(BaseModel):
    identifier: str = Field(..., min_length=1, max_length=200)
    success: bool = True
    type: str = Field("auth", min_length=1, max_length=30)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/configs")
def api_configs():
    """Return the per-type rate limit policies."""
    return {
        limit_type.value: config.to_dict()
        for limit_type, config in RATE_LIMIT_CONFIGS.items()
    }


@router.post("/evaluate")
def api_evaluate(req: EvaluateRequest, response: Response):
    """Record one attempt outcome and return the decision.

    Responds 429 (decision in ``detail``) when the identifier is blocked.
    """
    try:
        result = get_rate_limiter().evaluate(req.identifier, req.success, req.type)
    except RateLimitConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    raise_if_limited(result)
    response.headers.update(rate_limit_headers(result))
    return result.to_dict()
