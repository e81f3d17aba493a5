"""Rate-limit policies, decisions and attempt records."""
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType


class RateLimitConfigError(ValueError):
    """Raised for an unknown rate-limit type. Never a rate-limit decision."""


class RateLimitType(str, Enum):
    AUTH = "auth"
    PASSWORD_RESET = "password_reset"
    API_GENERAL = "api_general"


@dataclass(frozen=True)
class RateLimitConfig:
    window_ms: int          # sliding window for counting failures
    max_attempts: int       # failures allowed inside the window
    block_duration_ms: int  # how long a block event lasts

    @property
    def window_seconds(self) -> int:
        return math.ceil(self.window_ms / 1000)

    @property
    def block_seconds(self) -> int:
        return math.ceil(self.block_duration_ms / 1000)

    def to_dict(self) -> dict:
        return {
            "window_ms": self.window_ms,
            "max_attempts": self.max_attempts,
            "block_duration_ms": self.block_duration_ms,
        }


RATE_LIMIT_CONFIGS = MappingProxyType({
    RateLimitType.AUTH: RateLimitConfig(
        window_ms=15 * 60 * 1000,
        max_attempts=5,
        block_duration_ms=60 * 60 * 1000,
    ),
    RateLimitType.PASSWORD_RESET: RateLimitConfig(
        window_ms=60 * 60 * 1000,
        max_attempts=3,
        block_duration_ms=24 * 60 * 60 * 1000,
    ),
    RateLimitType.API_GENERAL: RateLimitConfig(
        window_ms=60 * 1000,
        max_attempts=100,
        block_duration_ms=5 * 60 * 1000,
    ),
})


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int  # seconds until reset

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "reset_time": self.reset_time,
        }


@dataclass(frozen=True)
class AttemptRecord:
    """One failed attempt or block event. Never updated once written."""

    identifier: str
    limit_type: str
    created_at: datetime
    attempt_count: int
    blocked: bool

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "limit_type": self.limit_type,
            "created_at": self.created_at.isoformat(),
            "attempt_count": self.attempt_count,
            "blocked": self.blocked,
        }


def resolve_limit_type(value) -> RateLimitType:
    """Return the RateLimitType for *value* (member or string value)."""
    if isinstance(value, RateLimitType):
        return value
    try:
        return RateLimitType(value)
    except ValueError:
        known = ", ".join(t.value for t in RateLimitType)
        raise RateLimitConfigError(
            f"Unknown rate limit type {value!r}. Known types: {known}."
        ) from None


def get_config(limit_type) -> RateLimitConfig:
    return RATE_LIMIT_CONFIGS[resolve_limit_type(limit_type)]


def make_key(limit_type, identifier: str) -> str:
    """Compose the stored identifier: ``{type}_{identifier}``."""
    return f"{resolve_limit_type(limit_type).value}_{identifier}"
