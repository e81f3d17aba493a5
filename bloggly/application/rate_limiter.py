"""Attempt-windowed rate limiter.

Failed attempts are appended to a durable log keyed by ``{type}_{identifier}``.
Once a type's ``max_attempts`` failures land inside its window, a block record
is written and every attempt is denied until ``block_duration_ms`` has passed,
whatever the outcome of later attempts. A success clears the failure counter
but never lifts a block.

Any store error fails open: the request is allowed and the error is logged.
Unknown types and empty identifiers are caller errors and are raised.

There is no locking around count-then-insert: two concurrent failures for the
same key may both pass under the same ceiling.
"""
import logging
import math
from datetime import datetime, timedelta, timezone

from bloggly.domain.rate_limit import (
    RateLimitResult,
    RateLimitType,
    get_config,
    make_key,
    resolve_limit_type,
)
from bloggly.infrastructure.audit import log_event

log = logging.getLogger("bloggly.rate_limit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """Evaluate attempts against the per-type policies.

    *repository* is a PgRateLimitRepository or RateLimitRepository.
    *clock* returns the current timezone-aware UTC datetime.
    *audit* receives ``(action, identifier, limit_type, details)`` for block and
    fail-open events.
    """

    def __init__(self, repository, clock=None, audit=log_event):
        self._repo = repository
        self._clock = clock or _utcnow
        self._audit = audit

    def evaluate(self, identifier: str, success: bool = True, limit_type="auth") -> RateLimitResult:
        limit_type = resolve_limit_type(limit_type)
        if not identifier:
            raise ValueError("Rate limit identifier must be a non-empty string.")

        config = get_config(limit_type)
        try:
            return self._evaluate(identifier, success, limit_type, config)
        except Exception as exc:
            log.exception("Rate limiting error for %s (%s)", identifier, limit_type.value)
            self._record("rate_limit_fail_open", identifier, limit_type, {
                "error": f"{type(exc).__name__}: {exc}",
            })
            return RateLimitResult(
                allowed=True,
                remaining=config.max_attempts,
                reset_time=config.window_seconds,
            )

    def _evaluate(self, identifier, success, limit_type, config) -> RateLimitResult:
        now = self._clock()
        window_start = now - timedelta(milliseconds=config.window_ms)
        block_start = now - timedelta(milliseconds=config.block_duration_ms)
        key = make_key(limit_type, identifier)

        self._repo.delete_expired(limit_type.value, block_start)

        block = self._repo.latest_block(key, block_start)
        if block is not None:
            expires_at = block.created_at + timedelta(milliseconds=config.block_duration_ms)
            reset_time = math.ceil((expires_at - now).total_seconds())
            return RateLimitResult(allowed=False, remaining=0, reset_time=max(reset_time, 0))

        current_count = self._repo.count_attempts(key, window_start)

        if not success:
            attempt_count = current_count + 1
            self._repo.insert(key, limit_type.value, now, attempt_count, blocked=False)
            if attempt_count >= config.max_attempts:
                self._repo.insert(key, limit_type.value, now, attempt_count, blocked=True)
                log.warning(
                    "Blocking %s for %ss after %d failed attempts",
                    key, config.block_seconds, attempt_count,
                )
                self._record("rate_limit_blocked", identifier, limit_type, {
                    "attempt_count": attempt_count,
                    "block_seconds": config.block_seconds,
                })
                return RateLimitResult(allowed=False, remaining=0, reset_time=config.block_seconds)
        else:
            self._repo.delete_attempts(key)

        used = current_count if success else current_count + 1
        return RateLimitResult(
            allowed=True,
            remaining=max(0, config.max_attempts - used),
            reset_time=config.window_seconds,
        )

    def _record(self, action: str, identifier: str, limit_type, details: dict) -> None:
        if self._audit is None:
            return
        try:
            self._audit(action, identifier, limit_type.value, details)
        except Exception as exc:
            log.warning("Audit write failed for %s: %s", action, exc)


# ---------------------------------------------------------------------------
# Process-wide limiter
# ---------------------------------------------------------------------------

_limiter: RateLimiter | None = None


def init_rate_limiter(repository, clock=None, audit=log_event) -> RateLimiter:
    global _limiter
    _limiter = RateLimiter(repository, clock=clock, audit=audit)
    return _limiter


def get_rate_limiter() -> RateLimiter:
    if _limiter is None:
        raise RuntimeError("Rate limiter not initialised. Call init_rate_limiter() first.")
    return _limiter


def rate_limit_auth(identifier: str, success: bool = True, limit_type="auth") -> RateLimitResult:
    """Authentication-style check; *limit_type* may be overridden (e.g. password_reset)."""
    return get_rate_limiter().evaluate(identifier, success, limit_type)


def rate_limit_api(identifier: str, success: bool = True) -> RateLimitResult:
    """Generic API throttling, always under ``api_general``."""
    return get_rate_limiter().evaluate(identifier, success, RateLimitType.API_GENERAL)
