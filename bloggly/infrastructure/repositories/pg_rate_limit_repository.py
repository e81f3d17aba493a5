"""PostgreSQL-backed rate limit log repository."""
from datetime import datetime, timezone
from typing import Optional

from bloggly.domain.rate_limit import AttemptRecord
from bloggly.infrastructure.database.models import RateLimitLogModel


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: RateLimitLogModel) -> AttemptRecord:
    return AttemptRecord(
        identifier=row.identifier,
        limit_type=row.limit_type,
        created_at=_as_utc(row.created_at),
        attempt_count=row.attempt_count,
        blocked=row.blocked,
    )


class PgRateLimitRepository:
    """Append-only attempt log on the ``rate_limit_logs`` table.

    Each method runs in its own session and commit; no isolation is held
    across calls.
    """

    def __init__(self, session_factory):
        self._sf = session_factory

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def insert(
        self,
        identifier: str,
        limit_type: str,
        created_at: datetime,
        attempt_count: int,
        blocked: bool = False,
    ) -> None:
        with self._sf() as session:
            session.add(
                RateLimitLogModel(
                    identifier=identifier,
                    limit_type=limit_type,
                    created_at=created_at,
                    attempt_count=attempt_count,
                    blocked=blocked,
                )
            )
            session.commit()

    def delete_expired(self, limit_type: str, before: datetime) -> int:
        """Delete every record of *limit_type* created before *before*."""
        with self._sf() as session:
            deleted = (
                session.query(RateLimitLogModel)
                .filter(
                    RateLimitLogModel.limit_type == limit_type,
                    RateLimitLogModel.created_at < before,
                )
                .delete(synchronize_session=False)
            )
            session.commit()
            return deleted

    def delete_attempts(self, identifier: str) -> int:
        """Delete the non-blocking records of *identifier* (counter reset)."""
        with self._sf() as session:
            deleted = (
                session.query(RateLimitLogModel)
                .filter(
                    RateLimitLogModel.identifier == identifier,
                    RateLimitLogModel.blocked.is_(False),
                )
                .delete(synchronize_session=False)
            )
            session.commit()
            return deleted

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def latest_block(self, identifier: str, since: datetime) -> Optional[AttemptRecord]:
        """Return the newest block record for *identifier* at or after *since*."""
        with self._sf() as session:
            row = (
                session.query(RateLimitLogModel)
                .filter(
                    RateLimitLogModel.identifier == identifier,
                    RateLimitLogModel.blocked.is_(True),
                    RateLimitLogModel.created_at >= since,
                )
                .order_by(RateLimitLogModel.created_at.desc())
                .first()
            )
            return _to_record(row) if row else None

    def count_attempts(self, identifier: str, since: datetime) -> int:
        with self._sf() as session:
            return (
                session.query(RateLimitLogModel)
                .filter(
                    RateLimitLogModel.identifier == identifier,
                    RateLimitLogModel.blocked.is_(False),
                    RateLimitLogModel.created_at >= since,
                )
                .count()
            )

    def count_all(self) -> int:
        with self._sf() as session:
            return session.query(RateLimitLogModel).count()
