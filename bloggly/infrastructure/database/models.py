"""SQLAlchemy ORM models -- rate limit log schema."""
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow():
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Rate limit logs (append-only attempt / block records)
# ---------------------------------------------------------------------------

class RateLimitLogModel(Base):
    __tablename__ = "rate_limit_logs"

    # SQLite only autoincrements INTEGER primary keys.
    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    # "{type}_{caller identifier}"
    identifier = Column(Text, nullable=False, index=True)
    limit_type = Column(String(30), nullable=False, index=True)
    attempt_count = Column(Integer, nullable=False, default=0)
    blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    __table_args__ = (
        Index("idx_rate_limit_logs_lookup", "identifier", "blocked", "created_at"),
    )
