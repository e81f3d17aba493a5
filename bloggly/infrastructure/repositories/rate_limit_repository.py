"""Rate limit log persistence (JSON file)."""
import json
import os
import threading
from datetime import datetime
from typing import List, Optional

from bloggly.domain.rate_limit import AttemptRecord


class RateLimitRepository:
    """File-based attempt log for development. Same contract as the PG store."""

    def __init__(self, data_path: str = "data/rate_limit_logs.json"):
        self._data_path = data_path
        self._lock = threading.Lock()

    def insert(
        self,
        identifier: str,
        limit_type: str,
        created_at: datetime,
        attempt_count: int,
        blocked: bool = False,
    ) -> None:
        record = AttemptRecord(
            identifier=identifier,
            limit_type=limit_type,
            created_at=created_at,
            attempt_count=attempt_count,
            blocked=blocked,
        )
        with self._lock:
            entries = self._load()
            entries.append(record.to_dict())
            self._save(entries)

    def delete_expired(self, limit_type: str, before: datetime) -> int:
        return self._delete(
            lambda r: r.limit_type == limit_type and r.created_at < before
        )

    def delete_attempts(self, identifier: str) -> int:
        return self._delete(lambda r: r.identifier == identifier and not r.blocked)

    def latest_block(self, identifier: str, since: datetime) -> Optional[AttemptRecord]:
        blocks = [
            r for r in self._records()
            if r.identifier == identifier and r.blocked and r.created_at >= since
        ]
        if not blocks:
            return None
        return max(blocks, key=lambda r: r.created_at)

    def count_attempts(self, identifier: str, since: datetime) -> int:
        return sum(
            1 for r in self._records()
            if r.identifier == identifier and not r.blocked and r.created_at >= since
        )

    def count_all(self) -> int:
        return len(self._records())

    # ------------------------------------------------------------------

    def _records(self) -> List[AttemptRecord]:
        with self._lock:
            return [self._from_dict(e) for e in self._load()]

    def _delete(self, predicate) -> int:
        with self._lock:
            entries = self._load()
            kept = [e for e in entries if not predicate(self._from_dict(e))]
            if len(kept) != len(entries):
                self._save(kept)
            return len(entries) - len(kept)

    @staticmethod
    def _from_dict(entry: dict) -> AttemptRecord:
        return AttemptRecord(
            identifier=entry["identifier"],
            limit_type=entry["limit_type"],
            created_at=datetime.fromisoformat(entry["created_at"]),
            attempt_count=entry.get("attempt_count", 0),
            blocked=bool(entry.get("blocked", False)),
        )

    def _load(self) -> List[dict]:
        if not os.path.exists(self._data_path):
            return []
        try:
            with open(self._data_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return []

    def _save(self, entries: List[dict]) -> None:
        directory = os.path.dirname(self._data_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self._data_path, "w", encoding="utf-8") as f:
            json.dump(entries, f, indent=2, ensure_ascii=False)
