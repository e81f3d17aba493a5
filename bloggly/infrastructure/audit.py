"""Rate limit audit trail.

One JSON object per line in ``$AUDIT_LOG_DIR/audit.log`` (default
``logs/audit.log``): blocks and fail-open decisions, with the policy type and
the stored key so entries can be matched against ``rate_limit_logs`` rows.
"""
import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

_LOCK = threading.Lock()

ROOT = Path(__file__).resolve().parent.parent.parent
LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR") or ROOT / "logs")
LOG_FILE = LOG_DIR / "audit.log"


def log_event(action: str, identifier: str, limit_type: str, details: dict | None = None) -> None:
    """Append a rate limit event (``rate_limit_blocked`` / ``rate_limit_fail_open``)."""
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "type": limit_type,
        "identifier": identifier,
        "key": f"{limit_type}_{identifier}",
        "details": details or {},
    }
    with _LOCK:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
