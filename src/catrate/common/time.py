# src/catrate/common/time.py
from __future__ import annotations

from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Run stamp for metadata, e.g. '2024-05-01T12:00:00+00:00'."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def local_timezone_label() -> str:
    """Abbreviated name of the process's local zone ('CET', 'UTC', ...)."""
    return datetime.now().astimezone().tzname() or "local"
