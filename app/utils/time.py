"""Time utilities (UTC now, aware normalization, elapsed formatting)."""
from __future__ import annotations
from datetime import datetime, timezone, timedelta

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware shift ends."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def format_elapsed(start: datetime, end: datetime | None = None) -> str:
    delta: timedelta = (end or utc_now()) - start
    ms = int(delta.total_seconds() * 1000)
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms/1000:.2f}s"
    return f"{delta.total_seconds()/60:.2f}m"

__all__ = ["utc_now", "ensure_aware", "format_elapsed"]
