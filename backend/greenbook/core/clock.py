"""UTC timestamp helpers shared by stores and services."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")
