import os
import time
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def _timezone() -> ZoneInfo:
    name = os.environ.get("APP_TIMEZONE", "Asia/Kolkata")
    return ZoneInfo(name)


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def format_display_date(dt: Optional[datetime]) -> str:
    if dt is None:
        return "N/A"
    # Stored timestamps without tzinfo are UTC (SQLite drops the offset).
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    local = dt.astimezone(_timezone())
    return f"{local.month}/{local.day}/{local.year}"
