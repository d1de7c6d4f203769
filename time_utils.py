# time_utils.py
from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def age_seconds(dt: datetime, now: Optional[datetime] = None) -> float:
    # naive timestamps are treated as UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = ((now or now_utc()) - dt).total_seconds()
    return max(0.0, delta)
