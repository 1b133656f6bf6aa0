"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Session idle expiry checks
- Timestamp utilities
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Returns the current timezone-aware UTC time.
    """
    return datetime.now(timezone.utc)


def is_session_expired(last_interaction: Optional[datetime], timeout_minutes: int = 30, now: Optional[datetime] = None) -> bool:
    """
    Checks if a session has expired based on last interaction time.
    """
    if not last_interaction:
        return True

    now = now or utc_now()
    expiry_time = last_interaction + timedelta(minutes=timeout_minutes)
    return now > expiry_time


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """
    Milliseconds since the epoch, used to build external references.
    """
    dt = dt or utc_now()
    return int(dt.timestamp() * 1000)
