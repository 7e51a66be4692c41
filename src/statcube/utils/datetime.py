"""Timestamp helpers for build metadata."""

from datetime import datetime
from typing import Optional

import pytz


def get_current_timestamp(time_zone: Optional[str] = None) -> datetime:
    """Get the current timestamp, localized to ``time_zone`` when given.

    Args:
        time_zone: pytz zone name (e.g. 'Europe/London'); UTC when omitted

    Returns:
        Timezone-aware datetime
    """
    now = datetime.now(pytz.utc)
    if time_zone:
        return now.astimezone(pytz.timezone(time_zone))
    return now


def get_build_timestamp(time_zone: Optional[str] = None) -> str:
    """ISO-8601 timestamp stored in the cube metadata table."""
    return get_current_timestamp(time_zone).isoformat()
