from __future__ import annotations

from datetime import datetime
from typing import NamedTuple

from hn_forest.constants import (
    AGE_DAY_HOURS_MAX,
    AGE_DAY_HOURS_MIN,
    AGE_DAYS_PLURAL_MIN,
)


class AgeComponents(NamedTuple):
    days: int
    hours: int
    minutes: int


def age_components(timestamp: datetime, now: datetime) -> AgeComponents:
    """
    Break `now - timestamp` into whole days, then the remaining hours and
    minutes. Hours are always 0..23 and minutes 0..59.
    """
    delta = now - timestamp
    hours, rem = divmod(delta.seconds, 3600)
    return AgeComponents(days=delta.days, hours=hours, minutes=rem // 60)


def format_age_components(days: int, hours: int, minutes: int) -> str:
    # Checks run in this order; the day branch tests hours but prints days.
    if hours == 0:
        return f"{minutes} minutes ago"
    if hours == 1:
        return f"{hours} hour ago"
    if AGE_DAY_HOURS_MIN <= hours <= AGE_DAY_HOURS_MAX:
        return f"{days} day ago"
    if days > AGE_DAYS_PLURAL_MIN:
        return f"{days} days ago"
    return f"{hours} hours ago"


def format_age(timestamp: datetime, now: datetime) -> str:
    """Human-readable age of `timestamp` relative to `now`."""
    return format_age_components(*age_components(timestamp, now))
