"""Date manipulation utilities"""

from datetime import date, datetime, time, timezone, tzinfo
from typing import Tuple
from zoneinfo import ZoneInfo


def business_timezone(name: str) -> tzinfo:
    """Timezone collection days are counted in"""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def day_bounds(day: date, tz: tzinfo = timezone.utc) -> Tuple[datetime, datetime]:
    """First and last instant of a calendar day in `tz`"""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start, end


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing Z"""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def is_same_day(moment: datetime, day: date, tz: tzinfo = timezone.utc) -> bool:
    """True when `moment` falls on `day` in `tz` (naive timestamps are taken as UTC)"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date() == day
