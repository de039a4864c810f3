"""
Timezone-aware date/time helpers.

Attendance dates and times are civil values in the organization timezone
(settings.ORG_TIMEZONE, Asia/Manila by default): a "day" starts at local midnight, not UTC.
Everything else in the app receives dates/times already resolved here.
"""
from datetime import date, datetime, time, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc
ORG_TZ = ZoneInfo(settings.ORG_TIMEZONE)

SECONDS_PER_DAY = 24 * 60 * 60


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def to_org_tz(dt: datetime) -> datetime:
    """Convert to the organization timezone. Naive datetimes are treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(ORG_TZ)


def current_civil_date(now: Optional[datetime] = None) -> date:
    """Today's date in the organization timezone."""
    return to_org_tz(now or now_utc()).date()


def current_wall_clock_time(now: Optional[datetime] = None) -> time:
    """Current organization wall-clock time truncated to whole seconds."""
    return to_org_tz(now or now_utc()).time().replace(microsecond=0, tzinfo=None)


class OrgClock:
    """
    Source of "now" for attendance actions.

    Services take a clock explicitly instead of reading the system time so that
    tests (and replays) can pin the current instant.
    """

    def now(self) -> datetime:
        return now_utc()

    def today(self) -> date:
        return current_civil_date(self.now())

    def current_time(self) -> time:
        return current_wall_clock_time(self.now())


def combine_civil(on_date: date, at: time) -> datetime:
    """Full aware timestamp for a wall-clock time on a civil date."""
    return datetime.combine(on_date, at.replace(tzinfo=None), tzinfo=ORG_TZ)


def duration_seconds(start: time, end: time, on_date: date) -> int:
    """end - start in whole seconds on on_date; negative when end precedes start."""
    delta = combine_civil(on_date, end) - combine_civil(on_date, start)
    return int(delta.total_seconds())


def duration_minutes(start: time, end: time, on_date: date) -> float:
    """
    end - start in minutes, both taken as timestamps on on_date.

    May be negative if end < start; callers decide whether that is invalid or zero.
    """
    return duration_seconds(start, end, on_date) / 60


def is_late(time_in: time, standard_start: Optional[time] = None) -> bool:
    """True iff time_in is strictly later than the standard start (09:00:00 by default)."""
    if standard_start is None:
        standard_start = settings.standard_start_time()
    return time_in.replace(tzinfo=None) > standard_start.replace(tzinfo=None)


def time_to_seconds(value: time) -> int:
    """Seconds since midnight for a wall-clock time."""
    return value.hour * 3600 + value.minute * 60 + value.second


def seconds_to_clock(seconds: Optional[Union[int, float]]) -> Optional[str]:
    """
    Convert seconds since midnight (e.g. an average of clock-ins) to HH:MM:SS.

    Fractional seconds are truncated. None stays None.
    """
    if seconds is None:
        return None
    total = int(seconds)
    if total < 0 or total >= SECONDS_PER_DAY:
        raise ValueError(f"seconds out of range for a wall-clock time: {seconds}")
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_clock(value: Union[str, time]) -> time:
    """Parse a strict HH:MM or HH:MM:SS string; raises ValueError when malformed."""
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM:SS")
    return time(*(int(p) for p in parts))


def iso_org(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a timestamp as ISO-8601 in the organization timezone."""
    if dt is None:
        return None
    return to_org_tz(dt).isoformat()
