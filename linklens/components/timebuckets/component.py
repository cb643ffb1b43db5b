"""
Time bucket component - Timezone-correct bucketing for every chart.

Views-over-time, popular hours, top days and peak time all go through this
module so the local-date arithmetic exists exactly once.

Invariants:
- Keys are computed on the local wall clock of the requested timezone
  (a 23:30 local view lands on that local day, not the next UTC day)
- Week buckets start on Sunday, for both the generator and the assigner
- Generated buckets are unique, chronologically ordered and dense
- Sum of bucket counts == number of records within [start, end]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...core.mathutil import percent_int
from ..access_logs.models import AccessLogRecord
from ..access_logs.ports import AccessLogRepoPort
from .models import (
    Bucket,
    DayCount,
    Granularity,
    HourCount,
    PeakTime,
    ShareWindow,
    TimeBucketValidationError,
    TimeSeriesPoint,
    ViewsOverTimeInput,
    ViewsOverTimeOutput,
)

logger = logging.getLogger(__name__)


# --- Default Configuration ---

DAY_NAMES: tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

MONTH_ABBR: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

MONTH_NAMES: tuple[str, ...] = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

MIN_LOGS_FOR_SHARE_WINDOW = 5
SHARE_WINDOW_HOURS = 4
DEFAULT_SHARE_WINDOW_START = 10


# --- Pure Functions (Functional Core) ---


def resolve_timezone(name: str | None) -> tzinfo:
    """
    Resolve an IANA timezone name.

    Unknown or empty names fall back to UTC (logged) rather than failing the
    whole computation.
    """
    if not name:
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return UTC


def to_local(ts: datetime, tz: tzinfo) -> datetime:
    """Convert to the given timezone. Naive datetimes are assumed UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(tz)


def week_start(day: date) -> date:
    """Sunday on or before the given date."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def weekday_index(local: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (local.weekday() + 1) % 7


def _month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def bucket_key(ts: datetime, granularity: Granularity | str, tz: tzinfo) -> str:
    """
    Key of the bucket containing ts.

    Raises:
        ValueError: If granularity is not a known Granularity
    """
    granularity = Granularity(granularity)
    local = to_local(ts, tz)

    if granularity == Granularity.DAY:
        return local.date().isoformat()
    if granularity == Granularity.WEEK:
        return week_start(local.date()).isoformat()
    if granularity == Granularity.MONTH:
        return _month_key(local.year, local.month)
    if granularity == Granularity.HOUR:
        return f"{local.date().isoformat()}T{local.hour:02d}"
    raise ValueError(f"Unknown granularity: {granularity}")


def assign(record: AccessLogRecord, granularity: Granularity | str, tz: tzinfo) -> str:
    """Bucket key for one record."""
    return bucket_key(record.accessed_at, granularity, tz)


def _short_date(day: date) -> str:
    return f"{MONTH_ABBR[day.month - 1]} {day.day}"


def _long_date(day: date) -> str:
    return f"{MONTH_ABBR[day.month - 1]} {day.day}, {day.year}"


def _day_bucket(day: date) -> Bucket:
    return Bucket(key=day.isoformat(), label=_short_date(day), full_label=_long_date(day))


def _week_bucket(day: date) -> Bucket:
    return Bucket(
        key=day.isoformat(),
        label=_short_date(day),
        full_label=f"Week of {_long_date(day)}",
    )


def _month_bucket(year: int, month: int) -> Bucket:
    return Bucket(
        key=_month_key(year, month),
        label=MONTH_ABBR[month - 1],
        full_label=f"{MONTH_NAMES[month - 1]} {year}",
    )


def _hour_bucket(local: datetime) -> Bucket:
    hour_label = f"{local.hour}:00"
    return Bucket(
        key=f"{local.date().isoformat()}T{local.hour:02d}",
        label=hour_label,
        full_label=f"{_long_date(local.date())} {local.hour:02d}:00",
    )


def _generate_hours(start: datetime, end: datetime, tz: tzinfo) -> list[Bucket]:
    cursor = to_local(start, tz).replace(minute=0, second=0, microsecond=0).astimezone(UTC)
    end_utc = to_local(end, UTC)
    buckets: list[Bucket] = []
    seen: set[str] = set()
    while cursor <= end_utc:
        bucket = _hour_bucket(cursor.astimezone(tz))
        # DST fall-back repeats one local hour
        if bucket.key not in seen:
            seen.add(bucket.key)
            buckets.append(bucket)
        cursor += timedelta(hours=1)
    return buckets


def generate_buckets(
    start: datetime,
    end: datetime,
    granularity: Granularity | str,
    tz: tzinfo,
) -> tuple[Bucket, ...]:
    """
    Dense, ordered buckets covering [start, end] in local time.

    Returns an empty tuple when start is after end.
    """
    granularity = Granularity(granularity)
    start, end = to_local(start, UTC), to_local(end, UTC)
    if start > end:
        return ()

    first = to_local(start, tz).date()
    last = to_local(end, tz).date()

    if granularity == Granularity.DAY:
        days = (last - first).days
        return tuple(_day_bucket(first + timedelta(days=i)) for i in range(days + 1))

    if granularity == Granularity.WEEK:
        current = week_start(first)
        weeks: list[Bucket] = []
        while current <= last:
            weeks.append(_week_bucket(current))
            current += timedelta(days=7)
        return tuple(weeks)

    if granularity == Granularity.MONTH:
        year, month = first.year, first.month
        months: list[Bucket] = []
        while (year, month) <= (last.year, last.month):
            months.append(_month_bucket(year, month))
            month += 1
            if month > 12:
                month = 1
                year += 1
        return tuple(months)

    if granularity == Granularity.HOUR:
        return tuple(_generate_hours(start, end, tz))

    raise ValueError(f"Unknown granularity: {granularity}")


def filter_in_range(
    records: Iterable[AccessLogRecord],
    start: datetime,
    end: datetime,
) -> tuple[AccessLogRecord, ...]:
    """Records with start <= accessed_at <= end."""
    start, end = to_local(start, UTC), to_local(end, UTC)
    return tuple(r for r in records if start <= r.accessed_at <= end)


def bucket_counts(
    records: Iterable[AccessLogRecord],
    start: datetime,
    end: datetime,
    granularity: Granularity | str,
    tz: tzinfo,
) -> tuple[TimeSeriesPoint, ...]:
    """
    Dense count series; every generated bucket appears, even at zero.

    Records outside [start, end] are dropped.
    """
    buckets = generate_buckets(start, end, granularity, tz)
    counts = {bucket.key: 0 for bucket in buckets}

    for record in filter_in_range(records, start, end):
        key = assign(record, granularity, tz)
        if key in counts:
            counts[key] += 1

    return tuple(
        TimeSeriesPoint(
            bucket_key=b.key,
            bucket_label=b.label,
            full_label=b.full_label,
            value=counts[b.key],
        )
        for b in buckets
    )


def views_by_hour(records: Iterable[AccessLogRecord], tz: tzinfo) -> tuple[HourCount, ...]:
    """24 local-hour counts, hour 0 first."""
    counts = [0] * 24
    for record in records:
        counts[to_local(record.accessed_at, tz).hour] += 1
    return tuple(HourCount(hour=h, label=f"{h}:00", count=counts[h]) for h in range(24))


def views_by_weekday(records: Sequence[AccessLogRecord], tz: tzinfo) -> tuple[DayCount, ...]:
    """Seven local-weekday counts, Sunday first, with rounded percentages."""
    counts = [0] * 7
    for record in records:
        counts[weekday_index(to_local(record.accessed_at, tz))] += 1
    total = len(records)
    return tuple(
        DayCount(name=name, count=counts[i], percentage=percent_int(counts[i], total))
        for i, name in enumerate(DAY_NAMES)
    )


def _first_max_index(values: Sequence[int]) -> int:
    best = 0
    for index, value in enumerate(values):
        if value > values[best]:
            best = index
    return best


def peak_time(records: Sequence[AccessLogRecord], tz: tzinfo) -> PeakTime | None:
    """Busiest local weekday and hour; the earliest wins ties."""
    if not records:
        return None
    days = [d.count for d in views_by_weekday(records, tz)]
    hours = [h.count for h in views_by_hour(records, tz)]
    return PeakTime(day=DAY_NAMES[_first_max_index(days)], hour=f"{_first_max_index(hours)}:00")


def format_hour_12(hour: int) -> str:
    """0 -> "12AM", 13 -> "1PM"."""
    hour %= 24
    if hour == 0:
        return "12AM"
    if hour == 12:
        return "12PM"
    return f"{hour}AM" if hour < 12 else f"{hour - 12}PM"


def best_time_to_share(records: Sequence[AccessLogRecord], tz: tzinfo) -> ShareWindow | None:
    """
    Top two weekdays and the busiest 4-hour window.

    Needs at least five records to say anything.
    """
    if len(records) < MIN_LOGS_FOR_SHARE_WINDOW:
        return None

    day_counts = views_by_weekday(records, tz)
    top_days = sorted(day_counts, key=lambda d: d.count, reverse=True)[:2]

    hours = [h.count for h in views_by_hour(records, tz)]
    best_sum = 0
    best_start = DEFAULT_SHARE_WINDOW_START
    for start in range(24 - SHARE_WINDOW_HOURS):
        window = sum(hours[start : start + SHARE_WINDOW_HOURS])
        if window > best_sum:
            best_sum = window
            best_start = start

    return ShareWindow(
        days=" & ".join(d.name[:3] for d in top_days),
        hours=f"{format_hour_12(best_start)} - {format_hour_12(best_start + SHARE_WINDOW_HOURS)}",
    )


def period_change(current: float, previous: float) -> int:
    """Percent change vs the previous period (100 when growing from zero)."""
    if previous > 0:
        return percent_int(current - previous, previous)
    return 100 if current > 0 else 0


def validate_range(start: datetime, end: datetime) -> list[TimeBucketValidationError]:
    errors: list[TimeBucketValidationError] = []
    if to_local(start, UTC) > to_local(end, UTC):
        errors.append(
            TimeBucketValidationError(
                code="INVALID_RANGE",
                message="start must not be after end",
                field_name="start",
            )
        )
    return errors


# --- Component Entry Points ---


def run_views_over_time(
    inp: ViewsOverTimeInput,
    *,
    repo: AccessLogRepoPort,
) -> ViewsOverTimeOutput:
    """
    Build a link's dense views-over-time series.

    Args:
        inp: Link, range, granularity and timezone
        repo: Access log repository port

    Returns:
        ViewsOverTimeOutput with one point per bucket
    """
    errors = validate_range(inp.start, inp.end)
    if errors:
        return ViewsOverTimeOutput(
            granularity=inp.granularity,
            timezone=inp.timezone,
            points=(),
            total=0,
            errors=errors,
            success=False,
        )

    tz = resolve_timezone(inp.timezone)
    records = repo.get_access_logs(inp.file_id, inp.start, inp.end)
    points = bucket_counts(records, inp.start, inp.end, inp.granularity, tz)

    return ViewsOverTimeOutput(
        granularity=inp.granularity,
        timezone=str(tz),
        points=points,
        total=sum(p.value for p in points),
        errors=[],
        success=True,
    )
