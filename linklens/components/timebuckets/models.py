"""
Time bucket component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Granularity(str, Enum):
    """Bucket width for time series."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# --- Validation Error ---


@dataclass(frozen=True)
class TimeBucketValidationError:
    """Time bucket validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class BucketConfig:
    """Bucketing defaults."""

    default_timezone: str = "UTC"
    default_granularity: Granularity = Granularity.DAY


# --- Bucket Models ---


@dataclass(frozen=True)
class Bucket:
    """One empty slot of a dense series."""

    key: str
    label: str
    full_label: str


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One charted value."""

    bucket_key: str
    bucket_label: str
    full_label: str
    value: int


@dataclass(frozen=True)
class HourCount:
    hour: int
    label: str
    count: int


@dataclass(frozen=True)
class DayCount:
    """Views on one weekday with its share of the total."""

    name: str
    count: int
    percentage: int


@dataclass(frozen=True)
class PeakTime:
    day: str
    hour: str


@dataclass(frozen=True)
class ShareWindow:
    """Suggested sharing days ("Mon & Wed") and hour window ("10AM - 2PM")."""

    days: str
    hours: str


# --- Input / Output Models ---


@dataclass(frozen=True)
class ViewsOverTimeInput:
    """Input for a link's views-over-time chart."""

    file_id: str
    start: datetime
    end: datetime
    granularity: Granularity = Granularity.DAY
    timezone: str = "UTC"


@dataclass(frozen=True)
class ViewsOverTimeOutput:
    """Dense views-over-time series."""

    granularity: Granularity
    timezone: str
    points: tuple[TimeSeriesPoint, ...]
    total: int
    errors: list[TimeBucketValidationError] = field(default_factory=list)
    success: bool = True
