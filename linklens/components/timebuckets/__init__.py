"""
Time bucket component - Timezone-correct bucketing for charts.
"""

from .component import (
    DAY_NAMES,
    assign,
    best_time_to_share,
    bucket_counts,
    bucket_key,
    filter_in_range,
    format_hour_12,
    generate_buckets,
    peak_time,
    period_change,
    resolve_timezone,
    run_views_over_time,
    to_local,
    validate_range,
    views_by_hour,
    views_by_weekday,
    week_start,
)
from .models import (
    Bucket,
    BucketConfig,
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

__all__ = [
    # Component functions
    "run_views_over_time",
    # Pure functions
    "resolve_timezone",
    "to_local",
    "week_start",
    "bucket_key",
    "assign",
    "generate_buckets",
    "filter_in_range",
    "bucket_counts",
    "views_by_hour",
    "views_by_weekday",
    "peak_time",
    "best_time_to_share",
    "format_hour_12",
    "period_change",
    "validate_range",
    "DAY_NAMES",
    # Models
    "Bucket",
    "BucketConfig",
    "DayCount",
    "Granularity",
    "HourCount",
    "PeakTime",
    "ShareWindow",
    "TimeBucketValidationError",
    "TimeSeriesPoint",
    "ViewsOverTimeInput",
    "ViewsOverTimeOutput",
]
