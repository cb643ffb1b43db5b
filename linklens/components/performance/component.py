"""
Performance component - Volume-gated link scores and link summaries.

A link with 2 visits and 1 download must not outscore a link with 400 solid
visits, so every quality signal is scaled by a volume multiplier that only
reaches 1.0 at 500 views.

Invariants:
- A link with zero views scores exactly 0
- Every score is an integer in [0, 100]
- File links below 500 views score at most round(volume * 0.25 + 75)
- Labels: >= 70 Excellent, >= 40 Good, >= 20 Moderate, otherwise Needs attention
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta, tzinfo

from ...core.mathutil import (
    clamp_percent,
    clamp_score,
    mean,
    percent,
    percent_int,
    round_half_up,
    safe_ratio,
)
from ..access_logs.models import UNKNOWN, AccessLogRecord, LinkType
from ..access_logs.ports import AccessLogRepoPort, ClockPort
from ..identity import group_by_viewer, unique_viewer_count
from ..scoring import lead_counts, score_viewers
from ..scoring.models import ScoringConfig
from ..timebuckets import resolve_timezone, to_local
from .models import (
    DimensionCount,
    LinkPerformance,
    LinkPerformanceInput,
    LinkPerformanceOutput,
    LinkRanking,
    LinkSummary,
    PerformanceConfig,
    PerformanceLabel,
    PerformanceValidationError,
)

logger = logging.getLogger(__name__)


# --- Default Configuration ---

DEFAULT_CONFIG = PerformanceConfig()

# (max days since last click, recency points); anything older scores 5
RECENCY_STEPS: tuple[tuple[int, int], ...] = (
    (1, 100),
    (3, 90),
    (7, 70),
    (14, 50),
    (30, 30),
    (60, 15),
)
RECENCY_FLOOR = 5

# (min this-week / last-week ratio, velocity points); anything lower scores 5
VELOCITY_STEPS: tuple[tuple[float, int], ...] = (
    (2.0, 100),
    (1.5, 80),
    (1.0, 50),
    (0.5, 20),
)
VELOCITY_FLOOR = 5

DIMENSION_FIELDS = frozenset(
    {
        "country",
        "city",
        "region",
        "device_type",
        "browser",
        "os",
        "language",
        "traffic_source",
        "utm_source",
        "utm_medium",
        "utm_campaign",
    }
)

DEVICE_LABELS: tuple[tuple[str, str], ...] = (
    ("desktop", "Desktop"),
    ("mobile", "Mobile"),
    ("tablet", "Tablet"),
)


# --- Pure Functions (Functional Core) ---


def volume_score(views: int, config: PerformanceConfig = DEFAULT_CONFIG) -> float:
    """min(100, 20 * log10(views + 1)); unrounded."""
    if views <= 0:
        return 0.0
    return min(100.0, config.volume_log_factor * math.log10(views + 1))


def volume_multiplier(views: int, config: PerformanceConfig = DEFAULT_CONFIG) -> float:
    """min(1, views / 500)."""
    if views <= 0:
        return 0.0
    return min(1.0, views / config.full_volume_views)


def record_duration(record: AccessLogRecord) -> float:
    """
    Seconds spent in one visit.

    Falls back to the rounded sum of per-page times when the session total
    was never written.
    """
    if record.total_duration_seconds and record.total_duration_seconds > 0:
        return record.total_duration_seconds
    if record.pages_time_data:
        return round_half_up(sum(record.pages_time_data.values()))
    return 0.0


def file_link_score_from_stats(
    views: int,
    avg_duration: float,
    avg_completion: float,
    download_rate: float,
    config: PerformanceConfig = DEFAULT_CONFIG,
) -> int:
    """
    File-link performance from pre-aggregated stats.

    quality = time*.35 + completion*.35 + download*.30, where
    time = min(100, avg_duration / 120 * 100) and download = min(100, rate * 2).
    Final = round(volume * .25 + quality * multiplier * .75).
    """
    if views <= 0:
        return 0

    time_points = min(100.0, safe_ratio(avg_duration, config.time_target_seconds) * 100)
    download_points = min(100.0, download_rate * config.download_rate_factor)
    quality = (
        time_points * config.time_quality_weight
        + avg_completion * config.completion_quality_weight
        + download_points * config.download_quality_weight
    )

    return clamp_score(
        volume_score(views, config) * config.volume_weight
        + quality * volume_multiplier(views, config) * config.quality_weight
    )


def file_link_score(
    records: Sequence[AccessLogRecord],
    config: PerformanceConfig = DEFAULT_CONFIG,
) -> int:
    """File-link performance straight from log rows."""
    views = len(records)
    if views == 0:
        return 0
    return file_link_score_from_stats(
        views=views,
        avg_duration=mean(record_duration(r) for r in records),
        avg_completion=mean(clamp_percent(r.completion_percentage) for r in records),
        download_rate=percent(sum(1 for r in records if r.downloaded), views),
        config=config,
    )


def days_since(latest: datetime | None, now: datetime, config: PerformanceConfig = DEFAULT_CONFIG) -> int:
    """Whole days between the latest click and now (999 without clicks)."""
    if latest is None:
        return config.no_clicks_days
    return math.floor((now - latest) / timedelta(days=1))


def recency_score(days: int) -> int:
    for max_days, points in RECENCY_STEPS:
        if days <= max_days:
            return points
    return RECENCY_FLOOR


def velocity_score(this_week: int, last_week: int) -> int:
    """Week-over-week click growth; 0 for a link with no clicks last week."""
    if last_week == 0:
        return 0
    ratio = this_week / last_week
    for min_ratio, points in VELOCITY_STEPS:
        if ratio >= min_ratio:
            return points
    return VELOCITY_FLOOR


def weekly_clicks(records: Iterable[AccessLogRecord], now: datetime) -> tuple[int, int]:
    """(clicks in the 7 days before now, clicks in the 7 days before that)."""
    one_week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)
    this_week = 0
    last_week = 0
    for record in records:
        if record.accessed_at >= one_week_ago:
            this_week += 1
        elif record.accessed_at >= two_weeks_ago:
            last_week += 1
    return this_week, last_week


def track_site_link_score(
    records: Sequence[AccessLogRecord],
    now: datetime,
    config: PerformanceConfig = DEFAULT_CONFIG,
) -> int:
    """
    Track-site (redirect) link performance.

    volume + reach + return + recency + velocity bonuses, each bonus scaled
    by the volume multiplier.
    """
    clicks = len(records)
    if clicks == 0:
        return 0

    now = to_local(now, UTC)
    multiplier = volume_multiplier(clicks, config)
    unique_clickers = unique_viewer_count(records) or 1

    reach_bonus = unique_clickers / clicks * 100 * config.reach_weight * multiplier

    returning = sum(1 for r in records if r.is_return_visit)
    return_bonus = returning / unique_clickers * 100 * config.return_weight * multiplier

    latest = max(r.accessed_at for r in records)
    recency_bonus = (
        recency_score(days_since(latest, now, config)) * config.recency_weight * multiplier
    )

    this_week, last_week = weekly_clicks(records, now)
    velocity_bonus = velocity_score(this_week, last_week) * config.velocity_weight * multiplier

    return clamp_score(
        volume_score(clicks, config) + reach_bonus + return_bonus + recency_bonus + velocity_bonus
    )


def link_score(
    records: Sequence[AccessLogRecord],
    link_type: LinkType,
    now: datetime,
    config: PerformanceConfig = DEFAULT_CONFIG,
) -> int:
    """Dispatch on link type."""
    if link_type == LinkType.FILE:
        return file_link_score(records, config)
    if link_type == LinkType.URL:
        return track_site_link_score(records, now, config)
    raise ValueError(f"Unsupported link type: {link_type}")


def performance_label(score: int, config: PerformanceConfig = DEFAULT_CONFIG) -> PerformanceLabel:
    if score >= config.excellent_threshold:
        return "Excellent"
    if score >= config.good_threshold:
        return "Good"
    if score >= config.moderate_threshold:
        return "Moderate"
    return "Needs attention"


def link_performance(
    link_id: str,
    records: Sequence[AccessLogRecord],
    link_type: LinkType,
    now: datetime,
    config: PerformanceConfig = DEFAULT_CONFIG,
) -> LinkPerformance:
    score = link_score(records, link_type, now, config)
    return LinkPerformance(link_id=link_id, score=score, label=performance_label(score, config))


def summarize_link(
    link_id: str,
    records: Sequence[AccessLogRecord],
    link_type: LinkType,
    now: datetime,
    *,
    link_name: str = "",
    tz: tzinfo = UTC,
    config: PerformanceConfig = DEFAULT_CONFIG,
    scoring_config: ScoringConfig | None = None,
) -> LinkSummary:
    """
    Headline numbers for one link.

    "Views today" uses the local calendar date of now in tz.
    """
    performance = link_performance(link_id, records, link_type, now, config)
    total = len(records)
    if total == 0:
        return LinkSummary(link_id=link_id, link_name=link_name, performance=performance)

    groups = group_by_viewer(records)
    returning = sum(1 for g in groups if g.visit_count > 1)
    scores = score_viewers(records, link_type, scoring_config or ScoringConfig())
    counts = lead_counts(scores)
    qr_scans = sum(1 for r in records if r.is_qr_scan)
    today = to_local(now, tz).date()

    return LinkSummary(
        link_id=link_id,
        link_name=link_name,
        performance=performance,
        total_views=total,
        unique_viewers=len(groups),
        hot_leads=counts.hot,
        warm_leads=counts.warm,
        cold_leads=counts.cold,
        download_count=sum(1 for r in records if r.downloaded),
        return_visits=returning,
        return_rate=percent_int(returning, len(groups)),
        qr_scans=qr_scans,
        direct_clicks=total - qr_scans,
        completion_rate=percent_int(
            sum(1 for r in records if (r.completion_percentage or 0) >= config.completed_threshold),
            total,
        ),
        avg_time_spent=round_half_up(mean(r.total_duration_seconds or 0.0 for r in records)),
        views_today=sum(1 for r in records if to_local(r.accessed_at, tz).date() == today),
        last_view_at=max(r.accessed_at for r in records),
    )


def rank_links(
    summaries: Iterable[LinkSummary],
    limit: int = DEFAULT_CONFIG.top_links_limit,
    config: PerformanceConfig = DEFAULT_CONFIG,
) -> LinkRanking:
    """
    Top performers and links needing attention.

    Only links with views are ranked. Top performers score >= 20 and are
    ordered best first; links below 20 are ordered worst first. Ties break
    on link id so the ranking is stable across calls.
    """
    viewed = [s for s in summaries if s.total_views > 0]
    top = sorted(
        (s for s in viewed if s.performance.score >= config.moderate_threshold),
        key=lambda s: (-s.performance.score, s.link_id),
    )
    attention = sorted(
        (s for s in viewed if s.performance.score < config.moderate_threshold),
        key=lambda s: (s.performance.score, s.link_id),
    )
    return LinkRanking(top_performing=tuple(top[:limit]), needs_attention=tuple(attention[:limit]))


def top_dimension(
    records: Sequence[AccessLogRecord],
    field_name: str,
    limit: int | None = 10,
) -> tuple[DimensionCount, ...]:
    """
    Count/percentage breakdown of one categorical field.

    Missing UTM values are skipped; the other dimensions already default
    to "Unknown". Ties keep first-appearance order.

    Raises:
        ValueError: If field_name is not a breakdown dimension
    """
    if field_name not in DIMENSION_FIELDS:
        raise ValueError(f"Unknown dimension: {field_name}")

    counts: Counter[str] = Counter()
    for record in records:
        value = getattr(record, field_name)
        if value is None:
            continue
        counts[value or UNKNOWN] += 1

    total = len(records)
    rows = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    if limit is not None:
        rows = rows[:limit]
    return tuple(
        DimensionCount(name=name, count=count, percentage=percent_int(count, total))
        for name, count in rows
    )


def device_breakdown(records: Sequence[AccessLogRecord]) -> tuple[DimensionCount, ...]:
    """Desktop/Mobile/Tablet rows, skipping devices with no views."""
    counts = Counter(r.device_type.lower() for r in records)
    total = len(records)
    return tuple(
        DimensionCount(name=label, count=counts[key], percentage=percent_int(counts[key], total))
        for key, label in DEVICE_LABELS
        if counts[key] > 0
    )


# --- Component Entry Points ---


def run_link_performance(
    inp: LinkPerformanceInput,
    *,
    repo: AccessLogRepoPort,
    clock: ClockPort,
    config: PerformanceConfig | None = None,
    scoring_config: ScoringConfig | None = None,
) -> LinkPerformanceOutput:
    """
    Summarize one link over a date range.

    Args:
        inp: Link, range and display timezone
        repo: Access log repository port
        clock: Time provider (recency, velocity and "today")
        config: Optional performance config
        scoring_config: Optional viewer scoring config

    Returns:
        LinkPerformanceOutput with the link summary
    """
    metadata = repo.get_file_metadata(inp.file_id)
    if metadata is None:
        return LinkPerformanceOutput(
            summary=None,
            errors=[
                PerformanceValidationError(
                    code="NOT_FOUND",
                    message=f"Link not found: {inp.file_id}",
                    field_name="file_id",
                )
            ],
            success=False,
        )

    records = repo.get_access_logs(inp.file_id, inp.start, inp.end)
    summary = summarize_link(
        inp.file_id,
        records,
        metadata.link_type,
        clock.now_utc(),
        link_name=metadata.name,
        tz=resolve_timezone(inp.timezone),
        config=config or DEFAULT_CONFIG,
        scoring_config=scoring_config,
    )
    logger.debug(
        "Link %s: %s views, performance %s (%s)",
        inp.file_id,
        summary.total_views,
        summary.performance.score,
        summary.performance.label,
    )

    return LinkPerformanceOutput(summary=summary)
