"""
Funnel component - Document and media drop-off analysis.

Documents are measured in pages, media in tenths of the running time. Both
share the milestone logic: four completion thresholds, each expressed as a
share of all visits, and the single largest drop between consecutive steps.

Invariants:
- Milestone percentages are non-increasing (thresholds only increase)
- "Popular" and "Most Engaging" each go to at most one page, and only to a
  strict, untied maximum
- "High Exit" never marks the final page
- Every rate guards a zero denominator
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Sequence

from ...core.mathutil import mean, percent_int, round_half_up
from ..access_logs import categorize
from ..access_logs.models import AccessLogRecord, ContentCategory
from ..access_logs.ports import AccessLogRepoPort
from .models import (
    Drop,
    ExitUnit,
    FunnelConfig,
    FunnelInput,
    FunnelOutput,
    FunnelResult,
    FunnelValidationError,
    MediaStats,
    Milestone,
    PageRow,
    PageStats,
    SegmentRow,
)

logger = logging.getLogger(__name__)


# --- Default Configuration ---

DEFAULT_CONFIG = FunnelConfig()

START_LABEL = "Start"


# --- Pure Functions (Functional Core) ---


def format_mmss(seconds: float) -> str:
    """75 -> "1:15"."""
    total = max(0, int(seconds))
    return f"{total // 60}:{total % 60:02d}"


def infer_total_pages(
    records: Sequence[AccessLogRecord],
    configured: int | None = None,
    limit: int = DEFAULT_CONFIG.max_inferred_pages,
) -> int:
    """
    Configured page count, else the highest page seen in time data or exits.

    Inferred pages above `limit` are ignored; a single corrupt page key must
    not size the per-page table.
    """
    if configured and configured > 0:
        return configured
    seen = [page for r in records for page in r.pages_time_data]
    seen.extend(r.exit_page for r in records if r.exit_page)
    kept = [page for page in seen if page <= limit]
    if len(kept) < len(seen):
        logger.warning(
            "Ignored %d page numbers above %d while inferring page count",
            len(seen) - len(kept),
            limit,
        )
    return max(kept, default=0)


def milestone_pages(total_pages: int, config: FunnelConfig = DEFAULT_CONFIG) -> tuple[int, ...]:
    """ceil(total * 25/50/75%) plus the last page."""
    return tuple(math.ceil(total_pages * f) for f in config.milestone_fractions) + (total_pages,)


def _milestones(
    steps: Sequence[tuple[str, str, int, float]],
    completions: Sequence[float],
) -> tuple[Milestone, ...]:
    visits = len(completions)
    milestones = []
    for label, short_label, unit, threshold in steps:
        count = sum(1 for c in completions if c >= threshold)
        milestones.append(
            Milestone(
                label=label,
                short_label=short_label,
                unit=unit,
                threshold=threshold,
                count=count,
                percentage=percent_int(count, visits),
            )
        )
    return tuple(milestones)


def biggest_drop(milestones: Sequence[Milestone]) -> Drop | None:
    """
    Largest percentage-point drop between consecutive milestones.

    Everyone is at 100% at the start. The earliest drop wins ties; None when
    nothing drops.
    """
    best: Drop | None = None
    previous_label, previous_pct = START_LABEL, 100
    for milestone in milestones:
        drop = previous_pct - milestone.percentage
        if drop > 0 and (best is None or drop > best.drop):
            best = Drop(from_label=previous_label, to_label=milestone.short_label, drop=drop)
        previous_label, previous_pct = milestone.short_label, milestone.percentage
    return best


def _unique_max_index(values: Sequence[float]) -> int | None:
    """Index of a strictly unique positive maximum, else None."""
    if not values:
        return None
    top = max(values)
    if top <= 0 or sum(1 for v in values if v == top) != 1:
        return None
    return values.index(top)


def _top_exits(
    rows: Sequence[tuple[int, str, int, int]],
    limit: int,
) -> tuple[ExitUnit, ...]:
    ranked = sorted((r for r in rows if r[2] > 0), key=lambda r: r[3], reverse=True)
    return tuple(
        ExitUnit(unit=unit, label=label, exit_count=count, exit_rate=rate)
        for unit, label, count, rate in ranked[:limit]
    )


def document_funnel(
    records: Sequence[AccessLogRecord],
    total_pages: int | None = None,
    config: FunnelConfig = DEFAULT_CONFIG,
) -> FunnelResult:
    """
    Page funnel for a document link.

    Milestones count visits with completion >= 25/50/75/95; the per-page
    table sums time (averages are a display concern) and counts exits.
    """
    total = infer_total_pages(records, total_pages, config.max_inferred_pages)
    visits = len(records)
    if total <= 0 or visits == 0:
        return FunnelResult(kind="document", total_visits=visits, total_units=max(total, 0))

    completions = [r.completion_percentage or 0.0 for r in records]
    pages = milestone_pages(total, config)
    steps = [
        (f"Page {page}", f"Pg{page}", page, threshold)
        for page, threshold in zip(pages[:-1], config.document_thresholds[:-1])
    ]
    steps.append((f"Finished Pg{total}", f"Pg{total}", total, config.document_thresholds[-1]))
    milestones = _milestones(steps, completions)

    view_counts = [0] * total
    total_times = [0.0] * total
    exit_counts = [0] * total
    for record in records:
        for page, seconds in record.pages_time_data.items():
            if 1 <= page <= total:
                view_counts[page - 1] += 1
                total_times[page - 1] += seconds
        if record.exit_page and 1 <= record.exit_page <= total:
            exit_counts[record.exit_page - 1] += 1

    popular = _unique_max_index(view_counts)
    engaging = _unique_max_index(total_times)
    rows = []
    for index in range(total):
        page = index + 1
        exit_rate = percent_int(exit_counts[index], visits)
        rows.append(
            PageRow(
                page=page,
                label=f"Page {page}",
                view_count=view_counts[index],
                total_time=total_times[index],
                exit_count=exit_counts[index],
                exit_rate=exit_rate,
                is_popular=index == popular,
                is_most_engaging=index == engaging,
                is_high_exit=exit_rate >= config.high_exit_rate and page != total,
            )
        )

    return FunnelResult(
        kind="document",
        milestones=milestones,
        biggest_drop=biggest_drop(milestones),
        per_unit=tuple(rows),
        top_exit_units=_top_exits(
            [(r.page, r.label, r.exit_count, r.exit_rate) for r in rows], config.top_exit_limit
        ),
        total_visits=visits,
        total_units=total,
        avg_completion=round_half_up(mean(completions)),
        finished_count=sum(1 for c in completions if c >= config.document_thresholds[-1]),
    )


def media_completion(record: AccessLogRecord, total_duration: float | None) -> float:
    """watch / (own duration or total duration) * 100, capped at 100."""
    duration = record.video_duration_seconds or total_duration
    if not duration or not record.watch_time_seconds:
        return 0.0
    return min(100.0, record.watch_time_seconds / duration * 100)


def exit_segment(record: AccessLogRecord, completion: float, segment_count: int = 10) -> int:
    """
    Decile where a visit ended.

    The highest decile with recorded watch time, else estimated from
    completion.
    """
    watched = [k for k, v in record.segments_time_data.items() if v > 0 and 0 <= k < segment_count]
    if watched:
        return max(watched)
    return min(math.floor(completion / (100 / segment_count)), segment_count - 1)


def media_funnel(
    records: Sequence[AccessLogRecord],
    video_duration: float | None = None,
    config: FunnelConfig = DEFAULT_CONFIG,
) -> FunnelResult:
    """
    Time funnel for a media link.

    Only rows with a recorded watch time count as media visits.
    """
    media = [r for r in records if r.watch_time_seconds is not None]
    if not media:
        return FunnelResult(kind="media")

    duration = video_duration if video_duration and video_duration > 0 else None
    duration = duration or media[0].video_duration_seconds or 0.0
    completions = [media_completion(r, duration) for r in media]

    marks = [math.ceil(duration * f) for f in config.milestone_fractions]
    steps = [
        (format_mmss(mark), format_mmss(mark), mark, threshold)
        for mark, threshold in zip(marks, config.media_thresholds[:-1])
    ]
    end = math.ceil(duration)
    steps.append((f"Finished {format_mmss(end)}", format_mmss(end), end, config.media_thresholds[-1]))
    milestones = _milestones(steps, completions)

    n = config.segment_count
    step = 100 // n
    viewers = [0] * n
    times = [0.0] * n
    exits = [0] * n
    for record, completion in zip(media, completions):
        watched = [k for k, v in record.segments_time_data.items() if v > 0 and 0 <= k < n]
        last = exit_segment(record, completion, n)
        # Without segment data, assume the visit played straight through to its exit
        for k in watched or range(last + 1):
            viewers[k] += 1
        for k, seconds in record.segments_time_data.items():
            if 0 <= k < n:
                times[k] += seconds
        exits[last] += 1

    visits = len(media)
    rows = tuple(
        SegmentRow(
            segment=i,
            label=f"{i * step}-{(i + 1) * step}%",
            viewers_in_segment=viewers[i],
            total_time=times[i],
            exit_count=exits[i],
            exit_rate=percent_int(exits[i], visits),
        )
        for i in range(n)
    )

    return FunnelResult(
        kind="media",
        milestones=milestones,
        biggest_drop=biggest_drop(milestones),
        per_unit=rows,
        # Leaving in the last decile means finishing, not dropping off
        top_exit_units=_top_exits(
            [(r.segment, r.label, r.exit_count, r.exit_rate) for r in rows[:-1]],
            config.top_exit_limit,
        ),
        total_visits=visits,
        total_units=n,
        avg_completion=round_half_up(mean(completions)),
        finished_count=sum(1 for c in completions if c >= config.media_thresholds[-1]),
    )


def build_funnel(
    records: Sequence[AccessLogRecord],
    category: ContentCategory,
    *,
    total_pages: int | None = None,
    video_duration: float | None = None,
    config: FunnelConfig = DEFAULT_CONFIG,
) -> FunnelResult:
    """
    Pick the funnel variant for a content category.

    Raises:
        ValueError: For track-site links, which have no funnel
    """
    if category == ContentCategory.FILE_MEDIA:
        return media_funnel(records, video_duration, config)
    if category in (ContentCategory.FILE_DOC, ContentCategory.FILE_IMAGE, ContentCategory.FILE_OTHER):
        return document_funnel(records, total_pages, config)
    if category == ContentCategory.FILE_URL:
        raise ValueError("Track-site links have no funnel")
    raise ValueError(f"Unknown content category: {category}")


def _stats_completion(record: AccessLogRecord) -> float:
    if record.completion_percentage:
        return record.completion_percentage
    if record.watch_time_seconds and record.video_duration_seconds:
        return record.watch_time_seconds / record.video_duration_seconds * 100
    return 0.0


def media_stats(records: Sequence[AccessLogRecord], config: FunnelConfig = DEFAULT_CONFIG) -> MediaStats:
    """Average watch time, watch completion, finishers and early drops."""
    media = [
        r for r in records if r.watch_time_seconds is not None or r.video_duration_seconds is not None
    ]
    if not media:
        return MediaStats()

    completions = [_stats_completion(r) for r in media]
    return MediaStats(
        avg_watch_time=mean(r.watch_time_seconds or r.total_duration_seconds or 0.0 for r in media),
        watch_completion=min(100.0, mean(completions)),
        finished_count=sum(1 for c in completions if c >= config.media_summary_finished),
        early_drop_rate=percent_int(
            sum(1 for c in completions if c < config.early_drop_completion), len(media)
        ),
    )


def page_stats(
    records: Sequence[AccessLogRecord],
    total_pages: int | None,
    config: FunnelConfig = DEFAULT_CONFIG,
) -> PageStats:
    """
    Drop-off and focus pages for the document summary card.

    Drop-off pages run from 2 to total - 1; the most engaging page is page 2
    or later with an average time above twice the mean page average.
    """
    if not total_pages or total_pages <= 1:
        return PageStats()

    views = len(records)
    exits: dict[int, int] = defaultdict(int)
    page_times: dict[int, list[float]] = defaultdict(list)
    for record in records:
        if record.exit_page:
            exits[record.exit_page] += 1
        for page, seconds in record.pages_time_data.items():
            page_times[page].append(seconds)

    high_page = high_rate = None
    candidates = sorted(
        ((page, percent_int(count, views)) for page, count in exits.items() if 1 < page < total_pages),
        key=lambda item: item[1],
        reverse=True,
    )
    if candidates and candidates[0][1] > config.high_drop_off_rate:
        high_page, high_rate = candidates[0]

    averages = {page: mean(times) for page, times in page_times.items()}
    avg_page_time = mean(averages.values())

    engaging_page = engaging_time = None
    later_pages = sorted(
        ((page, avg) for page, avg in averages.items() if page != 1),
        key=lambda item: item[1],
        reverse=True,
    )
    if later_pages and later_pages[0][1] > avg_page_time * config.engaging_page_multiplier:
        engaging_page, engaging_time = later_pages[0]

    return PageStats(
        high_drop_off_page=high_page,
        high_drop_off_rate=high_rate,
        most_engaging_page=engaging_page,
        most_engaging_time=engaging_time,
        avg_page_time=avg_page_time,
    )


# --- Component Entry Points ---


def run_funnel(
    inp: FunnelInput,
    *,
    repo: AccessLogRepoPort,
    config: FunnelConfig | None = None,
) -> FunnelOutput:
    """
    Build the funnel for one link over a date range.

    Args:
        inp: Link and date range
        repo: Access log repository port
        config: Optional funnel config

    Returns:
        FunnelOutput with the document or media funnel
    """
    metadata = repo.get_file_metadata(inp.file_id)
    if metadata is None:
        return FunnelOutput(
            result=None,
            errors=[
                FunnelValidationError(
                    code="NOT_FOUND",
                    message=f"Link not found: {inp.file_id}",
                    field_name="file_id",
                )
            ],
            success=False,
        )

    category = categorize(metadata)
    if category == ContentCategory.FILE_URL:
        return FunnelOutput(
            result=None,
            errors=[
                FunnelValidationError(
                    code="UNSUPPORTED_LINK_TYPE",
                    message="Track-site links have no funnel",
                    field_name="file_id",
                )
            ],
            success=False,
        )

    records = repo.get_access_logs(inp.file_id, inp.start, inp.end)
    result = build_funnel(
        records,
        category,
        total_pages=metadata.total_pages,
        video_duration=metadata.video_duration_seconds,
        config=config or DEFAULT_CONFIG,
    )
    logger.debug(
        "Funnel for %s: %s %s visits over %s units",
        inp.file_id,
        result.total_visits,
        result.kind,
        result.total_units,
    )

    return FunnelOutput(result=result)
