"""
Scoring component - Per-viewer engagement scores.

Computes one 0-100 score for one viewer's aggregated activity on one link.
Content links (file/document/media) and track-site redirect links use
different formulas.

Invariants:
- Every score is an integer in [0, 100]
- Score is non-decreasing in total duration, max completion and visit count
- Hot >= 70, warm >= 40, otherwise cold
- The time-score breakpoint table is fixed; it defines "engaged"
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from functools import reduce

from ...core.mathutil import clamp_score, round_half_up
from ..access_logs.models import AccessLogRecord, LinkType
from ..access_logs.ports import AccessLogRepoPort
from ..identity import group_by_viewer
from .models import (
    IntentBucket,
    LeadCounts,
    ScoreViewersInput,
    ScoreViewersOutput,
    ScoringConfig,
    ScoringValidationError,
    ViewerActivity,
    ViewerScore,
)

logger = logging.getLogger(__name__)


# --- Default Configuration ---

DEFAULT_CONFIG = ScoringConfig()

# (lower seconds, upper seconds, base points, span points)
TIME_SCORE_SEGMENTS: tuple[tuple[int, int, int, int], ...] = (
    (0, 30, 0, 25),
    (30, 60, 25, 15),
    (60, 120, 40, 20),
    (120, 300, 60, 20),
    (300, 600, 80, 20),
)

READ_FULLY_COMPLETION = 90
QUICK_GLANCE_SECONDS = 10


# --- Pure Functions (Functional Core) ---


def time_score(seconds: float) -> int:
    """
    Piecewise time score.

    0 at <= 0s; 0->25 over [0,30); 25->40 over [30,60); 40->60 over [60,120);
    60->80 over [120,300); 80->100 over [300,600); 100 at >= 600s.
    """
    if seconds <= 0:
        return 0
    for lower, upper, base, span in TIME_SCORE_SEGMENTS:
        if seconds < upper:
            return base + round_half_up((seconds - lower) / (upper - lower) * span)
    return 100


def _fold_record(activity: ViewerActivity, record: AccessLogRecord) -> ViewerActivity:
    latest = activity.latest_record
    if latest is None or record.accessed_at > latest.accessed_at:
        latest = record
    return ViewerActivity(
        total_duration=activity.total_duration + (record.total_duration_seconds or 0.0),
        max_completion=max(activity.max_completion, record.completion_percentage or 0.0),
        downloaded=activity.downloaded or record.downloaded,
        visit_count=activity.visit_count + 1,
        latest_record=latest,
    )


def aggregate_viewer(records: Iterable[AccessLogRecord]) -> ViewerActivity:
    """Fold one viewer's rows into score inputs."""
    return reduce(_fold_record, records, ViewerActivity())


def content_score(activity: ViewerActivity, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """
    Content-link score.

    time*.25 + completion*.25 + download*.20 + return*.15 + depth*.15, where
    depth is max completion again (completion is deliberately double counted).
    """
    if activity.visit_count == 0:
        return 0
    completion = max(0.0, min(100.0, activity.max_completion))
    depth = completion
    raw = (
        time_score(activity.total_duration) * config.time_weight
        + completion * config.completion_weight
        + (100 if activity.downloaded else 0) * config.download_weight
        + (100 if activity.is_return else 0) * config.return_weight
        + depth * config.depth_weight
    )
    return clamp_score(raw)


def track_site_score(activity: ViewerActivity, config: ScoringConfig = DEFAULT_CONFIG) -> int:
    """Track-site score: return*.60 + min(100, 33*visits)*.40."""
    if activity.visit_count == 0:
        return 0
    return_points = 100 if activity.is_return else 0
    frequency = min(100, activity.visit_count * config.frequency_points_per_visit)
    return clamp_score(
        return_points * config.track_return_weight + frequency * config.track_frequency_weight
    )


def score_activity(
    activity: ViewerActivity,
    link_type: LinkType,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> int:
    """Dispatch on link type."""
    if link_type == LinkType.FILE:
        return content_score(activity, config)
    if link_type == LinkType.URL:
        return track_site_score(activity, config)
    raise ValueError(f"Unsupported link type: {link_type}")


def score_viewer(
    records: Iterable[AccessLogRecord],
    link_type: LinkType = LinkType.FILE,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> int:
    """Score one viewer's rows on one link."""
    return score_activity(aggregate_viewer(records), link_type, config)


def intent_bucket(score: int, config: ScoringConfig = DEFAULT_CONFIG) -> IntentBucket:
    if score >= config.hot_threshold:
        return "hot"
    if score >= config.warm_threshold:
        return "warm"
    return "cold"


def behaviour_tags(activity: ViewerActivity) -> tuple[str, ...]:
    """Short display tags describing how a viewer engaged."""
    tags: list[str] = []
    if activity.is_return:
        tags.append("Return visitor")
    if activity.downloaded:
        tags.append("Downloaded")
    if activity.max_completion >= READ_FULLY_COMPLETION:
        tags.append("Read fully")
    if activity.visit_count and activity.total_duration < QUICK_GLANCE_SECONDS:
        tags.append("Quick glance")
    return tuple(tags)


def score_viewers(
    records: Iterable[AccessLogRecord],
    link_type: LinkType = LinkType.FILE,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> tuple[ViewerScore, ...]:
    """
    Score every viewer in a batch of one link's rows.

    Viewers appear in first-appearance order.
    """
    results: list[ViewerScore] = []
    for group in group_by_viewer(records):
        activity = aggregate_viewer(group.records)
        score = score_activity(activity, link_type, config)
        latest = activity.latest_record
        results.append(
            ViewerScore(
                viewer_id=group.viewer_id,
                score=score,
                intent_bucket=intent_bucket(score, config),
                visit_count=activity.visit_count,
                downloaded=activity.downloaded,
                total_duration=activity.total_duration,
                max_completion=activity.max_completion,
                email=latest.viewer_email if latest else None,
                name=latest.viewer_name if latest else None,
                file_id=latest.file_id if latest else None,
                file_name=latest.file_name if latest else None,
                last_accessed_at=activity.latest_at,
                tags=behaviour_tags(activity),
            )
        )
    return tuple(results)


def lead_counts(scores: Sequence[ViewerScore]) -> LeadCounts:
    return LeadCounts(
        hot=sum(1 for s in scores if s.intent_bucket == "hot"),
        warm=sum(1 for s in scores if s.intent_bucket == "warm"),
        cold=sum(1 for s in scores if s.intent_bucket == "cold"),
    )


# --- Component Entry Points ---


def run_score_viewers(
    inp: ScoreViewersInput,
    *,
    repo: AccessLogRepoPort,
    config: ScoringConfig | None = None,
) -> ScoreViewersOutput:
    """
    Score every viewer of one link over a date range.

    Args:
        inp: Link and date range
        repo: Access log repository port
        config: Optional scoring config

    Returns:
        ScoreViewersOutput with per-viewer scores and hot/warm/cold counts
    """
    metadata = repo.get_file_metadata(inp.file_id)
    if metadata is None:
        return ScoreViewersOutput(
            viewers=(),
            lead_counts=LeadCounts(),
            errors=[
                ScoringValidationError(
                    code="NOT_FOUND",
                    message=f"Link not found: {inp.file_id}",
                    field_name="file_id",
                )
            ],
            success=False,
        )

    records = repo.get_access_logs(inp.file_id, inp.start, inp.end)
    viewers = score_viewers(records, metadata.link_type, config or DEFAULT_CONFIG)
    counts = lead_counts(viewers)
    logger.debug(
        "Scored %s viewers for %s (hot=%s warm=%s cold=%s)",
        len(viewers),
        inp.file_id,
        counts.hot,
        counts.warm,
        counts.cold,
    )

    return ScoreViewersOutput(viewers=viewers, lead_counts=counts, errors=[], success=True)
