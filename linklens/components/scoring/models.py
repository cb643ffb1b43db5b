"""
Scoring component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from ..access_logs.models import AccessLogRecord

IntentBucket = Literal["hot", "warm", "cold"]


# --- Validation Error ---


@dataclass(frozen=True)
class ScoringValidationError:
    """Scoring validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class ScoringConfig:
    """
    Viewer score weights and intent cutoffs.

    Hot/warm cutoffs of 70/40 are canonical everywhere a score is bucketed.
    """

    hot_threshold: int = 70
    warm_threshold: int = 40

    time_weight: float = 0.25
    completion_weight: float = 0.25
    download_weight: float = 0.20
    return_weight: float = 0.15
    depth_weight: float = 0.15

    track_return_weight: float = 0.60
    track_frequency_weight: float = 0.40
    frequency_points_per_visit: int = 33


# Two older dashboard views bucketed at 80/50; kept only for comparison.
LEGACY_SCORING_CONFIG = ScoringConfig(hot_threshold=80, warm_threshold=50)


# --- Aggregates ---


@dataclass(frozen=True)
class ViewerActivity:
    """One viewer's rows on one link, folded into score inputs."""

    total_duration: float = 0.0
    max_completion: float = 0.0
    downloaded: bool = False
    visit_count: int = 0
    latest_record: AccessLogRecord | None = None

    @property
    def is_return(self) -> bool:
        return self.visit_count > 1

    @property
    def latest_at(self) -> datetime | None:
        return self.latest_record.accessed_at if self.latest_record else None


@dataclass(frozen=True)
class ViewerScore:
    """Engagement score for one viewer on one link."""

    viewer_id: str
    score: int
    intent_bucket: IntentBucket
    visit_count: int
    downloaded: bool
    total_duration: float
    max_completion: float
    email: str | None = None
    name: str | None = None
    file_id: str | None = None
    file_name: str | None = None
    last_accessed_at: datetime | None = None
    tags: tuple[str, ...] = ()

    @property
    def is_return(self) -> bool:
        return self.visit_count > 1


@dataclass(frozen=True)
class LeadCounts:
    hot: int = 0
    warm: int = 0
    cold: int = 0


# --- Input / Output Models ---


@dataclass(frozen=True)
class ScoreViewersInput:
    """Input for scoring every viewer of one link."""

    file_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class ScoreViewersOutput:
    """Per-viewer scores for one link."""

    viewers: tuple[ViewerScore, ...]
    lead_counts: LeadCounts
    errors: list[ScoringValidationError] = field(default_factory=list)
    success: bool = True
