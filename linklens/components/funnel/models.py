"""
Funnel component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

FunnelKind = Literal["document", "media"]


# --- Validation Error ---


@dataclass(frozen=True)
class FunnelValidationError:
    """Funnel validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class FunnelConfig:
    """
    Funnel thresholds.

    Documents call a viewer "finished" at 95% completion and media at 90%;
    the two are tuned separately. The media summary card uses its own 95%.
    """

    milestone_fractions: tuple[float, float, float] = (0.25, 0.50, 0.75)
    document_thresholds: tuple[float, float, float, float] = (25, 50, 75, 95)
    media_thresholds: tuple[float, float, float, float] = (25, 50, 75, 90)
    segment_count: int = 10
    high_exit_rate: int = 20
    top_exit_limit: int = 3

    media_summary_finished: float = 95
    early_drop_completion: float = 20
    high_drop_off_rate: int = 25
    engaging_page_multiplier: float = 2.0
    max_inferred_pages: int = 500


# --- Funnel Models ---


@dataclass(frozen=True)
class Milestone:
    """One funnel step: how many visits reached a depth."""

    label: str
    short_label: str
    unit: int
    threshold: float
    count: int
    percentage: int


@dataclass(frozen=True)
class Drop:
    """Percentage-point drop between two consecutive milestones."""

    from_label: str
    to_label: str
    drop: int


@dataclass(frozen=True)
class PageRow:
    """Per-page row of a document funnel."""

    page: int
    label: str
    view_count: int = 0
    total_time: float = 0.0
    exit_count: int = 0
    exit_rate: int = 0
    is_popular: bool = False
    is_most_engaging: bool = False
    is_high_exit: bool = False


@dataclass(frozen=True)
class SegmentRow:
    """Per-decile row of a media funnel."""

    segment: int
    label: str
    viewers_in_segment: int = 0
    total_time: float = 0.0
    exit_count: int = 0
    exit_rate: int = 0


@dataclass(frozen=True)
class ExitUnit:
    """A page or decile where visits ended."""

    unit: int
    label: str
    exit_count: int
    exit_rate: int


@dataclass(frozen=True)
class FunnelResult:
    """Milestones, biggest drop and per-unit table for one link."""

    kind: FunnelKind
    milestones: tuple[Milestone, ...] = ()
    biggest_drop: Drop | None = None
    per_unit: tuple[PageRow, ...] | tuple[SegmentRow, ...] = ()
    top_exit_units: tuple[ExitUnit, ...] = ()
    total_visits: int = 0
    total_units: int = 0
    avg_completion: int = 0
    finished_count: int = 0


# --- Summary Card Models ---


@dataclass(frozen=True)
class MediaStats:
    """Watch statistics for the media summary card; None without media rows."""

    avg_watch_time: float | None = None
    watch_completion: float | None = None
    finished_count: int = 0
    early_drop_rate: int | None = None


@dataclass(frozen=True)
class PageStats:
    """Document page highlights; page 1 never counts as a drop-off or focus page."""

    high_drop_off_page: int | None = None
    high_drop_off_rate: int | None = None
    most_engaging_page: int | None = None
    most_engaging_time: float | None = None
    avg_page_time: float | None = None


# --- Input / Output Models ---


@dataclass(frozen=True)
class FunnelInput:
    """Input for building one link's funnel."""

    file_id: str
    start: datetime
    end: datetime


@dataclass(frozen=True)
class FunnelOutput:
    """Output from building one link's funnel."""

    result: FunnelResult | None
    errors: list[FunnelValidationError] = field(default_factory=list)
    success: bool = True
