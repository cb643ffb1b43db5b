"""
Performance component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

PerformanceLabel = Literal["Excellent", "Good", "Moderate", "Needs attention"]


# --- Validation Error ---


@dataclass(frozen=True)
class PerformanceValidationError:
    """Link performance validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class PerformanceConfig:
    """
    Volume-gated link score tunables.

    A link needs full_volume_views to receive full credit for quality
    signals; below that every quality bonus is scaled down linearly.
    """

    full_volume_views: int = 500
    volume_log_factor: float = 20.0

    # File links
    volume_weight: float = 0.25
    quality_weight: float = 0.75
    time_target_seconds: float = 120.0
    time_quality_weight: float = 0.35
    completion_quality_weight: float = 0.35
    download_quality_weight: float = 0.30
    download_rate_factor: float = 2.0

    # Track-site links
    reach_weight: float = 0.20
    return_weight: float = 0.20
    recency_weight: float = 0.10
    velocity_weight: float = 0.10
    no_clicks_days: int = 999

    # Labels
    excellent_threshold: int = 70
    good_threshold: int = 40
    moderate_threshold: int = 20

    completed_threshold: float = 90.0
    top_links_limit: int = 3


# --- Output Models ---


@dataclass(frozen=True)
class LinkPerformance:
    """0-100 performance score for one link."""

    link_id: str
    score: int
    label: PerformanceLabel


@dataclass(frozen=True)
class DimensionCount:
    """One row of a breakdown table (country, device, browser...)."""

    name: str
    count: int
    percentage: int


@dataclass(frozen=True)
class LinkSummary:
    """Headline numbers for one link over a period."""

    link_id: str
    performance: LinkPerformance
    link_name: str = ""
    total_views: int = 0
    unique_viewers: int = 0
    hot_leads: int = 0
    warm_leads: int = 0
    cold_leads: int = 0
    download_count: int = 0
    return_visits: int = 0
    return_rate: int = 0
    qr_scans: int = 0
    direct_clicks: int = 0
    completion_rate: int = 0
    avg_time_spent: int = 0
    views_today: int = 0
    last_view_at: datetime | None = None

    @property
    def avg_engagement(self) -> int:
        """Link-level engagement is the volume-gated performance score."""
        return self.performance.score


@dataclass(frozen=True)
class LinkRanking:
    """Top performing links and links needing attention."""

    top_performing: tuple[LinkSummary, ...] = ()
    needs_attention: tuple[LinkSummary, ...] = ()


@dataclass(frozen=True)
class LinkPerformanceInput:
    """Input for summarizing one link."""

    file_id: str
    start: datetime
    end: datetime
    timezone: str = "UTC"


@dataclass(frozen=True)
class LinkPerformanceOutput:
    """Output from summarizing one link."""

    summary: LinkSummary | None
    errors: list[PerformanceValidationError] = field(default_factory=list)
    success: bool = True
