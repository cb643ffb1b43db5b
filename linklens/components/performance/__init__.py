"""
Performance component - Volume-gated link scores, summaries and rankings.
"""

from .component import (
    device_breakdown,
    file_link_score,
    file_link_score_from_stats,
    link_performance,
    link_score,
    performance_label,
    rank_links,
    record_duration,
    recency_score,
    run_link_performance,
    summarize_link,
    top_dimension,
    track_site_link_score,
    velocity_score,
    volume_multiplier,
    volume_score,
)
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

__all__ = [
    # Component functions
    "run_link_performance",
    # Pure functions
    "volume_score",
    "volume_multiplier",
    "record_duration",
    "file_link_score",
    "file_link_score_from_stats",
    "track_site_link_score",
    "recency_score",
    "velocity_score",
    "link_score",
    "link_performance",
    "performance_label",
    "summarize_link",
    "rank_links",
    "top_dimension",
    "device_breakdown",
    # Models
    "DimensionCount",
    "LinkPerformance",
    "LinkPerformanceInput",
    "LinkPerformanceOutput",
    "LinkRanking",
    "LinkSummary",
    "PerformanceConfig",
    "PerformanceLabel",
    "PerformanceValidationError",
]
