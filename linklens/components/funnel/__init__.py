"""
Funnel component - Document page funnels and media watch funnels.
"""

from .component import (
    biggest_drop,
    build_funnel,
    document_funnel,
    exit_segment,
    format_mmss,
    infer_total_pages,
    media_completion,
    media_funnel,
    media_stats,
    milestone_pages,
    page_stats,
    run_funnel,
)
from .models import (
    Drop,
    ExitUnit,
    FunnelConfig,
    FunnelInput,
    FunnelKind,
    FunnelOutput,
    FunnelResult,
    FunnelValidationError,
    MediaStats,
    Milestone,
    PageRow,
    PageStats,
    SegmentRow,
)

__all__ = [
    # Component functions
    "run_funnel",
    # Pure functions
    "document_funnel",
    "media_funnel",
    "build_funnel",
    "infer_total_pages",
    "milestone_pages",
    "biggest_drop",
    "media_completion",
    "exit_segment",
    "media_stats",
    "page_stats",
    "format_mmss",
    # Models
    "Drop",
    "ExitUnit",
    "FunnelConfig",
    "FunnelInput",
    "FunnelKind",
    "FunnelOutput",
    "FunnelResult",
    "FunnelValidationError",
    "MediaStats",
    "Milestone",
    "PageRow",
    "PageStats",
    "SegmentRow",
]
