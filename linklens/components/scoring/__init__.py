"""
Scoring component - Per-viewer engagement scores and intent buckets.
"""

from .component import (
    TIME_SCORE_SEGMENTS,
    aggregate_viewer,
    behaviour_tags,
    content_score,
    intent_bucket,
    lead_counts,
    run_score_viewers,
    score_activity,
    score_viewer,
    score_viewers,
    time_score,
    track_site_score,
)
from .models import (
    LEGACY_SCORING_CONFIG,
    IntentBucket,
    LeadCounts,
    ScoreViewersInput,
    ScoreViewersOutput,
    ScoringConfig,
    ScoringValidationError,
    ViewerActivity,
    ViewerScore,
)

__all__ = [
    # Component functions
    "run_score_viewers",
    # Pure functions
    "time_score",
    "aggregate_viewer",
    "content_score",
    "track_site_score",
    "score_activity",
    "score_viewer",
    "score_viewers",
    "intent_bucket",
    "lead_counts",
    "behaviour_tags",
    "TIME_SCORE_SEGMENTS",
    # Models
    "IntentBucket",
    "LeadCounts",
    "LEGACY_SCORING_CONFIG",
    "ScoreViewersInput",
    "ScoreViewersOutput",
    "ScoringConfig",
    "ScoringValidationError",
    "ViewerActivity",
    "ViewerScore",
]
