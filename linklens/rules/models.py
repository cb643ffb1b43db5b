from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from linklens.components.funnel.models import FunnelConfig
from linklens.components.insights.models import InsightConfig
from linklens.components.performance.models import PerformanceConfig
from linklens.components.scoring.models import ScoringConfig
from linklens.components.timebuckets.models import BucketConfig, Granularity


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ProjectRules(StrictModel):
    slug: str
    rules_version: str


class ScoringRules(StrictModel):
    hot_threshold: int = Field(default=70, ge=0, le=100)
    warm_threshold: int = Field(default=40, ge=0, le=100)

    time_weight: float = Field(default=0.25, ge=0, le=1)
    completion_weight: float = Field(default=0.25, ge=0, le=1)
    download_weight: float = Field(default=0.20, ge=0, le=1)
    return_weight: float = Field(default=0.15, ge=0, le=1)
    depth_weight: float = Field(default=0.15, ge=0, le=1)

    track_return_weight: float = Field(default=0.60, ge=0, le=1)
    track_frequency_weight: float = Field(default=0.40, ge=0, le=1)
    frequency_points_per_visit: int = Field(default=33, ge=0)

    @model_validator(mode="after")
    def check_thresholds(self) -> ScoringRules:
        if self.warm_threshold >= self.hot_threshold:
            raise ValueError("warm_threshold must be below hot_threshold")
        return self


class PerformanceRules(StrictModel):
    full_volume_views: int = Field(default=500, gt=0)
    volume_log_factor: float = Field(default=20.0, gt=0)

    volume_weight: float = Field(default=0.25, ge=0, le=1)
    quality_weight: float = Field(default=0.75, ge=0, le=1)
    time_target_seconds: float = Field(default=120.0, gt=0)
    time_quality_weight: float = Field(default=0.35, ge=0, le=1)
    completion_quality_weight: float = Field(default=0.35, ge=0, le=1)
    download_quality_weight: float = Field(default=0.30, ge=0, le=1)
    download_rate_factor: float = Field(default=2.0, ge=0)

    reach_weight: float = Field(default=0.20, ge=0, le=1)
    return_weight: float = Field(default=0.20, ge=0, le=1)
    recency_weight: float = Field(default=0.10, ge=0, le=1)
    velocity_weight: float = Field(default=0.10, ge=0, le=1)
    no_clicks_days: int = Field(default=999, ge=0)

    excellent_threshold: int = Field(default=70, ge=0, le=100)
    good_threshold: int = Field(default=40, ge=0, le=100)
    moderate_threshold: int = Field(default=20, ge=0, le=100)

    completed_threshold: float = Field(default=90.0, ge=0, le=100)
    top_links_limit: int = Field(default=3, gt=0)

    @model_validator(mode="after")
    def check_labels(self) -> PerformanceRules:
        if not self.excellent_threshold > self.good_threshold > self.moderate_threshold:
            raise ValueError("label thresholds must be strictly decreasing")
        return self


class FunnelRules(StrictModel):
    document_thresholds: tuple[float, float, float, float] = (25, 50, 75, 95)
    media_thresholds: tuple[float, float, float, float] = (25, 50, 75, 90)
    high_exit_rate: int = Field(default=20, ge=0, le=100)
    top_exit_limit: int = Field(default=3, gt=0)
    media_summary_finished: float = Field(default=95, ge=0, le=100)
    early_drop_completion: float = Field(default=20, ge=0, le=100)
    high_drop_off_rate: int = Field(default=25, ge=0, le=100)
    engaging_page_multiplier: float = Field(default=2.0, gt=0)
    max_inferred_pages: int = Field(default=500, gt=0)

    @model_validator(mode="after")
    def check_thresholds(self) -> FunnelRules:
        for name in ("document_thresholds", "media_thresholds"):
            values = list(getattr(self, name))
            if values != sorted(values):
                raise ValueError(f"{name} must be non-decreasing")
        return self


class InsightRules(StrictModel):
    max_insights: int = Field(default=8, gt=0)
    max_actions: int = Field(default=5, gt=0)
    dashboard_limit: int = Field(default=4, gt=0)
    follow_up_limit: int = Field(default=2, ge=0)
    follow_up_score: int = Field(default=70, ge=0, le=100)
    trending_min_views: int = Field(default=5, ge=0)


class BucketRules(StrictModel):
    default_timezone: str = "UTC"
    default_granularity: Granularity = Granularity.DAY


class Rules(StrictModel):
    project: ProjectRules
    scoring: ScoringRules = ScoringRules()
    performance: PerformanceRules = PerformanceRules()
    funnel: FunnelRules = FunnelRules()
    insights: InsightRules = InsightRules()
    buckets: BucketRules = BucketRules()

    def to_scoring_config(self) -> ScoringConfig:
        return ScoringConfig(**self.scoring.model_dump())

    def to_performance_config(self) -> PerformanceConfig:
        return PerformanceConfig(**self.performance.model_dump())

    def to_funnel_config(self) -> FunnelConfig:
        return FunnelConfig(**self.funnel.model_dump())

    def to_insight_config(self) -> InsightConfig:
        return InsightConfig(**self.insights.model_dump())

    def to_bucket_config(self) -> BucketConfig:
        return BucketConfig(**self.buckets.model_dump())
