"""
Link Analytics API.

Read-only endpoints over one link's access logs: headline summary, views over
time, viewer scores, funnel, and insights with recommended actions. Each
handler fetches nothing itself; it builds the component input and hands the
repository port to the component entry point.
"""

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from linklens.api.deps import (
    get_access_log_repo,
    get_clock,
    get_default_timezone,
    get_rules,
)
from linklens.components.access_logs import (
    AccessLogRepoPort,
    ClockPort,
    SectionType,
    categorize,
)
from linklens.components.funnel import FunnelInput, PageRow, run_funnel
from linklens.components.insights import InsightsInput, run_insights
from linklens.components.performance import LinkPerformanceInput, run_link_performance
from linklens.components.scoring import ScoreViewersInput, run_score_viewers
from linklens.components.timebuckets import (
    Granularity,
    ViewsOverTimeInput,
    run_views_over_time,
)
from linklens.rules.models import Rules

router = APIRouter()

DEFAULT_RANGE_DAYS = 30


# --- Response Models ---


class LinkSummaryResponse(BaseModel):
    """Headline numbers for one link."""

    link_id: str
    link_name: str
    performance_score: int
    performance_label: str
    avg_engagement: int
    total_views: int
    unique_viewers: int
    hot_leads: int
    warm_leads: int
    cold_leads: int
    download_count: int
    return_visits: int
    return_rate: int
    qr_scans: int
    direct_clicks: int
    completion_rate: int
    avg_time_spent: int
    views_today: int
    last_view_at: str | None = None
    start: str
    end: str


class TimeSeriesPointResponse(BaseModel):
    bucket_key: str
    bucket_label: str
    full_label: str
    value: int


class ViewsOverTimeResponse(BaseModel):
    """Dense views-over-time series."""

    granularity: str
    timezone: str
    total: int
    points: list[TimeSeriesPointResponse]


class ViewerScoreResponse(BaseModel):
    viewer_id: str
    score: int
    intent_bucket: str
    visit_count: int
    downloaded: bool
    total_duration: float
    max_completion: float
    email: str | None = None
    name: str | None = None
    last_accessed_at: str | None = None
    tags: list[str]


class ViewersResponse(BaseModel):
    """Per-viewer scores with hot/warm/cold counts."""

    hot: int
    warm: int
    cold: int
    viewers: list[ViewerScoreResponse]


class MilestoneResponse(BaseModel):
    label: str
    short_label: str
    count: int
    percentage: int


class DropResponse(BaseModel):
    from_label: str
    to_label: str
    drop: int


class UnitRowResponse(BaseModel):
    """One page (documents) or one tenth of the duration (media)."""

    unit: int
    label: str
    view_count: int
    total_time: float
    exit_count: int
    exit_rate: int
    is_popular: bool = False
    is_most_engaging: bool = False
    is_high_exit: bool = False


class ExitUnitResponse(BaseModel):
    unit: int
    label: str
    exit_count: int
    exit_rate: int


class FunnelResponse(BaseModel):
    """Milestones and per-unit drop-off for one link."""

    kind: str
    total_visits: int
    total_units: int
    avg_completion: int
    finished_count: int
    milestones: list[MilestoneResponse]
    biggest_drop: DropResponse | None = None
    per_unit: list[UnitRowResponse]
    top_exit_units: list[ExitUnitResponse]


class InsightResponse(BaseModel):
    id: str
    type: str
    priority: str
    category: str
    icon: str
    title: str
    description: str


class ActionButtonResponse(BaseModel):
    label: str
    icon: str


class ActionResponse(BaseModel):
    id: str
    priority: str
    icon: str
    title: str
    reason: str
    buttons: list[ActionButtonResponse]


class InsightsResponse(BaseModel):
    """Insights and recommended actions for one link."""

    section: str
    insights: list[InsightResponse]
    actions: list[ActionResponse]


# --- Helper Functions ---


def parse_datetime(dt_str: str) -> datetime:
    """Parse an ISO-8601 query value; naive values are taken as UTC."""
    try:
        if dt_str.endswith("Z"):
            dt_str = dt_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(dt_str)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid datetime format: {dt_str}",
        ) from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def resolve_range(
    start: str | None, end: str | None, clock: ClockPort
) -> tuple[datetime, datetime]:
    """Parse start/end, defaulting to the last 30 days."""
    end_dt = parse_datetime(end) if end else clock.now_utc()
    start_dt = parse_datetime(start) if start else end_dt - timedelta(days=DEFAULT_RANGE_DAYS)
    if start_dt > end_dt:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end",
        )
    return start_dt, end_dt


def parse_granularity(value: str) -> Granularity:
    try:
        return Granularity(value.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid granularity: {value}. Must be one of: hour, day, week, month",
        ) from None


def parse_section(value: str | None) -> SectionType | None:
    if value is None:
        return None
    try:
        return SectionType(value.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid section: {value}",
        ) from None


def raise_for_errors(errors: Sequence[Any]) -> None:
    """Map component errors onto HTTP errors; the first one wins."""
    if not errors:
        return
    error = errors[0]
    code = (
        status.HTTP_404_NOT_FOUND
        if error.code == "NOT_FOUND"
        else status.HTTP_400_BAD_REQUEST
    )
    raise HTTPException(status_code=code, detail=error.message)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# --- Routes ---


@router.get("/{file_id}/summary", response_model=LinkSummaryResponse)
def get_link_summary(
    file_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    tz: str | None = Query(None, description="IANA timezone for 'today'"),
    repo: AccessLogRepoPort = Depends(get_access_log_repo),
    clock: ClockPort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
    default_tz: str = Depends(get_default_timezone),
) -> LinkSummaryResponse:
    """Headline numbers and the volume-gated performance score."""
    start_dt, end_dt = resolve_range(start, end, clock)
    result = run_link_performance(
        LinkPerformanceInput(
            file_id=file_id, start=start_dt, end=end_dt, timezone=tz or default_tz
        ),
        repo=repo,
        clock=clock,
        config=rules.to_performance_config(),
        scoring_config=rules.to_scoring_config(),
    )
    raise_for_errors(result.errors)
    summary = result.summary
    assert summary is not None

    return LinkSummaryResponse(
        link_id=summary.link_id,
        link_name=summary.link_name,
        performance_score=summary.performance.score,
        performance_label=summary.performance.label,
        avg_engagement=summary.avg_engagement,
        total_views=summary.total_views,
        unique_viewers=summary.unique_viewers,
        hot_leads=summary.hot_leads,
        warm_leads=summary.warm_leads,
        cold_leads=summary.cold_leads,
        download_count=summary.download_count,
        return_visits=summary.return_visits,
        return_rate=summary.return_rate,
        qr_scans=summary.qr_scans,
        direct_clicks=summary.direct_clicks,
        completion_rate=summary.completion_rate,
        avg_time_spent=summary.avg_time_spent,
        views_today=summary.views_today,
        last_view_at=_iso(summary.last_view_at),
        start=start_dt.isoformat(),
        end=end_dt.isoformat(),
    )


@router.get("/{file_id}/views-over-time", response_model=ViewsOverTimeResponse)
def get_views_over_time(
    file_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    granularity: str | None = Query(None, description="hour, day, week or month"),
    tz: str | None = Query(None, description="IANA timezone for bucket boundaries"),
    repo: AccessLogRepoPort = Depends(get_access_log_repo),
    clock: ClockPort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
    default_tz: str = Depends(get_default_timezone),
) -> ViewsOverTimeResponse:
    """Dense series with zero-filled buckets."""
    start_dt, end_dt = resolve_range(start, end, clock)
    gran = (
        parse_granularity(granularity)
        if granularity
        else rules.buckets.default_granularity
    )
    if repo.get_file_metadata(file_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Link not found: {file_id}",
        )

    result = run_views_over_time(
        ViewsOverTimeInput(
            file_id=file_id,
            start=start_dt,
            end=end_dt,
            granularity=gran,
            timezone=tz or default_tz,
        ),
        repo=repo,
    )
    raise_for_errors(result.errors)

    return ViewsOverTimeResponse(
        granularity=result.granularity.value,
        timezone=result.timezone,
        total=result.total,
        points=[
            TimeSeriesPointResponse(
                bucket_key=p.bucket_key,
                bucket_label=p.bucket_label,
                full_label=p.full_label,
                value=p.value,
            )
            for p in result.points
        ],
    )


@router.get("/{file_id}/viewers", response_model=ViewersResponse)
def get_viewers(
    file_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    repo: AccessLogRepoPort = Depends(get_access_log_repo),
    clock: ClockPort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> ViewersResponse:
    """Every viewer's engagement score, in first-visit order."""
    start_dt, end_dt = resolve_range(start, end, clock)
    result = run_score_viewers(
        ScoreViewersInput(file_id=file_id, start=start_dt, end=end_dt),
        repo=repo,
        config=rules.to_scoring_config(),
    )
    raise_for_errors(result.errors)

    return ViewersResponse(
        hot=result.lead_counts.hot,
        warm=result.lead_counts.warm,
        cold=result.lead_counts.cold,
        viewers=[
            ViewerScoreResponse(
                viewer_id=v.viewer_id,
                score=v.score,
                intent_bucket=v.intent_bucket,
                visit_count=v.visit_count,
                downloaded=v.downloaded,
                total_duration=v.total_duration,
                max_completion=v.max_completion,
                email=v.email,
                name=v.name,
                last_accessed_at=_iso(v.last_accessed_at),
                tags=list(v.tags),
            )
            for v in result.viewers
        ],
    )


@router.get("/{file_id}/funnel", response_model=FunnelResponse)
def get_funnel(
    file_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    repo: AccessLogRepoPort = Depends(get_access_log_repo),
    clock: ClockPort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> FunnelResponse:
    """Document page funnel or media watch funnel."""
    start_dt, end_dt = resolve_range(start, end, clock)
    result = run_funnel(
        FunnelInput(file_id=file_id, start=start_dt, end=end_dt),
        repo=repo,
        config=rules.to_funnel_config(),
    )
    raise_for_errors(result.errors)
    funnel = result.result
    assert funnel is not None

    rows = []
    for row in funnel.per_unit:
        if isinstance(row, PageRow):
            rows.append(
                UnitRowResponse(
                    unit=row.page,
                    label=row.label,
                    view_count=row.view_count,
                    total_time=row.total_time,
                    exit_count=row.exit_count,
                    exit_rate=row.exit_rate,
                    is_popular=row.is_popular,
                    is_most_engaging=row.is_most_engaging,
                    is_high_exit=row.is_high_exit,
                )
            )
        else:
            rows.append(
                UnitRowResponse(
                    unit=row.segment,
                    label=row.label,
                    view_count=row.viewers_in_segment,
                    total_time=row.total_time,
                    exit_count=row.exit_count,
                    exit_rate=row.exit_rate,
                )
            )

    drop = funnel.biggest_drop
    return FunnelResponse(
        kind=funnel.kind,
        total_visits=funnel.total_visits,
        total_units=funnel.total_units,
        avg_completion=funnel.avg_completion,
        finished_count=funnel.finished_count,
        milestones=[
            MilestoneResponse(
                label=m.label,
                short_label=m.short_label,
                count=m.count,
                percentage=m.percentage,
            )
            for m in funnel.milestones
        ],
        biggest_drop=(
            DropResponse(from_label=drop.from_label, to_label=drop.to_label, drop=drop.drop)
            if drop is not None
            else None
        ),
        per_unit=rows,
        top_exit_units=[
            ExitUnitResponse(
                unit=u.unit, label=u.label, exit_count=u.exit_count, exit_rate=u.exit_rate
            )
            for u in funnel.top_exit_units
        ],
    )


@router.get("/{file_id}/insights", response_model=InsightsResponse)
def get_insights(
    file_id: str,
    start: str | None = Query(None, description="Start datetime (ISO format)"),
    end: str | None = Query(None, description="End datetime (ISO format)"),
    tz: str | None = Query(None, description="IANA timezone for peak times"),
    section: str | None = Query(None, description="Override the link's own section"),
    repo: AccessLogRepoPort = Depends(get_access_log_repo),
    clock: ClockPort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
    default_tz: str = Depends(get_default_timezone),
) -> InsightsResponse:
    """Prioritized insights and recommended actions."""
    start_dt, end_dt = resolve_range(start, end, clock)
    section_type = parse_section(section)
    result = run_insights(
        InsightsInput(
            file_id=file_id,
            start=start_dt,
            end=end_dt,
            timezone=tz or default_tz,
            section=section_type,
        ),
        repo=repo,
        clock=clock,
        config=rules.to_insight_config(),
        scoring_config=rules.to_scoring_config(),
        performance_config=rules.to_performance_config(),
    )
    raise_for_errors(result.errors)
    metadata = repo.get_file_metadata(file_id)
    assert metadata is not None

    return InsightsResponse(
        section=section_type.value if section_type else categorize(metadata).value,
        insights=[
            InsightResponse(
                id=i.id,
                type=i.type,
                priority=i.priority,
                category=i.category,
                icon=i.icon,
                title=i.title,
                description=i.description,
            )
            for i in result.insights
        ],
        actions=[
            ActionResponse(
                id=a.id,
                priority=a.priority,
                icon=a.icon,
                title=a.title,
                reason=a.reason,
                buttons=[ActionButtonResponse(label=b.label, icon=b.icon) for b in a.buttons],
            )
            for a in result.actions
        ],
    )
