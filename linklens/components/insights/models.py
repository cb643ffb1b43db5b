"""
Insights component input/output models.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Literal

from ..access_logs.models import AccessLogRecord, SectionType
from ..identity.models import CompanyInfo

Priority = Literal["high", "medium", "low"]

InsightCategory = Literal["engagement", "audience", "traffic", "timing", "content", "trend", "behavior"]

InsightType = Literal["follow_up", "return_visitor", "trending", "observation"]

PRIORITY_WEIGHT: Mapping[str, int] = MappingProxyType({"high": 0, "medium": 1, "low": 2})


def _no_action_data() -> Mapping[str, str]:
    return MappingProxyType({})


# --- Validation Error ---


@dataclass(frozen=True)
class InsightValidationError:
    """Insight generation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class InsightConfig:
    """Caps for the insight and action lists."""

    max_insights: int = 8
    max_actions: int = 5
    dashboard_limit: int = 4
    follow_up_limit: int = 2
    follow_up_score: int = 70
    trending_min_views: int = 5


# --- Output Models ---


@dataclass(frozen=True)
class Insight:
    """
    One observation about a link or a viewer.

    Dashboard insights carry an action label and data for the UI; section
    insights carry an icon and use `title` for the headline and
    `description` for what it implies.
    """

    id: str
    type: InsightType
    priority: Priority
    category: InsightCategory
    title: str
    description: str
    icon: str = ""
    action_label: str | None = None
    action_data: Mapping[str, str] = field(default_factory=_no_action_data)


@dataclass(frozen=True)
class ActionButton:
    label: str
    icon: str


@dataclass(frozen=True)
class Action:
    """A recommended next step. Buttons are display-only."""

    id: str
    priority: Priority
    icon: str
    title: str
    reason: str
    buttons: tuple[ActionButton, ...] = ()


# --- Summary Models ---


@dataclass(frozen=True)
class HotLead:
    """A hot viewer with an email address, ready for outreach."""

    name: str
    email: str
    score: int
    company: str | None = None
    file_name: str | None = None
    file_id: str | None = None
    is_return: bool = False
    downloaded: bool = False
    visit_count: int = 1


@dataclass(frozen=True)
class ContactSummary:
    """One contact's activity across every link they opened."""

    total_visits: int = 0
    files_viewed: int = 0
    total_time_spent: float = 0.0
    avg_engagement: int = 0
    is_high_intent: bool = False
    has_downloaded: bool = False
    return_visit_count: int = 0
    last_visit_hours_ago: int = 999
    peak_active_day: str | None = None
    peak_active_hour: str | None = None
    most_viewed_file: str | None = None
    colleague_count: int = 0
    company_name: str | None = None


@dataclass(frozen=True)
class InsightsSummary:
    """
    Pre-computed signals the insight and action rules read.

    Optional fields stay None when the batch carries no such signal
    (no completion data, no media rows, no previous period).
    """

    total_views: int = 0
    unique_viewers: int = 0
    avg_engagement: int = 0

    hot_leads_count: int = 0
    warm_leads_count: int = 0
    cold_leads_count: int = 0
    hot_leads: tuple[HotLead, ...] = ()
    active_companies: tuple[CompanyInfo, ...] = ()

    return_rate: float = 0.0
    download_rate: float = 0.0
    qr_scan_rate: float = 0.0

    # Documents
    avg_completion: float | None = None
    high_drop_off_page: int | None = None
    high_drop_off_rate: int | None = None
    most_engaging_page: int | None = None
    most_engaging_page_time: float | None = None
    avg_page_time: float | None = None

    # Media
    avg_watch_time: float | None = None
    watch_completion: float | None = None
    finished_count: int = 0
    early_drop_rate: int | None = None

    # Trends
    views_change: int | None = None
    engagement_change: int | None = None

    # Audience
    top_country: str | None = None
    top_country_percent: int | None = None
    countries_count: int = 0
    mobile_percent: int = 0
    desktop_percent: int = 0

    # Traffic
    social_traffic_percent: int = 0
    search_traffic_percent: int = 0
    referral_traffic_percent: int = 0
    top_utm_campaign: str | None = None
    top_utm_campaign_views: int = 0
    top_utm_campaign_percent: int | None = None

    # Timing
    peak_day: str | None = None
    peak_hour: str | None = None

    contact: ContactSummary | None = None
    is_external_url: bool = False
    destination_url: str | None = None

    @property
    def companies_with_multiple_viewers(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.active_companies)


# --- Rule Tables ---

InsightCondition = Callable[[InsightsSummary, Sequence[AccessLogRecord]], bool]
InsightText = Callable[[InsightsSummary, Sequence[AccessLogRecord]], str]


@dataclass(frozen=True)
class InsightRule:
    """One entry of the section insight table."""

    id: str
    icon: str
    priority: Priority
    category: InsightCategory
    applies_to: frozenset[SectionType]
    condition: InsightCondition
    text: InsightText
    implication: InsightText


@dataclass(frozen=True)
class ActionRule:
    """One entry of the action table."""

    id: str
    icon: str
    priority: Priority
    applies_to: frozenset[SectionType]
    condition: Callable[[InsightsSummary], bool]
    title: Callable[[InsightsSummary], str]
    reason: Callable[[InsightsSummary], str]
    buttons: tuple[ActionButton, ...] = ()


# --- Input / Output Models ---


@dataclass(frozen=True)
class InsightsInput:
    """Input for one link's insights and actions."""

    file_id: str
    start: datetime
    end: datetime
    timezone: str = "UTC"
    section: SectionType | None = None


@dataclass(frozen=True)
class InsightsOutput:
    """Insights and actions for one link."""

    insights: tuple[Insight, ...]
    actions: tuple[Action, ...]
    summary: InsightsSummary | None = None
    errors: list[InsightValidationError] = field(default_factory=list)
    success: bool = True
