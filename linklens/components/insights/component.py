"""
Insights component - Rule-based insights and recommended actions.

Every insight and action comes from a fixed rule table evaluated over an
InsightsSummary. Actions read the summary directly and are never derived
from the insight list.

Invariants:
- Identical input gives an identical, identically ordered tuple
- Sorting is stable: high, then medium, then low, table order within a level
- An empty batch yields exactly one "no-views" insight
- A rule that raises is logged and skipped; it never fails the batch
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime, tzinfo
from typing import Any

from ...core.mathutil import clamp_percent, mean, percent, percent_int, round_half_up
from ..access_logs import categorize
from ..access_logs.models import UNKNOWN, AccessLogRecord, LinkType, SectionType
from ..access_logs.ports import AccessLogRepoPort, ClockPort
from ..funnel import media_stats, page_stats
from ..identity import (
    active_companies,
    company_name,
    email_domain,
    is_consumer_domain,
    normalize_email,
    resolve_viewer_id,
    return_rate,
    unique_viewer_count,
)
from ..performance import link_score, top_dimension
from ..performance.models import LinkSummary, PerformanceConfig
from ..scoring import lead_counts, score_viewer, score_viewers
from ..scoring.models import ScoringConfig, ViewerScore
from ..timebuckets import peak_time, period_change, resolve_timezone, to_local
from .models import (
    PRIORITY_WEIGHT,
    Action,
    ActionButton,
    ActionRule,
    ContactSummary,
    HotLead,
    Insight,
    InsightConfig,
    InsightRule,
    InsightsInput,
    InsightsOutput,
    InsightsSummary,
    InsightValidationError,
)

logger = logging.getLogger(__name__)


# --- Default Configuration ---

DEFAULT_CONFIG = InsightConfig()

NO_VIEWS_INSIGHT = Insight(
    id="no-views",
    type="observation",
    priority="medium",
    category="engagement",
    title="No views yet",
    description="Share your link to start collecting analytics",
    icon="📊",
)


def _sections(*names: str) -> frozenset[SectionType]:
    return frozenset(SectionType(name) for name in names)


ALL_CHANNELS = _sections(
    "dashboard", "file-doc", "file-media", "file-image", "file-url", "track-site", "analytics"
)
REACH_CHANNELS = _sections(
    "dashboard", "file-doc", "file-media", "file-url", "track-site", "analytics"
)
TRACK_SITE = _sections("file-url", "track-site")
CONTACTS = _sections("contacts")


def _or(value: Any, default: Any) -> Any:
    return default if value is None else value


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def _contact(summary: InsightsSummary) -> ContactSummary:
    return summary.contact or ContactSummary()


def _companies_text(summary: InsightsSummary, _: Sequence[AccessLogRecord]) -> str:
    companies = summary.companies_with_multiple_viewers
    if len(companies) == 1:
        return f"Multiple viewers from {companies[0]}"
    return f"{len(companies)} companies showing strong interest"


INSIGHT_RULES: tuple[InsightRule, ...] = (
    # High
    InsightRule(
        id="hot-leads-ready",
        icon="🔥",
        priority="high",
        category="engagement",
        applies_to=ALL_CHANNELS,
        condition=lambda s, _: s.hot_leads_count > 0,
        text=lambda s, _: f"{_plural(s.hot_leads_count, 'hot lead')} ready for follow-up",
        implication=lambda s, _: "High intent - prioritize outreach",
    ),
    InsightRule(
        id="low-engagement-warning",
        icon="📉",
        priority="high",
        category="engagement",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: s.avg_engagement < 20 and s.total_views >= 5,
        text=lambda s, _: f"Low engagement score ({s.avg_engagement})",
        implication=lambda s, _: "Consider refreshing content",
    ),
    InsightRule(
        id="tracksite-high-engagement",
        icon="🎯",
        priority="high",
        category="engagement",
        applies_to=TRACK_SITE,
        condition=lambda s, _: s.avg_engagement >= 70 and s.total_views >= 3,
        text=lambda s, _: f"High engagement score ({s.avg_engagement})",
        implication=lambda s, _: "Link resonating with audience",
    ),
    InsightRule(
        id="tracksite-growing-interest",
        icon="📈",
        priority="medium",
        category="engagement",
        applies_to=TRACK_SITE,
        condition=lambda s, _: s.return_rate >= 30 and s.total_views >= 5,
        text=lambda s, _: f"{round_half_up(s.return_rate)}% return click rate",
        implication=lambda s, _: "Strong recurring interest",
    ),
    InsightRule(
        id="views-declining",
        icon="📉",
        priority="high",
        category="trend",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: _or(s.views_change, 0) < -20,
        text=lambda s, _: f"Views down {abs(_or(s.views_change, 0))}% vs previous period",
        implication=lambda s, _: "Consider refreshing content or distribution",
    ),
    InsightRule(
        id="company-interest",
        icon="🏢",
        priority="high",
        category="audience",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: len(s.companies_with_multiple_viewers) > 0,
        text=_companies_text,
        implication=lambda s, _: "Being shared internally - potential deal",
    ),
    InsightRule(
        id="high-drop-off-page",
        icon="⚠️",
        priority="high",
        category="content",
        applies_to=_sections("file-doc"),
        condition=lambda s, _: _or(s.high_drop_off_rate, 0) > 25 and _or(s.high_drop_off_page, 0) > 1,
        text=lambda s, _: f"{s.high_drop_off_rate}% drop-off at page {s.high_drop_off_page}",
        implication=lambda s, _: "Content may need revision",
    ),
    InsightRule(
        id="low-completion-rate",
        icon="📊",
        priority="high",
        category="content",
        applies_to=_sections("file-doc"),
        condition=lambda s, _: _or(s.avg_completion, 100) < 50 and s.total_views >= 3,
        text=lambda s, _: f"Only {round_half_up(_or(s.avg_completion, 0))}% average completion",
        implication=lambda s, _: "Most viewers don't finish - consider shortening",
    ),
    InsightRule(
        id="low-watch-completion",
        icon="📉",
        priority="high",
        category="content",
        applies_to=_sections("file-media"),
        condition=lambda s, _: _or(s.watch_completion, 100) < 50 and s.total_views >= 3,
        text=lambda s, _: f"Only {round_half_up(_or(s.watch_completion, 0))}% average watch completion",
        implication=lambda s, _: "Most viewers don't finish watching",
    ),
    InsightRule(
        id="early-drop-media",
        icon="⚠️",
        priority="high",
        category="content",
        applies_to=_sections("file-media"),
        condition=lambda s, _: _or(s.early_drop_rate, 0) > 30,
        text=lambda s, _: f"{s.early_drop_rate}% dropped before 20% completion",
        implication=lambda s, _: "Opening content needs improvement",
    ),
    InsightRule(
        id="contact-high-intent",
        icon="🔥",
        priority="high",
        category="behavior",
        applies_to=CONTACTS,
        condition=lambda s, _: _contact(s).is_high_intent,
        text=lambda s, _: "Very high intent signals",
        implication=lambda s, _: "Priority follow-up",
    ),
    InsightRule(
        id="contact-quick-return",
        icon="⚡",
        priority="high",
        category="behavior",
        applies_to=CONTACTS,
        condition=lambda s, _: (
            _contact(s).last_visit_hours_ago < 24 and _contact(s).return_visit_count >= 1
        ),
        text=lambda s, _: "Returned within 24 hours",
        implication=lambda s, _: "Urgent interest",
    ),
    # Medium
    InsightRule(
        id="high-engagement",
        icon="🚀",
        priority="medium",
        category="engagement",
        applies_to=ALL_CHANNELS,
        condition=lambda s, _: s.avg_engagement >= 70 and s.total_views >= 3,
        text=lambda s, _: f"High engagement score ({s.avg_engagement}%)",
        implication=lambda s, _: "Content is resonating well",
    ),
    InsightRule(
        id="strong-return-visitors",
        icon="🔄",
        priority="medium",
        category="engagement",
        applies_to=ALL_CHANNELS | _sections("file-other"),
        condition=lambda s, _: s.return_rate > 25,
        text=lambda s, _: f"{round_half_up(s.return_rate)}% are return visitors",
        implication=lambda s, _: "Content resonating - people come back",
    ),
    InsightRule(
        id="high-download-interest",
        icon="⬇️",
        priority="medium",
        category="engagement",
        applies_to=_sections("dashboard", "file-doc", "file-image", "file-other", "analytics"),
        condition=lambda s, _: s.download_rate > 30,
        text=lambda s, _: f"{round_half_up(s.download_rate)}% downloaded",
        implication=lambda s, _: "High interest - saving for later",
    ),
    InsightRule(
        id="engagement-improving",
        icon="💪",
        priority="medium",
        category="trend",
        applies_to=_sections("dashboard", "file-doc", "file-media", "analytics"),
        condition=lambda s, _: _or(s.engagement_change, 0) > 10,
        text=lambda s, _: f"Engagement up {s.engagement_change}% vs previous period",
        implication=lambda s, _: "Content optimization is working",
    ),
    InsightRule(
        id="media-finished-count",
        icon="🏁",
        priority="medium",
        category="content",
        applies_to=_sections("file-media"),
        condition=lambda s, _: s.finished_count > 0 and s.total_views >= 3,
        text=lambda s, _: f"{_plural(s.finished_count, 'viewer')} finished entirely",
        implication=lambda s, _: "Content holding attention",
    ),
    InsightRule(
        id="high-watch-completion",
        icon="🎬",
        priority="medium",
        category="content",
        applies_to=_sections("file-media"),
        condition=lambda s, _: _or(s.watch_completion, 0) > 70 and s.total_views >= 3,
        text=lambda s, _: f"{round_half_up(_or(s.watch_completion, 0))}% average watch completion",
        implication=lambda s, _: "Strong retention",
    ),
    InsightRule(
        id="geographic-concentration",
        icon="🌍",
        priority="medium",
        category="audience",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: _or(s.top_country_percent, 0) > 50,
        text=lambda s, _: f"{s.top_country_percent}% of views from {s.top_country}",
        implication=lambda s, _: "Strong regional interest",
    ),
    InsightRule(
        id="social-traffic-strong",
        icon="📣",
        priority="medium",
        category="traffic",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: s.social_traffic_percent > 30,
        text=lambda s, _: f"{s.social_traffic_percent}% traffic from social",
        implication=lambda s, _: "Social sharing is working",
    ),
    InsightRule(
        id="utm-campaign-success",
        icon="🎯",
        priority="medium",
        category="traffic",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: s.top_utm_campaign_views >= 5,
        text=lambda s, _: f'"{s.top_utm_campaign}" driving {s.top_utm_campaign_percent}% of traffic',
        implication=lambda s, _: "Campaign working",
    ),
    InsightRule(
        id="peak-time-identified",
        icon="⏰",
        priority="medium",
        category="timing",
        applies_to=ALL_CHANNELS,
        condition=lambda s, _: bool(s.peak_day and s.peak_hour),
        text=lambda s, _: f"Peak viewing: {s.peak_day} at {s.peak_hour}",
        implication=lambda s, _: "Best time to share",
    ),
    InsightRule(
        id="most-engaging-page",
        icon="💎",
        priority="medium",
        category="content",
        applies_to=_sections("file-doc"),
        condition=lambda s, _: (
            _or(s.most_engaging_page, 0) > 1
            and _or(s.most_engaging_page_time, 0) > _or(s.avg_page_time, 0) * 2
        ),
        text=lambda s, _: f"Page {s.most_engaging_page} gets 2x more attention",
        implication=lambda s, _: "Strong interest in this content",
    ),
    InsightRule(
        id="high-completion-rate",
        icon="✅",
        priority="medium",
        category="content",
        applies_to=_sections("file-doc"),
        condition=lambda s, _: _or(s.avg_completion, 0) > 80 and s.total_views >= 3,
        text=lambda s, _: f"{round_half_up(_or(s.avg_completion, 0))}% completion rate",
        implication=lambda s, _: "Viewers engaged through the end",
    ),
    InsightRule(
        id="tracking-external-site",
        icon="🔗",
        priority="medium",
        category="traffic",
        applies_to=TRACK_SITE,
        condition=lambda s, _: s.is_external_url and s.total_views > 0,
        text=lambda s, _: "Tracking clicks to external site",
        implication=lambda s, _: "Landing engagement tracked",
    ),
    InsightRule(
        id="url-strong-engagement",
        icon="🔥",
        priority="medium",
        category="engagement",
        applies_to=TRACK_SITE,
        condition=lambda s, _: s.is_external_url and s.avg_engagement >= 60,
        text=lambda s, _: "Strong click engagement",
        implication=lambda s, _: "Link is effective",
    ),
    InsightRule(
        id="contact-multiple-files",
        icon="📁",
        priority="medium",
        category="behavior",
        applies_to=CONTACTS,
        condition=lambda s, _: _contact(s).files_viewed >= 3,
        text=lambda s, _: f"Viewed {_contact(s).files_viewed} different files",
        implication=lambda s, _: "Broad interest",
    ),
    InsightRule(
        id="contact-colleagues-viewing",
        icon="👥",
        priority="medium",
        category="audience",
        applies_to=CONTACTS,
        condition=lambda s, _: _contact(s).colleague_count >= 1,
        text=lambda s, _: f"{_plural(_contact(s).colleague_count, 'colleague')} also viewed",
        implication=lambda s, _: f"Shared internally at {_contact(s).company_name or 'company'}",
    ),
    InsightRule(
        id="contact-peak-time",
        icon="⏰",
        priority="medium",
        category="timing",
        applies_to=CONTACTS,
        condition=lambda s, _: bool(_contact(s).peak_active_day and _contact(s).peak_active_hour),
        text=lambda s, _: (
            f"Most active {_contact(s).peak_active_day} at {_contact(s).peak_active_hour}"
        ),
        implication=lambda s, _: "Optimal contact time",
    ),
    InsightRule(
        id="contact-specific-focus",
        icon="🎯",
        priority="medium",
        category="behavior",
        applies_to=CONTACTS,
        condition=lambda s, _: bool(_contact(s).most_viewed_file) and _contact(s).files_viewed >= 2,
        text=lambda s, _: f'Focused mainly on "{_contact(s).most_viewed_file}"',
        implication=lambda s, _: "Primary interest area",
    ),
    InsightRule(
        id="contact-downloaded",
        icon="⬇️",
        priority="medium",
        category="behavior",
        applies_to=CONTACTS,
        condition=lambda s, _: _contact(s).has_downloaded,
        text=lambda s, _: "Downloaded content",
        implication=lambda s, _: "Ready for more",
    ),
    InsightRule(
        id="views-trending-up",
        icon="📈",
        priority="medium",
        category="trend",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: _or(s.views_change, 0) > 20,
        text=lambda s, _: f"Views up {s.views_change}% vs previous period",
        implication=lambda s, _: "Momentum building - amplify",
    ),
    # Low
    InsightRule(
        id="international-reach",
        icon="🌐",
        priority="low",
        category="audience",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: s.countries_count >= 3,
        text=lambda s, _: f"Viewers from {s.countries_count} countries",
        implication=lambda s, _: "International reach expanding",
    ),
    InsightRule(
        id="mobile-dominant",
        icon="📱",
        priority="low",
        category="audience",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: s.mobile_percent > 40,
        text=lambda s, _: f"{s.mobile_percent}% viewing on mobile",
        implication=lambda s, _: "Mobile audience",
    ),
    InsightRule(
        id="desktop-dominant",
        icon="💻",
        priority="low",
        category="audience",
        applies_to=REACH_CHANNELS,
        condition=lambda s, _: s.desktop_percent > 80,
        text=lambda s, _: f"{s.desktop_percent}% viewing on desktop",
        implication=lambda s, _: "Professional audience",
    ),
    InsightRule(
        id="qr-effective",
        icon="📲",
        priority="low",
        category="traffic",
        applies_to=ALL_CHANNELS,
        condition=lambda s, _: s.qr_scan_rate > 20,
        text=lambda s, _: f"{round_half_up(s.qr_scan_rate)}% from QR codes",
        implication=lambda s, _: "Physical distribution working",
    ),
    InsightRule(
        id="image-view-time",
        icon="⏰",
        priority="low",
        category="engagement",
        applies_to=_sections("file-image"),
        condition=lambda s, _: s.total_views >= 3,
        text=lambda s, _: "Average view time tracked",
        implication=lambda s, _: "Holding attention",
    ),
)


def _first_hot_lead(summary: InsightsSummary) -> HotLead:
    return summary.hot_leads[0]


def _hot_lead_title(summary: InsightsSummary) -> str:
    lead = _first_hot_lead(summary)
    company = f" ({lead.company})" if lead.company else ""
    return f"Contact {lead.name}{company}"


def _hot_lead_reason(summary: InsightsSummary) -> str:
    lead = _first_hot_lead(summary)
    on_file = f" on {lead.file_name}" if lead.file_name else ""
    return f"{lead.score}% engagement{on_file}"


EMAIL = ActionButton("Email", "📧")
LINKEDIN = ActionButton("LinkedIn", "💼")
VIEW_LEADS = ActionButton("View Leads", "👥")
EDIT = ActionButton("Edit", "✏️")
DRAFT_EMAIL = ActionButton("Draft Email", "📧")

ACTION_RULES: tuple[ActionRule, ...] = (
    # High
    ActionRule(
        id="contact-hot-lead",
        icon="🔥",
        priority="high",
        applies_to=ALL_CHANNELS,
        condition=lambda s: len(s.hot_leads) > 0,
        title=_hot_lead_title,
        reason=_hot_lead_reason,
        buttons=(EMAIL, LINKEDIN),
    ),
    ActionRule(
        id="contact-hot-leads-multiple",
        icon="🔥",
        priority="high",
        applies_to=_sections("dashboard", "file-doc", "file-media", "analytics"),
        condition=lambda s: s.hot_leads_count >= 3,
        title=lambda s: f"Contact {s.hot_leads_count} hot leads",
        reason=lambda s: "High intent viewers ready for follow-up",
        buttons=(VIEW_LEADS, ActionButton("Export", "📤")),
    ),
    ActionRule(
        id="follow-up-company",
        icon="🏢",
        priority="high",
        applies_to=REACH_CHANNELS,
        condition=lambda s: len(s.active_companies) > 0,
        title=lambda s: f"Follow up with {s.active_companies[0].name}",
        reason=lambda s: f"{s.active_companies[0].viewer_count} team members viewing",
        buttons=(VIEW_LEADS,),
    ),
    ActionRule(
        id="fix-drop-off",
        icon="⚠️",
        priority="high",
        applies_to=_sections("file-doc"),
        condition=lambda s: _or(s.high_drop_off_rate, 0) > 25 and _or(s.high_drop_off_page, 0) > 1,
        title=lambda s: f"Review page {s.high_drop_off_page}",
        reason=lambda s: f"{s.high_drop_off_rate}% drop-off",
        buttons=(ActionButton("View Page", "👁️"),),
    ),
    ActionRule(
        id="improve-hook",
        icon="⚠️",
        priority="high",
        applies_to=_sections("file-media"),
        condition=lambda s: _or(s.early_drop_rate, 0) > 30,
        title=lambda s: "Improve opening 20%",
        reason=lambda s: f"High early drop-off rate ({_or(s.early_drop_rate, 0)}%)",
        buttons=(EDIT,),
    ),
    ActionRule(
        id="contact-now",
        icon="🔥",
        priority="high",
        applies_to=CONTACTS,
        condition=lambda s: _contact(s).is_high_intent and _contact(s).last_visit_hours_ago < 48,
        title=lambda s: "Contact now",
        reason=lambda s: (
            f"{_contact(s).avg_engagement}% engagement, {_contact(s).last_visit_hours_ago}h ago"
        ),
        buttons=(EMAIL, LINKEDIN),
    ),
    # Medium
    ActionRule(
        id="share-optimal-time",
        icon="⏰",
        priority="medium",
        applies_to=ALL_CHANNELS,
        condition=lambda s: bool(s.peak_day and s.peak_hour),
        title=lambda s: f"Share on {s.peak_day} at {s.peak_hour}",
        reason=lambda s: "Peak engagement time",
        buttons=(ActionButton("Copy Link", "📋"), ActionButton("QR Code", "📱")),
    ),
    ActionRule(
        id="amplify-trending",
        icon="📈",
        priority="medium",
        applies_to=_sections("dashboard", "analytics"),
        condition=lambda s: _or(s.views_change, 0) > 20,
        title=lambda s: "Amplify trending content",
        reason=lambda s: f"Views up {s.views_change}%",
        buttons=(ActionButton("Share", "📤"), ActionButton("View", "👁️")),
    ),
    ActionRule(
        id="refresh-content",
        icon="📉",
        priority="medium",
        applies_to=_sections("dashboard", "file-doc", "file-media", "file-image", "analytics"),
        condition=lambda s: s.avg_engagement < 40 and s.total_views >= 5,
        title=lambda s: "Refresh content",
        reason=lambda s: "Below average engagement",
        buttons=(EDIT,),
    ),
    ActionRule(
        id="follow-up-downloaders",
        icon="⬇️",
        priority="medium",
        applies_to=_sections("dashboard", "file-doc", "file-image", "file-other", "analytics"),
        condition=lambda s: s.download_rate > 30 and any(lead.downloaded for lead in s.hot_leads),
        title=lambda s: "Follow up with downloaders",
        reason=lambda s: "They saved your content",
        buttons=(VIEW_LEADS,),
    ),
    ActionRule(
        id="amplify-campaign",
        icon="🎯",
        priority="medium",
        applies_to=_sections("file-url", "track-site", "dashboard", "analytics"),
        condition=lambda s: s.top_utm_campaign_views >= 5,
        title=lambda s: f'Amplify "{s.top_utm_campaign}"',
        reason=lambda s: f"Driving {s.top_utm_campaign_percent}% of traffic",
        buttons=(ActionButton("Copy UTM Link", "📋"),),
    ),
    ActionRule(
        id="update-link-destination",
        icon="📉",
        priority="medium",
        applies_to=TRACK_SITE,
        condition=lambda s: s.is_external_url and s.avg_engagement < 40 and s.total_views >= 5,
        title=lambda s: "Update link destination",
        reason=lambda s: "Below average engagement",
        buttons=(ActionButton("Edit URL", "✏️"),),
    ),
    ActionRule(
        id="shorten-content",
        icon="📉",
        priority="medium",
        applies_to=_sections("file-media"),
        condition=lambda s: _or(s.watch_completion, 100) < 50 and s.total_views >= 3,
        title=lambda s: "Shorten content",
        reason=lambda s: "Low completion rate",
        buttons=(EDIT,),
    ),
    ActionRule(
        id="try-different-image",
        icon="📉",
        priority="medium",
        applies_to=_sections("file-image"),
        condition=lambda s: s.avg_engagement < 40 and s.total_views >= 5,
        title=lambda s: "Try different image",
        reason=lambda s: "Below average engagement",
        buttons=(ActionButton("Replace", "🔄"),),
    ),
    ActionRule(
        id="schedule-contact",
        icon="⏰",
        priority="medium",
        applies_to=CONTACTS,
        condition=lambda s: bool(_contact(s).peak_active_day and _contact(s).peak_active_hour),
        title=lambda s: f"Schedule for {_contact(s).peak_active_day} {_contact(s).peak_active_hour}",
        reason=lambda s: "Their active time",
        buttons=(ActionButton("Schedule", "📅"),),
    ),
    ActionRule(
        id="propose-team-demo",
        icon="👥",
        priority="medium",
        applies_to=CONTACTS,
        condition=lambda s: _contact(s).colleague_count >= 2,
        title=lambda s: "Propose team demo",
        reason=lambda s: f"{_contact(s).colleague_count} colleagues viewing",
        buttons=(DRAFT_EMAIL,),
    ),
    ActionRule(
        id="send-followup-materials",
        icon="⬇️",
        priority="medium",
        applies_to=CONTACTS,
        condition=lambda s: _contact(s).has_downloaded and _contact(s).avg_engagement >= 50,
        title=lambda s: "Send follow-up materials",
        reason=lambda s: "Downloaded and engaged - ready for more",
        buttons=(DRAFT_EMAIL,),
    ),
    # Low
    ActionRule(
        id="try-qr-offline",
        icon="📱",
        priority="low",
        applies_to=_sections("file-doc", "file-media", "file-image", "file-other"),
        condition=lambda s: s.qr_scan_rate < 5 and s.total_views >= 10,
        title=lambda s: "Try QR for offline sharing",
        reason=lambda s: "Expand reach beyond digital",
        buttons=(ActionButton("Generate QR", "📱"),),
    ),
)


# --- Pure Functions (Functional Core) ---


def _timestamp(value: datetime | None) -> float:
    return value.timestamp() if value else 0.0


def _action_data(**values: str | None) -> dict[str, str]:
    return {key: value for key, value in values.items() if value}


def generate_dashboard_insights(
    viewers: Sequence[ViewerScore],
    link_summaries: Sequence[LinkSummary],
    records: Sequence[AccessLogRecord] = (),
    limit: int | None = None,
    config: InsightConfig = DEFAULT_CONFIG,
) -> tuple[Insight, ...]:
    """
    Follow-ups, a return visitor and a trending link, in that order.

    - Up to two follow-ups for hot viewers (or score >= 70), most recent first
    - The most recent record flagged as a return visit
    - The link with the most views, if it has more than five

    Ties break on viewer id, record id and link id, so the output never
    depends on input order.
    """
    insights: list[Insight] = []

    hot = sorted(
        (v for v in viewers if v.intent_bucket == "hot" or v.score >= config.follow_up_score),
        key=lambda v: (-_timestamp(v.last_accessed_at), v.viewer_id),
    )
    for viewer in hot[: config.follow_up_limit]:
        email = normalize_email(viewer.email)
        insights.append(
            Insight(
                id=f"followup-{email or viewer.viewer_id}",
                type="follow_up",
                priority="high",
                category="engagement",
                title=f"Follow up with {viewer.name or email or 'viewer'}",
                description=(
                    f'Viewed "{viewer.file_name or viewer.file_id or "your link"}" '
                    f"with {viewer.score}% engagement. Hot lead!"
                ),
                action_label="View Details",
                action_data=_action_data(email=email, file_id=viewer.file_id),
            )
        )

    returns = sorted(
        (r for r in records if r.is_return_visit),
        key=lambda r: (-_timestamp(r.accessed_at), r.record_id or ""),
    )
    if returns:
        visitor = returns[0]
        insights.append(
            Insight(
                id=f"return-{normalize_email(visitor.viewer_email) or resolve_viewer_id(visitor)}",
                type="return_visitor",
                priority="medium",
                category="behavior",
                title=f"{visitor.viewer_name or 'Someone'} came back",
                description=(
                    f'Returned to view "{visitor.file_name or visitor.file_id or "your link"}" '
                    "again. Shows strong interest."
                ),
                action_label="View",
                action_data=_action_data(file_id=visitor.file_id),
            )
        )

    if link_summaries:
        top = min(link_summaries, key=lambda s: (-s.total_views, s.link_id))
        if top.total_views > config.trending_min_views:
            insights.append(
                Insight(
                    id=f"trending-{top.link_id}",
                    type="trending",
                    priority="medium",
                    category="trend",
                    title=f'"{top.link_name or top.link_id}" is getting traction',
                    description=(
                        f"{top.total_views} views with {top.avg_engagement}% avg engagement."
                    ),
                    action_label="Analyze",
                    action_data=_action_data(file_id=top.link_id),
                )
            )

    return tuple(insights[: limit if limit is not None else config.dashboard_limit])


def _hot_leads(scores: Sequence[ViewerScore]) -> tuple[HotLead, ...]:
    """Hot viewers with an email, highest score first."""
    leads = []
    for viewer in scores:
        email = normalize_email(viewer.email)
        if viewer.intent_bucket != "hot" or not email:
            continue
        domain = email_domain(email)
        leads.append(
            HotLead(
                name=viewer.name or email.split("@")[0],
                email=email,
                score=viewer.score,
                company=company_name(domain) if domain and not is_consumer_domain(domain) else None,
                file_name=viewer.file_name,
                file_id=viewer.file_id,
                is_return=viewer.is_return,
                downloaded=viewer.downloaded,
                visit_count=viewer.visit_count,
            )
        )
    return tuple(sorted(leads, key=lambda lead: -lead.score))


def build_contact_summary(
    email: str,
    records: Sequence[AccessLogRecord],
    *,
    now: datetime,
    tz: tzinfo = UTC,
    scoring_config: ScoringConfig | None = None,
) -> ContactSummary:
    """
    Activity of one contact across every link in `records`.

    `records` may hold other viewers' rows; colleagues are other emails on
    the contact's (non-consumer) domain.
    """
    target = normalize_email(email)
    own = [r for r in records if target and normalize_email(r.viewer_email) == target]
    if not own:
        return ContactSummary()

    config = scoring_config or ScoringConfig()
    by_file: dict[str, list[AccessLogRecord]] = {}
    for record in own:
        by_file.setdefault(record.file_id or "", []).append(record)

    avg_engagement = round_half_up(
        mean(score_viewer(rows, rows[0].link_type, config) for rows in by_file.values())
    )
    latest = max(r.accessed_at for r in own)
    hours_ago = int((to_local(now, UTC) - to_local(latest, UTC)).total_seconds() // 3600)
    peak = peak_time(own, tz)
    names = Counter(r.file_name or r.file_id for r in own if r.file_name or r.file_id)

    domain = email_domain(target)
    colleagues: set[str] = set()
    company = None
    if domain and not is_consumer_domain(domain):
        company = company_name(domain)
        for record in records:
            other = normalize_email(record.viewer_email)
            if other and other != target and email_domain(other) == domain:
                colleagues.add(other)

    return ContactSummary(
        total_visits=len(own),
        files_viewed=len(by_file),
        total_time_spent=sum(r.total_duration_seconds or 0.0 for r in own),
        avg_engagement=avg_engagement,
        is_high_intent=avg_engagement >= config.hot_threshold,
        has_downloaded=any(r.downloaded for r in own),
        return_visit_count=sum(len(rows) - 1 for rows in by_file.values()),
        last_visit_hours_ago=max(0, hours_ago),
        peak_active_day=peak.day if peak else None,
        peak_active_hour=peak.hour if peak else None,
        most_viewed_file=names.most_common(1)[0][0] if names else None,
        colleague_count=len(colleagues),
        company_name=company,
    )


def build_insights_summary(
    records: Sequence[AccessLogRecord],
    *,
    link_type: LinkType = LinkType.FILE,
    total_pages: int | None = None,
    previous_period_views: int | None = None,
    previous_period_engagement: float | None = None,
    destination_url: str | None = None,
    contact: ContactSummary | None = None,
    tz: tzinfo = UTC,
    now: datetime | None = None,
    scoring_config: ScoringConfig | None = None,
    performance_config: PerformanceConfig | None = None,
) -> InsightsSummary:
    """
    Gather every signal the rule tables read.

    `now` defaults to the latest record, which keeps the summary a pure
    function of its input. Period changes are only reported when the
    previous period had a positive value.
    """
    is_external = link_type == LinkType.URL
    if not records:
        return InsightsSummary(is_external_url=is_external, destination_url=destination_url, contact=contact)

    total = len(records)
    now = now or max(r.accessed_at for r in records)
    avg_engagement = link_score(records, link_type, now, performance_config or PerformanceConfig())

    scores = score_viewers(records, link_type, scoring_config or ScoringConfig())
    counts = lead_counts(scores)
    media = media_stats(records)
    pages = page_stats(records, total_pages)
    completions = [
        clamp_percent(r.completion_percentage)
        for r in records
        if r.completion_percentage is not None
    ]

    countries = Counter(r.country for r in records if r.country and r.country != UNKNOWN)
    top_country = countries.most_common(1)
    devices = Counter(r.device_type.lower() for r in records)
    sources = Counter(r.traffic_source.lower() for r in records)
    campaigns = top_dimension(records, "utm_campaign", limit=1)
    peak = peak_time(records, tz)

    views_change = engagement_change = None
    if previous_period_views:
        views_change = period_change(total, previous_period_views)
    if previous_period_engagement:
        engagement_change = period_change(avg_engagement, previous_period_engagement)

    return InsightsSummary(
        total_views=total,
        unique_viewers=unique_viewer_count(records),
        avg_engagement=avg_engagement,
        hot_leads_count=counts.hot,
        warm_leads_count=counts.warm,
        cold_leads_count=counts.cold,
        hot_leads=_hot_leads(scores),
        active_companies=active_companies(records),
        return_rate=return_rate(records),
        download_rate=percent(sum(1 for r in records if r.downloaded), total),
        qr_scan_rate=percent(sum(1 for r in records if r.is_qr_scan), total),
        avg_completion=mean(completions) if completions else None,
        high_drop_off_page=pages.high_drop_off_page,
        high_drop_off_rate=pages.high_drop_off_rate,
        most_engaging_page=pages.most_engaging_page,
        most_engaging_page_time=pages.most_engaging_time,
        avg_page_time=pages.avg_page_time,
        avg_watch_time=media.avg_watch_time,
        watch_completion=media.watch_completion,
        finished_count=media.finished_count,
        early_drop_rate=media.early_drop_rate,
        views_change=views_change,
        engagement_change=engagement_change,
        top_country=top_country[0][0] if top_country else None,
        top_country_percent=percent_int(top_country[0][1], total) if top_country else None,
        countries_count=len(countries),
        mobile_percent=percent_int(devices["mobile"] + devices["tablet"], total),
        desktop_percent=percent_int(devices["desktop"], total),
        social_traffic_percent=percent_int(sources["social"], total),
        search_traffic_percent=percent_int(sources["search"], total),
        referral_traffic_percent=percent_int(sources["referral"], total),
        top_utm_campaign=campaigns[0].name if campaigns else None,
        top_utm_campaign_views=campaigns[0].count if campaigns else 0,
        top_utm_campaign_percent=campaigns[0].percentage if campaigns else None,
        peak_day=peak.day if peak else None,
        peak_hour=peak.hour if peak else None,
        contact=contact,
        is_external_url=is_external,
        destination_url=destination_url,
    )


def generate_section_insights(
    records: Sequence[AccessLogRecord],
    summary: InsightsSummary,
    section: SectionType | str,
    max_total: int | None = None,
    config: InsightConfig = DEFAULT_CONFIG,
) -> tuple[Insight, ...]:
    """
    Evaluate the insight table for one dashboard section.

    Raises:
        ValueError: If section is not a known section name
    """
    section = SectionType(section)
    if not records:
        return (NO_VIEWS_INSIGHT,)

    insights: list[Insight] = []
    for rule in INSIGHT_RULES:
        if section not in rule.applies_to:
            continue
        try:
            if not rule.condition(summary, records):
                continue
            insight = Insight(
                id=rule.id,
                type="observation",
                priority=rule.priority,
                category=rule.category,
                title=rule.text(summary, records),
                description=rule.implication(summary, records),
                icon=rule.icon,
            )
        except Exception:
            logger.warning("Insight rule %s failed", rule.id, exc_info=True)
            continue
        insights.append(insight)

    insights.sort(key=lambda i: PRIORITY_WEIGHT[i.priority])
    return tuple(insights[: max_total if max_total is not None else config.max_insights])


def generate_actions(
    summary: InsightsSummary,
    section: SectionType | str = SectionType.DASHBOARD,
    max_total: int | None = None,
    config: InsightConfig = DEFAULT_CONFIG,
) -> tuple[Action, ...]:
    """
    Evaluate the action table for one dashboard section.

    Scanning stops as soon as the cap is reached, so a later high-priority
    rule can lose its slot to earlier medium ones; the result is then
    sorted by priority.

    Raises:
        ValueError: If section is not a known section name
    """
    section = SectionType(section)
    cap = max_total if max_total is not None else config.max_actions

    actions: list[Action] = []
    for rule in ACTION_RULES:
        if section not in rule.applies_to:
            continue
        try:
            if rule.condition(summary):
                actions.append(
                    Action(
                        id=rule.id,
                        priority=rule.priority,
                        icon=rule.icon,
                        title=rule.title(summary),
                        reason=rule.reason(summary),
                        buttons=rule.buttons,
                    )
                )
        except Exception:
            logger.warning("Action rule %s failed", rule.id, exc_info=True)
        if len(actions) >= cap:
            break

    actions.sort(key=lambda a: PRIORITY_WEIGHT[a.priority])
    return tuple(actions[:cap])


# --- Component Entry Points ---


def run_insights(
    inp: InsightsInput,
    *,
    repo: AccessLogRepoPort,
    clock: ClockPort,
    config: InsightConfig | None = None,
    scoring_config: ScoringConfig | None = None,
    performance_config: PerformanceConfig | None = None,
) -> InsightsOutput:
    """
    Insights and actions for one link over a date range.

    The previous period is the window of equal length ending at inp.start;
    it only feeds the views and engagement change signals.

    Args:
        inp: Link, range, display timezone and optional section override
        repo: Access log repository port
        clock: Time provider
        config: Optional insight caps
        scoring_config: Optional viewer scoring config
        performance_config: Optional link performance config

    Returns:
        InsightsOutput with insights, actions and the summary they came from
    """
    config = config or DEFAULT_CONFIG
    metadata = repo.get_file_metadata(inp.file_id)
    if metadata is None:
        return InsightsOutput(
            insights=(),
            actions=(),
            errors=[
                InsightValidationError(
                    code="NOT_FOUND",
                    message=f"Link not found: {inp.file_id}",
                    field_name="file_id",
                )
            ],
            success=False,
        )

    section = inp.section or SectionType(categorize(metadata).value)
    now = clock.now_utc()
    perf_config = performance_config or PerformanceConfig()
    records = repo.get_access_logs(inp.file_id, inp.start, inp.end)

    span = inp.end - inp.start
    previous = [
        r
        for r in repo.get_access_logs(inp.file_id, inp.start - span, inp.start)
        if r.accessed_at < inp.start
    ]
    previous_engagement = link_score(previous, metadata.link_type, inp.start, perf_config)

    summary = build_insights_summary(
        records,
        link_type=metadata.link_type,
        total_pages=metadata.total_pages,
        previous_period_views=len(previous),
        previous_period_engagement=previous_engagement,
        destination_url=metadata.destination_url,
        tz=resolve_timezone(inp.timezone),
        now=now,
        scoring_config=scoring_config,
        performance_config=perf_config,
    )
    insights = generate_section_insights(records, summary, section, config=config)
    actions = generate_actions(summary, section, config=config)
    logger.debug(
        "Insights for %s (%s): %s insights, %s actions",
        inp.file_id,
        section.value,
        len(insights),
        len(actions),
    )

    return InsightsOutput(insights=insights, actions=actions, summary=summary)
