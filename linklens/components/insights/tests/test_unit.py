"""
Unit tests for Insights component.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from ...access_logs.models import AccessLogRecord, FileMetadata, LinkType, SectionType
from ...identity.models import CompanyInfo
from ...performance import link_score
from ...performance.models import LinkPerformance, LinkSummary
from ...scoring.models import ViewerScore
from ..component import (
    NO_VIEWS_INSIGHT,
    build_contact_summary,
    build_insights_summary,
    generate_actions,
    generate_dashboard_insights,
    generate_section_insights,
    run_insights,
)
from ..models import HotLead, InsightsInput, InsightsSummary

MONDAY = datetime(2026, 1, 5, tzinfo=UTC)


def at(days: int = 0, hours: float = 0) -> datetime:
    return MONDAY + timedelta(days=days, hours=hours)


def make_log(when: datetime = MONDAY, **kwargs: Any) -> AccessLogRecord:
    return AccessLogRecord(accessed_at=when, **kwargs)


class FakeClock:
    """Fake clock for testing."""

    def __init__(self, now: datetime):
        self._now = now

    def now_utc(self) -> datetime:
        return self._now


class FakeAccessLogRepo:
    """Fake access log repo for testing."""

    def __init__(self, records: list[AccessLogRecord], metadata: dict[str, FileMetadata]):
        self.records = records
        self.metadata = metadata

    def get_access_logs(self, file_id: str, start: datetime, end: datetime) -> list[AccessLogRecord]:
        return [r for r in self.records if r.file_id == file_id and start <= r.accessed_at <= end]

    def get_file_metadata(self, file_id: str) -> FileMetadata | None:
        return self.metadata.get(file_id)


def make_viewer(viewer_id: str, score: int, bucket: str, last: datetime, **kwargs: Any) -> ViewerScore:
    kwargs.setdefault("email", viewer_id)
    return ViewerScore(
        viewer_id=viewer_id,
        score=score,
        intent_bucket=bucket,  # type: ignore[arg-type]
        visit_count=1,
        downloaded=False,
        total_duration=0.0,
        max_completion=0.0,
        last_accessed_at=last,
        **kwargs,
    )


def make_link(link_id: str, views: int, score: int = 10, name: str = "") -> LinkSummary:
    return LinkSummary(
        link_id=link_id,
        link_name=name,
        performance=LinkPerformance(link_id=link_id, score=score, label="Needs attention"),
        total_views=views,
    )


DOC_LOGS = [
    make_log(at(0, 14), file_id="f1", file_name="Deck", viewer_email="a@acme.com", viewer_name="Ann",
             total_duration_seconds=650, completion_percentage=100, is_downloaded=True,
             country="US", device_type="desktop", traffic_source="social", utm_campaign="spring"),
    make_log(at(1, 14.5), file_id="f1", file_name="Deck", viewer_email="a@acme.com", viewer_name="Ann",
             total_duration_seconds=100, completion_percentage=60,
             country="US", device_type="desktop", traffic_source="social", utm_campaign="spring"),
    make_log(at(0, 15), file_id="f1", viewer_email="b@acme.com", total_duration_seconds=20,
             completion_percentage=10, country="DE", device_type="mobile", traffic_source="search"),
    make_log(at(2, 14 + 1 / 6), file_id="f1", viewer_email="c@gmail.com", total_duration_seconds=0,
             access_method="qr_scan", device_type="mobile"),
    make_log(at(0, 9), file_id="f1", ip_address="9.9.9.9", total_duration_seconds=30,
             completion_percentage=50, country="US", device_type="tablet", traffic_source="referral"),
]


class TestDashboardInsights:
    """Follow-up, return visitor and trending insights."""

    VIEWERS = [
        make_viewer("a@x.com", 90, "hot", at(0, 10), name="Ann", file_id="f1", file_name="Deck"),
        make_viewer("b@x.com", 75, "hot", at(0, 12), file_id="f1", file_name="Deck"),
        make_viewer("c@x.com", 72, "hot", at(0, 11), file_id="f2", file_name="Pricing"),
        make_viewer("d@x.com", 50, "warm", at(0, 13)),
    ]
    RECORDS = [
        make_log(at(0, 9), viewer_email="R@x.com", viewer_name="Rae", is_return_visit=True, file_id="f1"),
        make_log(at(0, 10), viewer_email="s@x.com", viewer_name="Sam", is_return_visit=True,
                 file_id="f2", file_name="Pricing"),
        make_log(at(0, 11), viewer_email="t@x.com"),
    ]
    LINKS = [make_link("f2", 12, name="Pricing"), make_link("f1", 12, name="Deck"), make_link("f3", 3)]

    def test_order_and_content(self):
        insights = generate_dashboard_insights(self.VIEWERS, self.LINKS, self.RECORDS)

        assert [i.id for i in insights] == [
            "followup-b@x.com",
            "followup-c@x.com",
            "return-s@x.com",
            "trending-f1",
        ]
        follow_up = insights[0]
        assert follow_up.priority == "high"
        assert follow_up.title == "Follow up with b@x.com"
        assert follow_up.description == 'Viewed "Deck" with 75% engagement. Hot lead!'
        assert dict(follow_up.action_data) == {"email": "b@x.com", "file_id": "f1"}

        assert insights[2].title == "Sam came back"
        assert insights[2].description == 'Returned to view "Pricing" again. Shows strong interest.'
        assert insights[3].title == '"Deck" is getting traction'
        assert insights[3].description == "12 views with 10% avg engagement."

    def test_independent_of_input_order(self):
        forward = generate_dashboard_insights(self.VIEWERS, self.LINKS, self.RECORDS)
        backward = generate_dashboard_insights(
            list(reversed(self.VIEWERS)), list(reversed(self.LINKS)), list(reversed(self.RECORDS))
        )
        assert forward == backward

    def test_follow_up_title_falls_back_to_email(self):
        viewers = [
            make_viewer("anon-1", 95, "hot", at(0, 9), email=None),
            make_viewer("e@x.com", 80, "hot", at(0, 8)),
            make_viewer("f@x.com", 85, "hot", at(0, 7), name="Fay"),
        ]

        insights = generate_dashboard_insights(viewers, [], [])

        assert [i.title for i in insights] == ["Follow up with viewer", "Follow up with e@x.com"]

        named = generate_dashboard_insights(viewers[2:], [], [])
        assert named[0].title == "Follow up with Fay"

    def test_trending_needs_more_than_five_views(self):
        insights = generate_dashboard_insights([], [make_link("f1", 5)])
        assert insights == ()

    def test_limit(self):
        insights = generate_dashboard_insights(self.VIEWERS, self.LINKS, self.RECORDS, limit=1)
        assert [i.id for i in insights] == ["followup-b@x.com"]


class TestInsightsSummary:
    """Signals gathered for the rule tables."""

    def test_document_summary(self):
        summary = build_insights_summary(DOC_LOGS, previous_period_views=4)

        assert summary.total_views == 5
        assert summary.unique_viewers == 4
        assert summary.avg_engagement == link_score(DOC_LOGS, LinkType.FILE, at(2, 14 + 1 / 6))
        assert (summary.hot_leads_count, summary.warm_leads_count, summary.cold_leads_count) == (1, 0, 3)
        assert summary.hot_leads == (
            HotLead(
                name="Ann",
                email="a@acme.com",
                score=100,
                company="Acme",
                file_name="Deck",
                file_id="f1",
                is_return=True,
                downloaded=True,
                visit_count=2,
            ),
        )
        assert summary.companies_with_multiple_viewers == ("Acme",)
        assert summary.return_rate == 25
        assert summary.download_rate == 20
        assert summary.qr_scan_rate == 20
        assert summary.avg_completion == 55
        assert (summary.top_country, summary.top_country_percent, summary.countries_count) == ("US", 60, 2)
        assert (summary.desktop_percent, summary.mobile_percent) == (40, 60)
        assert summary.social_traffic_percent == 40
        assert summary.search_traffic_percent == 20
        assert summary.referral_traffic_percent == 20
        assert (summary.top_utm_campaign, summary.top_utm_campaign_views) == ("spring", 2)
        assert (summary.peak_day, summary.peak_hour) == ("Monday", "14:00")
        assert summary.views_change == 25
        assert summary.engagement_change is None
        assert summary.watch_completion is None
        assert summary.high_drop_off_page is None
        assert summary.is_external_url is False

    def test_empty_batch(self):
        summary = build_insights_summary([], link_type=LinkType.URL)

        assert summary.total_views == 0
        assert summary.avg_completion is None
        assert summary.is_external_url is True


class TestSectionInsights:
    """Insight rule table."""

    def test_document_section(self):
        summary = build_insights_summary(DOC_LOGS, previous_period_views=4)

        insights = generate_section_insights(DOC_LOGS, summary, SectionType.FILE_DOC)

        assert [i.id for i in insights] == [
            "hot-leads-ready",
            "low-engagement-warning",
            "company-interest",
            "geographic-concentration",
            "social-traffic-strong",
            "peak-time-identified",
            "views-trending-up",
            "mobile-dominant",
        ]
        assert insights[0].title == "1 hot lead ready for follow-up"
        assert insights[2].title == "Multiple viewers from Acme"
        assert insights[3].title == "60% of views from US"
        assert insights[5].title == "Peak viewing: Monday at 14:00"
        assert insights[6].description == "Momentum building - amplify"

    def test_no_views(self):
        insights = generate_section_insights([], InsightsSummary(), "file-doc")
        assert insights == (NO_VIEWS_INSIGHT,)

    def test_priority_sort_is_stable(self):
        summary = InsightsSummary(total_views=10, hot_leads_count=1, return_rate=40, views_change=-30)

        insights = generate_section_insights([make_log()], summary, "track-site")

        assert [i.id for i in insights] == [
            "hot-leads-ready",
            "low-engagement-warning",
            "views-declining",
            "tracksite-growing-interest",
            "strong-return-visitors",
        ]
        assert insights[2].title == "Views down 30% vs previous period"

    def test_cap(self):
        summary = build_insights_summary(DOC_LOGS, previous_period_views=4)
        insights = generate_section_insights(DOC_LOGS, summary, "file-doc", max_total=3)
        assert len(insights) == 3

    def test_failing_rule_is_skipped(self, caplog):
        summary = InsightsSummary(hot_leads_count=1, top_country_percent="lots")  # type: ignore[arg-type]

        with caplog.at_level(logging.WARNING):
            insights = generate_section_insights([make_log()], summary, "dashboard")

        assert [i.id for i in insights] == ["hot-leads-ready"]
        assert "geographic-concentration" in caplog.text

    def test_deterministic(self):
        summary = build_insights_summary(DOC_LOGS, previous_period_views=4)
        first = generate_section_insights(DOC_LOGS, summary, "file-doc")
        second = generate_section_insights(DOC_LOGS, summary, "file-doc")
        assert first == second


class TestActions:
    """Action rule table."""

    def test_document_actions(self):
        summary = build_insights_summary(DOC_LOGS)

        actions = generate_actions(summary, SectionType.FILE_DOC)

        assert [a.id for a in actions] == [
            "contact-hot-lead",
            "follow-up-company",
            "share-optimal-time",
            "refresh-content",
        ]
        assert actions[0].title == "Contact Ann (Acme)"
        assert actions[0].reason == "100% engagement on Deck"
        assert [b.label for b in actions[0].buttons] == ["Email", "LinkedIn"]
        assert actions[1].reason == "2 team members viewing"
        assert actions[2].title == "Share on Monday at 14:00"

    def test_scan_stops_at_cap(self):
        summary = InsightsSummary(
            total_views=20,
            avg_engagement=10,
            hot_leads_count=3,
            hot_leads=(HotLead(name="Ann", email="a@x.com", score=90, downloaded=True),),
            active_companies=(CompanyInfo("Acme", "acme.com", 2, ("a@acme.com", "b@acme.com")),),
            peak_day="Monday",
            peak_hour="9:00",
            views_change=50,
            download_rate=40,
            top_utm_campaign="spring",
            top_utm_campaign_views=6,
            top_utm_campaign_percent=30,
        )

        actions = generate_actions(summary, "dashboard")

        assert [a.id for a in actions] == [
            "contact-hot-lead",
            "contact-hot-leads-multiple",
            "follow-up-company",
            "share-optimal-time",
            "amplify-trending",
        ]

    def test_low_priority_last(self):
        summary = InsightsSummary(total_views=10, qr_scan_rate=0)

        actions = generate_actions(summary, "file-doc")

        assert [(a.id, a.priority) for a in actions] == [
            ("refresh-content", "medium"),
            ("try-qr-offline", "low"),
        ]

    def test_generated_from_summary_alone(self):
        assert generate_actions(InsightsSummary(), "dashboard") == ()


class TestContactSummary:
    """One contact across links."""

    RECORDS = [
        make_log(at(0, 10), file_id="f1", file_name="Deck", viewer_email="a@acme.com",
                 total_duration_seconds=650, completion_percentage=100, is_downloaded=True),
        make_log(at(1, 10.5), file_id="f1", file_name="Deck", viewer_email="A@Acme.com",
                 total_duration_seconds=30),
        make_log(at(2, 10.25), file_id="f2", file_name="Pricing", viewer_email="a@acme.com"),
        make_log(at(0, 11), file_id="f1", viewer_email="b@acme.com"),
        make_log(at(0, 12), file_id="f2", viewer_email="d@acme.com"),
        make_log(at(0, 13), file_id="f2", viewer_email="z@gmail.com"),
    ]

    def test_summary(self):
        contact = build_contact_summary("a@acme.com", self.RECORDS, now=at(2, 20.25))

        assert contact.total_visits == 3
        assert contact.files_viewed == 2
        assert contact.total_time_spent == 680
        assert contact.avg_engagement == 50
        assert contact.is_high_intent is False
        assert contact.has_downloaded is True
        assert contact.return_visit_count == 1
        assert contact.last_visit_hours_ago == 10
        assert (contact.peak_active_day, contact.peak_active_hour) == ("Monday", "10:00")
        assert contact.most_viewed_file == "Deck"
        assert contact.colleague_count == 2
        assert contact.company_name == "Acme"

    def test_contact_section(self):
        contact = build_contact_summary("a@acme.com", self.RECORDS, now=at(2, 20.25))
        summary = InsightsSummary(contact=contact)

        insights = generate_section_insights(self.RECORDS, summary, "contacts")
        actions = generate_actions(summary, "contacts")

        assert [i.id for i in insights] == [
            "contact-quick-return",
            "contact-colleagues-viewing",
            "contact-peak-time",
            "contact-specific-focus",
            "contact-downloaded",
        ]
        assert insights[1].title == "2 colleagues also viewed"
        assert insights[1].description == "Shared internally at Acme"
        assert [a.id for a in actions] == [
            "schedule-contact",
            "propose-team-demo",
            "send-followup-materials",
        ]
        assert actions[0].title == "Schedule for Monday 10:00"

    def test_unknown_contact(self):
        contact = build_contact_summary("nobody@acme.com", self.RECORDS, now=at(3))
        assert contact.total_visits == 0
        assert contact.last_visit_hours_ago == 999


class TestRunInsights:
    """Port-driven entry point."""

    def test_section_from_metadata(self):
        repo = FakeAccessLogRepo(
            DOC_LOGS, {"f1": FileMetadata(file_id="f1", name="Deck", mime_type="application/pdf")}
        )
        inp = InsightsInput(file_id="f1", start=at(0), end=at(3))

        out = run_insights(inp, repo=repo, clock=FakeClock(at(3)))

        assert out.success is True
        assert out.summary is not None
        assert out.summary.total_views == 5
        assert out.summary.views_change is None
        assert out.insights[0].id == "hot-leads-ready"
        assert out.actions[0].id == "contact-hot-lead"

    def test_previous_period(self):
        previous = [make_log(at(-2), file_id="f1", ip_address=f"10.0.0.{i}") for i in range(2)]
        repo = FakeAccessLogRepo(DOC_LOGS + previous, {"f1": FileMetadata(file_id="f1")})
        inp = InsightsInput(file_id="f1", start=at(0), end=at(3))

        out = run_insights(inp, repo=repo, clock=FakeClock(at(3)))

        assert out.summary is not None
        assert out.summary.total_views == 5
        assert out.summary.views_change == 150

    def test_track_site(self):
        rows = [make_log(at(0, i), file_id="u1", ip_address="1.1.1.1") for i in range(3)]
        repo = FakeAccessLogRepo(rows, {"u1": FileMetadata(file_id="u1", link_type=LinkType.URL)})
        inp = InsightsInput(file_id="u1", start=at(0), end=at(1))

        out = run_insights(inp, repo=repo, clock=FakeClock(at(1)))

        assert out.summary is not None
        assert out.summary.is_external_url is True
        assert "tracking-external-site" in [i.id for i in out.insights]

    def test_unknown_link(self):
        inp = InsightsInput(file_id="nope", start=at(0), end=at(1))

        out = run_insights(inp, repo=FakeAccessLogRepo([], {}), clock=FakeClock(at(1)))

        assert out.success is False
        assert out.errors[0].code == "NOT_FOUND"
