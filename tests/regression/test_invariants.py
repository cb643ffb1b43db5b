"""
Cross-component regression tests over a generated batch of access logs.

The batch is seeded so every run sees the same rows, and spans the US
daylight-saving change on 2026-03-08.
"""

import random
from datetime import UTC, datetime, timedelta

import pytest

from linklens.components.access_logs import AccessLogRecord, LinkType, SectionType
from linklens.components.funnel import document_funnel, media_funnel
from linklens.components.insights import (
    build_insights_summary,
    generate_actions,
    generate_section_insights,
)
from linklens.components.performance import link_score, summarize_link
from linklens.components.scoring import score_viewers
from linklens.components.timebuckets import (
    Granularity,
    bucket_counts,
    filter_in_range,
    resolve_timezone,
)
from linklens.core.mathutil import round_half_up

START = datetime(2026, 3, 1, tzinfo=UTC)
END = datetime(2026, 3, 15, 23, 59, 59, tzinfo=UTC)
NOW = datetime(2026, 3, 16, tzinfo=UTC)


def generate_logs(seed: int = 42, count: int = 200) -> list[AccessLogRecord]:
    rng = random.Random(seed)
    emails = [None, "ann@acme.com", "bob@acme.com", "cy@globex.io", "dee@gmail.com"]
    logs = []
    for i in range(count):
        when = START + timedelta(minutes=rng.randrange(-3 * 24 * 60, 18 * 24 * 60))
        email = rng.choice(emails)
        logs.append(
            AccessLogRecord(
                accessed_at=when,
                record_id=f"r{i}",
                file_id="f1",
                viewer_email=email,
                ip_address=None if email else f"10.0.0.{rng.randrange(20)}",
                total_duration_seconds=rng.choice([None, 0, 5, 45, 200, 900]),
                completion_percentage=rng.choice([None, 0, 10, 30, 55, 80, 100, 130]),
                watch_time_seconds=rng.choice([None, 5, 30, 61, 150]),
                is_downloaded=rng.random() < 0.2,
                is_return_visit=rng.random() < 0.3,
                access_method="qr_scan" if rng.random() < 0.25 else "direct",
                country=rng.choice(["United States", "Canada", "Unknown"]),
                device_type=rng.choice(["Desktop", "Mobile", "Tablet"]),
                traffic_source=rng.choice(["Direct", "Social", "Search", "Referral"]),
                exit_page=rng.choice([None, 1, 2, 3, 5, 8, 12]),
                pages_time_data={p: float(rng.randrange(1, 60)) for p in range(1, rng.randrange(1, 9))},
            )
        )
    return logs


LOGS = generate_logs()


# --- Scores stay in range ---


@pytest.mark.parametrize("link_type", [LinkType.FILE, LinkType.URL])
def test_scores_are_bounded_integers(link_type: LinkType) -> None:
    for viewer in score_viewers(LOGS, link_type):
        assert isinstance(viewer.score, int)
        assert 0 <= viewer.score <= 100

    score = link_score(LOGS, link_type, NOW)
    assert isinstance(score, int)
    assert 0 <= score <= 100


def test_empty_batches_score_zero() -> None:
    assert link_score([], LinkType.FILE, NOW) == 0
    summary = summarize_link("f1", [], LinkType.FILE, NOW)
    assert summary.total_views == 0
    assert summary.return_rate == 0


# --- Time buckets conserve counts ---


@pytest.mark.parametrize("granularity", list(Granularity))
@pytest.mark.parametrize("tz_name", ["UTC", "America/New_York", "Asia/Kolkata"])
def test_bucket_counts_conserve_records(granularity: Granularity, tz_name: str) -> None:
    tz = resolve_timezone(tz_name)
    points = bucket_counts(LOGS, START, END, granularity, tz)
    keys = [p.bucket_key for p in points]

    assert sum(p.value for p in points) == len(filter_in_range(LOGS, START, END))
    assert keys == sorted(set(keys))


# --- Funnels never grow ---


def test_document_milestones_are_non_increasing() -> None:
    result = document_funnel(LOGS, total_pages=12)
    percentages = [m.percentage for m in result.milestones]
    counts = [m.count for m in result.milestones]

    assert percentages == sorted(percentages, reverse=True)
    assert counts == sorted(counts, reverse=True)


def test_media_milestones_are_non_increasing() -> None:
    result = media_funnel(LOGS, video_duration=120)
    percentages = [m.percentage for m in result.milestones]

    assert percentages == sorted(percentages, reverse=True)
    assert all(0 <= p <= 100 for p in percentages)


def test_page_tags_have_single_holder() -> None:
    rows = document_funnel(LOGS, total_pages=12).per_unit

    assert sum(1 for r in rows if r.is_popular) <= 1
    assert sum(1 for r in rows if r.is_most_engaging) <= 1


# --- Generators are deterministic ---


@pytest.mark.parametrize(
    "section", [SectionType.FILE_DOC, SectionType.TRACK_SITE, SectionType.DASHBOARD]
)
def test_insights_and_actions_repeat_exactly(section: SectionType) -> None:
    def run() -> tuple:
        summary = build_insights_summary(
            LOGS,
            link_type=LinkType.FILE,
            total_pages=12,
            previous_period_views=40,
            previous_period_engagement=30,
            now=NOW,
        )
        return (
            generate_section_insights(LOGS, summary, section),
            generate_actions(summary, section),
        )

    first, second = run(), run()
    assert first == second
    insights, actions = first
    assert len(insights) <= 8
    assert len(actions) <= 5


# --- Rounding ---


@pytest.mark.parametrize(
    "value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.4999, 2), (-0.5, 0)]
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected
