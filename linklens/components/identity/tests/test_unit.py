"""
Unit tests for Identity component.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from ...access_logs.models import AccessLogRecord
from ..component import (
    active_companies,
    company_name,
    email_domain,
    group_by_viewer,
    is_consumer_domain,
    resolve_identity,
    resolve_viewer_id,
    return_rate,
    unique_viewer_count,
)

BASE = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)


def make_log(minutes: int = 0, **kwargs: Any) -> AccessLogRecord:
    return AccessLogRecord(accessed_at=BASE + timedelta(minutes=minutes), **kwargs)


class TestResolveViewerId:
    """Identity priority: email, IP, session, synthetic."""

    def test_email_wins(self):
        log = make_log(viewer_email="A@Acme.com", ip_address="1.1.1.1", session_id="s1")
        assert resolve_viewer_id(log) == "a@acme.com"
        assert resolve_identity(log)[1] == "email"

    def test_ip_when_no_email(self):
        log = make_log(ip_address="1.1.1.1", session_id="s1")
        assert resolve_viewer_id(log) == "1.1.1.1"

    def test_session_when_no_ip(self):
        assert resolve_viewer_id(make_log(session_id="s1")) == "s1"

    def test_anonymous_is_stable_across_batches(self):
        log = make_log(user_agent="UA", file_id="f1")
        assert resolve_viewer_id(log, 0) == resolve_viewer_id(log, 7)
        assert resolve_viewer_id(log).startswith("anon-")

    def test_distinct_anonymous_rows_do_not_collide(self):
        a = make_log(0, user_agent="UA", file_id="f1")
        b = make_log(1, user_agent="UA", file_id="f1")
        assert resolve_viewer_id(a) != resolve_viewer_id(b)

    def test_legacy_index_fallback(self):
        log = make_log()
        assert resolve_viewer_id(log, 4, legacy_index=True) == "anon-4"


class TestGroupByViewer:
    """Grouping rows into viewers."""

    def test_first_appearance_order(self):
        logs = [
            make_log(0, viewer_email="b@x.com"),
            make_log(1, viewer_email="a@x.com"),
            make_log(2, viewer_email="b@x.com"),
        ]

        groups = group_by_viewer(logs)

        assert [g.viewer_id for g in groups] == ["b@x.com", "a@x.com"]
        assert groups[0].visit_count == 2
        assert groups[0].records == (logs[0], logs[2])

    def test_deterministic(self):
        logs = [make_log(i, ip_address=f"10.0.0.{i % 3}") for i in range(9)]
        first = group_by_viewer(logs)
        second = group_by_viewer(logs)
        assert first == second

    def test_email_case_insensitive(self):
        logs = [make_log(0, viewer_email="Bob@X.com"), make_log(1, viewer_email="bob@x.com")]
        assert unique_viewer_count(logs) == 1

    def test_empty(self):
        assert group_by_viewer([]) == ()


class TestReturnRate:
    """Share of identified viewers with repeat visits."""

    def test_half_return(self):
        logs = [
            make_log(0, viewer_email="a@x.com"),
            make_log(1, viewer_email="a@x.com"),
            make_log(2, ip_address="9.9.9.9"),
        ]
        assert return_rate(logs) == 50

    def test_anonymous_ignored(self):
        logs = [make_log(0, session_id="s"), make_log(1, session_id="s")]
        assert return_rate(logs) == 0

    def test_empty(self):
        assert return_rate([]) == 0


class TestCompanies:
    """Company detection from email domains."""

    def test_domain_helpers(self):
        assert email_domain("Jane@Acme.co.uk") == "acme.co.uk"
        assert email_domain("not-an-email") is None
        assert email_domain(None) is None
        assert company_name("acme.co.uk") == "Acme"
        assert is_consumer_domain("Gmail.com") is True
        assert is_consumer_domain("acme.com") is False

    def test_active_companies(self):
        logs = [
            make_log(0, viewer_email="a@acme.com"),
            make_log(1, viewer_email="b@acme.com"),
            make_log(2, viewer_email="a@acme.com"),
            make_log(3, viewer_email="x@gmail.com"),
            make_log(4, viewer_email="y@gmail.com"),
            make_log(5, viewer_email="solo@globex.com"),
            make_log(6, viewer_email="c@initech.com"),
            make_log(7, viewer_email="d@initech.com"),
            make_log(8, viewer_email="e@initech.com"),
        ]

        companies = active_companies(logs)

        assert [c.name for c in companies] == ["Initech", "Acme"]
        assert companies[1].viewer_count == 2
        assert companies[1].emails == ("a@acme.com", "b@acme.com")

    def test_min_viewers(self):
        logs = [make_log(0, viewer_email="solo@globex.com")]
        assert active_companies(logs, min_viewers=1)[0].domain == "globex.com"
