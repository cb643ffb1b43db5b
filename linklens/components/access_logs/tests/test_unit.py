"""
Unit tests for Access Log component.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from ..component import (
    categorize,
    parse_access_log,
    parse_access_logs,
    parse_link_type,
    parse_timestamp,
)
from ..models import AccessLogRecord, ContentCategory, FileMetadata, LinkType


class TestParseTimestamp:
    """Timestamp parsing."""

    def test_zulu_suffix(self):
        assert parse_timestamp("2026-01-05T10:00:00Z") == datetime(
            2026, 1, 5, 10, 0, tzinfo=UTC
        )

    def test_offset_converted_to_utc(self):
        dt = parse_timestamp("2026-01-05T10:00:00-05:00")
        assert dt == datetime(2026, 1, 5, 15, 0, tzinfo=UTC)

    def test_naive_treated_as_utc(self):
        dt = parse_timestamp("2026-01-05T10:00:00")
        assert dt is not None
        assert dt.tzinfo is not None
        assert dt.hour == 10

    def test_datetime_passthrough(self):
        src = datetime(2026, 1, 5, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert parse_timestamp(src) == datetime(2026, 1, 5, 10, 0, tzinfo=UTC)

    @pytest.mark.parametrize("value", [None, "", "not-a-date", 12345, "2026-13-40"])
    def test_invalid_returns_none(self, value):
        assert parse_timestamp(value) is None


class TestParseAccessLog:
    """Single-row parsing with defaults."""

    def test_minimal_row_defaults(self):
        record, errors = parse_access_log({"accessed_at": "2026-01-05T10:00:00Z"})

        assert errors == []
        assert record is not None
        assert record.total_duration_seconds is None
        assert record.completion_percentage is None
        assert record.country == "Unknown"
        assert record.device_type == "Unknown"
        assert record.traffic_source == "Direct"
        assert record.link_type == LinkType.FILE
        assert record.downloaded is False
        assert dict(record.pages_time_data) == {}

    def test_camel_case_keys(self):
        record, _ = parse_access_log(
            {
                "accessedAt": "2026-01-05T10:00:00Z",
                "viewerEmail": " Alice@Acme.COM ",
                "totalDurationSeconds": "65",
                "completionPercentage": 80,
                "isReturnVisit": True,
                "linkType": "url",
                "pagesTimeData": {"1": 10, "2": "20.5", "x": 3},
                "exitPage": "2",
            }
        )

        assert record is not None
        assert record.viewer_email == "alice@acme.com"
        assert record.total_duration_seconds == 65.0
        assert record.completion_percentage == 80.0
        assert record.is_return_visit is True
        assert record.link_type == LinkType.URL
        assert dict(record.pages_time_data) == {1: 10.0, 2: 20.5}
        assert record.exit_page == 2

    def test_legacy_download_flag(self):
        record, _ = parse_access_log(
            {"accessed_at": "2026-01-05T10:00:00Z", "is_downloaded": False, "downloaded": True}
        )
        assert record is not None
        assert record.downloaded is True

    def test_download_count_counts_as_download(self):
        record, _ = parse_access_log({"accessed_at": "2026-01-05T10:00:00Z", "download_count": 2})
        assert record is not None
        assert record.downloaded is True

    def test_qr_scan_flags(self):
        a, _ = parse_access_log({"accessed_at": "2026-01-05T10:00:00Z", "is_qr_scan": True})
        b, _ = parse_access_log(
            {"accessed_at": "2026-01-05T10:00:00Z", "access_method": "qr_scan"}
        )
        assert a is not None and a.is_qr_scan
        assert b is not None and b.is_qr_scan

    def test_malformed_number_is_reported_not_fatal(self):
        record, errors = parse_access_log(
            {"accessed_at": "2026-01-05T10:00:00Z", "total_duration_seconds": "abc"}
        )

        assert record is not None
        assert record.total_duration_seconds is None
        assert len(errors) == 1
        assert errors[0].code == "INVALID_NUMBER"
        assert errors[0].field_name == "total_duration_seconds"

    def test_negative_duration_clamped(self):
        record, _ = parse_access_log(
            {"accessed_at": "2026-01-05T10:00:00Z", "total_duration_seconds": -5}
        )
        assert record is not None
        assert record.total_duration_seconds == 0.0

    def test_completion_capped_at_100(self):
        record, errors = parse_access_log(
            {"accessed_at": "2026-01-05T10:00:00Z", "completionPercentage": 400}
        )
        assert record is not None
        assert record.completion_percentage == 100.0
        assert errors == []

    def test_missing_timestamp_rejected(self):
        record, errors = parse_access_log({"viewer_email": "a@b.com"}, row_index=3)

        assert record is None
        assert errors[0].code == "INVALID_TIMESTAMP"
        assert errors[0].row_index == 3

    def test_record_is_immutable(self):
        record, _ = parse_access_log({"accessed_at": "2026-01-05T10:00:00Z"})
        assert record is not None
        with pytest.raises(AttributeError):
            record.country = "France"  # type: ignore[misc]


class TestParseAccessLogs:
    """Batch parsing with partial-failure tolerance."""

    def test_bad_rows_dropped_and_counted(self):
        rows = [
            {"accessed_at": "2026-01-05T10:00:00Z"},
            {"accessed_at": "garbage"},
            {"accessed_at": "2026-01-06T10:00:00Z"},
            {},
        ]

        out = parse_access_logs(rows)

        assert len(out.records) == 2
        assert out.dropped_count == 2
        assert out.success is False
        assert [e.row_index for e in out.errors] == [1, 3]

    def test_clean_batch_succeeds(self):
        out = parse_access_logs([{"accessed_at": "2026-01-05T10:00:00Z"}])
        assert out.success is True
        assert out.dropped_count == 0


class TestCategorize:
    """Content category selection."""

    @pytest.mark.parametrize(
        ("mime", "expected"),
        [
            ("application/pdf", ContentCategory.FILE_DOC),
            ("video/mp4", ContentCategory.FILE_MEDIA),
            ("audio/mpeg", ContentCategory.FILE_MEDIA),
            ("image/png", ContentCategory.FILE_IMAGE),
            ("application/zip", ContentCategory.FILE_OTHER),
            (None, ContentCategory.FILE_OTHER),
        ],
    )
    def test_mime_types(self, mime, expected):
        assert categorize(FileMetadata(file_id="f", mime_type=mime)) == expected

    def test_url_link(self):
        meta = FileMetadata(file_id="f", link_type=LinkType.URL, mime_type="application/pdf")
        assert categorize(meta) == ContentCategory.FILE_URL

    def test_parse_link_type_default(self):
        assert parse_link_type(None) == LinkType.FILE
        assert parse_link_type("URL") == LinkType.URL
        assert parse_link_type("weird") == LinkType.FILE


class TestAccessLogRecord:
    """Record construction without a parser."""

    def test_time_maps_default_empty(self):
        record = AccessLogRecord(accessed_at=datetime(2026, 1, 5, tzinfo=UTC))

        assert dict(record.pages_time_data) == {}
        assert dict(record.segments_time_data) == {}
        with pytest.raises(TypeError):
            record.pages_time_data[1] = 5.0  # type: ignore[index]

    def test_records_compare_by_value(self):
        when = datetime(2026, 1, 5, tzinfo=UTC)
        assert AccessLogRecord(accessed_at=when) == AccessLogRecord(accessed_at=when)
