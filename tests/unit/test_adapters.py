"""
Clock and in-memory repository adapter tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from linklens.adapters.clock import FixedClock, SystemClock
from linklens.adapters.memory_logs import InMemoryAccessLogRepo
from linklens.components.access_logs import FileMetadata


class TestClocks:
    def test_system_clock_is_utc(self) -> None:
        before = datetime.now(UTC)
        now = SystemClock().now_utc()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)
        assert now >= before

    def test_fixed_clock_assumes_utc_for_naive(self) -> None:
        clock = FixedClock(datetime(2026, 1, 1, 9, 30))
        assert clock.now_utc() == datetime(2026, 1, 1, 9, 30, tzinfo=UTC)


class TestInMemoryAccessLogRepo:
    def test_range_is_inclusive(self, repo: InMemoryAccessLogRepo) -> None:
        logs = repo.get_access_logs(
            "deck",
            datetime(2026, 1, 5, 14, 0, tzinfo=UTC),
            datetime(2026, 1, 7, 9, 0, tzinfo=UTC),
        )
        assert len(logs) == 3

    def test_naive_bounds_are_utc(self, repo: InMemoryAccessLogRepo) -> None:
        logs = repo.get_access_logs("deck", datetime(2026, 1, 8), datetime(2026, 1, 9))
        assert [r.ip_address for r in logs] == ["10.0.0.1"]

    def test_unknown_link(self, repo: InMemoryAccessLogRepo) -> None:
        assert repo.get_file_metadata("nope") is None
        assert repo.get_access_logs("nope", datetime.min.replace(tzinfo=UTC), datetime.now(UTC)) == []

    def test_load_rows_stores_parsed_records(self) -> None:
        repo = InMemoryAccessLogRepo(files=[FileMetadata(file_id="f1", name="One")])
        result = repo.load_rows(
            [
                {"fileId": "f1", "accessedAt": "2026-01-05T10:00:00Z", "viewerEmail": "a@x.com"},
                {"fileId": "f1", "accessedAt": "not a date"},
                {"file_id": "f1", "accessed_at": "2026-01-06T10:00:00+00:00"},
            ]
        )

        assert result.dropped_count == 1
        assert result.success is False
        assert len(repo.all_records()) == 2
        logs = repo.get_access_logs(
            "f1", datetime(2026, 1, 1, tzinfo=UTC), datetime(2026, 2, 1, tzinfo=UTC)
        )
        assert [r.viewer_email for r in logs] == ["a@x.com", None]
