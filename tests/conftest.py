from datetime import UTC, datetime
from pathlib import Path

import pytest

from linklens.adapters.clock import FixedClock
from linklens.adapters.memory_logs import InMemoryAccessLogRepo
from linklens.components.access_logs import AccessLogRecord, FileMetadata, LinkType
from linklens.rules.loader import load_rules
from linklens.rules.models import Rules

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=UTC)

DECK = FileMetadata(
    file_id="deck",
    name="Pitch Deck",
    link_type=LinkType.FILE,
    total_pages=8,
    mime_type="application/pdf",
)
DEMO = FileMetadata(
    file_id="demo",
    name="Product Demo",
    link_type=LinkType.FILE,
    video_duration_seconds=60,
    mime_type="video/mp4",
)
SITE = FileMetadata(
    file_id="site",
    name="Pricing Page",
    link_type=LinkType.URL,
    destination_url="https://example.com/pricing",
)


def deck_logs() -> list[AccessLogRecord]:
    """Four visits from three viewers; Ann is the only hot lead."""
    return [
        AccessLogRecord(
            accessed_at=datetime(2026, 1, 5, 14, 0, tzinfo=UTC),
            file_id="deck",
            file_name="Pitch Deck",
            viewer_email="Ann@Acme.com",
            viewer_name="Ann",
            total_duration_seconds=300,
            completion_percentage=100,
            is_downloaded=True,
            exit_page=8,
            pages_time_data={1: 40, 2: 40, 3: 40, 4: 40, 5: 40, 6: 40, 7: 30, 8: 30},
            country="United States",
            device_type="Desktop",
        ),
        AccessLogRecord(
            accessed_at=datetime(2026, 1, 6, 10, 0, tzinfo=UTC),
            file_id="deck",
            file_name="Pitch Deck",
            viewer_email="ann@acme.com",
            viewer_name="Ann",
            total_duration_seconds=200,
            completion_percentage=80,
            is_return_visit=True,
            exit_page=7,
            country="United States",
            device_type="Desktop",
        ),
        AccessLogRecord(
            accessed_at=datetime(2026, 1, 7, 9, 0, tzinfo=UTC),
            file_id="deck",
            file_name="Pitch Deck",
            viewer_email="bob@acme.com",
            viewer_name="Bob",
            total_duration_seconds=30,
            completion_percentage=25,
            access_method="qr_scan",
            exit_page=2,
            country="Canada",
            device_type="Mobile",
        ),
        AccessLogRecord(
            accessed_at=datetime(2026, 1, 8, 16, 0, tzinfo=UTC),
            file_id="deck",
            file_name="Pitch Deck",
            ip_address="10.0.0.1",
            total_duration_seconds=10,
            completion_percentage=12.5,
            exit_page=1,
            device_type="Mobile",
        ),
    ]


def site_logs() -> list[AccessLogRecord]:
    return [
        AccessLogRecord(
            accessed_at=datetime(2026, 1, 9, hour, 0, tzinfo=UTC),
            file_id="site",
            link_type=LinkType.URL,
            ip_address=ip,
            traffic_source="Social",
        )
        for hour, ip in ((9, "1.1.1.1"), (10, "1.1.1.1"), (11, "2.2.2.2"))
    ]


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def rules(project_root: Path) -> Rules:
    """The real rules file from the project root."""
    return load_rules(project_root / "rules.yaml")


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def repo() -> InMemoryAccessLogRepo:
    """Repository seeded with a document, a video and a track-site link."""
    return InMemoryAccessLogRepo(
        files=[DECK, DEMO, SITE],
        records=deck_logs() + site_logs(),
    )
