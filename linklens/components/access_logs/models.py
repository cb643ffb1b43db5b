"""
Access log component input/output models.

One AccessLogRecord is one view/click event on a link. Records are immutable;
every engine component reads them and never mutates them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Literal

# --- Validation Error ---


@dataclass(frozen=True)
class AccessLogValidationError:
    """Access log parsing error."""

    code: str
    message: str
    field_name: str | None = None
    row_index: int | None = None


# --- Enums ---


class LinkType(str, Enum):
    """Which scoring formula family a link uses."""

    FILE = "file"
    URL = "url"


class ContentCategory(str, Enum):
    """Content category of a single link, used to pick rule sets."""

    FILE_DOC = "file-doc"
    FILE_MEDIA = "file-media"
    FILE_IMAGE = "file-image"
    FILE_URL = "file-url"
    FILE_OTHER = "file-other"


class SectionType(str, Enum):
    """Dashboard section requesting insights or actions."""

    DASHBOARD = "dashboard"
    FILE_DOC = "file-doc"
    FILE_MEDIA = "file-media"
    FILE_IMAGE = "file-image"
    FILE_OTHER = "file-other"
    FILE_URL = "file-url"
    TRACK_SITE = "track-site"
    CONTACTS = "contacts"
    ANALYTICS = "analytics"


AccessMethod = Literal["direct", "qr_scan"]

UNKNOWN = "Unknown"
DIRECT = "Direct"


def _empty_time_map() -> Mapping[int, float]:
    return MappingProxyType({})


# --- Access Log Model ---


@dataclass(frozen=True)
class AccessLogRecord:
    """
    Validated access log row.

    Optional engagement signals stay None when absent ("no signal"); the
    scorers decide where absence counts as zero. Categorical dimensions default
    to "Unknown" (traffic source to "Direct").
    """

    accessed_at: datetime
    record_id: str | None = None
    file_id: str | None = None
    file_name: str | None = None

    # Identity, in resolver priority order
    viewer_email: str | None = None
    ip_address: str | None = None
    session_id: str | None = None
    viewer_name: str | None = None
    user_agent: str | None = None

    # Engagement signals
    total_duration_seconds: float | None = None
    completion_percentage: float | None = None
    watch_time_seconds: float | None = None
    video_duration_seconds: float | None = None
    is_downloaded: bool = False
    download_count: int = 0
    is_return_visit: bool = False
    access_method: AccessMethod = "direct"

    # Dimensions
    country: str = UNKNOWN
    city: str = UNKNOWN
    region: str = UNKNOWN
    device_type: str = UNKNOWN
    browser: str = UNKNOWN
    os: str = UNKNOWN
    language: str = UNKNOWN
    traffic_source: str = DIRECT
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None

    link_type: LinkType = LinkType.FILE
    pages_time_data: Mapping[int, float] = field(default_factory=_empty_time_map)
    segments_time_data: Mapping[int, float] = field(default_factory=_empty_time_map)
    exit_page: int | None = None

    @property
    def downloaded(self) -> bool:
        """Download signal from either the flag or the counter."""
        return self.is_downloaded or self.download_count > 0

    @property
    def is_qr_scan(self) -> bool:
        return self.access_method == "qr_scan"


@dataclass(frozen=True)
class FileMetadata:
    """The small set of link metadata the engine needs."""

    file_id: str
    name: str = ""
    link_type: LinkType = LinkType.FILE
    total_pages: int | None = None
    video_duration_seconds: float | None = None
    mime_type: str | None = None
    destination_url: str | None = None


# --- Output Models ---


@dataclass(frozen=True)
class ParseAccessLogsOutput:
    """Output from batch parsing raw rows."""

    records: tuple[AccessLogRecord, ...]
    dropped_count: int = 0
    errors: list[AccessLogValidationError] = field(default_factory=list)
    success: bool = True
