"""
Access log component - Tolerant parsing of persisted access-log rows.

Turns the loosely-typed rows handed over by the persistence collaborator into
immutable AccessLogRecord values.

Invariants:
- A malformed optional field never fails a row; it falls back to its default
- The only hard precondition is a parsable accessed_at; rows failing it are
  dropped and counted, never raised
- Naive timestamps are treated as UTC; every record carries an aware UTC time
- Completion percentages are capped at 100
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from .models import (
    DIRECT,
    UNKNOWN,
    AccessLogRecord,
    AccessLogValidationError,
    ContentCategory,
    FileMetadata,
    LinkType,
    ParseAccessLogsOutput,
)

logger = logging.getLogger(__name__)


# --- Default Configuration ---

DOCUMENT_MIME_PREFIXES: tuple[str, ...] = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument",
    "application/vnd.ms-powerpoint",
    "application/vnd.ms-excel",
    "text/",
)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "t"})


# --- Pure Functions (Functional Core) ---


def _pick(raw: Mapping[str, Any], *names: str) -> Any:
    """First non-None value among the given keys."""
    for name in names:
        value = raw.get(name)
        if value is not None:
            return value
    return None


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Returns None if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    if number is None:
        return None
    return int(number)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _to_label(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _to_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_time_map(value: Any) -> Mapping[int, float]:
    """Coerce a {page-or-segment: seconds} mapping, skipping bad entries."""
    if not isinstance(value, Mapping):
        return MappingProxyType({})
    result: dict[int, float] = {}
    for key, seconds in value.items():
        index = _to_int(key)
        amount = _to_float(seconds)
        if index is None or amount is None:
            continue
        result[index] = amount
    return MappingProxyType(result)


def _non_negative(
    value: Any,
    field_name: str,
    errors: list[AccessLogValidationError],
    row_index: int | None,
) -> float | None:
    if value is None:
        return None
    number = _to_float(value)
    if number is None:
        errors.append(
            AccessLogValidationError(
                code="INVALID_NUMBER",
                message=f"Ignoring non-numeric {field_name}: {value!r}",
                field_name=field_name,
                row_index=row_index,
            )
        )
        return None
    return max(0.0, number)


def parse_link_type(value: Any) -> LinkType:
    """Map a raw link type onto LinkType, defaulting to FILE."""
    if isinstance(value, LinkType):
        return value
    if isinstance(value, str) and value.strip().lower() == LinkType.URL.value:
        return LinkType.URL
    return LinkType.FILE


def parse_access_log(
    raw: Mapping[str, Any],
    row_index: int | None = None,
) -> tuple[AccessLogRecord | None, list[AccessLogValidationError]]:
    """
    Parse one raw row into an AccessLogRecord.

    Accepts snake_case or camelCase keys and the legacy `downloaded` /
    `is_qr_scan` flags.

    Args:
        raw: Row as returned by the persistence layer
        row_index: Position in the batch, only used in error reports

    Returns:
        (record, errors); record is None when accessed_at is missing or invalid
    """
    errors: list[AccessLogValidationError] = []

    raw_ts = _pick(raw, "accessed_at", "accessedAt")
    accessed_at = parse_timestamp(raw_ts)
    if accessed_at is None:
        errors.append(
            AccessLogValidationError(
                code="INVALID_TIMESTAMP",
                message=f"accessed_at is missing or unparsable: {raw_ts!r}",
                field_name="accessed_at",
                row_index=row_index,
            )
        )
        return None, errors

    def number(field_name: str, *names: str) -> float | None:
        return _non_negative(_pick(raw, field_name, *names), field_name, errors, row_index)

    completion = number("completion_percentage", "completionPercentage")

    email = _to_optional_str(_pick(raw, "viewer_email", "viewerEmail"))

    qr_flag = _to_bool(_pick(raw, "is_qr_scan", "isQrScan"))
    method = _to_optional_str(_pick(raw, "access_method", "accessMethod"))
    access_method = "qr_scan" if qr_flag or method == "qr_scan" else "direct"

    record = AccessLogRecord(
        accessed_at=accessed_at,
        record_id=_to_optional_str(_pick(raw, "id", "record_id", "recordId")),
        file_id=_to_optional_str(_pick(raw, "file_id", "fileId")),
        file_name=_to_optional_str(_pick(raw, "file_name", "fileName")),
        viewer_email=email.lower() if email else None,
        ip_address=_to_optional_str(_pick(raw, "ip_address", "ipAddress")),
        session_id=_to_optional_str(_pick(raw, "session_id", "sessionId")),
        viewer_name=_to_optional_str(_pick(raw, "viewer_name", "viewerName")),
        user_agent=_to_optional_str(_pick(raw, "user_agent", "userAgent")),
        total_duration_seconds=number("total_duration_seconds", "totalDurationSeconds"),
        completion_percentage=min(completion, 100.0) if completion is not None else None,
        watch_time_seconds=number("watch_time_seconds", "watchTimeSeconds"),
        video_duration_seconds=number("video_duration_seconds", "videoDurationSeconds"),
        is_downloaded=any(
            _to_bool(raw.get(name)) for name in ("is_downloaded", "isDownloaded", "downloaded")
        ),
        download_count=max(0, _to_int(_pick(raw, "download_count", "downloadCount")) or 0),
        is_return_visit=_to_bool(_pick(raw, "is_return_visit", "isReturnVisit")),
        access_method=access_method,
        country=_to_label(_pick(raw, "country"), UNKNOWN),
        city=_to_label(_pick(raw, "city"), UNKNOWN),
        region=_to_label(_pick(raw, "region"), UNKNOWN),
        device_type=_to_label(_pick(raw, "device_type", "deviceType"), UNKNOWN),
        browser=_to_label(_pick(raw, "browser"), UNKNOWN),
        os=_to_label(_pick(raw, "os"), UNKNOWN),
        language=_to_label(_pick(raw, "language"), UNKNOWN),
        traffic_source=_to_label(_pick(raw, "traffic_source", "trafficSource"), DIRECT),
        utm_source=_to_optional_str(_pick(raw, "utm_source", "utmSource")),
        utm_medium=_to_optional_str(_pick(raw, "utm_medium", "utmMedium")),
        utm_campaign=_to_optional_str(_pick(raw, "utm_campaign", "utmCampaign")),
        link_type=parse_link_type(_pick(raw, "link_type", "linkType")),
        pages_time_data=_to_time_map(_pick(raw, "pages_time_data", "pagesTimeData")),
        segments_time_data=_to_time_map(_pick(raw, "segments_time_data", "segmentsTimeData")),
        exit_page=_to_int(_pick(raw, "exit_page", "exitPage")),
    )
    return record, errors


def parse_access_logs(rows: Iterable[Mapping[str, Any]]) -> ParseAccessLogsOutput:
    """
    Parse a batch of raw rows.

    Rows with an unusable accessed_at are dropped and counted; everything else
    is kept with defaults substituted.
    """
    records: list[AccessLogRecord] = []
    errors: list[AccessLogValidationError] = []
    dropped = 0

    for index, raw in enumerate(rows):
        record, row_errors = parse_access_log(raw, row_index=index)
        errors.extend(row_errors)
        if record is None:
            dropped += 1
        else:
            records.append(record)

    if dropped:
        logger.warning("Dropped %s access log rows with invalid accessed_at", dropped)

    return ParseAccessLogsOutput(
        records=tuple(records),
        dropped_count=dropped,
        errors=errors,
        success=dropped == 0,
    )


def categorize(metadata: FileMetadata) -> ContentCategory:
    """Pick the content category that selects a link's rule set."""
    if metadata.link_type == LinkType.URL:
        return ContentCategory.FILE_URL

    mime = (metadata.mime_type or "").lower()
    if mime.startswith(("video/", "audio/")):
        return ContentCategory.FILE_MEDIA
    if mime.startswith("image/"):
        return ContentCategory.FILE_IMAGE
    if mime.startswith(DOCUMENT_MIME_PREFIXES):
        return ContentCategory.FILE_DOC
    return ContentCategory.FILE_OTHER


def filter_by_file(
    records: Iterable[AccessLogRecord], file_id: str
) -> tuple[AccessLogRecord, ...]:
    return tuple(r for r in records if r.file_id == file_id)
