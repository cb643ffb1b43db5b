"""
In-memory access-log repository.

Holds parsed records and link metadata in process. Used by the API when no
external store is wired in, and by tests.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from linklens.components.access_logs import (
    AccessLogRecord,
    FileMetadata,
    ParseAccessLogsOutput,
    parse_access_logs,
)

logger = logging.getLogger(__name__)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


class InMemoryAccessLogRepo:
    """Access logs and link metadata kept in dictionaries keyed by file id."""

    def __init__(
        self,
        files: Iterable[FileMetadata] = (),
        records: Iterable[AccessLogRecord] = (),
    ) -> None:
        self._files: dict[str, FileMetadata] = {}
        self._records: dict[str, list[AccessLogRecord]] = {}
        for metadata in files:
            self.add_file(metadata)
        self.add_records(records)

    def add_file(self, metadata: FileMetadata) -> None:
        self._files[metadata.file_id] = metadata

    def add_records(self, records: Iterable[AccessLogRecord]) -> int:
        count = 0
        for record in records:
            self._records.setdefault(record.file_id, []).append(record)
            count += 1
        return count

    def load_rows(self, rows: Iterable[Mapping[str, Any]]) -> ParseAccessLogsOutput:
        """Parse raw rows and store every record that survived parsing."""
        result = parse_access_logs(rows)
        stored = self.add_records(result.records)
        logger.info(
            "Loaded %s access log rows (%s dropped)", stored, result.dropped_count
        )
        return result

    def get_access_logs(
        self,
        file_id: str,
        start: datetime,
        end: datetime,
    ) -> list[AccessLogRecord]:
        start, end = _aware(start), _aware(end)
        return [
            r
            for r in self._records.get(file_id, [])
            if start <= r.accessed_at <= end
        ]

    def get_file_metadata(self, file_id: str) -> FileMetadata | None:
        return self._files.get(file_id)

    def all_records(self) -> list[AccessLogRecord]:
        return [r for records in self._records.values() for r in records]
