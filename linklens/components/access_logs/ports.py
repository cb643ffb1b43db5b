"""
Access log component port definitions.

The persistence layer is an external collaborator; its whole contract is
"return the access-log records for one link and date range".
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import AccessLogRecord, FileMetadata


class AccessLogRepoPort(Protocol):
    """Repository interface for persisted access logs."""

    def get_access_logs(
        self,
        file_id: str,
        start: datetime,
        end: datetime,
    ) -> list[AccessLogRecord]:
        """
        Get access logs for one link within [start, end].

        Order is arbitrary; callers sort wherever order matters.
        """
        ...

    def get_file_metadata(self, file_id: str) -> FileMetadata | None:
        """Get link metadata, or None if the link does not exist."""
        ...


class ClockPort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
