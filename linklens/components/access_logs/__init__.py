"""
Access log component - Record model and tolerant row parsing.
"""

from .component import (
    categorize,
    filter_by_file,
    parse_access_log,
    parse_access_logs,
    parse_link_type,
    parse_timestamp,
)
from .models import (
    AccessLogRecord,
    AccessLogValidationError,
    ContentCategory,
    FileMetadata,
    LinkType,
    ParseAccessLogsOutput,
    SectionType,
)
from .ports import AccessLogRepoPort, ClockPort

__all__ = [
    # Pure functions
    "parse_access_log",
    "parse_access_logs",
    "parse_link_type",
    "parse_timestamp",
    "categorize",
    "filter_by_file",
    # Models
    "AccessLogRecord",
    "AccessLogValidationError",
    "ContentCategory",
    "FileMetadata",
    "LinkType",
    "ParseAccessLogsOutput",
    "SectionType",
    # Ports
    "AccessLogRepoPort",
    "ClockPort",
]
