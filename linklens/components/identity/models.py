"""
Identity component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..access_logs.models import AccessLogRecord

IdentitySource = Literal["email", "ip", "session", "anonymous"]


@dataclass(frozen=True)
class ViewerGroup:
    """All records sharing one resolved identity key, in input order."""

    viewer_id: str
    source: IdentitySource
    records: tuple[AccessLogRecord, ...]

    @property
    def visit_count(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class CompanyInfo:
    """A non-consumer email domain with several distinct viewers."""

    name: str
    domain: str
    viewer_count: int
    emails: tuple[str, ...]
