"""
Identity component - Viewer identity resolution.

Derives a stable identity key for each access-log record so that several
rows can be grouped into one "viewer".

Invariants:
- Priority is email, then IP address, then session id, then a synthetic key
- The synthetic key is a hash of stable row fields, so one row resolves to
  the same key in any batch and two distinct anonymous rows never merge
- Grouping preserves first-appearance order of viewers and input order of
  records within a viewer
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Sequence

from ...core.mathutil import percent_int
from ..access_logs.models import AccessLogRecord
from .models import CompanyInfo, IdentitySource, ViewerGroup

# --- Default Configuration ---

DEFAULT_CONSUMER_DOMAINS: frozenset[str] = frozenset(
    {
        "gmail.com",
        "yahoo.com",
        "hotmail.com",
        "outlook.com",
        "icloud.com",
        "me.com",
        "protonmail.com",
    }
)

DEFAULT_MIN_COMPANY_VIEWERS = 2
ANONYMOUS_PREFIX = "anon-"


# --- Pure Functions (Functional Core) ---


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    cleaned = email.strip().lower()
    return cleaned or None


def anonymous_key(record: AccessLogRecord) -> str:
    """
    Synthetic identity for a record with no identity fields.

    Built from fields that do not depend on the record's position in a batch.
    """
    parts = [
        record.accessed_at.isoformat(),
        record.user_agent or "",
        record.file_id or "",
        record.record_id or "",
    ]
    digest = hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]
    return f"{ANONYMOUS_PREFIX}{digest}"


def resolve_identity(
    record: AccessLogRecord,
    index_in_batch: int | None = None,
    *,
    legacy_index: bool = False,
) -> tuple[str, IdentitySource]:
    """
    Resolve (identity key, source) for one record.

    Args:
        record: Access log record
        index_in_batch: Position in the batch; only used with legacy_index
        legacy_index: Use the old positional "anon-{index}" fallback

    Returns:
        Identity key and which field produced it
    """
    email = normalize_email(record.viewer_email)
    if email:
        return email, "email"
    if record.ip_address:
        return record.ip_address, "ip"
    if record.session_id:
        return record.session_id, "session"
    if legacy_index and index_in_batch is not None:
        return f"{ANONYMOUS_PREFIX}{index_in_batch}", "anonymous"
    return anonymous_key(record), "anonymous"


def resolve_viewer_id(
    record: AccessLogRecord,
    index_in_batch: int | None = None,
    *,
    legacy_index: bool = False,
) -> str:
    """Identity key for one record (email, IP, session, then synthetic)."""
    key, _ = resolve_identity(record, index_in_batch, legacy_index=legacy_index)
    return key


def group_by_viewer(
    records: Iterable[AccessLogRecord],
    *,
    legacy_index: bool = False,
) -> tuple[ViewerGroup, ...]:
    """
    Group records by resolved identity.

    Viewers appear in order of their first record; the same batch always
    yields the same keys in the same order.
    """
    order: list[str] = []
    sources: dict[str, IdentitySource] = {}
    members: dict[str, list[AccessLogRecord]] = {}

    for index, record in enumerate(records):
        key, source = resolve_identity(record, index, legacy_index=legacy_index)
        if key not in members:
            order.append(key)
            sources[key] = source
            members[key] = []
        members[key].append(record)

    return tuple(
        ViewerGroup(viewer_id=key, source=sources[key], records=tuple(members[key]))
        for key in order
    )


def unique_viewer_count(records: Iterable[AccessLogRecord]) -> int:
    return len(group_by_viewer(records))


def return_rate(records: Sequence[AccessLogRecord]) -> int:
    """
    Share of identified viewers who visited more than once (0-100).

    Only viewers identified by email or IP address are counted.
    """
    counts: dict[str, int] = {}
    for record in records:
        viewer = normalize_email(record.viewer_email) or record.ip_address
        if not viewer:
            continue
        counts[viewer] = counts.get(viewer, 0) + 1

    returning = sum(1 for count in counts.values() if count > 1)
    return percent_int(returning, len(counts))


def email_domain(email: str | None) -> str | None:
    """Lowercased domain part of an email, or None."""
    normalized = normalize_email(email)
    if not normalized or "@" not in normalized:
        return None
    domain = normalized.rsplit("@", 1)[1]
    return domain or None


def is_consumer_domain(
    domain: str,
    consumer_domains: frozenset[str] = DEFAULT_CONSUMER_DOMAINS,
) -> bool:
    return domain.lower() in consumer_domains


def company_name(domain: str) -> str:
    """Display name for a company domain ("acme.co.uk" -> "Acme")."""
    label = domain.split(".")[0]
    return label[:1].upper() + label[1:]


def active_companies(
    records: Iterable[AccessLogRecord],
    min_viewers: int = DEFAULT_MIN_COMPANY_VIEWERS,
    consumer_domains: frozenset[str] = DEFAULT_CONSUMER_DOMAINS,
) -> tuple[CompanyInfo, ...]:
    """
    Companies with at least `min_viewers` distinct viewer emails.

    Ordered by viewer count descending, then by first appearance.
    """
    emails_by_domain: dict[str, list[str]] = {}
    for record in records:
        email = normalize_email(record.viewer_email)
        domain = email_domain(email)
        if not email or not domain or is_consumer_domain(domain, consumer_domains):
            continue
        seen = emails_by_domain.setdefault(domain, [])
        if email not in seen:
            seen.append(email)

    companies = [
        CompanyInfo(
            name=company_name(domain),
            domain=domain,
            viewer_count=len(emails),
            emails=tuple(emails),
        )
        for domain, emails in emails_by_domain.items()
        if len(emails) >= min_viewers
    ]
    companies.sort(key=lambda c: c.viewer_count, reverse=True)
    return tuple(companies)
