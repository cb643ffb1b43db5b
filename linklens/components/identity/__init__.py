"""
Identity component - Viewer identity resolution and company grouping.
"""

from .component import (
    DEFAULT_CONSUMER_DOMAINS,
    active_companies,
    anonymous_key,
    company_name,
    email_domain,
    group_by_viewer,
    is_consumer_domain,
    normalize_email,
    resolve_identity,
    resolve_viewer_id,
    return_rate,
    unique_viewer_count,
)
from .models import CompanyInfo, IdentitySource, ViewerGroup

__all__ = [
    # Pure functions
    "resolve_viewer_id",
    "resolve_identity",
    "anonymous_key",
    "normalize_email",
    "group_by_viewer",
    "unique_viewer_count",
    "return_rate",
    "email_domain",
    "is_consumer_domain",
    "company_name",
    "active_companies",
    "DEFAULT_CONSUMER_DOMAINS",
    # Models
    "CompanyInfo",
    "IdentitySource",
    "ViewerGroup",
]
