"""
Insights component - Rule-based insights and recommended actions.
"""

from .component import (
    ACTION_RULES,
    INSIGHT_RULES,
    NO_VIEWS_INSIGHT,
    build_contact_summary,
    build_insights_summary,
    generate_actions,
    generate_dashboard_insights,
    generate_section_insights,
    run_insights,
)
from .models import (
    Action,
    ActionButton,
    ActionRule,
    ContactSummary,
    HotLead,
    Insight,
    InsightCategory,
    InsightConfig,
    InsightRule,
    InsightsInput,
    InsightsOutput,
    InsightsSummary,
    InsightType,
    InsightValidationError,
    Priority,
)

__all__ = [
    # Component functions
    "run_insights",
    # Pure functions
    "generate_dashboard_insights",
    "build_insights_summary",
    "build_contact_summary",
    "generate_section_insights",
    "generate_actions",
    "INSIGHT_RULES",
    "ACTION_RULES",
    "NO_VIEWS_INSIGHT",
    # Models
    "Action",
    "ActionButton",
    "ActionRule",
    "ContactSummary",
    "HotLead",
    "Insight",
    "InsightCategory",
    "InsightConfig",
    "InsightRule",
    "InsightsInput",
    "InsightsOutput",
    "InsightsSummary",
    "InsightType",
    "InsightValidationError",
    "Priority",
]
