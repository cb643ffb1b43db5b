from linklens.rules.loader import load_rules
from linklens.rules.models import (
    BucketRules,
    FunnelRules,
    InsightRules,
    PerformanceRules,
    ProjectRules,
    Rules,
    ScoringRules,
)

__all__ = [
    "load_rules",
    "BucketRules",
    "FunnelRules",
    "InsightRules",
    "PerformanceRules",
    "ProjectRules",
    "Rules",
    "ScoringRules",
]
