"""
PlanScope - SQL Server execution plan (Showplan XML) parser and analyzer
"""

from planscope.core.constants import APP_VERSION as __version__
from planscope.analysis import (
    PlanParser,
    PlanRuleAnalyzer,
    parse_plan,
    analyze_plan,
    parse_and_analyze,
)
from planscope.models import (
    ParsedPlan,
    PlanBatch,
    PlanStatement,
    PlanNode,
    PlanWarning,
    MissingIndex,
    MemoryGrantInfo,
)

__all__ = [
    "__version__",
    "PlanParser",
    "PlanRuleAnalyzer",
    "parse_plan",
    "analyze_plan",
    "parse_and_analyze",
    "ParsedPlan",
    "PlanBatch",
    "PlanStatement",
    "PlanNode",
    "PlanWarning",
    "MissingIndex",
    "MemoryGrantInfo",
]
