"""
Data models module
"""

from planscope.models.plan_models import (
    ParsedPlan,
    PlanBatch,
    PlanStatement,
    PlanNode,
    PlanWarning,
    MissingIndex,
    MemoryGrantInfo,
    ThreadStats,
)

__all__ = [
    "ParsedPlan",
    "PlanBatch",
    "PlanStatement",
    "PlanNode",
    "PlanWarning",
    "MissingIndex",
    "MemoryGrantInfo",
    "ThreadStats",
]
