"""
Analysis Module - Showplan XML parsing and execution plan analysis
"""

from planscope.analysis.plan_parser import PlanParser, parse_plan
from planscope.analysis.plan_rules import PlanRuleAnalyzer, analyze_plan, parse_and_analyze
from planscope.analysis.icon_mapper import get_icon_key, get_statement_icon_key
from planscope.analysis.warning_classifier import classify_warnings
from planscope.analysis.missing_indexes import parse_missing_indexes, build_create_statement
from planscope.analysis.cost_annotator import annotate_costs

__all__ = [
    "PlanParser",
    "parse_plan",
    "PlanRuleAnalyzer",
    "analyze_plan",
    "parse_and_analyze",
    "get_icon_key",
    "get_statement_icon_key",
    "classify_warnings",
    "parse_missing_indexes",
    "build_create_statement",
    "annotate_costs",
]
