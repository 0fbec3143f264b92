"""
Plan Rule Analyzer

Post-parse pass that walks a ParsedPlan and adds warnings for common
performance anti-patterns the engine itself does not flag: serial plans,
oversized memory grants, late filters, eager index spools, bad row
estimates, parallel skew, lookups and scans with residual predicates.

Usage:
    plan = PlanParser().parse(xml)
    analyze_plan(plan)
"""

from typing import Optional

from planscope.core.config import AnalysisSettings, Settings, get_settings
from planscope.core.constants import WarningSeverity
from planscope.core.logger import get_logger
from planscope.models.plan_models import ParsedPlan, PlanNode, PlanStatement, PlanWarning

logger = get_logger('analysis.plan_rules')

SERIAL_PLAN_REASONS = {
    "MaxDOPSetToOne": "MAXDOP is set to 1",
    "EstimatedDOPIsOne": "Estimated DOP is 1",
    "NoParallelPlansInDesktopOrExpressEdition": "Express/Desktop edition does not support parallelism",
    "CouldNotGenerateValidParallelPlan": "Optimizer could not generate a valid parallel plan",
    "QueryHintNoParallelSet": "OPTION (MAXDOP 1) hint forces serial execution",
}


def truncate(value: str, max_length: int) -> str:
    return value if len(value) <= max_length else value[:max_length] + "..."


class PlanRuleAnalyzer:
    """Adds rule based warnings to statements and operators (never removes any)"""
    
    def __init__(self, settings: Optional[AnalysisSettings] = None):
        self.settings = settings or get_settings().analysis
    
    def analyze(self, plan: ParsedPlan) -> ParsedPlan:
        added = 0
        for stmt in plan.all_statements:
            added += self.analyze_statement(stmt)
            for node in stmt.iter_nodes():
                added += self.analyze_node(node)
        
        logger.debug(f"Plan rules added {added} warning(s)")
        return plan
    
    def analyze_statement(self, stmt: PlanStatement) -> int:
        before = len(stmt.plan_warnings)
        
        if stmt.non_parallel_plan_reason:
            reason = SERIAL_PLAN_REASONS.get(stmt.non_parallel_plan_reason, stmt.non_parallel_plan_reason)
            stmt.plan_warnings.append(PlanWarning(
                warning_type="Serial Plan",
                message=f"Query forced to run serially: {reason}",
                severity=WarningSeverity.WARNING,
            ))
        
        grant = stmt.memory_grant
        if grant is not None:
            if grant.granted_kb > 0 and grant.max_used_kb > 0:
                waste_ratio = grant.granted_kb / grant.max_used_kb
                if (waste_ratio >= self.settings.excessive_grant_ratio
                        and grant.granted_kb > self.settings.excessive_grant_min_kb):
                    stmt.plan_warnings.append(PlanWarning(
                        warning_type="Excessive Memory Grant",
                        message=(
                            f"Granted {grant.granted_kb:,} KB but only used {grant.max_used_kb:,} KB "
                            f"({waste_ratio:.0f}x overestimate). Wasted memory blocks other queries."
                        ),
                        severity=WarningSeverity.WARNING,
                    ))
            
            if grant.grant_wait_time_ms > 0:
                critical = grant.grant_wait_time_ms >= self.settings.grant_wait_critical_ms
                stmt.plan_warnings.append(PlanWarning(
                    warning_type="Memory Grant Wait",
                    message=(
                        f"Query waited {grant.grant_wait_time_ms:,}ms for a memory grant. "
                        f"Server may be under memory pressure."
                    ),
                    severity=WarningSeverity.CRITICAL if critical else WarningSeverity.WARNING,
                ))
        
        return len(stmt.plan_warnings) - before
    
    def analyze_node(self, node: PlanNode) -> int:
        if node.is_statement_node:
            return 0
        
        before = len(node.warnings)
        preview = self.settings.predicate_preview_length
        
        if node.physical_op == "Filter" and node.predicate:
            node.warnings.append(PlanWarning(
                warning_type="Filter Operator",
                message=f"Filter discards rows late in the plan. Predicate: {truncate(node.predicate, preview)}",
                severity=WarningSeverity.WARNING,
            ))
        
        if node.logical_op == "Eager Spool" and "spool" in node.physical_op.lower():
            node.warnings.append(PlanWarning(
                warning_type="Eager Index Spool",
                message="Optimizer is building a temporary index at runtime. A permanent index may help.",
                severity=WarningSeverity.WARNING,
            ))
        
        self._check_row_estimate(node)
        self._check_parallel_skew(node)
        
        if node.lookup and node.predicate:
            node.warnings.append(PlanWarning(
                warning_type="Key Lookup",
                message=(
                    "Key Lookup with residual predicate. A covering index may eliminate this lookup. "
                    f"Predicate: {truncate(node.predicate, preview)}"
                ),
                severity=WarningSeverity.WARNING,
            ))
        
        physical = node.physical_op.lower()
        if "scan" in physical and "spool" not in physical and node.predicate:
            node.warnings.append(PlanWarning(
                warning_type="Scan With Predicate",
                message=(
                    "Scan filtering rows with a residual predicate. An index on the predicate columns may help. "
                    f"Predicate: {truncate(node.predicate, preview)}"
                ),
                severity=WarningSeverity.WARNING,
            ))
        
        return len(node.warnings) - before
    
    def _check_row_estimate(self, node: PlanNode) -> None:
        if not node.has_actual_stats or node.estimated_rows <= 0:
            return
        
        ratio = (node.actual_rows or 0) / node.estimated_rows
        threshold = self.settings.row_estimate_ratio
        if threshold > ratio > 1.0 / threshold:
            return
        if ratio == 0:
            factor = float('inf')
        else:
            factor = ratio if ratio >= threshold else 1.0 / ratio
        direction = "underestimated" if ratio >= threshold else "overestimated"
        
        factor_text = "no rows returned" if ratio == 0 else f"{factor:.0f}x {direction}"
        node.warnings.append(PlanWarning(
            warning_type="Row Estimate Mismatch",
            message=(
                f"Estimated {node.estimated_rows:,.0f} rows, actual {node.actual_rows or 0:,} "
                f"({factor_text}). May cause poor plan choices."
            ),
            severity=(WarningSeverity.CRITICAL if factor >= self.settings.critical_estimate_factor
                      else WarningSeverity.WARNING),
        ))
    
    def _check_parallel_skew(self, node: PlanNode) -> None:
        threads = node.thread_stats
        if len(threads) < self.settings.parallel_skew_min_threads:
            return
        
        total_rows = sum(t.actual_rows for t in threads)
        if total_rows <= 0:
            return
        
        busiest = max(threads, key=lambda t: t.actual_rows)
        skew_ratio = busiest.actual_rows / total_rows
        if skew_ratio >= self.settings.parallel_skew_ratio:
            node.warnings.append(PlanWarning(
                warning_type="Parallel Skew",
                message=(
                    f"Thread {busiest.thread_id} processed {skew_ratio:.0%} of rows "
                    f"({busiest.actual_rows:,}/{total_rows:,}). Work is heavily skewed to one thread."
                ),
                severity=WarningSeverity.WARNING,
            ))


def analyze_plan(plan: ParsedPlan, settings: Optional[AnalysisSettings] = None) -> ParsedPlan:
    """Shortcut function for rule analysis"""
    return PlanRuleAnalyzer(settings).analyze(plan)


def parse_and_analyze(xml_string: str, settings: Optional[Settings] = None) -> ParsedPlan:
    """Parse plan XML and run the rule analyzer on the result"""
    from planscope.analysis.plan_parser import PlanParser
    
    settings = settings or get_settings()
    plan = PlanParser(settings).parse(xml_string)
    return PlanRuleAnalyzer(settings.analysis).analyze(plan)
