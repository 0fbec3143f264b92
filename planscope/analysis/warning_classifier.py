"""
Plan warning classification

Turns the <Warnings> element of a RelOp (or of a QueryPlan) into typed,
severity tagged PlanWarning objects.
"""

import xml.etree.ElementTree as ET
from typing import List, Optional

from planscope.analysis.numeric import parse_bool, parse_int
from planscope.analysis.xml_helpers import child, children
from planscope.core.constants import WarningSeverity
from planscope.models.plan_models import PlanWarning

NO_JOIN_PREDICATE = "No Join Predicate"
SPILL_TO_TEMPDB = "Spill to TempDb"
MEMORY_GRANT = "Memory Grant"
IMPLICIT_CONVERSION = "Implicit Conversion"
MISSING_STATISTICS = "Missing Statistics"
WAIT = "Wait"


def classify_warnings(warnings_elem: Optional[ET.Element]) -> List[PlanWarning]:
    """
    Classify a <Warnings> element
    
    Args:
        warnings_elem: The Warnings element, or None
    
    Returns:
        Warnings in a fixed category order; empty when the element is absent
    """
    result: List[PlanWarning] = []
    if warnings_elem is None:
        return result
    
    if parse_bool(warnings_elem.get('NoJoinPredicate')):
        result.append(PlanWarning(
            warning_type=NO_JOIN_PREDICATE,
            message="This join has no join predicate (possible cross join)",
            severity=WarningSeverity.CRITICAL,
        ))
    
    for spill in children(warnings_elem, 'SpillToTempDb'):
        spill_level = spill.get('SpillLevel') or "?"
        thread_count = spill.get('SpilledThreadCount') or "?"
        result.append(PlanWarning(
            warning_type=SPILL_TO_TEMPDB,
            message=f"Spill level {spill_level}, {thread_count} thread(s)",
            severity=WarningSeverity.WARNING,
        ))
    
    grant_warning = child(warnings_elem, 'MemoryGrantWarning')
    if grant_warning is not None:
        kind = grant_warning.get('GrantWarningKind') or "Unknown"
        requested = parse_int(grant_warning.get('RequestedMemory'))
        granted = parse_int(grant_warning.get('GrantedMemory'))
        max_used = parse_int(grant_warning.get('MaxUsedMemory'))
        result.append(PlanWarning(
            warning_type=MEMORY_GRANT,
            message=f"{kind}: Requested {requested:,} KB, Granted {granted:,} KB, Used {max_used:,} KB",
            severity=WarningSeverity.WARNING,
        ))
    
    for convert in children(warnings_elem, 'PlanAffectingConvert'):
        issue = convert.get('ConvertIssue') or "Unknown"
        expression = convert.get('Expression', '')
        # Cardinality-only conversions hurt estimates, seek-blocking ones hurt access paths
        severity = WarningSeverity.WARNING if "Cardinality" in issue else WarningSeverity.CRITICAL
        result.append(PlanWarning(
            warning_type=IMPLICIT_CONVERSION,
            message=f"{issue}: {expression}",
            severity=severity,
        ))
    
    no_stats = child(warnings_elem, 'ColumnsWithNoStatistics')
    if no_stats is not None:
        columns = [c.get('Column', '') for c in children(no_stats, 'ColumnReference')]
        result.append(PlanWarning(
            warning_type=MISSING_STATISTICS,
            message=f"No statistics on: {', '.join(c for c in columns if c)}",
            severity=WarningSeverity.WARNING,
        ))
    
    for wait in children(warnings_elem, 'Wait'):
        result.append(PlanWarning(
            warning_type=WAIT,
            message=f"{wait.get('WaitType', '')}: {wait.get('WaitTime', '')}ms",
            severity=WarningSeverity.INFO,
        ))
    
    return result
