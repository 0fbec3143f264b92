"""
RelOp tree construction

Every operator kind (Hash Match, Index Seek, Sort, ...) stores its details in
a different payload element under <RelOp>. Instead of one class per operator
the payload is read as a generic element: fields are extracted when present
and child RelOps are discovered at the two depths the showplan format uses.
"""

import xml.etree.ElementTree as ET
from collections import deque
from typing import Deque, List, Optional, Tuple

from planscope.analysis.icon_mapper import get_icon_key
from planscope.analysis.numeric import parse_bool, parse_float, parse_int, parse_truncated_int
from planscope.analysis.warning_classifier import classify_warnings
from planscope.analysis.xml_helpers import (
    child,
    children,
    local_name,
    scoped_descendants,
    strip_brackets,
)
from planscope.core.constants import DEFAULT_MAX_TREE_DEPTH, RELOP_WRAPPER_ELEMENTS
from planscope.core.logger import get_logger
from planscope.models.plan_models import PlanNode, ThreadStats

logger = get_logger('analysis.operator_builder')


def find_operator_element(rel_op: ET.Element) -> Optional[ET.Element]:
    """The operator specific payload: first child that is not a structural wrapper"""
    for sub in rel_op:
        if local_name(sub) not in RELOP_WRAPPER_ELEMENTS:
            return sub
    return None


def find_child_rel_ops(operator_elem: Optional[ET.Element]) -> List[ET.Element]:
    """
    Child RelOps of an operator payload
    
    Direct RelOp children come first, then RelOps one level further down
    (e.g. under the grouping children some operators wrap their inputs in).
    """
    if operator_elem is None:
        return []
    
    found = children(operator_elem, 'RelOp')
    for sub in operator_elem:
        if local_name(sub) == 'RelOp':
            continue
        found.extend(children(sub, 'RelOp'))
    return found


def format_column_reference(col_ref: ET.Element) -> str:
    """'[dbo].[T]' + '[Id]' -> 'dbo.T.Id'; bare column when there is no table"""
    column = col_ref.get('Column', '')
    table = col_ref.get('Table', '')
    name = f"{table}.{column}" if table else column
    return strip_brackets(name)


def _column_list(parent: Optional[ET.Element]) -> Optional[str]:
    if parent is None:
        return None
    cols = [format_column_reference(c) for c in children(parent, 'ColumnReference')]
    joined = ", ".join(c for c in cols if c)
    return joined or None


def _scalar_string(elem: Optional[ET.Element]) -> Optional[str]:
    """ScalarString of the first ScalarOperator under ``elem``"""
    for scalar in scoped_descendants(elem, 'ScalarOperator'):
        return scalar.get('ScalarString')
    return None


def _parse_object(node: PlanNode, operator_elem: ET.Element) -> None:
    obj = next(scoped_descendants(operator_elem, 'Object'), None)
    if obj is None:
        return
    
    schema = strip_brackets(obj.get('Schema'))
    table = strip_brackets(obj.get('Table'))
    index = strip_brackets(obj.get('Index'))
    parts = [part for part in (schema, table, index) if part]
    node.object_name = ".".join(parts) or None
    node.database_name = strip_brackets(obj.get('Database')) or None
    node.index_name = index or None


def _parse_seek_predicates(operator_elem: ET.Element) -> Optional[str]:
    seek_elems = list(scoped_descendants(operator_elem, 'SeekPredicateNew'))
    seek_elems.extend(scoped_descendants(operator_elem, 'SeekPredicate'))
    
    parts = []
    for seek in seek_elems:
        for scalar in scoped_descendants(seek, 'ScalarOperator'):
            value = scalar.get('ScalarString')
            if value:
                parts.append(value)
    return " AND ".join(parts) if parts else None


def _parse_order_by(operator_elem: ET.Element) -> Optional[str]:
    order_by = child(operator_elem, 'OrderBy')
    if order_by is None:
        return None
    
    parts = []
    for order_col in children(order_by, 'OrderByColumn'):
        col_ref = child(order_col, 'ColumnReference')
        name = format_column_reference(col_ref) if col_ref is not None else ""
        if name:
            direction = "DESC" if order_col.get('Ascending') == "false" else "ASC"
            parts.append(f"{name} {direction}")
    return ", ".join(parts) or None


def extract_operator_payload(node: PlanNode, operator_elem: Optional[ET.Element]) -> None:
    """Copy object, predicate and partitioning details from the payload element"""
    if operator_elem is None:
        return
    
    _parse_object(node, operator_elem)
    
    node.ordered = parse_bool(operator_elem.get('Ordered'))
    node.lookup = parse_bool(operator_elem.get('Lookup'))
    node.seek_predicates = _parse_seek_predicates(operator_elem)
    
    # Residual predicate
    predicate_elem = child(operator_elem, 'Predicate')
    if predicate_elem is not None:
        node.predicate = _scalar_string(predicate_elem)
    
    # Parallelism operators
    node.partitioning_type = operator_elem.get('PartitioningType')
    
    node.order_by = _parse_order_by(operator_elem)
    node.outer_references = _column_list(child(operator_elem, 'OuterReferences'))
    node.group_by = _column_list(child(operator_elem, 'GroupBy'))


def extract_runtime_stats(node: PlanNode, runtime_elem: Optional[ET.Element]) -> None:
    """
    Aggregate RunTimeCountersPerThread rows
    
    Counters are summed over threads; elapsed time is the maximum because the
    threads of a parallel operator run concurrently.
    """
    if runtime_elem is None:
        return
    
    node.has_actual_stats = True
    totals = dict.fromkeys((
        'ActualRows', 'ActualExecutions', 'ActualRowsRead', 'ActualRebinds',
        'ActualRewinds', 'ActualCPUms', 'ActualLogicalReads', 'ActualPhysicalReads',
    ), 0)
    max_elapsed = 0
    
    for thread in children(runtime_elem, 'RunTimeCountersPerThread'):
        for attr in totals:
            totals[attr] += parse_int(thread.get(attr))
        
        elapsed = parse_int(thread.get('ActualElapsedms'))
        max_elapsed = max(max_elapsed, elapsed)
        
        node.thread_stats.append(ThreadStats(
            thread_id=parse_int(thread.get('Thread')),
            actual_rows=parse_int(thread.get('ActualRows')),
            actual_elapsed_ms=elapsed,
        ))
    
    node.actual_rows = totals['ActualRows']
    node.actual_executions = totals['ActualExecutions']
    node.actual_rows_read = totals['ActualRowsRead']
    node.actual_rebinds = totals['ActualRebinds']
    node.actual_rewinds = totals['ActualRewinds']
    node.actual_cpu_ms = totals['ActualCPUms']
    node.actual_logical_reads = totals['ActualLogicalReads']
    node.actual_physical_reads = totals['ActualPhysicalReads']
    node.actual_elapsed_ms = max_elapsed


def parse_rel_op(rel_op: ET.Element, depth: int = 0) -> PlanNode:
    """Build one node from a RelOp element (children not included)"""
    node = PlanNode(
        node_id=parse_truncated_int(rel_op.get('NodeId')),
        physical_op=rel_op.get('PhysicalOp', ''),
        logical_op=rel_op.get('LogicalOp', ''),
        subtree_cost=parse_float(rel_op.get('EstimatedTotalSubtreeCost')),
        estimated_rows=parse_float(rel_op.get('EstimateRows')),
        estimated_io=parse_float(rel_op.get('EstimateIO')),
        estimated_cpu=parse_float(rel_op.get('EstimateCPU')),
        estimated_rebinds=parse_float(rel_op.get('EstimateRebinds')),
        estimated_rewinds=parse_float(rel_op.get('EstimateRewinds')),
        estimated_row_size=parse_truncated_int(rel_op.get('AvgRowSize')),
        parallel=parse_bool(rel_op.get('Parallel')),
        execution_mode=rel_op.get('EstimatedExecutionMode'),
        depth=depth,
    )
    node.icon_key = get_icon_key(node.physical_op)
    
    extract_operator_payload(node, find_operator_element(rel_op))
    node.output_columns = _column_list(child(rel_op, 'OutputList'))
    extract_runtime_stats(node, child(rel_op, 'RunTimeInformation'))
    node.warnings = classify_warnings(child(rel_op, 'Warnings'))
    
    return node


class OperatorTreeBuilder:
    """
    Builds the operator tree below a root RelOp
    
    Uses a FIFO work queue instead of recursion, so each parent's children
    are attached in document order and deeply nested plans cannot exhaust
    the call stack. RelOps deeper than ``max_depth`` are left out.
    """
    
    def __init__(self, max_depth: int = DEFAULT_MAX_TREE_DEPTH):
        self.max_depth = max_depth
    
    def build(self, root_rel_op: ET.Element, base_depth: int = 0) -> PlanNode:
        root = parse_rel_op(root_rel_op, depth=base_depth)
        queue: Deque[Tuple[ET.Element, PlanNode]] = deque([(root_rel_op, root)])
        truncated = False
        
        while queue:
            rel_op, node = queue.popleft()
            child_rel_ops = find_child_rel_ops(find_operator_element(rel_op))
            if not child_rel_ops:
                continue
            
            if node.depth + 1 - base_depth > self.max_depth:
                truncated = True
                continue
            
            for child_rel_op in child_rel_ops:
                child_node = parse_rel_op(child_rel_op, depth=node.depth + 1)
                node.add_child(child_node)
                queue.append((child_rel_op, child_node))
        
        if truncated:
            logger.warning(f"Operator tree deeper than {self.max_depth} levels, deeper operators skipped")
        return root
