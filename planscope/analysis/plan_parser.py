"""
Execution Plan XML Parser

Parses SQL Server Showplan XML into batches, statements and an operator
tree per statement, then attributes costs to every operator.

Supported plan sources:
- Query Store (sys.query_store_plan.query_plan)
- DMV (sys.dm_exec_query_plan, sys.dm_exec_query_statistics_xml)
- SHOWPLAN XML / actual plans saved as .sqlplan

Reference: https://docs.microsoft.com/en-us/sql/relational-databases/showplan-logical-and-physical-operators-reference
"""

import xml.etree.ElementTree as ET
from typing import List, Optional

from planscope.analysis.cost_annotator import annotate_costs
from planscope.analysis.icon_mapper import get_statement_icon_key
from planscope.analysis.missing_indexes import parse_missing_indexes
from planscope.analysis.numeric import parse_float, parse_int, parse_truncated_int
from planscope.analysis.operator_builder import OperatorTreeBuilder
from planscope.analysis.warning_classifier import classify_warnings
from planscope.analysis.xml_helpers import child, children, local_name
from planscope.core.config import Settings, get_settings
from planscope.core.constants import STATEMENT_NODE_ID
from planscope.core.exceptions import ExecutionPlanError
from planscope.core.logger import LogContext, get_logger
from planscope.models.plan_models import (
    MemoryGrantInfo,
    ParsedPlan,
    PlanBatch,
    PlanNode,
    PlanStatement,
)

logger = get_logger('analysis.plan_parser')


def parse_memory_grant(query_plan: ET.Element) -> Optional[MemoryGrantInfo]:
    """MemoryGrantInfo of a QueryPlan, None when the plan has none"""
    mem_elem = child(query_plan, 'MemoryGrantInfo')
    if mem_elem is None:
        return None
    
    return MemoryGrantInfo(
        serial_required_kb=parse_int(mem_elem.get('SerialRequiredMemory')),
        serial_desired_kb=parse_int(mem_elem.get('SerialDesiredMemory')),
        required_kb=parse_int(mem_elem.get('RequiredMemory')),
        desired_kb=parse_int(mem_elem.get('DesiredMemory')),
        requested_kb=parse_int(mem_elem.get('RequestedMemory')),
        granted_kb=parse_int(mem_elem.get('GrantedMemory')),
        max_used_kb=parse_int(mem_elem.get('MaxUsedMemory')),
        grant_wait_time_ms=parse_int(mem_elem.get('GrantWaitTime')),
    )


def wrap_statement_root(stmt: PlanStatement, operator_root: PlanNode) -> PlanNode:
    """Put the statement's real root operator under a synthetic SELECT/INSERT/... node"""
    stmt_type = stmt.statement_type.upper() if stmt.statement_type else "QUERY"
    
    stmt_node = PlanNode(
        node_id=STATEMENT_NODE_ID,
        physical_op=stmt_type,
        logical_op=stmt_type,
        subtree_cost=stmt.subtree_cost,
        icon_key=get_statement_icon_key(stmt_type),
        depth=0,
    )
    stmt_node.add_child(operator_root)
    return stmt_node


class PlanParser:
    """
    Execution Plan XML Parser
    
    Usage:
        parser = PlanParser()
        plan = parser.parse(xml_string)
        
        for stmt in plan.all_statements:
            for op in stmt.root_node.get_all_operators():
                print(f"{op.display_name}: {op.cost_percent}%")
    
    The parser keeps no state between calls; one instance can be shared by
    several threads.
    """
    
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._builder = OperatorTreeBuilder(max_depth=self.settings.parser.max_tree_depth)
    
    def parse(self, xml_string: str) -> ParsedPlan:
        """
        Parse plan XML
        
        Never raises: a document that is not well formed gives a ParsedPlan
        with no batches and the input kept in ``raw_xml``.
        
        Args:
            xml_string: Showplan XML string
        
        Returns:
            ParsedPlan
        """
        plan = ParsedPlan(raw_xml=xml_string if xml_string is not None else "")
        
        if not xml_string or not xml_string.strip():
            logger.warning("Empty plan XML")
            return plan
        
        try:
            root = ET.fromstring(xml_string)
        except (ET.ParseError, ValueError) as e:
            logger.warning(f"XML parse error: {e}")
            return plan
        
        with LogContext(logger, "Parsing plan") as ctx:
            plan.build_version = root.get('Version')
            plan.batches = self._parse_batches(root)
            annotate_costs(plan.all_statements)
        
        logger.info(
            f"Parsed plan: {len(plan.all_statements)} statement(s), "
            f"{plan.operator_count} operators in {ctx.duration:.3f}s"
        )
        return plan
    
    def parse_strict(self, xml_string: str) -> ParsedPlan:
        """
        Parse plan XML, raising ExecutionPlanError when nothing usable was found
        
        For callers that want a hard failure instead of an empty result.
        """
        plan = self.parse(xml_string)
        if not plan.batches:
            raise ExecutionPlanError("No statement with an operator tree found in plan XML",
                                     plan_xml=xml_string)
        return plan
    
    def _parse_batches(self, root: ET.Element) -> List[PlanBatch]:
        batches: List[PlanBatch] = []
        
        # Standard shape: ShowPlanXML -> BatchSequence -> Batch -> Statements
        for batch_elem in root.iter():
            if local_name(batch_elem) != 'Batch':
                continue
            batch = PlanBatch()
            statements_elem = child(batch_elem, 'Statements')
            if statements_elem is None:
                continue
            for stmt_elem in statements_elem:
                stmt = self._parse_statement(stmt_elem)
                if stmt is not None:
                    batch.statements.append(stmt)
            if batch.statements:
                batches.append(batch)
        
        if batches:
            return batches
        
        # Fallback: StmtSimple elements without Batch grouping
        batch = PlanBatch()
        for stmt_elem in root.iter():
            if local_name(stmt_elem) != 'StmtSimple':
                continue
            stmt = self._parse_statement(stmt_elem)
            if stmt is not None:
                batch.statements.append(stmt)
        
        if batch.statements:
            logger.debug("Plan has no Batch elements, using flat statement list")
            batches.append(batch)
        return batches
    
    def _parse_statement(self, stmt_elem: ET.Element) -> Optional[PlanStatement]:
        """Statement with its operator tree, None when there is no tree"""
        query_plan = child(stmt_elem, 'QueryPlan')
        rel_op = child(query_plan, 'RelOp')
        if rel_op is None:
            return None
        
        stmt = PlanStatement(
            statement_text=stmt_elem.get('StatementText', ''),
            statement_type=stmt_elem.get('StatementType', ''),
            subtree_cost=parse_float(stmt_elem.get('StatementSubTreeCost')),
            estimated_rows=parse_truncated_int(stmt_elem.get('StatementEstRows')),
            degree_of_parallelism=parse_truncated_int(query_plan.get('DegreeOfParallelism')),
            non_parallel_plan_reason=query_plan.get('NonParallelPlanReason'),
            memory_grant=parse_memory_grant(query_plan),
            missing_indexes=parse_missing_indexes(query_plan),
            plan_warnings=classify_warnings(child(query_plan, 'Warnings')),
        )
        
        operator_root = self._builder.build(rel_op, base_depth=1)
        stmt.root_node = wrap_statement_root(stmt, operator_root)
        return stmt


def parse_plan(xml_string: str, settings: Optional[Settings] = None) -> ParsedPlan:
    """Shortcut function for plan parsing"""
    return PlanParser(settings).parse(xml_string)
