"""Tests for RelOp payload extraction and operator tree construction."""

import xml.etree.ElementTree as ET

import pytest

from planscope.analysis.operator_builder import (
    OperatorTreeBuilder,
    find_child_rel_ops,
    find_operator_element,
    parse_rel_op,
)
from planscope.analysis.plan_parser import parse_plan
from planscope.core.config import Settings

from tests.conftest import HASH_JOIN_XML, SCAN_REL_OP, operator_chain, rel_op, showplan, statement


def element(xml: str) -> ET.Element:
    return ET.fromstring(xml)


class TestOperatorAttributes:
    """Attributes read directly from <RelOp>."""

    def test_basic_attributes(self):
        node = parse_rel_op(element(SCAN_REL_OP))

        assert node.node_id == 0
        assert node.physical_op == "Clustered Index Scan"
        assert node.logical_op == "Clustered Index Scan"
        assert node.subtree_cost == pytest.approx(0.5)
        assert node.estimated_rows == pytest.approx(100)
        assert node.estimated_io == pytest.approx(0.003)
        assert node.estimated_cpu == pytest.approx(0.0001)
        assert node.estimated_row_size == 15
        assert node.execution_mode == "Row"
        assert node.parallel is False
        assert node.icon_key == "clustered_index_scan"

    @pytest.mark.parametrize("value,expected", [("1", True), ("true", True), ("0", False), ("false", False)])
    def test_parallel_flag(self, value, expected):
        node = parse_rel_op(element(f'<RelOp NodeId="3" PhysicalOp="Parallelism" Parallel="{value}"/>'))

        assert node.parallel is expected

    def test_malformed_numbers_default_to_zero(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="x" PhysicalOp="Sort" EstimateRows="lots" EstimatedTotalSubtreeCost=""/>'
        ))

        assert node.node_id == 0
        assert node.estimated_rows == 0.0
        assert node.subtree_cost == 0.0

    def test_missing_substructure(self):
        node = parse_rel_op(element('<RelOp NodeId="1" PhysicalOp="Constant Scan"/>'))

        assert node.object_name is None
        assert node.output_columns is None
        assert node.seek_predicates is None
        assert node.predicate is None
        assert node.has_actual_stats is False
        assert node.actual_rows is None
        assert node.warnings == []
        assert node.children == []


class TestPayloadExtraction:
    """Fields taken from the operator specific payload element."""

    def test_payload_skips_wrapper_elements(self):
        rel = element(
            '<RelOp NodeId="0" PhysicalOp="Sort"><OutputList/><MemoryFractions/>'
            '<RunTimeInformation/><Warnings/><Sort Distinct="false"/></RelOp>'
        )

        assert find_operator_element(rel).tag == "Sort"

    def test_no_payload(self):
        rel = element('<RelOp NodeId="0" PhysicalOp="Sort"><OutputList/><Warnings/></RelOp>')

        assert find_operator_element(rel) is None

    def test_object_predicate_and_output(self):
        node = parse_rel_op(element(SCAN_REL_OP))

        assert node.object_name == "dbo.Orders.PK_Orders"
        assert node.database_name == "Sales"
        assert node.index_name == "PK_Orders"
        assert node.ordered is True
        assert node.predicate == "[Sales].[dbo].[Orders].[Status]=(1)"
        assert node.output_columns == "Orders.OrderId, Expr1001"

    def test_object_name_omits_empty_parts(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="0" PhysicalOp="Table Scan"><TableScan>'
            '<Object Database="[db]" Schema="[dbo]" Table="[Heap]"/></TableScan></RelOp>'
        ))

        assert node.object_name == "dbo.Heap"
        assert node.index_name is None

    def test_seek_predicates_joined(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="0" PhysicalOp="Index Seek"><IndexScan>'
            '<SeekPredicates>'
            '<SeekPredicateNew><SeekKeys><Prefix><RangeExpressions>'
            '<ScalarOperator ScalarString="(1)"/></RangeExpressions></Prefix></SeekKeys></SeekPredicateNew>'
            '<SeekPredicateNew><SeekKeys><Prefix><RangeExpressions>'
            '<ScalarOperator ScalarString="(2)"/></RangeExpressions></Prefix></SeekKeys></SeekPredicateNew>'
            '</SeekPredicates>'
            '<Object Schema="[dbo]" Table="[T]" Index="[IX_T]"/>'
            '</IndexScan></RelOp>'
        ))

        assert node.seek_predicates == "(1) AND (2)"

    def test_legacy_seek_predicate_element(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="0" PhysicalOp="Index Seek"><IndexScan><SeekPredicates>'
            '<SeekPredicate><Prefix><RangeExpressions><ScalarOperator ScalarString="[a]=(5)"/>'
            '</RangeExpressions></Prefix></SeekPredicate></SeekPredicates></IndexScan></RelOp>'
        ))

        assert node.seek_predicates == "[a]=(5)"

    def test_partitioning_type(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="2" PhysicalOp="Parallelism" LogicalOp="Repartition Streams" Parallel="1">'
            '<Parallelism PartitioningType="Hash"><PartitionColumns/></Parallelism></RelOp>'
        ))

        assert node.partitioning_type == "Hash"
        assert node.icon_key == "parallelism"

    def test_lookup_and_order_by(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="4" PhysicalOp="Sort"><Sort>'
            '<OrderBy><OrderByColumn Ascending="false"><ColumnReference Table="[T]" Column="[Created]"/>'
            '</OrderByColumn><OrderByColumn Ascending="true"><ColumnReference Column="Id"/></OrderByColumn>'
            '</OrderBy></Sort></RelOp>'
        ))

        assert node.order_by == "T.Created DESC, Id ASC"

    def test_key_lookup_flag(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="5" PhysicalOp="Clustered Index Seek" LogicalOp="Clustered Index Seek">'
            '<IndexScan Lookup="1"><Object Schema="[dbo]" Table="[T]" Index="[PK_T]"/></IndexScan></RelOp>'
        ))

        assert node.lookup is True

    def test_parent_payload_ignores_child_object(self):
        stmt = parse_plan(HASH_JOIN_XML).all_statements[0]
        join = stmt.root_node.children[0]

        assert join.object_name is None
        assert join.seek_predicates is None
        assert join.children[0].seek_predicates == "(42)"


class TestRuntimeStatistics:
    """Per thread counters are aggregated."""

    def test_four_threads(self):
        threads = "".join(
            f'<RunTimeCountersPerThread Thread="{i}" ActualRows="{rows}" ActualElapsedms="{elapsed}" '
            f'ActualExecutions="1" ActualCPUms="{elapsed // 2}" ActualLogicalReads="10" '
            f'ActualPhysicalReads="1" ActualRowsRead="{rows * 2}" ActualRebinds="0" ActualRewinds="0"/>'
            for i, (rows, elapsed) in enumerate([(10, 50), (20, 120), (5, 30), (7, 90)], start=1)
        )
        node = parse_rel_op(element(
            f'<RelOp NodeId="0" PhysicalOp="Table Scan"><RunTimeInformation>{threads}</RunTimeInformation>'
            f'<TableScan/></RelOp>'
        ))

        assert node.has_actual_stats is True
        assert node.actual_rows == 42
        assert node.actual_elapsed_ms == 120
        assert node.actual_executions == 4
        assert node.actual_cpu_ms == 25 + 60 + 15 + 45
        assert node.actual_logical_reads == 40
        assert node.actual_physical_reads == 4
        assert node.actual_rows_read == 84
        assert [t.thread_id for t in node.thread_stats] == [1, 2, 3, 4]

    def test_runtime_element_without_threads(self):
        node = parse_rel_op(element(
            '<RelOp NodeId="0" PhysicalOp="Table Scan"><RunTimeInformation/><TableScan/></RelOp>'
        ))

        assert node.has_actual_stats is True
        assert node.actual_rows == 0
        assert node.actual_elapsed_ms == 0


class TestChildDiscovery:
    """Child RelOps at both nesting depths."""

    def test_direct_children(self):
        stmt = parse_plan(HASH_JOIN_XML).all_statements[0]
        join = stmt.root_node.children[0]

        assert [c.node_id for c in join.children] == [1, 2]
        assert all(c.parent is join for c in join.children)
        assert all(c.parent_id == 0 for c in join.children)

    def test_nested_children_come_after_direct_ones(self):
        payload = (
            '<Hash>'
            '<BuildSide>' + rel_op(2, "Index Scan", 0.2, payload="<IndexScan/>") + '</BuildSide>'
            + rel_op(1, "Table Scan", 0.3, payload="<TableScan/>")
            + '<ProbeSide>' + rel_op(3, "Index Scan", 0.1, payload="<IndexScan/>") + '</ProbeSide>'
            '</Hash>'
        )
        rel = element(rel_op(0, "Hash Match", 1.0, payload=payload))

        found = find_child_rel_ops(find_operator_element(rel))

        assert [c.get("NodeId") for c in found] == ["1", "2", "3"]

    def test_children_deeper_than_one_level_are_not_direct_children(self):
        payload = '<Hash><A><B>' + rel_op(1, "Table Scan", 0.3) + '</B></A></Hash>'
        node = OperatorTreeBuilder().build(element(rel_op(0, "Hash Match", 1.0, payload=payload)))

        assert node.children == []

    def test_grandchildren_and_depth(self):
        inner = rel_op(2, "Table Scan", 0.1, payload="<TableScan/>")
        middle = rel_op(1, "Filter", 0.2, payload="<Filter>" + inner + "</Filter>")
        root = OperatorTreeBuilder().build(element(rel_op(0, "Top", 0.3, payload="<Top>" + middle + "</Top>")))

        assert [n.node_id for n in root.walk()] == [0, 1, 2]
        assert [n.depth for n in root.walk()] == [0, 1, 2]
        grandchild = root.children[0].children[0]
        assert [n.node_id for n in grandchild.path()] == [0, 1, 2]


class TestDeepPlans:
    """Deep nesting neither recurses nor fails."""

    def test_very_deep_chain_builds_iteratively(self):
        builder = OperatorTreeBuilder(max_depth=5000)
        root = builder.build(element(operator_chain(1500)))

        assert sum(1 for _ in root.walk()) == 1501

    def test_depth_limit_truncates(self, caplog):
        settings = Settings(parser={"max_tree_depth": 16})
        plan = parse_plan(showplan(statement(operator_chain(30))), settings=settings)

        assert plan.operator_count == 17
        assert any("deeper than 16" in r.getMessage() for r in caplog.records)
