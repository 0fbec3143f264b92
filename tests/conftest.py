"""Shared Showplan XML fixtures."""

import pytest

from planscope.core.config import Settings

SHOWPLAN_NS = "http://schemas.microsoft.com/sqlserver/2004/07/showplan"


def showplan(statements: str, namespaced: bool = True, version: str = "1.564") -> str:
    """Wrap statement XML into a full ShowPlanXML document with one batch."""
    xmlns = f' xmlns="{SHOWPLAN_NS}"' if namespaced else ""
    return (
        f'<ShowPlanXML{xmlns} Version="{version}" Build="16.0.1000.6">'
        f'<BatchSequence><Batch><Statements>{statements}</Statements></Batch></BatchSequence>'
        f'</ShowPlanXML>'
    )


def statement(rel_op: str, stmt_type: str = "SELECT", cost: str = "0.5",
              query_plan_extra: str = "", query_plan_attrs: str = "") -> str:
    return (
        f'<StmtSimple StatementText="query text" StatementId="1" StatementType="{stmt_type}" '
        f'StatementSubTreeCost="{cost}" StatementEstRows="100">'
        f'<QueryPlan DegreeOfParallelism="1" {query_plan_attrs}>{query_plan_extra}{rel_op}</QueryPlan>'
        f'</StmtSimple>'
    )


def rel_op(node_id: int, physical_op: str, cost: float, payload: str = "", extra: str = "",
           logical_op: str = None, rows: float = 100) -> str:
    logical_op = logical_op or physical_op
    return (
        f'<RelOp NodeId="{node_id}" PhysicalOp="{physical_op}" LogicalOp="{logical_op}" '
        f'EstimateRows="{rows}" EstimateIO="0.003" EstimateCPU="0.0001" AvgRowSize="15" '
        f'EstimatedTotalSubtreeCost="{cost}" Parallel="0" EstimateRebinds="0" EstimateRewinds="0" '
        f'EstimatedExecutionMode="Row">{extra}{payload}</RelOp>'
    )


def operator_chain(depth: int) -> str:
    """Compute Scalar operators nested ``depth`` levels deep over a Table Scan."""
    xml = rel_op(depth, "Table Scan", 0.001, payload="<TableScan/>")
    for node_id in range(depth - 1, -1, -1):
        xml = rel_op(node_id, "Compute Scalar", 0.001, payload="<ComputeScalar>" + xml + "</ComputeScalar>")
    return xml


SCAN_REL_OP = rel_op(
    0, "Clustered Index Scan", 0.5,
    extra=(
        '<OutputList>'
        '<ColumnReference Database="[Sales]" Schema="[dbo]" Table="[Orders]" Column="OrderId"/>'
        '<ColumnReference Column="Expr1001"/>'
        '</OutputList>'
    ),
    payload=(
        '<IndexScan Ordered="true" ForcedIndex="false">'
        '<Object Database="[Sales]" Schema="[dbo]" Table="[Orders]" Index="[PK_Orders]" IndexKind="Clustered"/>'
        '<Predicate><ScalarOperator ScalarString="[Sales].[dbo].[Orders].[Status]=(1)"/></Predicate>'
        '</IndexScan>'
    ),
)

SIMPLE_SELECT_XML = showplan(statement(SCAN_REL_OP))

HASH_JOIN_XML = showplan(statement(
    rel_op(
        0, "Hash Match", 2.0, logical_op="Inner Join",
        payload=(
            '<Hash>'
            '<DefinedValues/>'
            '<HashKeysBuild><ColumnReference Table="[c]" Column="Id"/></HashKeysBuild>'
            + rel_op(1, "Index Seek", 0.5, payload=(
                '<IndexScan Ordered="true">'
                '<SeekPredicates><SeekPredicateNew><SeekKeys><Prefix ScanType="EQ"><RangeColumns/>'
                '<RangeExpressions><ScalarOperator ScalarString="(42)"/></RangeExpressions>'
                '</Prefix></SeekKeys></SeekPredicateNew></SeekPredicates>'
                '<Object Database="[Sales]" Schema="[dbo]" Table="[Customers]" Index="[IX_Customers]"/>'
                '</IndexScan>'
            ))
            + rel_op(2, "Table Scan", 0.5, payload=(
                '<TableScan Ordered="false">'
                '<Object Database="[Sales]" Schema="[dbo]" Table="[Orders]"/>'
                '</TableScan>'
            ))
            + '</Hash>'
        ),
    ),
    cost="2.0",
))


@pytest.fixture
def settings():
    return Settings()
