"""
Operator cost attribution

Showplan only carries subtree costs. An operator's own cost is its subtree
cost minus its children's, expressed as a share of the statement cost.
When a statement declares no cost, the top real operator's subtree cost
is the denominator instead.
"""

from typing import Iterable

from planscope.models.plan_models import PlanNode, PlanStatement


def statement_total_cost(stmt: PlanStatement) -> float:
    """Denominator for cost percentages, never zero"""
    total = stmt.subtree_cost
    root = stmt.root_node
    if total <= 0 and root is not None:
        total = root.subtree_cost
        # The synthetic statement node only echoes the declared cost
        if total <= 0 and root.is_statement_node and root.children:
            total = root.children[0].subtree_cost
    if total <= 0:
        # Degenerate plan: percentages will not add up to 100
        total = 1.0
    return total


def annotate_node_costs(root: PlanNode, total_cost: float) -> None:
    """Set operator_cost and cost_percent on every node under ``root``"""
    stack = [root]
    while stack:
        node = stack.pop()
        children_cost = sum(c.subtree_cost for c in node.children)
        # Float noise can make children add up to slightly more than the parent
        node.operator_cost = max(0.0, node.subtree_cost - children_cost)
        percent = int(round(node.operator_cost / total_cost * 100))
        node.cost_percent = min(100, max(0, percent))
        stack.extend(node.children)


def annotate_statement(stmt: PlanStatement) -> None:
    if stmt.root_node is None:
        return
    annotate_node_costs(stmt.root_node, statement_total_cost(stmt))


def annotate_costs(statements: Iterable[PlanStatement]) -> None:
    """Cost annotation for every statement that has an operator tree"""
    for stmt in statements:
        annotate_statement(stmt)
