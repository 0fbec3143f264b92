"""
Execution Plan Data Models

Parsed Showplan XML as a navigable operator tree. Every model is a plain
dataclass; the parser fills them in once and the cost annotator / rule
analyzer are the only passes that touch them afterwards.
"""

import weakref
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Optional, List, Dict, Any, Iterator

from planscope.core.constants import STATEMENT_NODE_ID, WarningSeverity


def _export(obj: Any) -> Any:
    """Convert a dataclass field value into JSON friendly data"""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, list):
        return [_export(item) for item in obj]
    if hasattr(obj, 'to_dict'):
        return obj.to_dict()
    return obj


@dataclass
class PlanWarning:
    """Plan warning"""
    warning_type: str
    message: str
    severity: WarningSeverity = WarningSeverity.WARNING
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "warning_type": self.warning_type,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass
class MissingIndex:
    """Missing index suggestion"""
    database: str
    schema_name: str
    table_name: str
    impact: float  # 0-100, shared by every suggestion of a MissingIndexGroup
    equality_columns: List[str] = field(default_factory=list)
    inequality_columns: List[str] = field(default_factory=list)
    include_columns: List[str] = field(default_factory=list)
    create_statement: Optional[str] = None
    
    @property
    def key_columns(self) -> List[str]:
        """Index key columns, equality first"""
        return self.equality_columns + self.inequality_columns
    
    @property
    def full_table_name(self) -> str:
        return ".".join(part for part in (self.schema_name, self.table_name) if part)
    
    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _export(getattr(self, f.name)) for f in fields(self)}


@dataclass
class MemoryGrantInfo:
    """Statement level memory grant (all sizes in KB)"""
    serial_required_kb: int = 0
    serial_desired_kb: int = 0
    required_kb: int = 0
    desired_kb: int = 0
    requested_kb: int = 0
    granted_kb: int = 0
    max_used_kb: int = 0
    grant_wait_time_ms: int = 0
    
    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class ThreadStats:
    """RunTimeCountersPerThread row of an actual plan"""
    thread_id: int
    actual_rows: int = 0
    actual_elapsed_ms: int = 0
    
    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(eq=False)
class PlanNode:
    """
    Execution plan operator (one RelOp)
    
    Children are owned by the node. The upward link is a weak reference used
    for breadcrumbs and roll-ups only; it takes no part in equality, repr or
    serialization.
    """
    # Identity
    node_id: int = 0
    physical_op: str = ""
    logical_op: str = ""
    
    # Cost metrics
    subtree_cost: float = 0.0
    operator_cost: float = 0.0  # subtree cost minus children, set by the cost annotator
    cost_percent: int = 0
    estimated_rows: float = 0.0
    estimated_io: float = 0.0
    estimated_cpu: float = 0.0
    estimated_rebinds: float = 0.0
    estimated_rewinds: float = 0.0
    estimated_row_size: int = 0
    
    # Parallelism
    parallel: bool = False
    execution_mode: Optional[str] = None
    partitioning_type: Optional[str] = None
    
    # Object and predicates
    object_name: Optional[str] = None
    database_name: Optional[str] = None
    index_name: Optional[str] = None
    ordered: bool = False
    lookup: bool = False
    seek_predicates: Optional[str] = None
    predicate: Optional[str] = None
    output_columns: Optional[str] = None
    order_by: Optional[str] = None
    outer_references: Optional[str] = None
    group_by: Optional[str] = None
    
    # Display
    icon_key: str = ""
    depth: int = 0
    
    # Actual runtime stats (None for estimated plans)
    has_actual_stats: bool = False
    actual_rows: Optional[int] = None
    actual_executions: Optional[int] = None
    actual_rows_read: Optional[int] = None
    actual_rebinds: Optional[int] = None
    actual_rewinds: Optional[int] = None
    actual_elapsed_ms: Optional[int] = None
    actual_cpu_ms: Optional[int] = None
    actual_logical_reads: Optional[int] = None
    actual_physical_reads: Optional[int] = None
    thread_stats: List[ThreadStats] = field(default_factory=list, repr=False)
    
    warnings: List[PlanWarning] = field(default_factory=list)
    
    # Hierarchy
    children: List['PlanNode'] = field(default_factory=list, repr=False)
    parent_id: Optional[int] = field(default=None, compare=False)
    _parent_ref: Optional['weakref.ReferenceType[PlanNode]'] = field(
        default=None, init=False, repr=False, compare=False
    )
    
    @property
    def parent(self) -> Optional['PlanNode']:
        """Parent operator, None for the root or when the owning tree is gone"""
        if self._parent_ref is None:
            return None
        return self._parent_ref()
    
    def add_child(self, child: 'PlanNode') -> 'PlanNode':
        """Attach ``child`` as the last child of this node"""
        child._parent_ref = weakref.ref(self)
        child.parent_id = self.node_id
        self.children.append(child)
        return child
    
    def _compare_key(self) -> tuple:
        """Values of this node alone (children and parent links excluded)"""
        return tuple(
            getattr(self, f.name)
            for f in fields(self)
            if f.compare and f.name != 'children'
        )
    
    def __eq__(self, other: object) -> bool:
        """Structural equality of two subtrees, walked without recursion"""
        if not isinstance(other, PlanNode):
            return NotImplemented
        stack = [(self, other)]
        while stack:
            left, right = stack.pop()
            if left is right:
                continue
            if len(left.children) != len(right.children):
                return False
            if left._compare_key() != right._compare_key():
                return False
            stack.extend(zip(left.children, right.children))
        return True
    
    __hash__ = None
    
    @property
    def is_statement_node(self) -> bool:
        return self.node_id == STATEMENT_NODE_ID
    
    @property
    def display_name(self) -> str:
        name = self.physical_op or self.logical_op or "Unknown"
        if self.object_name:
            name += f"\n[{self.object_name}]"
        return name
    
    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0
    
    @property
    def is_expensive(self) -> bool:
        """Expensive operator? (>= 25% of the statement cost)"""
        return self.cost_percent >= 25
    
    @property
    def is_scan(self) -> bool:
        return "Scan" in self.physical_op
    
    @property
    def is_seek(self) -> bool:
        return "Seek" in self.physical_op
    
    def walk(self) -> Iterator['PlanNode']:
        """Pre-order traversal without recursion"""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))
    
    def get_all_operators(self) -> List['PlanNode']:
        """All operators as a flat list"""
        return list(self.walk())
    
    def path(self) -> List['PlanNode']:
        """Breadcrumb from the statement root down to this node"""
        trail = []
        node: Optional[PlanNode] = self
        while node is not None:
            trail.append(node)
            node = node.parent
        trail.reverse()
        return trail
    
    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            if f.name.startswith('_') or f.name == 'children':
                continue
            data[f.name] = _export(getattr(self, f.name))
        data['children'] = [child.to_dict() for child in self.children]
        return data


@dataclass
class PlanStatement:
    """One statement (StmtSimple) of a plan"""
    statement_text: str = ""
    statement_type: str = ""
    subtree_cost: float = 0.0
    estimated_rows: int = 0
    degree_of_parallelism: int = 0
    non_parallel_plan_reason: Optional[str] = None
    memory_grant: Optional[MemoryGrantInfo] = None
    missing_indexes: List[MissingIndex] = field(default_factory=list)
    plan_warnings: List[PlanWarning] = field(default_factory=list)
    root_node: Optional[PlanNode] = None
    
    @property
    def operator_count(self) -> int:
        """Real operators, the synthetic statement node excluded"""
        if self.root_node is None:
            return 0
        return sum(1 for node in self.root_node.walk() if not node.is_statement_node)
    
    def iter_nodes(self) -> Iterator[PlanNode]:
        if self.root_node is not None:
            yield from self.root_node.walk()
    
    def find_node(self, node_id: int) -> Optional[PlanNode]:
        for node in self.iter_nodes():
            if node.node_id == node_id:
                return node
        return None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "statement_text": self.statement_text,
            "statement_type": self.statement_type,
            "subtree_cost": self.subtree_cost,
            "estimated_rows": self.estimated_rows,
            "degree_of_parallelism": self.degree_of_parallelism,
            "non_parallel_plan_reason": self.non_parallel_plan_reason,
            "memory_grant": self.memory_grant.to_dict() if self.memory_grant else None,
            "missing_indexes": [mi.to_dict() for mi in self.missing_indexes],
            "plan_warnings": [w.to_dict() for w in self.plan_warnings],
            "root_node": self.root_node.to_dict() if self.root_node else None,
        }


@dataclass
class PlanBatch:
    """Statements of one batch"""
    statements: List[PlanStatement] = field(default_factory=list)
    
    def to_dict(self) -> Dict[str, Any]:
        return {"statements": [stmt.to_dict() for stmt in self.statements]}


@dataclass
class ParsedPlan:
    """
    Full parse result
    
    ``raw_xml`` always holds the input verbatim, even when the document could
    not be parsed and ``batches`` is empty.
    """
    raw_xml: str = ""
    build_version: Optional[str] = None
    batches: List[PlanBatch] = field(default_factory=list)
    
    @property
    def all_statements(self) -> List[PlanStatement]:
        return [stmt for batch in self.batches for stmt in batch.statements]
    
    @property
    def all_missing_indexes(self) -> List[MissingIndex]:
        return [mi for stmt in self.all_statements for mi in stmt.missing_indexes]
    
    @property
    def operator_count(self) -> int:
        return sum(stmt.operator_count for stmt in self.all_statements)
    
    @property
    def has_warnings(self) -> bool:
        for stmt in self.all_statements:
            if stmt.plan_warnings:
                return True
            if any(node.has_warnings for node in stmt.iter_nodes()):
                return True
        return False
    
    def expensive_operators(self, min_percent: int = 25) -> List[PlanNode]:
        """Real operators whose own cost share is at least ``min_percent``"""
        return [
            node
            for stmt in self.all_statements
            for node in stmt.iter_nodes()
            if not node.is_statement_node and node.cost_percent >= min_percent
        ]
    
    def to_dict(self, include_xml: bool = False) -> Dict[str, Any]:
        """Plain dict/list/str/number form for JSON consumers"""
        data = {
            "build_version": self.build_version,
            "batches": [batch.to_dict() for batch in self.batches],
        }
        if include_xml:
            data["raw_xml"] = self.raw_xml
        return data
