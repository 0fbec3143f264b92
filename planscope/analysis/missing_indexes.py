"""
Missing index suggestions

Reads MissingIndexGroup elements of a QueryPlan and proposes a
CREATE INDEX statement for every suggestion that has key columns.
"""

import xml.etree.ElementTree as ET
from typing import List, Optional

from planscope.analysis.numeric import parse_float
from planscope.analysis.xml_helpers import child, children, strip_brackets
from planscope.core.constants import IndexColumnUsage
from planscope.core.logger import get_logger
from planscope.models.plan_models import MissingIndex

logger = get_logger('analysis.missing_indexes')

# Key columns used for the proposed index name
INDEX_NAME_KEY_COLUMNS = 3


def build_create_statement(index: MissingIndex) -> Optional[str]:
    """
    Propose a CREATE INDEX statement
    
    Returns None when the suggestion has no equality or inequality columns.
    """
    key_columns = index.key_columns
    if not key_columns:
        return None
    
    index_name = f"IX_{index.table_name}_{'_'.join(key_columns[:INDEX_NAME_KEY_COLUMNS])}"
    stmt = f"CREATE NONCLUSTERED INDEX [{index_name}]\n"
    stmt += f"ON {index.full_table_name} ({', '.join(key_columns)})"
    
    if index.include_columns:
        stmt += f"\nINCLUDE ({', '.join(index.include_columns)})"
    
    return stmt


def _parse_missing_index(index_elem: ET.Element, impact: float) -> MissingIndex:
    index = MissingIndex(
        database=strip_brackets(index_elem.get('Database')),
        schema_name=strip_brackets(index_elem.get('Schema')),
        table_name=strip_brackets(index_elem.get('Table')),
        impact=impact,
    )
    
    targets = {
        IndexColumnUsage.EQUALITY.value: index.equality_columns,
        IndexColumnUsage.INEQUALITY.value: index.inequality_columns,
        IndexColumnUsage.INCLUDE.value: index.include_columns,
    }
    for col_group in children(index_elem, 'ColumnGroup'):
        target = targets.get(col_group.get('Usage', ''))
        if target is None:
            continue
        for col in children(col_group, 'Column'):
            col_name = strip_brackets(col.get('Name'))
            if col_name:
                target.append(col_name)
    
    index.create_statement = build_create_statement(index)
    return index


def parse_missing_indexes(query_plan: Optional[ET.Element]) -> List[MissingIndex]:
    """
    Missing index suggestions of one statement
    
    Args:
        query_plan: The statement's QueryPlan element
    
    Returns:
        One MissingIndex per suggestion, each carrying its group's impact
    """
    result: List[MissingIndex] = []
    missing_elem = child(query_plan, 'MissingIndexes')
    if missing_elem is None:
        return result
    
    for group in children(missing_elem, 'MissingIndexGroup'):
        impact = parse_float(group.get('Impact'))
        for index_elem in children(group, 'MissingIndex'):
            result.append(_parse_missing_index(index_elem, impact))
    
    if result:
        logger.debug(f"Found {len(result)} missing index suggestion(s)")
    return result
