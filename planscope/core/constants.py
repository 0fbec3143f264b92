"""
Application constants and enumerations
"""

from enum import Enum
from typing import Final

# =============================================================================
# Application Info
# =============================================================================

APP_NAME: Final[str] = "PlanScope"
APP_VERSION: Final[str] = "1.0.0"

# =============================================================================
# File Paths
# =============================================================================

CONFIG_FILE: Final[str] = "settings.json"
LOG_FILE: Final[str] = "planscope.log"

# =============================================================================
# Showplan Constants
# =============================================================================

# NodeId of the synthetic statement node wrapping each real operator tree.
# Real RelOp NodeIds are never negative.
STATEMENT_NODE_ID: Final[int] = -1

DEFAULT_MAX_TREE_DEPTH: Final[int] = 256

# Children of <RelOp> that are structural wrappers, not the operator payload
RELOP_WRAPPER_ELEMENTS: Final[frozenset[str]] = frozenset({
    "OutputList",
    "RunTimeInformation",
    "Warnings",
    "MemoryFractions",
    "RunTimePartitionSummary",
    "MemoryGrant",
    "InternalInfo",
})

# =============================================================================
# Enumerations
# =============================================================================


class WarningSeverity(str, Enum):
    """Plan warning severity levels"""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class IndexColumnUsage(str, Enum):
    """ColumnGroup usage tags inside a missing index suggestion"""
    EQUALITY = "EQUALITY"
    INEQUALITY = "INEQUALITY"
    INCLUDE = "INCLUDE"
