"""
Core module - Configuration, constants, exceptions, and logging

Provides:
- Settings/Config management
- Custom exceptions
- Logging
"""

from planscope.core.config import (
    Settings,
    ParserSettings,
    AnalysisSettings,
    LoggingSettings,
    get_settings,
    reset_settings,
)
from planscope.core.constants import *
from planscope.core.exceptions import *
from planscope.core.logger import (
    get_logger,
    setup_logging,
    setup_logging_from_settings,
    LogContext,
)

__all__ = [
    # Config
    "Settings",
    "ParserSettings",
    "AnalysisSettings",
    "LoggingSettings",
    "get_settings",
    "reset_settings",
    # Constants
    "APP_NAME",
    "APP_VERSION",
    "STATEMENT_NODE_ID",
    "WarningSeverity",
    "IndexColumnUsage",
    # Exceptions
    "PlanScopeError",
    "ConfigurationError",
    "InvalidSettingsError",
    "AnalysisError",
    "ExecutionPlanError",
    # Logging
    "get_logger",
    "setup_logging",
    "setup_logging_from_settings",
    "LogContext",
]
