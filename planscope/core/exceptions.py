"""
Custom exceptions for PlanScope
"""

from typing import Optional, Any


class PlanScopeError(Exception):
    """Base exception for all application errors"""
    
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PlanScopeError):
    """Configuration related errors"""
    pass


class InvalidSettingsError(ConfigurationError):
    """Invalid settings value"""
    
    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = {"path": path, **kwargs}
        super().__init__(message, details)


# =============================================================================
# Analysis Errors
# =============================================================================


class AnalysisError(PlanScopeError):
    """Analysis related errors"""
    pass


class ExecutionPlanError(AnalysisError):
    """Failed to parse or analyze execution plan"""
    
    def __init__(self, message: str, plan_xml: Optional[str] = None, **kwargs):
        details = {"plan_xml": plan_xml[:200] if plan_xml else None, **kwargs}
        super().__init__(message, details)
