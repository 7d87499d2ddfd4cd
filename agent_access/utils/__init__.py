"""Utility functions and classes."""

from .errors import (
    AccessControlError,
    AgentConfigurationError,
    AgentNotFoundError,
    CommunicationError,
    DuplicateAgentError,
    HandlerExecutionError,
    NoResponsibleAgentError,
    PatternEvaluationError,
    PatternSystemFailure,
    PermissionDeniedError,
    RuleValidationError,
)
from .logging_config import setup_logging
from .matching import match_any, match_path, normalize_path

__all__ = [
    "AccessControlError",
    "AgentConfigurationError",
    "AgentNotFoundError",
    "CommunicationError",
    "DuplicateAgentError",
    "HandlerExecutionError",
    "NoResponsibleAgentError",
    "PatternEvaluationError",
    "PatternSystemFailure",
    "PermissionDeniedError",
    "RuleValidationError",
    "match_any",
    "match_path",
    "normalize_path",
    "setup_logging",
]
