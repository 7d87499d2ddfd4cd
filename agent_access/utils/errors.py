"""Error types for the access control core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.types import AgentTool


class AccessControlError(Exception):
    """Base exception for access control errors."""

    pass


# Agent directory errors
class AgentNotFoundError(AccessControlError):
    """Raised when an operation references an unknown agent."""

    def __init__(self, agent_id: str):
        super().__init__(f"Agent {agent_id} not found")
        self.agent_id = agent_id


class DuplicateAgentError(AccessControlError):
    """Raised when registering an agent whose ID is already taken."""

    def __init__(self, agent_id: str):
        super().__init__(f"Agent with ID {agent_id} already exists")
        self.agent_id = agent_id


class AgentConfigurationError(AccessControlError):
    """Raised when an agent capability record is malformed."""

    pass


# Decision pipeline errors
class PermissionDeniedError(AccessControlError):
    """Raised inside the router when a request is not authorized.

    Never crosses the core boundary: the router converts it into a failed
    response carrying the reason and the required tool.
    """

    def __init__(self, reason: str, required_tool: AgentTool | None = None):
        super().__init__(f"Permission denied: {reason}")
        self.reason = reason
        self.required_tool = required_tool


class PatternEvaluationError(AccessControlError):
    """Raised when an access pattern fails while being evaluated."""

    def __init__(self, pattern_id: str, cause: BaseException):
        super().__init__(f"Error evaluating access pattern {pattern_id}: {cause}")
        self.pattern_id = pattern_id
        self.cause = cause


class PatternSystemFailure(AccessControlError):
    """Raised when pattern-based access checking cannot produce a decision."""

    pass


class RuleValidationError(AccessControlError):
    """Raised when a permission rule is malformed or targets an unknown agent."""

    pass


# Routing errors
class NoResponsibleAgentError(AccessControlError):
    """Raised when no agent can be found to handle a request."""

    pass


class HandlerExecutionError(AccessControlError):
    """Raised when an agent handler is missing or fails."""

    def __init__(self, agent_id: str, message: str):
        super().__init__(message)
        self.agent_id = agent_id


class CommunicationError(AccessControlError):
    """Raised when an inter-agent message or question cannot be delivered."""

    pass
