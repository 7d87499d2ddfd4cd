"""Core types, agent directory and request router."""

from .types import (
    OPERATION_TOOL_MAP,
    AgentCapability,
    AgentEndpoint,
    AgentId,
    AgentTool,
    FilePath,
    LegacyPermissions,
    OperationRequest,
    OperationResponse,
    OperationType,
    PermissionResult,
    get_required_tool,
    has_agent_tool,
    normalize_agent_capability,
)
from .registry import AgentDirectory
from .events import EventBus, OrchestrationEvent
from .communication import (
    AgentCommunicationSystem,
    AgentMessage,
    QuestionRequest,
    QuestionResponse,
)
from .config import OrchestratorConfig, Settings, settings
from .orchestrator import Orchestrator

__all__ = [
    "OPERATION_TOOL_MAP",
    "AgentCapability",
    "AgentCommunicationSystem",
    "AgentDirectory",
    "AgentEndpoint",
    "AgentId",
    "AgentMessage",
    "AgentTool",
    "EventBus",
    "FilePath",
    "LegacyPermissions",
    "OperationRequest",
    "OperationResponse",
    "OperationType",
    "OrchestrationEvent",
    "Orchestrator",
    "OrchestratorConfig",
    "PermissionResult",
    "QuestionRequest",
    "QuestionResponse",
    "Settings",
    "get_required_tool",
    "has_agent_tool",
    "normalize_agent_capability",
    "settings",
]
