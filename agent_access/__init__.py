"""Agent access control.

Decides whether named agents may read, write, edit or delete files, ask
each other questions, or validate and transform content, and routes
authorized operations to the owning agent's handler.

Example usage:
    from agent_access import (
        AgentCapability, AgentTool, OperationRequest, OperationType, Orchestrator,
    )

    orchestrator = Orchestrator()
    orchestrator.register_agent(
        AgentCapability(
            id="frontend",
            name="Frontend agent",
            directory_patterns=["src/ui/**"],
            tools={AgentTool.READ_LOCAL, AgentTool.EDIT},
        ),
        handler=handle_frontend_request,
    )

    response = await orchestrator.execute_request(
        OperationRequest(type=OperationType.EDIT_FILE, file_path="src/ui/app.tsx")
    )
"""

from .core import (
    AgentCapability,
    AgentCommunicationSystem,
    AgentDirectory,
    AgentEndpoint,
    AgentTool,
    EventBus,
    LegacyPermissions,
    OperationRequest,
    OperationResponse,
    OperationType,
    OrchestrationEvent,
    Orchestrator,
    OrchestratorConfig,
    PermissionResult,
    QuestionRequest,
    QuestionResponse,
    Settings,
    get_required_tool,
)
from .patterns import (
    AccessContext,
    AccessPattern,
    AccessPatternEvaluator,
    AccessPatternResult,
    CompositeAccessPattern,
    CompositeLogic,
    CustomAccessPattern,
    FileAccessContext,
    FileSystemAccessPattern,
    TimeBasedAccessPattern,
    create_file_access_context,
)
from .permissions import PermissionAuditEntry, PermissionDecisionEngine, PermissionRule
from .security import (
    DEFAULT_SECURITY_PATTERNS,
    SecurityAuditor,
    SecurityLevel,
    SecurityValidatedAccessPattern,
    create_restrictive_security_pattern,
    create_security_pattern,
)
from .utils import AccessControlError, setup_logging

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_SECURITY_PATTERNS",
    "AccessContext",
    "AccessControlError",
    "AccessPattern",
    "AccessPatternEvaluator",
    "AccessPatternResult",
    "AgentCapability",
    "AgentCommunicationSystem",
    "AgentDirectory",
    "AgentEndpoint",
    "AgentTool",
    "CompositeAccessPattern",
    "CompositeLogic",
    "CustomAccessPattern",
    "EventBus",
    "FileAccessContext",
    "FileSystemAccessPattern",
    "LegacyPermissions",
    "OperationRequest",
    "OperationResponse",
    "OperationType",
    "OrchestrationEvent",
    "Orchestrator",
    "OrchestratorConfig",
    "PermissionAuditEntry",
    "PermissionDecisionEngine",
    "PermissionResult",
    "PermissionRule",
    "QuestionRequest",
    "QuestionResponse",
    "SecurityAuditor",
    "SecurityLevel",
    "SecurityValidatedAccessPattern",
    "Settings",
    "TimeBasedAccessPattern",
    "create_file_access_context",
    "create_restrictive_security_pattern",
    "create_security_pattern",
    "get_required_tool",
    "setup_logging",
]
