"""Core types for agent access control.

Defines the operations agents can request, the tools (capability grants)
that gate them, agent capability records, and the request/response/result
objects that flow through the decision pipeline.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..patterns.base import AccessPattern

AgentId = str
FilePath = str


class OperationType(Enum):
    """Types of operations that can be requested on behalf of an agent."""

    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    EDIT_FILE = "edit_file"
    DELETE_FILE = "delete_file"
    CREATE_DIRECTORY = "create_directory"
    EXECUTE_FILE = "execute_file"
    QUESTION = "question"
    VALIDATE = "validate"
    TRANSFORM = "transform"


class AgentTool(Enum):
    """Discrete capability grants an agent can hold.

    Example:
        if has_agent_tool(agent, AgentTool.EDIT):
            ...
    """

    READ_LOCAL = "read-local"  # Read files within assigned directories
    READ_GLOBAL = "read-global"  # Read files anywhere
    EDIT = "edit"  # Edit existing files
    CREATE = "create"  # Create new files
    DELETE = "delete"  # Delete files
    CREATE_DIRECTORY = "create-directory"  # Create directories
    EXECUTE = "execute"  # Run commands or executables
    NETWORK = "network"  # Access network resources
    INTER_AGENT_COMMUNICATION = "inter-agent-communication"  # Talk to other agents


# Tool required for each operation when the requester owns the path
OPERATION_TOOL_MAP: dict[OperationType, AgentTool] = {
    OperationType.READ_FILE: AgentTool.READ_LOCAL,
    OperationType.WRITE_FILE: AgentTool.CREATE,
    OperationType.EDIT_FILE: AgentTool.EDIT,
    OperationType.DELETE_FILE: AgentTool.DELETE,
    OperationType.CREATE_DIRECTORY: AgentTool.CREATE_DIRECTORY,
    OperationType.EXECUTE_FILE: AgentTool.EXECUTE,
    OperationType.QUESTION: AgentTool.INTER_AGENT_COMMUNICATION,
    OperationType.VALIDATE: AgentTool.READ_LOCAL,
    OperationType.TRANSFORM: AgentTool.EDIT,
}

# Operations that modify an existing or new file
WRITE_OPERATIONS: frozenset[OperationType] = frozenset(
    {OperationType.WRITE_FILE, OperationType.EDIT_FILE, OperationType.DELETE_FILE}
)


def get_required_tool(
    operation: OperationType,
    file_path: FilePath | None = None,
    is_global_access: bool = False,
) -> AgentTool:
    """Get the tool required to perform an operation.

    Args:
        operation: The requested operation
        file_path: Target path, if any (reserved for path-sensitive mappings)
        is_global_access: True when the requester is not the agent
            responsible for ``file_path``

    Returns:
        The required AgentTool

    Example:
        get_required_tool(OperationType.READ_FILE)  # READ_LOCAL
        get_required_tool(OperationType.READ_FILE, "x", True)  # READ_GLOBAL
    """
    if operation is OperationType.READ_FILE and is_global_access:
        return AgentTool.READ_GLOBAL
    return OPERATION_TOOL_MAP[operation]


@dataclass(frozen=True)
class AgentEndpoint:
    """An endpoint an agent exposes (e.g. "question", "validate", "transform")."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None


@dataclass(frozen=True)
class LegacyPermissions:
    """Boolean permission flags from older agent definitions.

    Converted into a tool set by normalize_agent_capability() when an agent
    declares no tools.
    """

    can_read: bool = True
    allow_global_read: bool = False
    can_write: bool = False
    can_delete: bool = False
    can_create_directories: bool = False
    can_execute: bool = False
    network_access: bool = False
    can_communicate: bool = True

    def to_tools(self) -> set[AgentTool]:
        """Map the flags onto the equivalent tool grants."""
        tools: set[AgentTool] = set()
        if self.can_read:
            tools.add(AgentTool.READ_LOCAL)
        if self.allow_global_read:
            tools.add(AgentTool.READ_GLOBAL)
        if self.can_write:
            tools.update({AgentTool.EDIT, AgentTool.CREATE})
        if self.can_delete:
            tools.add(AgentTool.DELETE)
        if self.can_create_directories:
            tools.add(AgentTool.CREATE_DIRECTORY)
        if self.can_execute:
            tools.add(AgentTool.EXECUTE)
        if self.network_access:
            tools.add(AgentTool.NETWORK)
        if self.can_communicate:
            tools.add(AgentTool.INTER_AGENT_COMMUNICATION)
        return tools


@dataclass
class AgentCapability:
    """Capability record for a registered agent.

    Attributes:
        id: Unique agent identifier
        name: Human-readable name
        description: What the agent is for
        directory_patterns: Globs of the paths this agent is responsible for
        tools: Tools the agent holds
        endpoints: Endpoints the agent exposes
        access_patterns: Access patterns evaluated for this agent's requests
        legacy_permissions: Old-style boolean flags, used only when ``tools``
            is empty
    """

    id: AgentId
    name: str
    description: str = ""
    directory_patterns: list[str] = field(default_factory=list)
    tools: set[AgentTool] = field(default_factory=set)
    endpoints: list[AgentEndpoint] = field(default_factory=list)
    access_patterns: list[AccessPattern] = field(default_factory=list)
    legacy_permissions: LegacyPermissions | None = None

    def has_endpoint(self, name: str) -> bool:
        """Check if this agent exposes an endpoint with the given name."""
        return any(endpoint.name == name for endpoint in self.endpoints)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "directory_patterns": list(self.directory_patterns),
            "tools": sorted(tool.value for tool in self.tools),
            "endpoints": [endpoint.name for endpoint in self.endpoints],
            "access_patterns": [pattern.id for pattern in self.access_patterns],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentCapability:
        """Create from a plain dictionary (as produced by a config loader).

        Raises:
            ValueError: If a tool name is not a known AgentTool
        """
        tools = set()
        for name in data.get("tools", []):
            try:
                tools.add(name if isinstance(name, AgentTool) else AgentTool(name))
            except ValueError:
                raise ValueError(f"Unknown tool: {name}") from None

        endpoints = [
            ep if isinstance(ep, AgentEndpoint) else AgentEndpoint(**ep)
            for ep in data.get("endpoints", [])
        ]

        legacy = data.get("legacy_permissions")
        if isinstance(legacy, dict):
            legacy = LegacyPermissions(**legacy)

        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            directory_patterns=list(data.get("directory_patterns", [])),
            tools=tools,
            endpoints=endpoints,
            access_patterns=list(data.get("access_patterns", [])),
            legacy_permissions=legacy,
        )


def has_agent_tool(agent: AgentCapability, tool: AgentTool) -> bool:
    """Check if an agent holds a tool. A read-global grant covers read-local."""
    if tool in agent.tools:
        return True
    return tool is AgentTool.READ_LOCAL and AgentTool.READ_GLOBAL in agent.tools


def normalize_agent_capability(
    agent: AgentCapability,
    default_tools: set[AgentTool] | None = None,
) -> AgentCapability:
    """Ensure an agent's tool set is populated.

    If ``agent.tools`` is empty, tools are derived from its legacy boolean
    flags, or failing that from ``default_tools``. Agents that already
    declare tools are returned unchanged.

    Returns:
        A (possibly new) AgentCapability with a non-empty tool set when
        any source provided one
    """
    if agent.tools:
        return agent
    if agent.legacy_permissions is not None:
        return replace(agent, tools=agent.legacy_permissions.to_tools())
    if default_tools:
        return replace(agent, tools=set(default_tools))
    return agent


@dataclass
class OperationRequest:
    """A request to perform an operation.

    Attributes:
        type: The operation requested
        payload: Operation-specific data passed to the handler
        file_path: Target path for file operations
        requesting_agent: ID of the agent that issued the request, if any
        request_id: Identifier used for tracking and history
    """

    type: OperationType
    payload: Any = None
    file_path: FilePath | None = None
    requesting_agent: AgentId | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class OperationResponse:
    """Response produced for an operation request."""

    success: bool
    handled_by: AgentId
    request_id: str
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PermissionResult:
    """Outcome of a permission check.

    Attributes:
        allowed: Whether the operation may proceed
        reason: Explanation, always set for denials
        responsible_agent: ID of the agent owning the target path
        required_tool: Tool the operation needs
        available_tools: Tools the requesting agent holds
        metadata: Extra decision details (pattern id, security level,
            fallback marker, ...)
    """

    allowed: bool
    reason: str | None = None
    responsible_agent: AgentId | None = None
    required_tool: AgentTool | None = None
    available_tools: set[AgentTool] = field(default_factory=set)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "responsible_agent": self.responsible_agent,
            "required_tool": self.required_tool.value if self.required_tool else None,
            "available_tools": sorted(tool.value for tool in self.available_tools),
            "metadata": self.metadata,
        }
