"""Access pattern contract and request contexts.

Every access pattern answers two questions about a request context:

- ``applies_to(context)``: a cheap applicability test
- ``validate(context)``: the full allow/deny decision, only asked when the
  pattern applies
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..core.types import AgentId, FilePath, OperationType


@dataclass
class AccessContext:
    """Generic context for access pattern validation.

    Attributes:
        resource: The resource being accessed (file path, table, endpoint, ...)
        operation: The operation being performed
        requester_id: The agent or entity requesting access
        metadata: Additional request data
        timestamp: When the request was made
    """

    resource: Any
    operation: OperationType | str
    requester_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def operation_name(self) -> str:
        """The operation as a plain string, for keys and messages."""
        if isinstance(self.operation, OperationType):
            return self.operation.value
        return str(self.operation)


@dataclass
class FileAccessContext(AccessContext):
    """Context for file system access; ``resource`` is the file path."""

    file_path: FilePath = ""
    agent_id: AgentId = ""


def create_file_access_context(
    file_path: FilePath,
    operation: OperationType,
    agent_id: AgentId,
    metadata: dict[str, Any] | None = None,
) -> FileAccessContext:
    """Build a FileAccessContext for a single request.

    Example:
        ctx = create_file_access_context("src/app.py", OperationType.EDIT_FILE, "editor")
    """
    return FileAccessContext(
        resource=file_path,
        operation=operation,
        requester_id=agent_id,
        metadata=metadata or {},
        file_path=file_path,
        agent_id=agent_id,
    )


@dataclass
class AccessPatternResult:
    """Result of evaluating an access pattern.

    ``metadata["priority"]`` is stamped by the evaluator and drives
    best-match selection.
    """

    allowed: bool
    reason: str = ""
    pattern_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def priority(self) -> int:
        """Priority recorded in metadata, 0 when absent."""
        return self.metadata.get("priority") or 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "pattern_id": self.pattern_id,
            "metadata": self.metadata,
        }


class AccessPattern(ABC):
    """Base class for all access pattern implementations.

    Attributes:
        id: Unique pattern identifier (also part of the evaluator cache key)
        description: Human-readable description, used in reasons
        priority: Higher wins when several applicable patterns disagree
    """

    def __init__(self, id: str, description: str, priority: int):
        self.id = id
        self.description = description
        self.priority = priority

    @abstractmethod
    async def applies_to(self, context: AccessContext) -> bool:
        """Check if this pattern applies to the given context."""

    @abstractmethod
    async def validate(self, context: AccessContext) -> AccessPatternResult:
        """Decide access for a context this pattern applies to."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, priority={self.priority})"
