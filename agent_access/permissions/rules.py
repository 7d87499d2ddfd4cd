"""Operator-supplied permission override rules."""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    field_validator,
)

from ..core.types import AgentId, AgentTool, OperationType, get_required_tool
from ..utils.matching import match_path

WILDCARD_AGENT = "*"


class PermissionRule(BaseModel):
    """A rule that can flip a pattern-based or legacy decision.

    A rule applies to a request when its agent matches (or is ``"*"``), the
    operation is listed, the required tool is listed (if ``tools`` is set)
    and the path matches ``file_pattern``. Among applicable rules the
    highest priority wins.

    Example:
        rule = PermissionRule(
            id="no-secrets",
            agent_id="editor",
            file_pattern="secrets/**",
            operations=[OperationType.EDIT_FILE],
            allow=False,
            priority=95,
        )
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique rule identifier")
    description: str = Field(default="", description="Human-readable description")
    agent_id: AgentId = Field(..., description='Agent the rule applies to, or "*" for all')
    file_pattern: str = Field(..., description="Glob matched against the normalized path")
    operations: list[OperationType] = Field(..., description="Operations the rule covers")
    tools: list[AgentTool] | None = Field(
        default=None, description="If set, the rule only covers these required tools"
    )
    allow: StrictBool = Field(..., description="Whether the rule allows or denies")
    priority: StrictInt | StrictFloat = Field(..., description="Higher priority rules win")

    @field_validator("id", "agent_id", "file_pattern")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Reject empty or whitespace-only identifiers and patterns."""
        if not v.strip():
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("operations")
    @classmethod
    def validate_operations(cls, v: list[OperationType]) -> list[OperationType]:
        """Require at least one operation."""
        if not v:
            raise ValueError("rule must specify at least one operation")
        return v

    @property
    def label(self) -> str:
        """Description if set, else the rule ID."""
        return self.description or self.id

    def applies_to(self, agent_id: AgentId, operation: OperationType, file_path: str) -> bool:
        """Check whether this rule covers a request."""
        if self.agent_id not in (agent_id, WILDCARD_AGENT):
            return False
        if operation not in self.operations:
            return False
        if self.tools and get_required_tool(operation, file_path) not in self.tools:
            return False
        return match_path(file_path, self.file_pattern)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return self.model_dump(mode="json")
