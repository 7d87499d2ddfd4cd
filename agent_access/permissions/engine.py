"""Permission decision engine.

Combines three sources of policy into one decision per request:

1. Pattern-based evaluation (agent and global access patterns), falling
   back to the legacy tool-gated check when patterns are not configured or
   the pattern system fails
2. Operator override rules, applied on top of that result
3. A final tool gate: the agent must hold the tool the operation needs

Every decision is recorded in a bounded audit log.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from ..core.registry import AgentDirectory
from ..core.types import (
    AgentCapability,
    AgentId,
    AgentTool,
    FilePath,
    OperationType,
    PermissionResult,
    get_required_tool,
)
from ..utils.errors import AgentNotFoundError, PatternSystemFailure, RuleValidationError
from ..utils.matching import normalize_path
from .rules import WILDCARD_AGENT, PermissionRule


@dataclass
class PermissionAuditEntry:
    """One recorded permission decision."""

    agent_id: AgentId
    operation: OperationType
    result: PermissionResult
    file_path: FilePath | None = None
    applied_rules: list[PermissionRule] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "agent_id": self.agent_id,
            "operation": self.operation.value,
            "file_path": self.file_path,
            "result": self.result.to_dict(),
            "applied_rules": [rule.id for rule in self.applied_rules],
        }


class PermissionDecisionEngine:
    """Decides whether an agent may perform an operation.

    ``check_permission`` is the synchronous legacy pipeline (tool-gated
    check plus override rules). ``check_permission_async`` runs the full
    pipeline including access patterns.

    Example:
        engine = PermissionDecisionEngine(directory)
        engine.add_rule({
            "id": "no-secrets", "agent_id": "editor", "file_pattern": "secrets/**",
            "operations": ["edit_file"], "allow": False, "priority": 95,
        })
        result = await engine.check_permission_async(
            "editor", OperationType.EDIT_FILE, "secrets/key.txt"
        )
    """

    def __init__(
        self,
        directory: AgentDirectory,
        audit_logging_enabled: bool = True,
        max_audit_entries: int = 1000,
        enable_access_patterns: bool = True,
        logger: logging.Logger | None = None,
    ):
        """Initialize the engine.

        Args:
            directory: Agent directory used for lookups and base checks
            audit_logging_enabled: Record every decision in the audit log
            max_audit_entries: Audit log capacity; oldest entries drop first
            enable_access_patterns: Use pattern-based evaluation in the
                async pipeline
            logger: Logger for engine events (defaults to the module logger)
        """
        self.directory = directory
        self.audit_logging_enabled = audit_logging_enabled
        self.enable_access_patterns = enable_access_patterns
        self.logger = logger or logging.getLogger(__name__)
        self._rules: dict[str, PermissionRule] = {}
        self._audit_log: deque[PermissionAuditEntry] = deque(maxlen=max_audit_entries)

    # Decisions

    def check_permission(
        self,
        agent_id: AgentId,
        operation: OperationType,
        file_path: FilePath | None = None,
    ) -> PermissionResult:
        """Synchronous check: legacy tool-gated result plus override rules."""
        agent = self.directory.get(agent_id)
        if agent is None:
            return self._record(
                PermissionResult(allowed=False, reason=f"Agent {agent_id} not found"),
                agent_id,
                operation,
                file_path,
            )

        base = self.directory.check_permissions(agent_id, operation, file_path)
        return self._decide(agent, operation, file_path, base)

    async def check_permission_async(
        self,
        agent_id: AgentId,
        operation: OperationType,
        file_path: FilePath | None = None,
    ) -> PermissionResult:
        """Full pipeline: patterns (or legacy fallback), override rules, tool gate."""
        agent = self.directory.get(agent_id)
        if agent is None:
            return self._record(
                PermissionResult(allowed=False, reason=f"Agent {agent_id} not found"),
                agent_id,
                operation,
                file_path,
            )

        base: PermissionResult | None = None
        if file_path is not None and self.enable_access_patterns:
            try:
                base = await self.directory.check_agent_access(agent_id, operation, file_path)
            except PatternSystemFailure as e:
                self.logger.warning(f"{e}; falling back to legacy permission check")
                base = self.directory.check_permissions(agent_id, operation, file_path)
                base.metadata["fallback"] = "legacy"

        if base is None:
            base = self.directory.check_permissions(agent_id, operation, file_path)

        return self._decide(agent, operation, file_path, base)

    def _decide(
        self,
        agent: AgentCapability,
        operation: OperationType,
        file_path: FilePath | None,
        base: PermissionResult,
    ) -> PermissionResult:
        result = base
        applied: list[PermissionRule] = []

        if file_path is not None:
            rule = self._top_rule(agent.id, operation, file_path)
            if rule is not None and self._overrides(rule, base):
                applied = [rule]
                verdict = "Allowed" if rule.allow else "Denied"
                result = replace(
                    base,
                    allowed=rule.allow,
                    reason=f"{verdict} by custom rule: {rule.label}",
                    metadata={**base.metadata, "rule_id": rule.id},
                )

        result = self._enforce_tool_gate(agent, operation, file_path, result)
        return self._record(result, agent.id, operation, file_path, applied)

    def _overrides(self, rule: PermissionRule, base: PermissionResult) -> bool:
        if base.allowed and rule.allow:
            return False
        # Pattern decisions carry a priority; only a higher-priority rule flips them
        pattern_priority = base.metadata.get("priority")
        return pattern_priority is None or rule.priority > pattern_priority

    def _top_rule(
        self, agent_id: AgentId, operation: OperationType, file_path: FilePath
    ) -> PermissionRule | None:
        path = normalize_path(file_path)
        applicable = [r for r in self._rules.values() if r.applies_to(agent_id, operation, path)]
        if not applicable:
            return None
        # max() keeps the first of equal-priority rules
        return max(applicable, key=lambda r: r.priority)

    def _enforce_tool_gate(
        self,
        agent: AgentCapability,
        operation: OperationType,
        file_path: FilePath | None,
        result: PermissionResult,
    ) -> PermissionResult:
        required_tool = result.required_tool or self.directory.resolve_required_tool(
            agent, operation, file_path
        )
        if self.directory.has_tool(agent, required_tool):
            if result.required_tool is None:
                return replace(result, required_tool=required_tool)
            return result

        # Keep an existing denial's reason; only a would-be allow is reworded
        return replace(
            result,
            allowed=False,
            reason=(
                f"Agent {agent.id} lacks required tool: {required_tool.value}"
                if result.allowed
                else result.reason
            ),
            required_tool=required_tool,
            available_tools=set(agent.tools),
            metadata={**result.metadata, "tool_denied": True},
        )

    def _record(
        self,
        result: PermissionResult,
        agent_id: AgentId,
        operation: OperationType,
        file_path: FilePath | None,
        applied_rules: list[PermissionRule] | None = None,
    ) -> PermissionResult:
        if self.audit_logging_enabled:
            self._audit_log.append(
                PermissionAuditEntry(
                    agent_id=agent_id,
                    operation=operation,
                    result=result,
                    file_path=file_path,
                    applied_rules=list(applied_rules or []),
                )
            )
        return result

    # Rule management

    def add_rule(self, rule: PermissionRule | Mapping[str, Any]) -> PermissionRule:
        """Validate and store an override rule.

        A rule with an existing ID replaces the stored one.

        Args:
            rule: A PermissionRule or a mapping of its fields

        Returns:
            The stored rule

        Raises:
            RuleValidationError: If the rule is malformed or names an
                unknown agent
        """
        if not isinstance(rule, PermissionRule):
            try:
                rule = PermissionRule.model_validate(rule)
            except ValidationError as e:
                raise RuleValidationError(f"Invalid permission rule: {e}") from e

        if rule.agent_id != WILDCARD_AGENT and self.directory.get(rule.agent_id) is None:
            raise RuleValidationError(f"Cannot add rule for non-existent agent: {rule.agent_id}")

        self._rules[rule.id] = rule
        self.logger.info(f"Permission rule added: {rule.id} for agent {rule.agent_id}")
        return rule

    def remove_rule(self, rule_id: str) -> bool:
        """Remove a rule. Returns False if no rule had that ID."""
        if self._rules.pop(rule_id, None) is None:
            return False
        self.logger.info(f"Permission rule removed: {rule_id}")
        return True

    def get_rules(self, agent_id: AgentId | None = None) -> list[PermissionRule]:
        """Stored rules, optionally only those naming ``agent_id``."""
        rules = list(self._rules.values())
        if agent_id is not None:
            rules = [rule for rule in rules if rule.agent_id == agent_id]
        return rules

    # Audit log

    def get_audit_log(
        self, agent_id: AgentId | None = None, limit: int | None = None
    ) -> list[PermissionAuditEntry]:
        """Recorded decisions, newest first."""
        entries = [
            entry
            for entry in reversed(self._audit_log)
            if agent_id is None or entry.agent_id == agent_id
        ]
        if limit:
            entries = entries[:limit]
        return entries

    def clear_audit_log(self) -> None:
        self._audit_log.clear()
        self.logger.info("Audit log cleared")

    def set_audit_logging(self, enabled: bool) -> None:
        self.audit_logging_enabled = enabled
        self.logger.info(f"Audit logging {'enabled' if enabled else 'disabled'}")

    # Introspection

    def check_directory_access(
        self,
        agent_id: AgentId,
        directory_path: str,
        operation: OperationType,
    ) -> PermissionResult:
        """Check if an agent may perform ``operation`` somewhere under a directory.

        The directory counts as covered when it lies under the literal
        prefix of one of the agent's directory patterns.
        """
        agent = self.directory.get(agent_id)
        if agent is None:
            return PermissionResult(allowed=False, reason=f"Agent {agent_id} not found")

        directory = normalize_path(directory_path).rstrip("/")
        required_tool = get_required_tool(operation, directory_path)

        for pattern in agent.directory_patterns:
            prefix = _literal_prefix(pattern)
            covered = not prefix or directory == prefix or directory.startswith(prefix + "/")
            if covered and self.directory.has_tool(agent, required_tool):
                return PermissionResult(
                    allowed=True,
                    required_tool=required_tool,
                    available_tools=set(agent.tools),
                )

        return PermissionResult(
            allowed=False,
            reason=(
                f"Agent {agent_id} does not have {operation.value} access "
                f"to directory {directory_path}"
            ),
            required_tool=required_tool,
            available_tools=set(agent.tools),
        )

    def get_effective_permissions(self, agent_id: AgentId) -> dict[str, Any]:
        """Directory patterns, tools and rules that apply to an agent.

        Raises:
            AgentNotFoundError: If the agent is not registered
        """
        agent = self.directory.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)

        tools: set[AgentTool] = set(agent.tools)
        return {
            "directory_patterns": list(agent.directory_patterns),
            "tools": tools,
            "rules": [
                rule for rule in self._rules.values() if rule.agent_id in (agent_id, WILDCARD_AGENT)
            ],
        }


def _literal_prefix(pattern: str) -> str:
    """Leading directory segments of a glob that contain no wildcards."""
    segments = []
    for segment in normalize_path(pattern).split("/"):
        if any(c in segment for c in "*?[{"):
            break
        segments.append(segment)
    return "/".join(segments)
