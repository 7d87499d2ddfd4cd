"""Agent directory.

Holds agent capability records and answers two questions for every
request: which agent owns a path, and whether an agent holds a tool. It
also provides the legacy tool-gated permission check and the
pattern-based access check used by the decision engine.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..patterns.base import AccessPattern, create_file_access_context
from ..patterns.evaluator import AccessPatternEvaluator
from ..utils.errors import (
    AgentConfigurationError,
    DuplicateAgentError,
    PatternSystemFailure,
)
from ..utils.matching import match_any, match_path, normalize_path
from .types import (
    WRITE_OPERATIONS,
    AgentCapability,
    AgentId,
    AgentTool,
    FilePath,
    OperationType,
    PermissionResult,
    get_required_tool,
    has_agent_tool,
    normalize_agent_capability,
)

logger = logging.getLogger(__name__)

# Bonus for directory patterns without wildcards
LITERAL_PATTERN_BONUS = 10


def pattern_specificity(pattern: str) -> int:
    """Score how specific a directory pattern is (higher is more specific).

    More path segments and fewer wildcards score higher; patterns with no
    wildcards at all get a large bonus.

    Example:
        pattern_specificity("src/api/**")  # 1
        pattern_specificity("src/**")  # 0
    """
    score = len(pattern.split("/")) - pattern.count("*")
    if "*" not in pattern and "?" not in pattern:
        score += LITERAL_PATTERN_BONUS
    return score


def patterns_overlap(first: str, second: str) -> bool:
    """Rough overlap test: equal patterns or one containing the other."""
    return first == second or first in second or second in first


class AgentDirectory:
    """Registry of agent capabilities.

    Responsible-agent lookup picks the agent with the most specific matching
    directory pattern; ties go to the agent registered first.

    Example:
        directory = AgentDirectory()
        directory.register(AgentCapability(
            id="frontend", name="Frontend", directory_patterns=["src/ui/**"],
            tools={AgentTool.READ_LOCAL, AgentTool.EDIT},
        ))
        owner = directory.find_responsible_agent("src/ui/button.tsx")
    """

    def __init__(
        self,
        evaluator: AccessPatternEvaluator | None = None,
        global_patterns: Iterable[AccessPattern] | None = None,
        default_tools: set[AgentTool] | None = None,
    ):
        """Initialize the directory.

        Args:
            evaluator: Evaluator used for pattern-based access checks
            global_patterns: Patterns evaluated for every agent's requests
            default_tools: Tools given to agents that declare neither tools
                nor legacy permission flags
        """
        self.evaluator = evaluator or AccessPatternEvaluator()
        self.global_patterns: list[AccessPattern] = list(global_patterns or [])
        self.default_tools = set(default_tools) if default_tools else None
        self._agents: dict[AgentId, AgentCapability] = {}

    # Registration

    def register(self, agent: AgentCapability) -> AgentCapability:
        """Register an agent.

        Args:
            agent: Capability record; an empty tool set is filled in from
                legacy flags or the directory's default tools

        Returns:
            The normalized, stored capability record

        Raises:
            DuplicateAgentError: If the ID is already registered
            AgentConfigurationError: If the record is malformed
        """
        normalized = normalize_agent_capability(agent, self.default_tools)
        self._validate(normalized)

        if normalized.id in self._agents:
            raise DuplicateAgentError(normalized.id)

        self._warn_on_overlap(normalized)
        self._agents[normalized.id] = normalized

        tools = ", ".join(sorted(tool.value for tool in normalized.tools))
        logger.info(f"Agent registered: {normalized.id} ({normalized.name}) with tools: [{tools}]")
        return normalized

    def unregister(self, agent_id: AgentId) -> bool:
        """Remove an agent. Returns False if it was not registered."""
        if self._agents.pop(agent_id, None) is None:
            return False
        logger.info(f"Agent unregistered: {agent_id}")
        return True

    def _validate(self, agent: AgentCapability) -> None:
        if not isinstance(agent.id, str) or not agent.id:
            raise AgentConfigurationError("Agent must have a valid string ID")
        if not isinstance(agent.name, str) or not agent.name:
            raise AgentConfigurationError("Agent must have a valid string name")
        if not agent.directory_patterns:
            raise AgentConfigurationError(
                f"Agent {agent.id} must have at least one directory pattern"
            )
        if not agent.tools:
            raise AgentConfigurationError(f"Agent {agent.id} must have at least one tool")
        for tool in agent.tools:
            if not isinstance(tool, AgentTool):
                valid = ", ".join(t.value for t in AgentTool)
                raise AgentConfigurationError(f"Invalid tool: {tool}. Must be one of: {valid}")
        for endpoint in agent.endpoints:
            if not endpoint.name:
                raise AgentConfigurationError(f"All endpoints of agent {agent.id} must have a name")

    def _warn_on_overlap(self, new_agent: AgentCapability) -> None:
        for pattern in new_agent.directory_patterns:
            for existing in self._agents.values():
                for existing_pattern in existing.directory_patterns:
                    if patterns_overlap(pattern, existing_pattern):
                        logger.warning(
                            f"Directory pattern conflict between {new_agent.id} ({pattern}) "
                            f"and {existing.id} ({existing_pattern})"
                        )

    def add_global_pattern(self, pattern: AccessPattern) -> None:
        """Add a pattern evaluated for every agent's requests."""
        self.global_patterns.append(pattern)

    # Lookup

    def get(self, agent_id: AgentId) -> AgentCapability | None:
        return self._agents.get(agent_id)

    def all(self) -> list[AgentCapability]:
        """All registered agents, in registration order."""
        return list(self._agents.values())

    def find_responsible_agent(self, file_path: FilePath) -> AgentCapability | None:
        """Find the agent responsible for a path.

        Returns:
            The agent with the most specific matching directory pattern
            (earliest registration on ties), or None
        """
        path = normalize_path(file_path)
        best: AgentCapability | None = None
        best_score = 0

        for agent in self._agents.values():
            for pattern in agent.directory_patterns:
                if not match_path(path, pattern):
                    continue
                score = pattern_specificity(pattern)
                if best is None or score > best_score:
                    best, best_score = agent, score

        return best

    def find_question_agents(
        self, file_paths: Iterable[FilePath] | None = None
    ) -> list[AgentCapability]:
        """Find agents exposing a "question" endpoint.

        Args:
            file_paths: If given, only agents responsible for at least one
                of these paths are returned

        Returns:
            Matching agents in registration order
        """
        paths = list(file_paths or [])
        agents = []
        for agent in self._agents.values():
            if not agent.has_endpoint("question"):
                continue
            if paths and not any(
                (owner := self.find_responsible_agent(path)) is not None and owner.id == agent.id
                for path in paths
            ):
                continue
            agents.append(agent)
        return agents

    def get_agents_by_pattern(self, pattern: str) -> list[AgentCapability]:
        """Agents that declare exactly this directory pattern."""
        return [agent for agent in self._agents.values() if pattern in agent.directory_patterns]

    # Tools

    def has_tool(self, agent: AgentCapability, tool: AgentTool) -> bool:
        """Check if an agent holds a tool. A read-global grant covers read-local."""
        return has_agent_tool(agent, tool)

    def resolve_required_tool(
        self,
        agent: AgentCapability,
        operation: OperationType,
        file_path: FilePath | None = None,
    ) -> AgentTool:
        """Required tool for an agent's request, accounting for path ownership."""
        if file_path is None:
            return get_required_tool(operation)
        owner = self.find_responsible_agent(file_path)
        is_global = owner is None or owner.id != agent.id
        return get_required_tool(operation, file_path, is_global)

    def has_required_tool(
        self,
        agent: AgentCapability,
        operation: OperationType,
        file_path: FilePath | None = None,
    ) -> bool:
        return self.has_tool(agent, self.resolve_required_tool(agent, operation, file_path))

    # Permission checks

    def check_permissions(
        self,
        agent_id: AgentId,
        operation: OperationType,
        file_path: FilePath | None = None,
    ) -> PermissionResult:
        """Legacy tool-gated permission check.

        Reads are allowed for the responsible agent holding read-local, or
        for any agent holding read-global. Writes, edits and deletes are
        allowed only for the responsible agent holding the tool, or, when no
        agent is responsible, for an agent whose own directory patterns
        match. Everything else only needs the tool.
        """
        agent = self._agents.get(agent_id)
        if agent is None:
            return PermissionResult(allowed=False, reason=f"Agent {agent_id} not found")

        if file_path is None:
            return self._tool_only_result(agent, get_required_tool(operation))

        owner = self.find_responsible_agent(file_path)
        owner_id = owner.id if owner else None
        is_responsible = owner_id == agent_id
        required_tool = get_required_tool(operation, file_path, not is_responsible)

        if operation is OperationType.READ_FILE:
            if is_responsible and self.has_tool(agent, AgentTool.READ_LOCAL):
                return PermissionResult(
                    allowed=True,
                    responsible_agent=owner_id,
                    required_tool=AgentTool.READ_LOCAL,
                    available_tools=set(agent.tools),
                )
            if AgentTool.READ_GLOBAL in agent.tools:
                return PermissionResult(
                    allowed=True,
                    responsible_agent=owner_id,
                    required_tool=AgentTool.READ_GLOBAL,
                    available_tools=set(agent.tools),
                )
            return PermissionResult(
                allowed=False,
                reason=(
                    f"Agent {agent_id} lacks required tool for reading {file_path}. "
                    f"Required: {required_tool.value}"
                ),
                responsible_agent=owner_id,
                required_tool=required_tool,
                available_tools=set(agent.tools),
            )

        if operation in WRITE_OPERATIONS:
            required_tool = get_required_tool(operation, file_path)
            has_tool = self.has_tool(agent, required_tool)

            if is_responsible and has_tool:
                return PermissionResult(
                    allowed=True,
                    responsible_agent=owner_id,
                    required_tool=required_tool,
                    available_tools=set(agent.tools),
                )

            if owner is None and has_tool and match_any(file_path, agent.directory_patterns):
                return PermissionResult(
                    allowed=True,
                    responsible_agent=agent_id,
                    required_tool=required_tool,
                    available_tools=set(agent.tools),
                )

            return PermissionResult(
                allowed=False,
                reason=(
                    f"Agent {agent_id} lacks required tool or responsibility for {file_path}. "
                    f"Required: {required_tool.value}, Responsible agent: {owner_id or 'none'}"
                ),
                responsible_agent=owner_id,
                required_tool=required_tool,
                available_tools=set(agent.tools),
            )

        result = self._tool_only_result(agent, get_required_tool(operation, file_path))
        result.responsible_agent = owner_id
        return result

    def _tool_only_result(
        self, agent: AgentCapability, required_tool: AgentTool
    ) -> PermissionResult:
        allowed = self.has_tool(agent, required_tool)
        reason = None if allowed else f"Agent {agent.id} lacks required tool: {required_tool.value}"
        return PermissionResult(
            allowed=allowed,
            reason=reason,
            required_tool=required_tool,
            available_tools=set(agent.tools),
        )

    async def check_agent_access(
        self,
        agent_id: AgentId,
        operation: OperationType,
        file_path: FilePath,
    ) -> PermissionResult | None:
        """Pattern-based access check.

        Evaluates the agent's own access patterns plus the directory's
        global patterns and takes the best match among the results that
        apply. Patterns that failed during evaluation count as applicable
        denials.

        Returns:
            The pattern decision, a "does not apply" denial when no pattern
            applies, or None when no patterns are configured at all

        Raises:
            PatternSystemFailure: If the check itself cannot be carried out
        """
        agent = self._agents.get(agent_id)
        if agent is None:
            return PermissionResult(allowed=False, reason=f"Agent {agent_id} not found")

        patterns = [*agent.access_patterns, *self.global_patterns]
        if not patterns:
            return None

        try:
            context = create_file_access_context(file_path, operation, agent_id)
            results = await self.evaluator.evaluate_all(patterns, context)
            owner = self.find_responsible_agent(file_path)
            required_tool = self.resolve_required_tool(agent, operation, file_path)
        except Exception as e:
            raise PatternSystemFailure(
                f"Pattern-based access check failed for {agent_id}: {e}"
            ) from e

        candidates = [r for r in results if r.metadata.get("applicable") or "error" in r.metadata]
        best = self.evaluator.best_match(candidates)

        if best is None:
            return PermissionResult(
                allowed=False,
                reason=f"No access pattern applies to {file_path} (does not apply)",
                responsible_agent=owner.id if owner else None,
                required_tool=required_tool,
                available_tools=set(agent.tools),
                metadata={"applicable": False},
            )

        metadata = {
            key: value
            for key, value in best.metadata.items()
            if key not in ("sub_results", "applicable")
        }
        metadata["pattern_id"] = best.pattern_id
        return PermissionResult(
            allowed=best.allowed,
            reason=best.reason,
            responsible_agent=owner.id if owner else None,
            required_tool=required_tool,
            available_tools=set(agent.tools),
            metadata=metadata,
        )
