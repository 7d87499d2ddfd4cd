"""Request router.

The Orchestrator owns agent registration and per-agent handlers. For each
incoming operation it finds the responsible agent, asks the decision
engine for permission, runs the agent's handler and records the
request/response history, emitting events along the way.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from ..patterns.evaluator import AccessPatternEvaluator
from ..permissions.engine import PermissionAuditEntry, PermissionDecisionEngine
from ..security.auditor import SecurityAuditor
from ..security.checks import SecurityLevel
from ..utils.errors import (
    AgentNotFoundError,
    HandlerExecutionError,
    NoResponsibleAgentError,
    PermissionDeniedError,
)
from .communication import (
    AgentCommunicationSystem,
    QuestionHandler,
    QuestionRequest,
    QuestionResponse,
)
from .config import OrchestratorConfig, Settings
from .config import settings as default_settings
from .events import EventBus, EventListener, OrchestrationEvent
from .registry import AgentDirectory
from .types import (
    AgentCapability,
    AgentId,
    FilePath,
    OperationRequest,
    OperationResponse,
    OperationType,
    PermissionResult,
)

RequestHandler = Callable[[OperationRequest], Awaitable[OperationResponse]]

ORCHESTRATOR_ID = "orchestrator"

# Endpoint names that can serve each operation when no agent owns the path
ENDPOINTS_BY_OPERATION: dict[OperationType, tuple[str, ...]] = {
    OperationType.QUESTION: ("question",),
    OperationType.VALIDATE: ("validate",),
    OperationType.TRANSFORM: ("transform",),
}
DEFAULT_ENDPOINTS = ("handle", "process")


class Orchestrator:
    """Routes operation requests to agents after a permission check.

    ``execute_request`` never raises: routing failures, permission denials
    and handler errors all come back as ``OperationResponse(success=False,
    handled_by="orchestrator")``.

    Example:
        orchestrator = Orchestrator(OrchestratorConfig(agents=[frontend]))
        orchestrator.register_request_handler("frontend", handle_frontend)

        response = await orchestrator.execute_request(
            OperationRequest(type=OperationType.EDIT_FILE, file_path="src/ui/app.tsx")
        )
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        settings: Settings | None = None,
        security_auditor: SecurityAuditor | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize the orchestrator and register configured agents and rules.

        Args:
            config: Agents, rules and patterns supplied by a config loader
            settings: Runtime settings (defaults to the environment-loaded ones)
            security_auditor: If set, receives one event per permission decision;
                built from settings when security_audit_enabled is on
            logger: Logger for routing events (defaults to the module logger)
        """
        self.config = config or OrchestratorConfig()
        self.settings = settings or default_settings
        if security_auditor is None and self.settings.security_audit_enabled:
            security_auditor = SecurityAuditor(max_events=self.settings.max_security_events)
        self.security_auditor = security_auditor
        self.logger = logger or logging.getLogger(__name__)

        self.evaluator = AccessPatternEvaluator(
            enable_caching=self.settings.pattern_cache_enabled,
            max_cache_size=self.settings.pattern_cache_max_size,
            cache_ttl_seconds=self.settings.pattern_cache_ttl_seconds,
            log_evaluations=self.settings.log_pattern_evaluations,
        )
        self.directory = AgentDirectory(
            evaluator=self.evaluator,
            global_patterns=self.config.global_patterns,
            default_tools=self.config.default_tools,
        )
        self.engine = PermissionDecisionEngine(
            self.directory,
            audit_logging_enabled=self.settings.audit_logging_enabled,
            max_audit_entries=self.settings.max_audit_entries,
            enable_access_patterns=self.settings.enable_access_patterns,
            logger=logger,
        )
        self.communication = AgentCommunicationSystem(
            self.directory,
            max_history_entries=self.settings.max_history_entries,
            log_communications=self.config.log_communications,
        )
        self.events = EventBus()

        self._handlers: dict[AgentId, RequestHandler] = {}
        self._requests: OrderedDict[str, OperationRequest] = OrderedDict()
        self._responses: OrderedDict[str, OperationResponse] = OrderedDict()

        for agent in self.config.agents:
            self.register_agent(agent)
        for rule in self.config.rules:
            self.engine.add_rule(rule)

        self.logger.info("Orchestrator initialized")

    # Agents and handlers

    def register_agent(
        self, agent: AgentCapability, handler: RequestHandler | None = None
    ) -> AgentCapability:
        """Register an agent and optionally bind its request handler.

        Returns:
            The normalized capability record as stored

        Raises:
            DuplicateAgentError: If the ID is taken
            AgentConfigurationError: If the record is malformed
        """
        try:
            registered = self.directory.register(agent)
        except Exception as e:
            self.logger.error(f"Failed to register agent {agent.id}: {e}")
            raise

        if handler is not None:
            self._handlers[registered.id] = handler
        self.events.emit(OrchestrationEvent.AGENT_REGISTERED, registered)
        return registered

    def unregister_agent(self, agent_id: AgentId) -> bool:
        """Remove an agent and its handlers. Returns False if it was unknown."""
        if not self.directory.unregister(agent_id):
            return False
        self._handlers.pop(agent_id, None)
        self.communication.unregister_question_handler(agent_id)
        self.events.emit(OrchestrationEvent.AGENT_UNREGISTERED, agent_id)
        return True

    def register_request_handler(self, agent_id: AgentId, handler: RequestHandler) -> None:
        """Bind a request handler to a registered agent.

        Raises:
            AgentNotFoundError: If the agent is not registered
        """
        if self.directory.get(agent_id) is None:
            raise AgentNotFoundError(agent_id)
        self._handlers[agent_id] = handler
        self.logger.info(f"Request handler registered for agent: {agent_id}")

    def register_question_handler(self, agent_id: AgentId, handler: QuestionHandler) -> None:
        """Bind a question handler to a registered agent.

        Raises:
            AgentNotFoundError: If the agent is not registered
        """
        if self.directory.get(agent_id) is None:
            raise AgentNotFoundError(agent_id)
        self.communication.register_question_handler(agent_id, handler)

    def get_agents(self) -> list[AgentCapability]:
        return self.directory.all()

    def get_agent(self, agent_id: AgentId) -> AgentCapability | None:
        return self.directory.get(agent_id)

    def get_agents_for_path(self, file_path: FilePath) -> list[AgentCapability]:
        """The responsible agent for a path, as a list (empty if none)."""
        responsible = self.directory.find_responsible_agent(file_path)
        return [responsible] if responsible else []

    # Requests

    async def execute_request(self, request: OperationRequest) -> OperationResponse:
        """Route, authorize and execute a request.

        The permission check is made for the agent the request is routed
        to, since that agent performs the operation.
        """
        start = time.monotonic()
        self._remember(self._requests, request.request_id, request)
        self.events.emit(OrchestrationEvent.REQUEST_RECEIVED, request)
        self.logger.debug(f"Processing request {request.request_id} ({request.type.value})")

        try:
            target = self._route(request)
            if target is None:
                raise NoResponsibleAgentError(
                    f"No agent found to handle request: {request.type.value} "
                    f"for {request.file_path or 'system'}"
                )
            self.events.emit(OrchestrationEvent.REQUEST_ROUTED, request, target.id)

            result = await self.engine.check_permission_async(
                target.id, request.type, request.file_path
            )
            self._audit(target.id, request, result)
            access_context = f"Request: {request.type.value} for {request.file_path or 'system'}"

            if not result.allowed:
                reason = result.reason or "Permission denied"
                self.events.emit(
                    OrchestrationEvent.PERMISSION_DENIED, request, reason, result.required_tool
                )
                if result.required_tool is not None:
                    self.events.emit(
                        OrchestrationEvent.TOOL_ACCESS_DENIED,
                        target.id,
                        result.required_tool,
                        access_context,
                    )
                raise PermissionDeniedError(reason, result.required_tool)

            if result.required_tool is not None:
                self.events.emit(
                    OrchestrationEvent.TOOL_ACCESS_GRANTED,
                    target.id,
                    result.required_tool,
                    access_context,
                )

            response = await self._run_handler(target.id, request)
        except Exception as e:
            self.events.emit(OrchestrationEvent.REQUEST_FAILED, request, e)
            self.logger.error(f"Request {request.request_id} failed: {e}")

            metadata: dict[str, Any] = {"error_type": type(e).__name__}
            if isinstance(e, PermissionDeniedError) and e.required_tool is not None:
                metadata["required_tool"] = e.required_tool.value
            response = OperationResponse(
                success=False,
                handled_by=ORCHESTRATOR_ID,
                request_id=request.request_id,
                error=str(e),
                metadata=metadata,
            )
            self._remember(self._responses, request.request_id, response)
            return response

        self._remember(self._responses, request.request_id, response)
        self.events.emit(OrchestrationEvent.REQUEST_COMPLETED, response)
        elapsed_ms = (time.monotonic() - start) * 1000
        self.logger.info(
            f"Request {request.request_id} completed by {response.handled_by} in {elapsed_ms:.0f}ms"
        )
        return response

    def _route(self, request: OperationRequest) -> AgentCapability | None:
        if request.file_path:
            responsible = self.directory.find_responsible_agent(request.file_path)
            if responsible is not None:
                return responsible

        endpoints = ENDPOINTS_BY_OPERATION.get(request.type, DEFAULT_ENDPOINTS)
        for agent in self.directory.all():
            if any(agent.has_endpoint(name) for name in endpoints):
                return agent
        return None

    async def _run_handler(self, agent_id: AgentId, request: OperationRequest) -> OperationResponse:
        handler = self._handlers.get(agent_id)
        if handler is None:
            raise HandlerExecutionError(
                agent_id, f"No request handler registered for agent: {agent_id}"
            )

        try:
            response = await handler(request)
        except Exception as e:
            raise HandlerExecutionError(
                agent_id, f"Agent {agent_id} failed to handle request: {e}"
            ) from e

        return replace(response, handled_by=agent_id, request_id=request.request_id)

    def _audit(
        self, agent_id: AgentId, request: OperationRequest, result: PermissionResult
    ) -> None:
        if self.security_auditor is None:
            return

        level = result.metadata.get("security_level")
        if level is not None:
            security_level = SecurityLevel(level)
        else:
            security_level = SecurityLevel.LOW if result.allowed else SecurityLevel.MEDIUM

        self.security_auditor.log_security_event(
            agent_id,
            request.type,
            request.file_path or "system",
            result.allowed,
            result.reason,
            security_level,
        )

    def _remember(self, history: OrderedDict, key: str, value: Any) -> None:
        history[key] = value
        history.move_to_end(key)
        while len(history) > self.settings.max_history_entries:
            history.popitem(last=False)

    # Questions

    async def ask_question(
        self,
        from_agent: AgentId,
        question: QuestionRequest,
        target_agent: AgentId | None = None,
    ) -> QuestionResponse | dict[AgentId, QuestionResponse | Exception]:
        """Ask one agent, or broadcast to every relevant question-capable agent."""
        try:
            if target_agent is not None:
                return await self.communication.ask_question(from_agent, target_agent, question)
            return await self.communication.broadcast_question(from_agent, question)
        except Exception as e:
            self.logger.error(f"Question failed from {from_agent}: {e}")
            raise

    # Events

    def on(self, event: OrchestrationEvent, listener: EventListener) -> None:
        self.events.on(event, listener)

    def off(self, event: OrchestrationEvent, listener: EventListener) -> bool:
        return self.events.off(event, listener)

    # History and statistics

    def get_history(self, request_id: str | None = None) -> dict[str, list[Any]]:
        """Recorded requests and responses, optionally for a single request."""
        if request_id is not None:
            request = self._requests.get(request_id)
            response = self._responses.get(request_id)
            return {
                "requests": [request] if request else [],
                "responses": [response] if response else [],
            }
        return {
            "requests": list(self._requests.values()),
            "responses": list(self._responses.values()),
        }

    def clear_history(self) -> None:
        """Clear requests, responses and messages. The audit log is kept."""
        self._requests.clear()
        self._responses.clear()
        self.communication.clear_message_history()
        self.logger.info("Request history cleared")

    def get_audit_log(
        self, agent_id: AgentId | None = None, limit: int | None = None
    ) -> list[PermissionAuditEntry]:
        return self.engine.get_audit_log(agent_id, limit)

    def clear_audit_log(self) -> None:
        self.engine.clear_audit_log()

    def get_stats(self) -> dict[str, Any]:
        """Agent, request and response totals, per-agent counts and messaging stats."""
        agents = self.directory.all()
        agent_stats = {
            agent.id: {
                "requests": sum(
                    1 for r in self._requests.values() if r.requesting_agent == agent.id
                ),
                "responses": sum(1 for r in self._responses.values() if r.handled_by == agent.id),
            }
            for agent in agents
        }
        return {
            "total_agents": len(agents),
            "total_requests": len(self._requests),
            "total_responses": len(self._responses),
            "agent_stats": agent_stats,
            "communication_stats": self.communication.get_stats(),
        }
