"""Inter-agent messaging and question answering."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import Counter, OrderedDict
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..utils.errors import CommunicationError
from .registry import AgentDirectory
from .types import AgentId, FilePath

logger = logging.getLogger(__name__)

QUESTION_ENDPOINT = "question"


@dataclass
class AgentMessage:
    """A message sent from one agent to another agent's endpoint."""

    from_agent: AgentId
    to_agent: AgentId
    endpoint: str
    payload: Any = None
    message_id: str = field(default_factory=lambda: f"msg_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class QuestionRequest:
    """A question for another agent, optionally about specific files."""

    question: str
    file_paths: list[FilePath] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class QuestionResponse:
    """An agent's answer to a question."""

    answer: str
    confidence: float = 1.0
    referenced_files: list[FilePath] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


QuestionHandler = Callable[[QuestionRequest], Awaitable[QuestionResponse]]


class AgentCommunicationSystem:
    """Routes messages and questions between registered agents.

    Example:
        comms = AgentCommunicationSystem(directory)
        comms.register_question_handler("backend", answer_backend_question)
        response = await comms.ask_question("frontend", "backend", QuestionRequest("Which API?"))
    """

    def __init__(
        self,
        directory: AgentDirectory,
        max_history_entries: int = 1000,
        log_communications: bool = True,
    ):
        self.directory = directory
        self.max_history_entries = max_history_entries
        self.log_communications = log_communications
        self._handlers: dict[AgentId, QuestionHandler] = {}
        self._history: OrderedDict[str, AgentMessage] = OrderedDict()

    def register_question_handler(self, agent_id: AgentId, handler: QuestionHandler) -> None:
        self._handlers[agent_id] = handler
        logger.info(f"Question handler registered for agent: {agent_id}")

    def unregister_question_handler(self, agent_id: AgentId) -> bool:
        return self._handlers.pop(agent_id, None) is not None

    async def send_message(
        self,
        from_agent: AgentId,
        to_agent: AgentId,
        endpoint: str,
        payload: Any = None,
    ) -> AgentMessage:
        """Record a message to another agent's endpoint.

        Raises:
            CommunicationError: If either agent is unknown or the target
                does not expose the endpoint
        """
        if self.directory.get(from_agent) is None:
            raise CommunicationError(f"Source agent {from_agent} not found")
        target = self.directory.get(to_agent)
        if target is None:
            raise CommunicationError(f"Target agent {to_agent} not found")
        if not target.has_endpoint(endpoint):
            raise CommunicationError(f"Agent {to_agent} does not have endpoint '{endpoint}'")

        message = AgentMessage(from_agent, to_agent, endpoint, payload)
        self._history[message.message_id] = message
        while len(self._history) > self.max_history_entries:
            self._history.popitem(last=False)

        if self.log_communications:
            logger.debug(f"Message sent: {from_agent} -> {to_agent} ({endpoint})")
        return message

    async def ask_question(
        self,
        from_agent: AgentId,
        to_agent: AgentId,
        question: QuestionRequest,
    ) -> QuestionResponse:
        """Ask one agent a question and wait for its answer.

        Raises:
            CommunicationError: If the target cannot take questions
            Exception: Whatever the target's handler raises
        """
        if self.directory.get(from_agent) is None:
            raise CommunicationError(f"Source agent {from_agent} not found")
        target = self.directory.get(to_agent)
        if target is None:
            raise CommunicationError(f"Target agent {to_agent} not found")
        if not target.has_endpoint(QUESTION_ENDPOINT):
            raise CommunicationError(f"Agent {to_agent} does not support questions")

        handler = self._handlers.get(to_agent)
        if handler is None:
            raise CommunicationError(f"No question handler registered for agent {to_agent}")

        await self.send_message(from_agent, to_agent, QUESTION_ENDPOINT, question)
        if self.log_communications:
            logger.debug(f"Question asked by {from_agent} to {to_agent}: {question.question}")

        try:
            response = await handler(question)
        except Exception:
            logger.error(
                f"Error processing question from {from_agent} to {to_agent}", exc_info=True
            )
            raise

        if self.log_communications:
            logger.debug(
                f"Question answered by {to_agent} for {from_agent} "
                f"(confidence: {response.confidence})"
            )
        return response

    async def ask_many(
        self,
        from_agent: AgentId,
        to_agents: Iterable[AgentId],
        question: QuestionRequest,
    ) -> dict[AgentId, QuestionResponse | Exception]:
        """Ask several agents concurrently; failures are returned per agent."""
        targets = list(to_agents)
        results = await asyncio.gather(
            *(self.ask_question(from_agent, target, question) for target in targets),
            return_exceptions=True,
        )
        return dict(zip(targets, results, strict=True))

    async def broadcast_question(
        self,
        from_agent: AgentId,
        question: QuestionRequest,
    ) -> dict[AgentId, QuestionResponse | Exception]:
        """Ask every question-capable agent responsible for the question's files.

        With no file paths, every question-capable agent is asked. The
        asking agent is never asked itself.
        """
        targets = [
            agent.id
            for agent in self.directory.find_question_agents(question.file_paths)
            if agent.id != from_agent
        ]
        if not targets:
            logger.warning("No agents available to answer the question")
            return {}

        logger.info(f"Broadcasting question to {len(targets)} agents: {', '.join(targets)}")
        return await self.ask_many(from_agent, targets, question)

    def get_message_history(self, agent_id: AgentId | None = None) -> list[AgentMessage]:
        """Recorded messages in send order, optionally only those involving ``agent_id``."""
        messages = list(self._history.values())
        if agent_id is not None:
            messages = [m for m in messages if agent_id in (m.from_agent, m.to_agent)]
        return messages

    def clear_message_history(self) -> None:
        self._history.clear()
        logger.info("Message history cleared")

    def get_stats(self) -> dict[str, Any]:
        """Message totals, plus sent messages and questions per agent."""
        messages = list(self._history.values())
        return {
            "total_messages": len(messages),
            "messages_by_agent": dict(Counter(m.from_agent for m in messages)),
            "questions_by_agent": dict(
                Counter(m.from_agent for m in messages if m.endpoint == QUESTION_ENDPOINT)
            ),
        }
