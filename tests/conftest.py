"""Pytest configuration and fixtures for agent_access tests."""

import os
from datetime import UTC, datetime

import pytest

from agent_access.core.config import Settings
from agent_access.core.registry import AgentDirectory
from agent_access.core.types import AgentCapability, AgentEndpoint, AgentTool
from agent_access.patterns.evaluator import AccessPatternEvaluator
from agent_access.permissions.engine import PermissionDecisionEngine


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """A fake monotonic clock for cache expiry tests."""
    return FakeClock()


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed wall-clock time (a Friday)."""
    return datetime(2024, 5, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def evaluator(clock: FakeClock) -> AccessPatternEvaluator:
    """An evaluator driven by the fake clock."""
    return AccessPatternEvaluator(max_cache_size=100, cache_ttl_seconds=60, clock=clock)


@pytest.fixture
def directory(evaluator: AccessPatternEvaluator) -> AgentDirectory:
    """An empty agent directory."""
    return AgentDirectory(evaluator=evaluator)


@pytest.fixture
def editor_agent() -> AgentCapability:
    """An agent owning src/ that can only edit."""
    return AgentCapability(
        id="editor",
        name="Editor",
        description="Edits source files",
        directory_patterns=["src/**"],
        tools={AgentTool.EDIT},
    )


@pytest.fixture
def reader_agent() -> AgentCapability:
    """An agent owning docs/ that can read anywhere and answer questions."""
    return AgentCapability(
        id="reader",
        name="Reader",
        directory_patterns=["docs/**"],
        tools={AgentTool.READ_LOCAL, AgentTool.READ_GLOBAL, AgentTool.INTER_AGENT_COMMUNICATION},
        endpoints=[AgentEndpoint("question", "Answers questions about docs")],
    )


@pytest.fixture
def engine(directory: AgentDirectory, editor_agent: AgentCapability) -> PermissionDecisionEngine:
    """A decision engine with the editor agent registered."""
    directory.register(editor_agent)
    return PermissionDecisionEngine(directory)


@pytest.fixture
def app_settings(monkeypatch) -> Settings:
    """Default settings, isolated from the environment and any .env file."""
    for name in list(os.environ):
        if name.upper().startswith("AGENT_ACCESS_"):
            monkeypatch.delenv(name)
    return Settings(_env_file=None)
