"""Tests for AgentDirectory."""

from unittest.mock import AsyncMock, patch

import pytest

from agent_access.core.registry import AgentDirectory, pattern_specificity, patterns_overlap
from agent_access.core.types import (
    AgentCapability,
    AgentEndpoint,
    AgentTool,
    LegacyPermissions,
    OperationType,
)
from agent_access.patterns.access_patterns import FileSystemAccessPattern
from agent_access.security.patterns import create_security_pattern
from agent_access.utils.errors import (
    AgentConfigurationError,
    DuplicateAgentError,
    PatternSystemFailure,
)


def make_agent(agent_id, patterns, tools=None, **kwargs):
    return AgentCapability(
        id=agent_id,
        name=agent_id.title(),
        directory_patterns=patterns,
        tools=set(tools) if tools is not None else {AgentTool.READ_LOCAL},
        **kwargs,
    )


class TestPatternHelpers:
    """Tests for specificity scoring and overlap detection."""

    def test_specificity(self):
        """Deeper and less wildcarded patterns score higher."""
        assert pattern_specificity("src/api/**") > pattern_specificity("src/**")
        assert pattern_specificity("src/main.py") > pattern_specificity("src/*.py")

    def test_overlap(self):
        """Equal or containing patterns overlap."""
        assert patterns_overlap("src/**", "src/**")
        assert patterns_overlap("docs", "docs/api")
        assert not patterns_overlap("src/**", "docs/**")


class TestRegistration:
    """Tests for registering and unregistering agents."""

    def test_register_and_get(self, directory, editor_agent):
        """Registered agents can be looked up by ID."""
        stored = directory.register(editor_agent)
        assert directory.get("editor") is stored
        assert directory.all() == [stored]

    def test_duplicate_id(self, directory, editor_agent):
        """Registering the same ID twice fails."""
        directory.register(editor_agent)
        with pytest.raises(DuplicateAgentError, match="Agent with ID editor already exists"):
            directory.register(editor_agent)

    @pytest.mark.parametrize(
        ("agent", "message"),
        [
            (make_agent("", ["src/**"]), "valid string ID"),
            (
                AgentCapability(id="x", name="", directory_patterns=["a"], tools={AgentTool.EDIT}),
                "valid string name",
            ),
            (make_agent("nopaths", []), "at least one directory pattern"),
            (make_agent("noname", ["a/**"], endpoints=[AgentEndpoint("")]), "must have a name"),
            (make_agent("badtool", ["a/**"], tools={"edit"}), "Invalid tool: edit"),
        ],
    )
    def test_invalid_records(self, directory, agent, message):
        """Malformed records are rejected with a descriptive error."""
        with pytest.raises(AgentConfigurationError, match=message):
            directory.register(agent)

    def test_no_tools_anywhere(self, directory):
        """An agent ending up with no tools is rejected."""
        agent = make_agent("bare", ["a/**"], tools=set())
        with pytest.raises(AgentConfigurationError, match="at least one tool"):
            directory.register(agent)

    def test_legacy_permissions_are_converted(self, directory):
        """Legacy flags become tools on registration."""
        agent = make_agent(
            "legacy", ["lib/**"], tools=set(), legacy_permissions=LegacyPermissions(can_write=True)
        )
        stored = directory.register(agent)
        assert AgentTool.EDIT in stored.tools
        assert AgentTool.CREATE in stored.tools

    def test_default_tools(self, evaluator):
        """Directory defaults apply to agents without tools or flags."""
        directory = AgentDirectory(evaluator=evaluator, default_tools={AgentTool.READ_LOCAL})
        stored = directory.register(make_agent("bare", ["a/**"], tools=set()))
        assert stored.tools == {AgentTool.READ_LOCAL}

    def test_overlap_warning(self, directory, caplog):
        """Overlapping directory patterns are logged but allowed."""
        directory.register(make_agent("first", ["src/**"]))
        with caplog.at_level("WARNING", logger="agent_access.core.registry"):
            directory.register(make_agent("second", ["src/**"]))
        assert "conflict between second (src/**) and first (src/**)" in caplog.text

    def test_unregister(self, directory, editor_agent):
        """Unregistering removes the agent; unknown IDs return False."""
        directory.register(editor_agent)
        assert directory.unregister("editor")
        assert directory.get("editor") is None
        assert not directory.unregister("editor")


class TestLookup:
    """Tests for responsibility and endpoint lookups."""

    def test_most_specific_pattern_wins(self, directory):
        """A deeper pattern beats a broader one regardless of order."""
        directory.register(make_agent("broad", ["src/**"]))
        directory.register(make_agent("api", ["src/api/**"]))
        assert directory.find_responsible_agent("src/api/routes.py").id == "api"
        assert directory.find_responsible_agent("src/main.py").id == "broad"

    def test_tie_goes_to_first_registered(self, directory):
        """Equally specific patterns resolve to the earliest registration."""
        directory.register(make_agent("first", ["src/**"]))
        directory.register(make_agent("second", ["src/**"]))
        assert directory.find_responsible_agent("src/a.py").id == "first"

    def test_no_owner(self, directory, editor_agent):
        """Unowned paths have no responsible agent."""
        directory.register(editor_agent)
        assert directory.find_responsible_agent("README.md") is None

    def test_question_agents(self, directory, editor_agent, reader_agent):
        """Only agents with a question endpoint are returned."""
        directory.register(editor_agent)
        directory.register(reader_agent)
        assert [a.id for a in directory.find_question_agents()] == ["reader"]
        assert [a.id for a in directory.find_question_agents(["docs/a.md"])] == ["reader"]
        assert directory.find_question_agents(["src/a.py"]) == []

    def test_agents_by_pattern(self, directory, editor_agent):
        """Agents are matched by exact declared pattern."""
        directory.register(editor_agent)
        assert [a.id for a in directory.get_agents_by_pattern("src/**")] == ["editor"]
        assert directory.get_agents_by_pattern("src/*") == []


class TestTools:
    """Tests for tool resolution."""

    def test_read_global_covers_read_local(self, directory, reader_agent):
        """Holding read-global satisfies a read-local requirement."""
        agent = make_agent("g", ["g/**"], tools={AgentTool.READ_GLOBAL})
        assert directory.has_tool(agent, AgentTool.READ_LOCAL)
        assert not directory.has_tool(agent, AgentTool.EDIT)

    def test_required_tool_depends_on_ownership(self, directory, editor_agent, reader_agent):
        """Reading another agent's files needs read-global."""
        directory.register(editor_agent)
        directory.register(reader_agent)
        reader = directory.get("reader")
        assert (
            directory.resolve_required_tool(reader, OperationType.READ_FILE, "docs/a.md")
            is AgentTool.READ_LOCAL
        )
        assert (
            directory.resolve_required_tool(reader, OperationType.READ_FILE, "src/a.py")
            is AgentTool.READ_GLOBAL
        )
        assert directory.has_required_tool(reader, OperationType.READ_FILE, "src/a.py")


class TestLegacyCheckPermissions:
    """Tests for the tool-gated check_permissions."""

    @pytest.fixture
    def populated(self, directory, editor_agent, reader_agent):
        directory.register(editor_agent)
        directory.register(reader_agent)
        directory.register(make_agent("local", ["lib/**"], tools={AgentTool.READ_LOCAL}))
        return directory

    def test_unknown_agent(self, populated):
        """Unknown agents are denied."""
        result = populated.check_permissions("ghost", OperationType.READ_FILE, "src/a.py")
        assert not result.allowed
        assert result.reason == "Agent ghost not found"

    def test_owner_edit(self, populated):
        """The owner may edit with the edit tool."""
        result = populated.check_permissions("editor", OperationType.EDIT_FILE, "src/a.py")
        assert result.allowed
        assert result.responsible_agent == "editor"
        assert result.required_tool is AgentTool.EDIT

    def test_non_owner_edit(self, populated):
        """Non-owners may not edit even with the tool."""
        result = populated.check_permissions("editor", OperationType.EDIT_FILE, "docs/a.md")
        assert not result.allowed
        assert "Responsible agent: reader" in result.reason

    def test_global_read(self, populated):
        """read-global allows reading other agents' files."""
        result = populated.check_permissions("reader", OperationType.READ_FILE, "src/a.py")
        assert result.allowed
        assert result.required_tool is AgentTool.READ_GLOBAL

    def test_local_reader_cannot_read_elsewhere(self, populated):
        """read-local alone only covers the agent's own files."""
        assert populated.check_permissions("local", OperationType.READ_FILE, "lib/a.py").allowed
        result = populated.check_permissions("local", OperationType.READ_FILE, "src/a.py")
        assert not result.allowed
        assert result.required_tool is AgentTool.READ_GLOBAL

    def test_tool_only_operations(self, populated):
        """Operations without a path only need the tool."""
        assert populated.check_permissions("reader", OperationType.QUESTION).allowed
        result = populated.check_permissions("editor", OperationType.QUESTION)
        assert not result.allowed
        assert result.reason == "Agent editor lacks required tool: inter-agent-communication"


class TestCheckAgentAccess:
    """Tests for the pattern-based check_agent_access."""

    @pytest.mark.asyncio
    async def test_no_patterns(self, directory, editor_agent):
        """Without any patterns there is no pattern decision."""
        directory.register(editor_agent)
        result = await directory.check_agent_access("editor", OperationType.EDIT_FILE, "src/a.py")
        assert result is None

    @pytest.mark.asyncio
    async def test_pattern_allows(self, directory):
        """An applicable allowing pattern allows."""
        agent = make_agent(
            "p",
            ["src/**"],
            tools={AgentTool.EDIT},
            access_patterns=[FileSystemAccessPattern("src", "Source", 60, ["src/**"], allow=True)],
        )
        directory.register(agent)

        result = await directory.check_agent_access("p", OperationType.EDIT_FILE, "src/a.py")

        assert result.allowed
        assert result.metadata["pattern_id"] == "src"
        assert result.responsible_agent == "p"
        assert "applicable" not in result.metadata

    @pytest.mark.asyncio
    async def test_no_pattern_applies(self, directory):
        """When nothing applies the result is a marked denial."""
        agent = make_agent(
            "p",
            ["src/**"],
            access_patterns=[FileSystemAccessPattern("src", "Source", 60, ["src/**"], allow=True)],
        )
        directory.register(agent)

        result = await directory.check_agent_access("p", OperationType.READ_FILE, "docs/a.md")

        assert not result.allowed
        assert "(does not apply)" in result.reason
        assert result.metadata == {"applicable": False}

    @pytest.mark.asyncio
    async def test_global_patterns_apply_to_everyone(self, directory, editor_agent):
        """Global patterns are evaluated for agents without their own."""
        directory.register(editor_agent)
        directory.add_global_pattern(create_security_pattern("sec", "Security", 90, ["src/**"]))

        result = await directory.check_agent_access("editor", OperationType.READ_FILE, "../x")

        assert not result.allowed
        assert result.metadata["security_violation"] == "path_traversal"

    @pytest.mark.asyncio
    async def test_evaluator_failure(self, directory, editor_agent):
        """Internal failures surface as PatternSystemFailure."""
        directory.register(editor_agent)
        directory.add_global_pattern(FileSystemAccessPattern("all", "All", 1, ["**"], allow=True))

        with patch.object(
            directory.evaluator, "evaluate_all", AsyncMock(side_effect=RuntimeError("down"))
        ):
            with pytest.raises(PatternSystemFailure, match="down"):
                await directory.check_agent_access("editor", OperationType.EDIT_FILE, "src/a.py")
