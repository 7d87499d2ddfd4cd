"""Tests for SecurityAuditor."""

from datetime import timedelta

import pytest

from agent_access.core.types import OperationType
from agent_access.security.auditor import SecurityAuditor
from agent_access.security.checks import SecurityLevel


class WallClock:
    """Manually advanced wall clock."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def wall_clock(fixed_now):
    return WallClock(fixed_now)


@pytest.fixture
def auditor(wall_clock):
    return SecurityAuditor(clock=wall_clock)


def log(auditor, agent="editor", allowed=True, resource="src/a.py", level=SecurityLevel.LOW):
    return auditor.log_security_event(
        agent, OperationType.EDIT_FILE, resource, allowed, "reason", level
    )


class TestLogging:
    """Tests for recording events."""

    def test_event_fields(self, auditor, fixed_now):
        """Events are timestamped with the auditor's clock."""
        event = log(auditor)
        assert event.timestamp == fixed_now
        assert event.to_dict()["operation"] == "edit_file"
        assert event.to_dict()["security_level"] == "low"

    def test_denied_events_warn(self, auditor, caplog):
        """Denied events are logged at WARNING level."""
        with caplog.at_level("WARNING", logger="agent_access.security.auditor"):
            log(auditor, allowed=True)
            assert caplog.text == ""
            log(auditor, allowed=False)
        assert "Security event" in caplog.text

    def test_critical_events_warn(self, auditor, caplog):
        """Critical events are logged even when allowed."""
        with caplog.at_level("WARNING", logger="agent_access.security.auditor"):
            log(auditor, allowed=True, level=SecurityLevel.CRITICAL)
        assert "critical" in caplog.text

    def test_trims_to_eighty_percent(self, wall_clock):
        """Exceeding max_events keeps the most recent 80%."""
        auditor = SecurityAuditor(max_events=10, clock=wall_clock)
        for i in range(11):
            log(auditor, resource=f"src/{i}.py")

        events = auditor.get_recent_events()
        assert len(events) == 8
        assert events[0].resource == "src/3.py"
        assert events[-1].resource == "src/10.py"


class TestQueries:
    """Tests for event queries."""

    def test_recent_events_are_chronological(self, auditor):
        """The last N events are returned oldest first."""
        for i in range(5):
            log(auditor, resource=f"f{i}")
        assert [e.resource for e in auditor.get_recent_events(limit=3)] == ["f2", "f3", "f4"]

    def test_zero_limit(self, auditor):
        """A zero limit returns nothing."""
        log(auditor)
        assert auditor.get_recent_events(limit=0) == []

    def test_filters(self, auditor):
        """Agent, denied and critical filters select matching events."""
        log(auditor, agent="a", allowed=True)
        log(auditor, agent="b", allowed=False)
        log(auditor, agent="a", allowed=False, level=SecurityLevel.CRITICAL)

        assert len(auditor.get_events_by_agent("a")) == 2
        assert [e.agent_id for e in auditor.get_denied_events()] == ["b", "a"]
        assert len(auditor.get_critical_events()) == 1

    def test_clear(self, auditor):
        """clear_audit_log drops everything."""
        log(auditor)
        auditor.clear_audit_log()
        assert auditor.get_recent_events() == []


class TestReport:
    """Tests for generate_security_report."""

    def test_summary_counts(self, auditor):
        """Totals and top lists reflect the recorded events."""
        log(auditor, agent="a", resource="x")
        log(auditor, agent="a", resource="y", allowed=False)
        log(auditor, agent="b", resource="x", level=SecurityLevel.CRITICAL)

        report = auditor.generate_security_report()

        assert report["total_events"] == 3
        assert report["denied_events"] == 1
        assert report["critical_events"] == 1
        assert report["top_agents"][0] == {"agent_id": "a", "event_count": 2}
        assert report["top_resources"][0] == {"resource": "x", "access_count": 2}

    def test_trends_cover_last_seven_days(self, auditor, wall_clock, fixed_now):
        """Trends have one entry per day, oldest first, ending today."""
        wall_clock.now = fixed_now - timedelta(days=2)
        log(auditor, allowed=False)
        wall_clock.now = fixed_now
        log(auditor)
        log(auditor)

        trends = auditor.generate_security_report()["security_trends"]

        assert len(trends) == 7
        assert trends[-1] == {"date": "2024-05-10", "events": 2, "denied": 0}
        assert trends[-3] == {"date": "2024-05-08", "events": 1, "denied": 1}
        assert trends[0]["date"] == "2024-05-04"

    def test_time_range(self, auditor, wall_clock, fixed_now):
        """Only events inside the time range are counted."""
        wall_clock.now = fixed_now - timedelta(hours=5)
        log(auditor)
        wall_clock.now = fixed_now
        log(auditor)

        report = auditor.generate_security_report(
            time_range=(fixed_now - timedelta(hours=1), fixed_now)
        )
        assert report["total_events"] == 1
