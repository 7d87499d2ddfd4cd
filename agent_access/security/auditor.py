"""Security event auditing.

The SecurityAuditor is a structured sink for allow/deny decisions,
independent of the decision engine's own audit log, with simple summary
reporting.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from ..core.types import AgentId, OperationType
from .checks import SecurityLevel

logger = logging.getLogger(__name__)

# Fraction of max_events kept when the log overflows
TRIM_RATIO = 0.8
TREND_DAYS = 7
TOP_N = 10


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _tail(events: list[SecurityEvent], limit: int) -> list[SecurityEvent]:
    return events[-limit:] if limit > 0 else []


@dataclass
class SecurityEvent:
    """A single audited security decision."""

    agent_id: AgentId
    operation: OperationType | str
    resource: str
    allowed: bool
    reason: str | None = None
    security_level: SecurityLevel = SecurityLevel.MEDIUM
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization/logging."""
        operation = (
            self.operation.value if isinstance(self.operation, OperationType) else self.operation
        )
        return {
            "timestamp": self.timestamp.isoformat(),
            "agent_id": self.agent_id,
            "operation": operation,
            "resource": self.resource,
            "allowed": self.allowed,
            "reason": self.reason,
            "security_level": self.security_level.value,
        }


class SecurityAuditor:
    """Collects security events and produces summary reports.

    Event queries return the most recent ``limit`` matching events in
    chronological order.

    Example:
        auditor = SecurityAuditor()
        auditor.log_security_event("editor", OperationType.EDIT_FILE, "src/a.py", True)
        report = auditor.generate_security_report()
    """

    def __init__(self, max_events: int = 10000, clock: Callable[[], datetime] = _utcnow):
        """Initialize the auditor.

        Args:
            max_events: Log size that triggers trimming to 80% of this value
            clock: Time source for event timestamps and report trends
        """
        self.max_events = max_events
        self._clock = clock
        self._events: list[SecurityEvent] = []

    def log_security_event(
        self,
        agent_id: AgentId,
        operation: OperationType | str,
        resource: str,
        allowed: bool,
        reason: str | None = None,
        security_level: SecurityLevel = SecurityLevel.MEDIUM,
    ) -> SecurityEvent:
        """Record a security decision.

        Denied and critical events are also logged at WARNING level.

        Returns:
            The recorded event
        """
        event = SecurityEvent(
            agent_id=agent_id,
            operation=operation,
            resource=resource,
            allowed=allowed,
            reason=reason,
            security_level=security_level,
            timestamp=self._clock(),
        )
        self._events.append(event)

        if not allowed or security_level is SecurityLevel.CRITICAL:
            logger.warning(f"Security event: {event.to_dict()}")

        if len(self._events) > self.max_events:
            keep = int(self.max_events * TRIM_RATIO)
            self._events = self._events[-keep:] if keep else []

        return event

    def get_recent_events(self, limit: int = 100) -> list[SecurityEvent]:
        return _tail(self._events, limit)

    def get_events_by_agent(self, agent_id: AgentId, limit: int = 100) -> list[SecurityEvent]:
        return _tail([e for e in self._events if e.agent_id == agent_id], limit)

    def get_denied_events(self, limit: int = 100) -> list[SecurityEvent]:
        return _tail([e for e in self._events if not e.allowed], limit)

    def get_critical_events(self, limit: int = 100) -> list[SecurityEvent]:
        critical = [e for e in self._events if e.security_level is SecurityLevel.CRITICAL]
        return _tail(critical, limit)

    def generate_security_report(
        self, time_range: tuple[datetime, datetime] | None = None
    ) -> dict[str, Any]:
        """Summarize audited events.

        Args:
            time_range: Optional inclusive ``(start, end)`` filter

        Returns:
            Dict with total_events, denied_events, critical_events,
            top_agents and top_resources (10 each, most frequent first),
            and security_trends (one entry per UTC day for the last 7 days,
            oldest first)
        """
        events = self._events
        if time_range is not None:
            start, end = time_range
            events = [e for e in events if start <= e.timestamp <= end]

        agent_counts = Counter(e.agent_id for e in events)
        resource_counts = Counter(e.resource for e in events)

        today = self._clock().astimezone(UTC).date()
        trends = []
        for offset in range(TREND_DAYS - 1, -1, -1):
            day = today - timedelta(days=offset)
            day_events = [e for e in events if e.timestamp.astimezone(UTC).date() == day]
            trends.append(
                {
                    "date": day.isoformat(),
                    "events": len(day_events),
                    "denied": sum(1 for e in day_events if not e.allowed),
                }
            )

        return {
            "total_events": len(events),
            "denied_events": sum(1 for e in events if not e.allowed),
            "critical_events": sum(
                1 for e in events if e.security_level is SecurityLevel.CRITICAL
            ),
            "top_agents": [
                {"agent_id": agent_id, "event_count": count}
                for agent_id, count in agent_counts.most_common(TOP_N)
            ],
            "top_resources": [
                {"resource": resource, "access_count": count}
                for resource, count in resource_counts.most_common(TOP_N)
            ],
            "security_trends": trends,
        }

    def clear_audit_log(self) -> None:
        """Drop all recorded events."""
        self._events.clear()
