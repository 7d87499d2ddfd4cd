"""Permission decision engine and override rules."""

from .engine import PermissionAuditEntry, PermissionDecisionEngine
from .rules import WILDCARD_AGENT, PermissionRule

__all__ = [
    "WILDCARD_AGENT",
    "PermissionAuditEntry",
    "PermissionDecisionEngine",
    "PermissionRule",
]
