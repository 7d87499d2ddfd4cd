"""Security-validated access patterns.

A SecurityValidatedAccessPattern runs the standard security checks before
giving its own allow/deny decision, so a path that trips any check is
denied even when it is on the pattern's allow-list.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..patterns.access_patterns import context_path
from ..patterns.base import AccessContext, AccessPattern, AccessPatternResult, FileAccessContext
from ..utils.matching import match_any
from .checks import (
    STANDARD_SECURITY_CHECKS,
    SecurityCheck,
    SecurityLevel,
    path_traversal_check,
)


def _as_file_context(context: AccessContext) -> FileAccessContext:
    if isinstance(context, FileAccessContext):
        return context
    return FileAccessContext(
        resource=context.resource,
        operation=context.operation,
        requester_id=context.requester_id,
        metadata=context.metadata,
        timestamp=context.timestamp,
        file_path=str(context.resource),
        agent_id=context.requester_id,
    )


class SecurityValidatedAccessPattern(AccessPattern):
    """Access pattern guarded by an ordered list of security checks.

    Applies to paths on the allow-list and to any path containing a
    traversal sequence, so traversal attempts are always vetoed rather than
    silently skipped. The first failing check denies with HIGH security
    level; a path outside the allow-list is denied with MEDIUM; otherwise
    the pattern's own ``allow`` decision is returned.

    Example:
        pattern = SecurityValidatedAccessPattern(
            "workspace", "Workspace files", 90, ["src/**"],
            checks=STANDARD_SECURITY_CHECKS,
        )
    """

    def __init__(
        self,
        id: str,
        description: str,
        priority: int,
        allowed_paths: Iterable[str],
        checks: Iterable[SecurityCheck] = STANDARD_SECURITY_CHECKS,
        allow: bool = True,
    ):
        super().__init__(id, description, priority)
        self.allowed_paths = list(allowed_paths)
        self.checks = list(checks)
        self.allow = allow

    def _on_allow_list(self, context: AccessContext) -> bool:
        return match_any(context_path(context), self.allowed_paths)

    async def applies_to(self, context: AccessContext) -> bool:
        if self._on_allow_list(context):
            return True
        return not path_traversal_check(_as_file_context(context)).passed

    async def validate(self, context: AccessContext) -> AccessPatternResult:
        file_context = _as_file_context(context)

        for check in self.checks:
            result = check(file_context)
            if not result.passed:
                return AccessPatternResult(
                    allowed=False,
                    reason=result.reason or "Security check failed",
                    pattern_id=self.id,
                    metadata={
                        "security_violation": (
                            result.violation_type.value if result.violation_type else None
                        ),
                        "security_level": SecurityLevel.HIGH.value,
                    },
                )

        if not self._on_allow_list(context):
            return AccessPatternResult(
                allowed=False,
                reason="File path not in allowed patterns",
                pattern_id=self.id,
                metadata={"security_level": SecurityLevel.MEDIUM.value},
            )

        return AccessPatternResult(
            allowed=self.allow,
            reason=(
                "Security validation passed" if self.allow else "Access denied by security policy"
            ),
            pattern_id=self.id,
            metadata={"security_validated": True},
        )


def create_security_pattern(
    id: str,
    description: str,
    priority: int,
    allowed_paths: Iterable[str],
    additional_checks: Iterable[SecurityCheck] = (),
) -> SecurityValidatedAccessPattern:
    """Build an allowing pattern guarded by all standard checks."""
    return SecurityValidatedAccessPattern(
        id,
        description,
        priority,
        allowed_paths,
        [*STANDARD_SECURITY_CHECKS, *additional_checks],
        allow=True,
    )


def create_restrictive_security_pattern(
    id: str,
    description: str,
    priority: int,
    restricted_paths: Iterable[str],
    additional_checks: Iterable[SecurityCheck] = (),
) -> SecurityValidatedAccessPattern:
    """Build a denying pattern over ``restricted_paths`` with all standard checks."""
    return SecurityValidatedAccessPattern(
        id,
        description,
        priority,
        restricted_paths,
        [*STANDARD_SECURITY_CHECKS, *additional_checks],
        allow=False,
    )


DEFAULT_SECURITY_PATTERNS: dict[str, SecurityValidatedAccessPattern] = {
    "development": create_security_pattern(
        "dev-security",
        "Development environment security pattern",
        90,
        [
            "src/**",
            "test/**",
            "tests/**",
            "docs/**",
            "**/*.md",
            "**/*.json",
            "**/*.py",
            "**/*.ts",
            "**/*.js",
        ],
    ),
    "production": create_restrictive_security_pattern(
        "prod-security",
        "Production environment security restrictions",
        95,
        ["**/production/**", "**/prod/**", "**/deploy/**", "**/release/**"],
    ),
    "config_protection": create_restrictive_security_pattern(
        "config-security",
        "Configuration file protection",
        85,
        ["**/.env*", "**/secrets/**", "**/*key*", "**/*password*", "**/.ssh/**"],
    ),
    "system_protection": create_restrictive_security_pattern(
        "system-security",
        "System file protection",
        100,
        [
            "/etc/**",
            "/usr/**",
            "/var/**",
            "/sys/**",
            "/proc/**",
            "C:/Windows/**",
            "C:/Program Files/**",
        ],
    ),
}
