"""Common access pattern implementations.

Reusable pattern variants, all implementing the AccessPattern contract:

- FileSystemAccessPattern: fixed allow/deny for paths matching a glob list
- CompositeAccessPattern: AND/OR combination of owned sub-patterns
- TimeBasedAccessPattern: wraps a base pattern with an hour/weekday window
- CustomAccessPattern: wraps externally supplied predicates
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from datetime import datetime
from enum import Enum

from ..core.types import OperationType
from ..utils.matching import match_any, normalize_path
from .base import AccessContext, AccessPattern, AccessPatternResult


def context_path(context: AccessContext) -> str:
    """Get the normalized file path a context refers to."""
    file_path = getattr(context, "file_path", None) or context.resource
    return normalize_path(str(file_path))


class FileSystemAccessPattern(AccessPattern):
    """File system access pattern using glob patterns.

    Applies when the path matches any of ``file_patterns`` and, if
    ``operations`` is given, the operation is one of them. Validation always
    yields the fixed ``allow`` decision.

    Example:
        src_pattern = FileSystemAccessPattern(
            "src-edit", "Source files", 60, ["src/**"], allow=True,
            operations=[OperationType.EDIT_FILE],
        )
    """

    def __init__(
        self,
        id: str,
        description: str,
        priority: int,
        file_patterns: Iterable[str],
        allow: bool,
        operations: Iterable[OperationType] | None = None,
    ):
        super().__init__(id, description, priority)
        self.file_patterns = list(file_patterns)
        self.allow = allow
        self.operations = frozenset(operations) if operations is not None else None

    async def applies_to(self, context: AccessContext) -> bool:
        if self.operations is not None and context.operation not in self.operations:
            return False
        return match_any(context_path(context), self.file_patterns)

    async def validate(self, context: AccessContext) -> AccessPatternResult:
        verdict = "Allowed" if self.allow else "Denied"
        return AccessPatternResult(
            allowed=self.allow,
            reason=f"{verdict} by pattern: {self.description}",
            pattern_id=self.id,
            metadata={
                "matched_patterns": list(self.file_patterns),
                "operation": context.operation_name,
            },
        )


class CompositeLogic(Enum):
    """How a composite pattern combines its sub-patterns."""

    AND = "AND"
    OR = "OR"


class CompositeAccessPattern(AccessPattern):
    """Access pattern that combines multiple owned sub-patterns.

    With AND logic the composite applies when every sub-pattern applies and
    allows when every sub-pattern allows; with OR logic, when any does.
    All sub-results are kept in ``metadata["sub_results"]``.
    """

    def __init__(
        self,
        id: str,
        description: str,
        priority: int,
        patterns: Iterable[AccessPattern],
        logic: CompositeLogic | str = CompositeLogic.OR,
    ):
        super().__init__(id, description, priority)
        self.patterns = list(patterns)
        self.logic = CompositeLogic(logic)

    def _combine(self, values: list[bool]) -> bool:
        if self.logic is CompositeLogic.AND:
            return all(values)
        return any(values)

    async def applies_to(self, context: AccessContext) -> bool:
        results = await asyncio.gather(*(p.applies_to(context) for p in self.patterns))
        return self._combine(list(results))

    async def validate(self, context: AccessContext) -> AccessPatternResult:
        results = list(await asyncio.gather(*(p.validate(context) for p in self.patterns)))
        reasons = [r.reason for r in results if r.reason]
        return AccessPatternResult(
            allowed=self._combine([r.allowed for r in results]),
            reason=f" {self.logic.value} ".join(reasons),
            pattern_id=self.id,
            metadata={"logic": self.logic.value, "sub_results": results},
        )


class TimeBasedAccessPattern(AccessPattern):
    """Restrict a base pattern to an hour window and optional weekdays.

    ``allowed_hours`` is a half-open ``(start, end)`` range of local hours;
    ``allowed_days`` counts from Sunday = 0 through Saturday = 6.
    Outside the window the request is denied without consulting the base
    pattern.
    """

    def __init__(
        self,
        id: str,
        description: str,
        priority: int,
        base_pattern: AccessPattern,
        allowed_hours: tuple[int, int],
        allowed_days: Iterable[int] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        super().__init__(id, description, priority)
        self.base_pattern = base_pattern
        self.start_hour, self.end_hour = allowed_hours
        self.allowed_days = frozenset(allowed_days) if allowed_days is not None else None
        self._clock = clock

    async def applies_to(self, context: AccessContext) -> bool:
        return await self.base_pattern.applies_to(context)

    async def validate(self, context: AccessContext) -> AccessPatternResult:
        now = self._clock()

        if not self.start_hour <= now.hour < self.end_hour:
            return AccessPatternResult(
                allowed=False,
                reason=(
                    f"Access denied outside allowed hours "
                    f"({self.start_hour}:00 - {self.end_hour}:00)"
                ),
                pattern_id=self.id,
                metadata={"time_restricted": True},
            )

        if self.allowed_days is not None and now.isoweekday() % 7 not in self.allowed_days:
            return AccessPatternResult(
                allowed=False,
                reason="Access denied on this day of the week",
                pattern_id=self.id,
                metadata={"time_restricted": True},
            )

        return await self.base_pattern.validate(context)


AppliesToFn = Callable[[AccessContext], bool | Awaitable[bool]]
ValidateFn = Callable[[AccessContext], AccessPatternResult | Awaitable[AccessPatternResult]]


class CustomAccessPattern(AccessPattern):
    """Access pattern backed by caller-supplied predicates.

    Both callables may be plain functions or coroutine functions.

    Example:
        owner_only = CustomAccessPattern(
            "owner-only", "Only the owner may touch its files", 80,
            lambda ctx: ctx.resource.startswith("home/"),
            lambda ctx: AccessPatternResult(
                allowed=ctx.resource.startswith(f"home/{ctx.requester_id}/"),
                reason="owner check",
            ),
        )
    """

    def __init__(
        self,
        id: str,
        description: str,
        priority: int,
        applies_to_fn: AppliesToFn,
        validate_fn: ValidateFn,
    ):
        super().__init__(id, description, priority)
        self._applies_to_fn = applies_to_fn
        self._validate_fn = validate_fn

    async def applies_to(self, context: AccessContext) -> bool:
        result = self._applies_to_fn(context)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def validate(self, context: AccessContext) -> AccessPatternResult:
        result = self._validate_fn(context)
        if inspect.isawaitable(result):
            result = await result
        return replace(result, pattern_id=self.id)
