"""Access patterns and their evaluator.

Example usage:
    src = FileSystemAccessPattern("src", "Source tree", 60, ["src/**"], allow=True)
    evaluator = AccessPatternEvaluator()

    context = create_file_access_context("src/app.py", OperationType.EDIT_FILE, "editor")
    result = await evaluator.evaluate(src, context)
"""

from .access_patterns import (
    CompositeAccessPattern,
    CompositeLogic,
    CustomAccessPattern,
    FileSystemAccessPattern,
    TimeBasedAccessPattern,
)
from .base import (
    AccessContext,
    AccessPattern,
    AccessPatternResult,
    FileAccessContext,
    create_file_access_context,
)
from .evaluator import AccessPatternEvaluator, CacheEntry

__all__ = [
    "AccessContext",
    "AccessPattern",
    "AccessPatternEvaluator",
    "AccessPatternResult",
    "CacheEntry",
    "CompositeAccessPattern",
    "CompositeLogic",
    "CustomAccessPattern",
    "FileAccessContext",
    "FileSystemAccessPattern",
    "TimeBasedAccessPattern",
    "create_file_access_context",
]
