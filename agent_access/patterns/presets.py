"""Factories for common file access patterns.

Each factory builds a FileSystemAccessPattern restricted to the operations
of one kind of access, with a conventional priority: read 50, edit 60,
create 60, delete 70.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..core.types import OperationType
from .access_patterns import CompositeAccessPattern, CompositeLogic, FileSystemAccessPattern
from .base import AccessPattern

READ_PRIORITY = 50
EDIT_PRIORITY = 60
CREATE_PRIORITY = 60
DELETE_PRIORITY = 70

READ_OPERATIONS = (OperationType.READ_FILE, OperationType.VALIDATE)
EDIT_OPERATIONS = (OperationType.EDIT_FILE, OperationType.TRANSFORM)
CREATE_OPERATIONS = (OperationType.WRITE_FILE, OperationType.CREATE_DIRECTORY)
DELETE_OPERATIONS = (OperationType.DELETE_FILE,)


def read_pattern(
    patterns: Iterable[str],
    id: str = "read-access",
    description: str = "Read access pattern",
    allow: bool = True,
) -> FileSystemAccessPattern:
    """Pattern granting (or denying) read and validate access."""
    return FileSystemAccessPattern(id, description, READ_PRIORITY, patterns, allow, READ_OPERATIONS)


def edit_pattern(
    patterns: Iterable[str],
    id: str = "edit-access",
    description: str = "Edit access pattern",
    allow: bool = True,
) -> FileSystemAccessPattern:
    """Pattern granting (or denying) edit and transform access."""
    return FileSystemAccessPattern(id, description, EDIT_PRIORITY, patterns, allow, EDIT_OPERATIONS)


def create_pattern(
    patterns: Iterable[str],
    id: str = "create-access",
    description: str = "Create access pattern",
    allow: bool = True,
) -> FileSystemAccessPattern:
    """Pattern granting (or denying) file and directory creation."""
    return FileSystemAccessPattern(
        id, description, CREATE_PRIORITY, patterns, allow, CREATE_OPERATIONS
    )


def delete_pattern(
    patterns: Iterable[str],
    id: str = "delete-access",
    description: str = "Delete access pattern",
    allow: bool = True,
) -> FileSystemAccessPattern:
    """Pattern granting (or denying) deletion."""
    return FileSystemAccessPattern(
        id, description, DELETE_PRIORITY, patterns, allow, DELETE_OPERATIONS
    )


def full_access_pattern(
    patterns: Iterable[str],
    id: str = "full-access",
    description: str = "Full file access within specified patterns",
    allow: bool = True,
) -> CompositeAccessPattern:
    """OR-composite of read, edit, create and delete patterns over the same globs.

    Example:
        agent.access_patterns.append(full_access_pattern(["docs/**"], id="docs"))
    """
    globs = list(patterns)
    return CompositeAccessPattern(
        id,
        description,
        DELETE_PRIORITY,
        [
            read_pattern(globs, id=f"{id}-read", allow=allow),
            edit_pattern(globs, id=f"{id}-edit", allow=allow),
            create_pattern(globs, id=f"{id}-create", allow=allow),
            delete_pattern(globs, id=f"{id}-delete", allow=allow),
        ],
        CompositeLogic.OR,
    )


SOURCE_GLOBS = ["**/*.py", "**/src/**", "**/lib/**"]
TEST_GLOBS = ["**/test_*.py", "**/*_test.py", "**/tests/**", "**/test/**"]
CONFIG_GLOBS = [
    "**/pyproject.toml",
    "**/setup.cfg",
    "**/*.config.*",
    "**/config/**",
    "**/settings/**",
]


def source_code_patterns(prefix: str = "source") -> list[AccessPattern]:
    """Read/edit/create patterns for application source files."""
    return [
        read_pattern(SOURCE_GLOBS, id=f"{prefix}-read", description="Read source files"),
        edit_pattern(SOURCE_GLOBS, id=f"{prefix}-edit", description="Edit source files"),
        create_pattern(
            ["**/src/**", "**/lib/**"], id=f"{prefix}-create", description="Create source files"
        ),
    ]


def unit_test_patterns(prefix: str = "test") -> list[AccessPattern]:
    """Read source and tests, edit and create tests only."""
    return [
        read_pattern(
            TEST_GLOBS + SOURCE_GLOBS, id=f"{prefix}-read", description="Read tests and source"
        ),
        edit_pattern(TEST_GLOBS, id=f"{prefix}-edit", description="Edit test files"),
        create_pattern(
            ["**/tests/**", "**/test/**"], id=f"{prefix}-create", description="Create test files"
        ),
    ]


def config_file_patterns(prefix: str = "config") -> list[AccessPattern]:
    """Read configuration (including .env files) and edit configuration."""
    return [
        read_pattern(
            CONFIG_GLOBS + ["**/.env*"], id=f"{prefix}-read", description="Read configuration"
        ),
        edit_pattern(CONFIG_GLOBS, id=f"{prefix}-edit", description="Edit configuration"),
    ]
