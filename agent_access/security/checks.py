"""Standard security checks for file access.

Each check is a pure function over a FileAccessContext returning a
SecurityCheckResult. Checks are vetoes: a request passes only if every
check passes, so callers may stop at the first failure.

Example:
    result = path_traversal_check(create_file_access_context(
        "../etc/passwd", OperationType.READ_FILE, "reader"))
    assert not result.passed
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..core.types import OperationType
from ..patterns.base import FileAccessContext
from ..utils.matching import match_any

logger = logging.getLogger(__name__)


class SecurityViolationType(Enum):
    """Kinds of security violation a check can report."""

    PATH_TRAVERSAL = "path_traversal"
    SYSTEM_FILE_ACCESS = "system_file_access"
    CREDENTIAL_ACCESS = "credential_access"
    EXECUTABLE_ACCESS = "executable_access"
    NETWORK_CONFIG_ACCESS = "network_config_access"
    UNSAFE_OPERATION = "unsafe_operation"
    PRIVILEGE_ESCALATION = "privilege_escalation"
    SUSPICIOUS_PATTERN = "suspicious_pattern"


class SecurityLevel(Enum):
    """Severity attached to security decisions and audit events."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class SecurityCheckResult:
    """Outcome of a single security check."""

    passed: bool
    reason: str | None = None
    violation_type: SecurityViolationType | None = None


SecurityCheck = Callable[[FileAccessContext], SecurityCheckResult]

PASSED = SecurityCheckResult(passed=True)

MODIFYING_OPERATIONS = frozenset(
    {OperationType.WRITE_FILE, OperationType.EDIT_FILE, OperationType.DELETE_FILE}
)

# Literal and percent-encoded parent directory sequences
TRAVERSAL_SEQUENCES = ("../", "..\\", "..%2f", "..%5c", "%2e%2e%2f", "%2e%2e%5c", "%2e%2e/")

SYSTEM_PATH_PREFIXES = (
    "/etc/",
    "/usr/",
    "/var/",
    "/sys/",
    "/proc/",
    "/dev/",
    "/boot/",
    "/root/",
    "c:/windows/",
    "c:/program files/",
    "c:/programdata/",
    "/system/",
    "/library/",
    "/applications/",
    "/users/shared/",
)

CREDENTIAL_PATTERNS = (
    "**/.env*",
    "**/secrets/**",
    "**/*key*",
    "**/*token*",
    "**/*password*",
    "**/*credential*",
    "**/.ssh/**",
    "**/*.pem",
    "**/*.p12",
    "**/*.pfx",
    "**/id_rsa*",
    "**/id_dsa*",
    "**/id_ecdsa*",
    "**/id_ed25519*",
    "**/known_hosts",
    "**/authorized_keys",
    "**/.aws/**",
    "**/.azure/**",
    "**/.gcp/**",
    "**/config.json",
    "**/credentials.json",
)

EXECUTABLE_EXTENSIONS = (
    ".exe", ".bat", ".cmd", ".com", ".scr", ".pif",
    ".sh", ".bash", ".zsh", ".fish", ".csh", ".tcsh",
    ".ps1", ".psm1", ".psd1",
    ".app", ".dmg", ".pkg",
    ".deb", ".rpm", ".snap",
    ".jar", ".war", ".ear",
)  # fmt: skip

DEPENDENCY_DIRECTORIES = ("node_modules", "site-packages", ".venv")

NETWORK_CONFIG_PATTERNS = (
    "**/hosts",
    "**/resolv.conf",
    "**/network/interfaces",
    "**/networkmanager/**",
    "**/wpa_supplicant.conf",
    "**/dhcpcd.conf",
    "**/iptables/**",
    "**/firewall/**",
)

SUSPICIOUS_PATTERNS = (
    "**/tmp/**/*.exe",
    "**/temp/**/*.exe",
    "**/.hidden/**",
    "**/...*/**",
    "**/*backdoor*",
    "**/*malware*",
    "**/*virus*",
    "**/*trojan*",
    "**/*keylog*",
    "**/*rootkit*",
)

CRITICAL_CONFIG_PATTERNS = (
    "**/package.json",
    "**/package-lock.json",
    "**/yarn.lock",
    "**/pnpm-lock.yaml",
    "**/tsconfig.json",
    "**/webpack.config.*",
    "**/vite.config.*",
    "**/.gitignore",
    "**/.gitattributes",
    "**/dockerfile*",
    "**/docker-compose.*",
    "**/makefile",
    "**/requirements*.txt",
    "**/pyproject.toml",
    "**/setup.cfg",
    "**/pipfile*",
    "**/poetry.lock",
    "**/uv.lock",
    "**/go.mod",
    "**/go.sum",
    "**/cargo.toml",
    "**/cargo.lock",
)


def _path(context: FileAccessContext) -> str:
    return (context.file_path or str(context.resource)).replace("\\", "/")


def path_traversal_check(context: FileAccessContext) -> SecurityCheckResult:
    """Reject literal or percent-encoded ``..`` sequences."""
    raw = (context.file_path or str(context.resource)).lower()
    if any(seq in raw for seq in TRAVERSAL_SEQUENCES) or ".." in _path(context).split("/"):
        return SecurityCheckResult(
            passed=False,
            reason="Path traversal attempt detected",
            violation_type=SecurityViolationType.PATH_TRAVERSAL,
        )
    return PASSED


def system_file_protection_check(context: FileAccessContext) -> SecurityCheckResult:
    """Reject any access below well-known system directories."""
    path = _path(context).lower()
    for prefix in SYSTEM_PATH_PREFIXES:
        if path.startswith(prefix):
            return SecurityCheckResult(
                passed=False,
                reason=f"Access to system directory denied: {prefix}",
                violation_type=SecurityViolationType.SYSTEM_FILE_ACCESS,
            )
    return PASSED


def credential_protection_check(context: FileAccessContext) -> SecurityCheckResult:
    """Block modification of credential-looking files; reads are logged only."""
    if not match_any(_path(context).lower(), CREDENTIAL_PATTERNS):
        return PASSED

    if context.operation in MODIFYING_OPERATIONS:
        return SecurityCheckResult(
            passed=False,
            reason="Write/delete access to credential files denied",
            violation_type=SecurityViolationType.CREDENTIAL_ACCESS,
        )

    logger.warning(
        f"Security audit: agent {context.agent_id or context.requester_id} "
        f"reading potential credential file: {context.file_path}"
    )
    return PASSED


def executable_protection_check(context: FileAccessContext) -> SecurityCheckResult:
    """Block direct execution of executable files."""
    if context.operation is OperationType.EXECUTE_FILE and _path(context).lower().endswith(
        EXECUTABLE_EXTENSIONS
    ):
        return SecurityCheckResult(
            passed=False,
            reason="Direct execution of files not allowed",
            violation_type=SecurityViolationType.EXECUTABLE_ACCESS,
        )
    return PASSED


def dependency_directory_protection_check(context: FileAccessContext) -> SecurityCheckResult:
    """Block modification of installed dependency directories."""
    segments = _path(context).split("/")
    if context.operation in MODIFYING_OPERATIONS and any(
        directory in segments for directory in DEPENDENCY_DIRECTORIES
    ):
        return SecurityCheckResult(
            passed=False,
            reason="Modification of dependency directories denied",
            violation_type=SecurityViolationType.UNSAFE_OPERATION,
        )
    return PASSED


def network_config_protection_check(context: FileAccessContext) -> SecurityCheckResult:
    """Block edits and deletes of network configuration files."""
    if context.operation in (OperationType.EDIT_FILE, OperationType.DELETE_FILE) and match_any(
        _path(context).lower(), NETWORK_CONFIG_PATTERNS
    ):
        return SecurityCheckResult(
            passed=False,
            reason="Modification of network configuration files denied",
            violation_type=SecurityViolationType.NETWORK_CONFIG_ACCESS,
        )
    return PASSED


def suspicious_pattern_check(context: FileAccessContext) -> SecurityCheckResult:
    """Reject paths whose names look like malware or hidden payloads."""
    if match_any(_path(context).lower(), SUSPICIOUS_PATTERNS):
        return SecurityCheckResult(
            passed=False,
            reason="Suspicious file pattern detected",
            violation_type=SecurityViolationType.SUSPICIOUS_PATTERN,
        )
    return PASSED


def critical_config_protection_check(context: FileAccessContext) -> SecurityCheckResult:
    """Block deletion of important project configuration files."""
    if context.operation is OperationType.DELETE_FILE and match_any(
        _path(context).lower(), CRITICAL_CONFIG_PATTERNS
    ):
        return SecurityCheckResult(
            passed=False,
            reason="Deletion of important configuration files requires explicit permission",
            violation_type=SecurityViolationType.UNSAFE_OPERATION,
        )
    return PASSED


STANDARD_SECURITY_CHECKS: tuple[SecurityCheck, ...] = (
    path_traversal_check,
    system_file_protection_check,
    credential_protection_check,
    executable_protection_check,
    dependency_directory_protection_check,
    network_config_protection_check,
    suspicious_pattern_check,
    critical_config_protection_check,
)


def run_security_checks(
    context: FileAccessContext,
    checks: tuple[SecurityCheck, ...] | list[SecurityCheck] = STANDARD_SECURITY_CHECKS,
) -> SecurityCheckResult:
    """Run checks in order, stopping at the first failure.

    Returns:
        The first failing result, or a passing result if all checks pass
    """
    for check in checks:
        result = check(context)
        if not result.passed:
            return result
    return PASSED
