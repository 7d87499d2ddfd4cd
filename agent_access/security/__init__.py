"""Security checks, security-validated patterns and the security auditor."""

from .auditor import SecurityAuditor, SecurityEvent
from .checks import (
    STANDARD_SECURITY_CHECKS,
    SecurityCheck,
    SecurityCheckResult,
    SecurityLevel,
    SecurityViolationType,
    run_security_checks,
)
from .patterns import (
    DEFAULT_SECURITY_PATTERNS,
    SecurityValidatedAccessPattern,
    create_restrictive_security_pattern,
    create_security_pattern,
)

__all__ = [
    "DEFAULT_SECURITY_PATTERNS",
    "STANDARD_SECURITY_CHECKS",
    "SecurityAuditor",
    "SecurityCheck",
    "SecurityCheckResult",
    "SecurityEvent",
    "SecurityLevel",
    "SecurityValidatedAccessPattern",
    "SecurityViolationType",
    "create_restrictive_security_pattern",
    "create_security_pattern",
    "run_security_checks",
]
