"""Configuration for the access control core."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..patterns.base import AccessPattern
from ..permissions.rules import PermissionRule
from .types import AgentCapability, AgentTool


class Settings(BaseSettings):
    """Runtime settings loaded from ``AGENT_ACCESS_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AGENT_ACCESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Access patterns
    enable_access_patterns: bool = Field(
        default=True, description="Use access patterns in the async permission pipeline"
    )
    pattern_cache_enabled: bool = Field(default=True, description="Cache pattern evaluations")
    pattern_cache_max_size: int = Field(
        default=1000, description="Cache size that triggers eviction"
    )
    pattern_cache_ttl_seconds: float = Field(
        default=300.0, description="Age after which a cached evaluation is ignored"
    )
    log_pattern_evaluations: bool = Field(
        default=False, description="Log every pattern evaluation at DEBUG level"
    )

    # Audit and history
    audit_logging_enabled: bool = Field(default=True, description="Record permission decisions")
    max_audit_entries: int = Field(default=1000, description="Permission audit log capacity")
    max_history_entries: int = Field(
        default=1000, description="Request, response and message history capacity"
    )
    security_audit_enabled: bool = Field(
        default=False, description="Give the orchestrator its own security auditor"
    )
    max_security_events: int = Field(
        default=10000, description="Security auditor event log capacity"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator(
        "pattern_cache_max_size",
        "pattern_cache_ttl_seconds",
        "max_audit_entries",
        "max_history_entries",
        "max_security_events",
    )
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Sizes and durations must be positive."""
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize to an upper-case standard level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


def _default_tools() -> set[AgentTool]:
    return {AgentTool.READ_LOCAL, AgentTool.INTER_AGENT_COMMUNICATION}


@dataclass
class OrchestratorConfig:
    """Initial state handed to the orchestrator by a configuration loader.

    Attributes:
        agents: Agents registered at startup
        rules: Override rules added after the agents are registered
        global_patterns: Access patterns evaluated for every agent
        default_tools: Tools for agents declaring neither tools nor legacy
            permission flags
        log_communications: Log inter-agent messages and questions
    """

    agents: list[AgentCapability] = field(default_factory=list)
    rules: list[PermissionRule] = field(default_factory=list)
    global_patterns: list[AccessPattern] = field(default_factory=list)
    default_tools: set[AgentTool] = field(default_factory=_default_tools)
    log_communications: bool = True


# Global settings instance
settings = Settings()
