# FinSync Configuration Schema
# Pydantic models for YAML configuration validation

import os
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Logging verbosity."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class ApiConfig(BaseModel):
    """Remote API connection settings."""

    base_url: str = Field(default="https://api.example.com/api", description="Base URL of the finance API")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout")
    token: Optional[str] = Field(default=None, description="Bearer token (prefer token_env)")
    token_env: str = Field(default="FINSYNC_TOKEN", description="Environment variable holding the bearer token")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v

    def resolve_token(self) -> Optional[str]:
        """Token from the environment, falling back to the configured value."""
        return os.environ.get(self.token_env) or self.token or None


class StorageConfig(BaseModel):
    """Local persistence settings."""

    database_path: str = Field(default="~/.local/share/finsync/finsync.db", description="SQLite database file")
    state_path: str = Field(default="~/.config/finsync/.sync_state.yaml", description="Watermark state file")

    @field_validator("database_path", "state_path")
    @classmethod
    def expand_paths(cls, v: str) -> str:
        """Expand ~ in paths."""
        if v == ":memory:":
            return v
        return str(Path(v).expanduser())


class SchedulerConfig(BaseModel):
    """Background sync scheduling settings."""

    interval_seconds: float = Field(default=120.0, gt=0, description="Periodic sync interval")
    on_demand_delay_seconds: float = Field(default=5.0, ge=0, description="Delay before an on-demand sync")
    requires_network: bool = Field(default=True, description="Run only when the API is reachable")
    requires_idle: bool = Field(default=True, description="Run periodic syncs only when idle")
    backoff_base_seconds: float = Field(default=30.0, gt=0, description="First retry delay")
    backoff_max_seconds: float = Field(default=1800.0, gt=0, description="Maximum retry delay")


class OutputConfig(BaseModel):
    """Output and logging configuration."""

    verbose: bool = Field(default=False, description="Enable verbose output")
    colored: bool = Field(default=True, description="Enable colored output")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: Optional[str] = Field(default=None, description="Path to log file")

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_level(cls, v):
        """Accept lower-case level names."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("log_file")
    @classmethod
    def expand_optional_path(cls, v: Optional[str]) -> Optional[str]:
        """Expand ~ in optional paths."""
        if v is None:
            return None
        return str(Path(v).expanduser())


class FinSyncConfig(BaseModel):
    """Root configuration model for FinSync."""

    api: ApiConfig = Field(default_factory=ApiConfig, description="Remote API settings")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Local storage settings")
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig, description="Scheduler settings")
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output settings")
