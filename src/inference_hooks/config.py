"""Hook pipeline configuration models."""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default fallback."""
    return os.getenv(key, default)


def get_env_int(key: str, default: int = 0) -> int:
    """Get environment variable as integer with default fallback."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get environment variable as boolean with default fallback."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _reject_parent_components(path: str, name: str) -> str:
    if ".." in path.replace("\\", "/").split("/"):
        raise ValueError(f"{name} must not contain '..' components: {path!r}")
    return os.path.normpath(path)


class MemoryStoreConfig(BaseModel):
    """Session key/value memory configuration."""

    enabled: bool = True
    quota_bytes: int = Field(default=16 * 1024 * 1024, ge=1)
    protected_key: str = "memory_instruction_summary"
    deletion_threshold_percent: float = Field(default=90.0, ge=0.0, le=100.0)
    bytes_per_key_estimate: int = Field(default=100, ge=1)


class GovernanceConfig(BaseModel):
    """Governance engine configuration."""

    enabled: bool = True
    state_path: str = "/tmp/governance_state.json"
    log_path: str = "/tmp/governance_log.json"

    min_rule_count: int = 20
    min_kernel_components: int = 5

    drift_threshold: float = 0.4
    violation_delta: float = 0.1
    reaffirm_delta: float = 0.05
    invoke_delta: float = 0.02
    reinforcement_delta: float = 0.3
    consecutive_violation_limit: int = 3

    kernel_check_interval: int = 5
    save_interval: int = 10

    history_size: int = 5
    similarity_threshold: float = 0.90
    min_compare_length: int = 20
    token_limit: int = 32768

    @model_validator(mode="after")
    def _validate_paths(self) -> "GovernanceConfig":
        self.state_path = _reject_parent_components(self.state_path, "state_path")
        self.log_path = _reject_parent_components(self.log_path, "log_path")
        return self

    @field_validator(
        "drift_threshold",
        "violation_delta",
        "reaffirm_delta",
        "invoke_delta",
        "reinforcement_delta",
        "similarity_threshold",
    )
    @classmethod
    def _unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"value must be within [0, 1], got {value}")
        return value

    @field_validator("kernel_check_interval", "save_interval", "history_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"value must be >= 1, got {value}")
        return value


class StreamingConfig(BaseModel):
    """Streaming response handling configuration."""

    min_check_length: int = Field(default=50, ge=0)
    check_interval: int = Field(default=1, ge=1)
    response_history_size: int = Field(default=5, ge=1)


class HookConfig(BaseModel):
    """Top-level hook pipeline configuration."""

    debug: bool = False
    memory: MemoryStoreConfig = Field(default_factory=MemoryStoreConfig)
    governance: GovernanceConfig = Field(default_factory=GovernanceConfig)
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "HookConfig":
        """Build a configuration from ``HOOKS_*`` environment variables.

        Args:
            dotenv: Load a ``.env`` file first when present.
        """
        if dotenv:
            load_dotenv()

        governance = GovernanceConfig()
        streaming = StreamingConfig()
        return cls(
            debug=get_env_bool("HOOKS_DEBUG", False),
            memory=MemoryStoreConfig(
                enabled=get_env_bool("HOOKS_MEMORY_ENABLED", True),
            ),
            governance=GovernanceConfig(
                enabled=get_env_bool("HOOKS_GOVERNANCE_ENABLED", True),
                state_path=get_env(
                    "HOOKS_GOVERNANCE_STATE_PATH", governance.state_path
                ),
                log_path=get_env("HOOKS_GOVERNANCE_LOG_PATH", governance.log_path),
            ),
            streaming=StreamingConfig(
                min_check_length=get_env_int(
                    "HOOKS_STREAMING_MIN_CHECK_LENGTH", streaming.min_check_length
                ),
                check_interval=get_env_int(
                    "HOOKS_STREAMING_CHECK_INTERVAL", streaming.check_interval
                ),
            ),
        )
