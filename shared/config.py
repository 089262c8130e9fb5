"""
Shared configuration management for the rule group reconciler.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RULEGROUP_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Observability
    metrics_enabled: bool = Field(default=True)
    metrics_port: int = Field(default=9090)


class ReconcilerConfig(BaseConfig):
    """Settings for the change-token retry loop and reconciler."""

    service_name: str = Field(default="rule_groups")

    # Change tokens are scoped; "global" is the only scope the remote offers
    # outside regional deployments.
    change_token_scope: str = Field(default="global")

    # Tokens under contention can take tens of seconds to free up.
    retry_timeout_seconds: float = Field(default=900.0, gt=0)
    retry_base_delay: float = Field(default=1.0, ge=0)
    retry_max_delay: float = Field(default=30.0, ge=0)
    retry_exponential_base: float = Field(default=2.0, ge=1)
    retry_backoff_strategy: str = Field(default="exponential")
    retry_jitter: bool = Field(default=True)


def get_config(**overrides) -> ReconcilerConfig:
    """Get reconciler configuration from the environment."""
    return ReconcilerConfig(**overrides)
