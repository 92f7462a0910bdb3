"""
Shared configuration management for the rule table engine.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RuleTableSettings(BaseSettings):
    """Engine settings, read from RULETABLES_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RULETABLES_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    log_json: bool = Field(default=True)

    # Evaluation
    max_transfer_depth: int = Field(default=100, ge=1)

    # Construction
    strict_transfer_targets: bool = Field(default=False)


def get_settings(**overrides) -> RuleTableSettings:
    """Get engine settings, with keyword overrides taking precedence."""
    return RuleTableSettings(**overrides)
