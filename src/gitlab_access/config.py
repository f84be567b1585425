"""gitlab-access service configuration."""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GITLAB_ACCESS_",
        env_file_encoding="utf-8",
    )

    # Routing configuration
    config_file: Path = Path("config.yaml")
    reload_interval: float = Field(default=60.0, gt=0)

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8888
    webhook_path: str = "/gitlab-access"
    grace_period: int = 300

    # Inbound / outbound identity
    user_agent: str = "Robot-Gitlab-Hook-Delivery"
    outbound_user_agent: str = "Robot-Gitlab-Access"

    # Forwarding
    forward_retry_attempts: int = Field(default=3, ge=1)
    forward_retry_delay: float = Field(default=0.1, ge=0)
    forward_timeout: float = Field(default=30.0, gt=0)
    drain_timeout: Optional[float] = None

    # Application
    enable_debug: bool = False
    log_level: str = "INFO"

    # -----------------------------------
    # Field Validators
    # -----------------------------------

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise the log level and reject unknown names.

        Raises:
            ValueError: If the level is not a standard logging level name.
        """
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of {', '.join(sorted(VALID_LOG_LEVELS))}, got {v!r}"
            )
        return level

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("WEBHOOK_PATH must start with '/'")
        if v == "/":
            raise ValueError("WEBHOOK_PATH cannot be '/', it is reserved for health checks")
        return v


def create_settings() -> Settings:
    """Load and validate application settings from environment variables.

    Returns:
        Settings: Validated settings instance.

    Raises:
        SystemExit: Exits with code 1 if validation fails.
    """
    try:
        return Settings()
    except ValidationError as e:
        for err in e.errors():
            logger.error(f"  {'.'.join(str(p) for p in err['loc'])}: {err['msg']}")
        raise SystemExit(1)


# Global singleton – loaded once
settings = create_settings()
