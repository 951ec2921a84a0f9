"""Schema checker configuration loaded from environment variables."""

from __future__ import annotations

import logging

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings loaded from environment variables with the SCHEMA_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False

    # Database
    database_url: SecretStr | None = None
    connect_timeout: int = 10
    read_timeout: int = 30

    # None means "ask the server" (@@character_set_database).
    use_utf8mb4: bool | None = None

    # Table namespace
    table_prefix: str = ""
    plugin_namespace: str = "plugin_"

    # Telemetry
    structured_logging: bool = False

    @field_validator("database_url", mode="before")
    @classmethod
    def mask_url_in_repr(cls, v: str | None) -> SecretStr | None:
        # Connection URLs usually embed a password.
        if v is None or v == "":
            return None
        if isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    def is_database_configured(self) -> bool:
        return self.database_url is not None


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    # None overrides mean "not given on the command line".
    settings = Settings(**{key: value for key, value in overrides.items() if value is not None})  # type: ignore[arg-type]

    if settings.debug:
        logger.info("Loaded settings (table prefix %r)", settings.table_prefix)

    return settings
