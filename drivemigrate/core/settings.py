"""Configuration for drivemigrate, read once from the environment."""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from drivemigrate.core.exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

REQUIRED_FIELDS = (
    "file_mongo_conn_string",
    "permission_mongo_conn_string",
    "file_service_url",
    "search_service_url",
)


def normalize_service_url(address: str) -> str:
    """Turn a bare ``host:port`` service address into a base URL."""
    address = address.strip().rstrip("/")
    if "://" not in address:
        address = f"http://{address}"
    return address


def split_rule_names(value: str) -> list[str]:
    """Split a comma separated list of rule names."""
    return [name.strip() for name in value.split(",") if name.strip()]


class MigrationSettings(BaseSettings):
    """Settings for a migration run.

    The four connection settings keep the environment variable names the
    live services already export (``FILE_MONGO_CONN_STRING`` and friends).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    file_mongo_conn_string: str = Field(min_length=1)
    permission_mongo_conn_string: str = Field(min_length=1)
    file_service_url: str = Field(min_length=1)
    search_service_url: str = Field(min_length=1)

    # No deadline unless one is configured
    remote_timeout: float | None = None
    mongo_server_selection_timeout_ms: int = 30000

    resync_after_backfill: bool = False
    migration_enable_rules: str = ""
    migration_disable_rules: str = ""
    migration_log_level: str = "INFO"

    @field_validator("file_service_url", "search_service_url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        return normalize_service_url(value)

    @field_validator("migration_log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(LOG_LEVELS)}")
        return value

    @property
    def enabled_rules(self) -> list[str]:
        return split_rule_names(self.migration_enable_rules)

    @property
    def disabled_rules(self) -> list[str]:
        return split_rule_names(self.migration_disable_rules)


def load_settings(**overrides) -> MigrationSettings:
    """Load settings, turning validation failures into a typed error.

    Args:
        **overrides: Values that take precedence over the environment

    Returns:
        The loaded MigrationSettings

    Raises:
        ConfigurationError: If a required variable is absent or empty, or
            any value is invalid
    """
    try:
        return MigrationSettings(**overrides)
    except ValidationError as e:
        missing = []
        invalid = []
        for error in e.errors():
            field_name = str(error["loc"][0]) if error["loc"] else ""
            if field_name in REQUIRED_FIELDS and error["type"] in ("missing", "string_too_short"):
                missing.append(field_name.upper())
            else:
                invalid.append(f"{field_name.upper()}: {error['msg']}")
        if missing:
            raise ConfigurationError(missing_fields=missing) from e
        raise ConfigurationError("Invalid configuration: " + "; ".join(invalid)) from e
