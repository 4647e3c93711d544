"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Any, Literal, Tuple, Type

import yaml
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

_YAML_KEYS: dict[str, dict[str, str]] = {
    "aws": {
        "region": "aws_region",
        "profile": "aws_profile",
        "athena_endpoint_url": "athena_endpoint_url",
        "s3_endpoint_url": "s3_endpoint_url",
    },
    "athena": {
        "database": "athena_database",
        "workgroup": "athena_workgroup",
        "catalog": "athena_catalog",
        "output_location": "athena_output_location",
        "encryption_option": "athena_encryption_option",
        "kms_key": "athena_kms_key",
    },
    "results": {
        "format_json": "format_json",
        "ignore_empty": "ignore_empty",
        "get_stats": "get_stats",
        "skip_results": "skip_results",
        "wait_for_results": "wait_for_results",
        "page_size": "page_size",
        "use_utc_dates": "use_utc_dates",
    },
    "retry": {
        "poll_interval_seconds": "poll_interval_seconds",
        "poll_backoff_factor": "poll_backoff_factor",
        "transient_retry_delay_seconds": "transient_retry_delay_seconds",
        "max_transient_retries": "max_transient_retries",
        "max_polls": "max_polls",
        "cancelled_is_failure": "cancelled_is_failure",
    },
    "logging": {
        "level": "log_level",
        "format": "log_format",
    },
}


def load_yaml_config(config_path: Path | None = None) -> dict[str, Any]:
    """
    Load configuration from YAML file.

    Priority:
    1. Explicitly provided config_path
    2. ~/.athena-express/config.yaml (default location)
    3. Empty dict if no file exists

    Args:
        config_path: Optional path to config file

    Returns:
        Dictionary of configuration values (flattened from nested YAML)
    """
    if config_path is None:
        config_path = Path.home() / ".athena-express" / "config.yaml"

    if not config_path.exists():
        return {}

    try:
        with open(config_path) as f:
            yaml_data = yaml.safe_load(f) or {}

        flattened = {}

        for section, keys in _YAML_KEYS.items():
            values = yaml_data.get(section)
            if not isinstance(values, dict):
                continue
            for yaml_key, field_name in keys.items():
                if yaml_key in values:
                    flattened[field_name] = values[yaml_key]

        return flattened

    except Exception as e:
        import warnings

        warnings.warn(f"Failed to load config from {config_path}: {e}")
        return {}


_config_path: Path | None = None


class YamlSettingsSource(PydanticBaseSettingsSource):
    """
    Custom settings source that loads configuration from YAML file.

    This allows YAML config to be loaded with proper priority in the settings chain.
    """

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        """Not used since we override __call__."""
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        return load_yaml_config(_config_path)


class Settings(BaseSettings):
    """
    athena-express configuration settings.

    Configuration priority (highest to lowest):
    1. Explicit keyword arguments
    2. Environment variables (e.g., ATHENA_DATABASE=sales)
    3. YAML configuration file (~/.athena-express/config.yaml)
    4. .env file
    5. Default values defined in this class
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    aws_region: str = Field(default="us-east-1", description="AWS region")
    aws_profile: str | None = Field(default=None, description="AWS named profile")
    athena_endpoint_url: str | None = Field(
        default=None, description="Custom Athena endpoint"
    )
    s3_endpoint_url: str | None = Field(
        default=None,
        description="Custom S3 endpoint (for MinIO, LocalStack, etc.)",
    )

    athena_database: str = Field(default="default", description="Default database")
    athena_workgroup: str = Field(default="primary", description="Athena workgroup")
    athena_catalog: str | None = Field(default=None, description="Data catalog")
    athena_output_location: str | None = Field(
        default=None,
        description="S3 prefix for query results (workgroup setting when unset)",
    )
    athena_encryption_option: Literal["SSE_S3", "SSE_KMS", "CSE_KMS"] | None = Field(
        default=None, description="Result encryption option"
    )
    athena_kms_key: str | None = Field(
        default=None, description="KMS key for SSE_KMS/CSE_KMS"
    )

    format_json: bool = Field(default=True, description="Decode results into records")
    ignore_empty: bool = Field(default=True, description="Drop empty cells from records")
    get_stats: bool = Field(default=False, description="Attach execution statistics")
    skip_results: bool = Field(default=False, description="Do not fetch results")
    wait_for_results: bool = Field(default=True, description="Poll until completion")
    page_size: int | None = Field(
        default=None, ge=1, le=999, description="Rows per page (no pagination when unset)"
    )
    use_utc_dates: bool = Field(
        default=False, description="Parse dates and timestamps into UTC datetimes"
    )

    poll_interval_seconds: float = Field(
        default=0.2, ge=0, description="Delay between status polls"
    )
    poll_backoff_factor: float = Field(
        default=1.0,
        ge=1.0,
        description="Poll interval growth per consecutive poll (1.0 = constant)",
    )
    transient_retry_delay_seconds: float = Field(
        default=2.0, ge=0, description="Delay after a throttling or network error"
    )
    max_transient_retries: int | None = Field(
        default=None,
        ge=0,
        description="Retries allowed after the first failed call (unbounded when unset)",
    )
    max_polls: int | None = Field(
        default=None, ge=1, description="Status poll budget (unbounded when unset)"
    )
    cancelled_is_failure: bool = Field(
        default=False, description="Treat CANCELLED executions as failures"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text", description="Log format"
    )

    @field_validator("athena_output_location")
    @classmethod
    def validate_output_location(cls, v: str | None) -> str | None:
        """Require an s3:// URI and a trailing slash."""
        if v is None:
            return v
        if not v.startswith("s3://"):
            raise ValueError("Output location must be an s3:// URI")
        if not v.endswith("/"):
            v = f"{v}/"
        return v

    @property
    def encryption(self) -> dict[str, str] | None:
        """Athena EncryptionConfiguration built from the flat settings."""
        if self.athena_encryption_option is None:
            return None
        encryption = {"EncryptionOption": self.athena_encryption_option}
        if self.athena_kms_key:
            encryption["KmsKey"] = self.athena_kms_key
        return encryption

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """
        Customize settings sources priority.

        Priority order (highest to lowest):
        1. Explicit kwargs (init_settings) - for testing and programmatic config
        2. Environment variables
        3. YAML configuration file
        4. .env file
        5. Field defaults
        """
        return (
            init_settings,
            env_settings,
            YamlSettingsSource(settings_cls),
            dotenv_settings,
        )


_settings: Settings | None = None


def get_settings(config_path: Path | None = None, reload: bool = False) -> Settings:
    """
    Get global settings instance.

    Args:
        config_path: Optional path to YAML config file (defaults to ~/.athena-express/config.yaml)
        reload: If True, force reload settings (useful for testing)

    Returns:
        Settings instance with merged configuration
    """
    global _settings, _config_path
    if _settings is None or reload:
        _config_path = config_path

        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton and config path (useful for testing)."""
    global _settings, _config_path
    _settings = None
    _config_path = None
