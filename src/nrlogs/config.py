"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional YAML file provides defaults that environment variables override.
"""

import json
import os
from functools import lru_cache
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.harvester import DEFAULT_INTERVAL_MS
from .core.levels import DEFAULT_LEVEL, parse_level

CONFIG_FILE_ENV = "NRLOGS_CONFIG_FILE"


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from a YAML file."""
    if config_path is None:
        config_path = os.environ.get(CONFIG_FILE_ENV)

    if config_path is None:
        for path in ("nrlogs.yaml", "config.yaml"):
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}
    return {}


class ShipperSettings(BaseSettings):
    """Log shipping configuration for one ApiLogger."""

    model_config = SettingsConfigDict(env_prefix="NRLOGS_SHIPPER_")

    license_key: Optional[str] = Field(
        default=None,
        description="Log API license key; NEW_RELIC_LICENSE_KEY is used when unset",
    )
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Common attributes for every record")
    use_eu: bool = Field(default=False, description="Send to the EU Log API endpoint")
    level: str = Field(default=DEFAULT_LEVEL.value, description="Initial severity threshold")
    debug: bool = Field(default=False, description="Verbose local diagnostics")
    harvest: bool = Field(default=True, description="Run the periodic harvest timer")
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0, description="Harvest interval in milliseconds")
    endpoint: Optional[str] = Field(default=None, description="Override the regional Log API URL")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Log API request timeout")

    @field_validator("level", mode="before")
    def validate_level(cls, v: Any) -> str:
        """Reject anything that is not a known severity."""
        return parse_level(v).value


class Settings(BaseSettings):
    """Top-level settings for the demo service and its two sinks."""

    model_config = SettingsConfigDict(env_prefix="NRLOGS_", case_sensitive=False)

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=23456, description="Server port")
    log_level: str = Field(default="INFO", description="Local diagnostics log level")

    shipper: ShipperSettings = Field(default_factory=ShipperSettings)
    stdlib_attributes: Dict[str, Any] = Field(
        default_factory=lambda: {"logger": "stdlib"},
        description="Common attributes for the stdlib logging sink",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""
    config_data = load_config_file()

    # Config file values only fill in what the environment leaves unset
    if config_data:
        _set_env_from_config(config_data)

    return Settings()


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "NRLOGS_HOST",
        ("server", "port"): "NRLOGS_PORT",
        ("server", "log_level"): "NRLOGS_LOG_LEVEL",
        ("shipper", "license_key"): "NRLOGS_SHIPPER_LICENSE_KEY",
        ("shipper", "use_eu"): "NRLOGS_SHIPPER_USE_EU",
        ("shipper", "level"): "NRLOGS_SHIPPER_LEVEL",
        ("shipper", "debug"): "NRLOGS_SHIPPER_DEBUG",
        ("shipper", "harvest"): "NRLOGS_SHIPPER_HARVEST",
        ("shipper", "interval_ms"): "NRLOGS_SHIPPER_INTERVAL_MS",
        ("shipper", "endpoint"): "NRLOGS_SHIPPER_ENDPOINT",
        ("shipper", "timeout_seconds"): "NRLOGS_SHIPPER_TIMEOUT_SECONDS",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value).lower() if isinstance(value, bool) else str(value)

    # Mappings are passed as JSON, which pydantic-settings decodes
    json_mappings = {
        ("shipper", "attributes"): "NRLOGS_SHIPPER_ATTRIBUTES",
        ("stdlib", "attributes"): "NRLOGS_STDLIB_ATTRIBUTES",
    }

    for (section, key), env_var in json_mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value:
                os.environ[env_var] = json.dumps(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
