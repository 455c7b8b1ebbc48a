from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from riskplan.exceptions import ConfigurationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

CONFIG_ENV_VAR = "RISKPLAN_CONFIG"
DEFAULT_CONFIG_PATH = Path("config/default.yaml")


class RiskSettings(BaseModel):
    rules_path: Path | None = None


class VersioningSettings(BaseModel):
    # Every N-th commit stores a full snapshot; 0 disables checkpoints
    snapshot_interval: int = Field(25, ge=0)


class StorageSettings(BaseModel):
    backend: Literal["local", "s3"] = "local"
    root: Path = Path("data")
    bucket: str | None = None
    prefix: str = ""
    region: str | None = None
    key: str = "workspace.json"

    @field_validator("prefix", mode="before")
    @classmethod
    def _default_prefix(cls, value: Any) -> str:
        if value is None:
            return ""
        return value


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    log_file: Path | None = None

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> str:
        return str(value or "INFO").upper()


class Settings(BaseModel):
    risk: RiskSettings = Field(default_factory=RiskSettings)
    versioning: VersioningSettings = Field(default_factory=VersioningSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                RISKPLAN_CONFIG environment variable or defaults to config/default.yaml.

        Returns:
            Settings instance with loaded configuration. A missing default file
            yields the built-in defaults.

        Raises:
            ConfigurationError: If an explicitly requested file does not exist
                or the configuration is invalid.
        """
        env_path = os.getenv(CONFIG_ENV_VAR)
        explicit = path or (Path(env_path) if env_path else None)
        config_path = explicit or DEFAULT_CONFIG_PATH
        if not config_path.exists():
            if explicit is not None:
                raise ConfigurationError(f"Configuration file not found: {config_path}", {"path": str(config_path)})
            return cls()
        with config_path.open("r", encoding="utf-8") as fp:
            try:
                payload = yaml.safe_load(fp) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Cannot parse configuration {config_path}: {exc}", {"path": str(config_path)}) from exc
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Configuration {config_path} must be a mapping", {"path": str(config_path)})
        try:
            return cls(**payload)
        except PydanticValidationError as exc:
            raise ConfigurationError(
                f"Invalid configuration: {exc}",
                {"path": str(config_path), "errors": exc.errors(include_url=False)},
            ) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "RiskSettings",
    "VersioningSettings",
    "StorageSettings",
    "LoggingSettings",
    "get_settings",
]
