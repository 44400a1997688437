"""Configuration loading and persistence.

Two layers live here: :class:`ZyncConfig`, the RPC endpoint written by
``zync-executor config-rpc``, and :class:`ExecutorSettings`, the optional
YAML file holding non-secret runtime tunables.
"""

import json
import logging
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zync_executor.errors import ConfigNotConfiguredError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_FACTORY_ADDRESS = "0xA22d214517f244FD93F36834eB85a8a15F1f8F92"
SEPOLIA_CHAIN_ID = 11155111

ONE_HOUR = 60 * 60
THIRTY_MINUTES = 30 * 60


def default_config_path() -> Path:
    return Path.home() / ".zync" / "config.json"


def default_settings_path() -> Path:
    return Path.home() / ".zync" / "executor.yaml"


class ZyncConfig(BaseModel):
    """Persisted connection settings."""

    model_config = ConfigDict(populate_by_name=True)

    rpc_url: str = Field(alias="rpcUrl", min_length=1)


class ConfigStore:
    """Read and write :class:`ZyncConfig` as JSON at a fixed path."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else default_config_path()

    @property
    def path(self) -> Path:
        return self._path

    def save(self, config: ZyncConfig) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(config.model_dump_json(by_alias=True, indent=2))

    def load(self) -> ZyncConfig:
        if not self._path.exists():
            raise ConfigNotConfiguredError("RPC not configured. Run: zync-executor config-rpc --url <RPC_URL>")
        try:
            return ZyncConfig.model_validate(json.loads(self._path.read_text()))
        except (ValueError, ValidationError) as exc:
            msg = f"Invalid config file {self._path}. Run: zync-executor config-rpc --url <RPC_URL>"
            raise ConfigurationError(msg) from exc


class CacheSettings(BaseModel):
    """TTLs (seconds) and capacity of the executor caches."""

    strategy_count_ttl: float = ONE_HOUR
    eligibility_ttl: float = THIRTY_MINUTES
    execution_ttl: float = THIRTY_MINUTES
    max_entries: int | None = 100_000


class MonitoringSettings(BaseModel):
    """Logging output configuration."""

    structured_logging: bool = False
    log_file: str | None = None


class ExecutorSettings(BaseModel):
    """Top-level runtime settings for ``zync-executor run``."""

    factory_address: str = DEFAULT_FACTORY_ADDRESS
    chain_id: int = SEPOLIA_CHAIN_ID
    poll_interval: float = Field(default=15.0, gt=0)
    jitter: float = Field(default=0.2, ge=0.0, le=1.0)
    rpc_timeout: float = Field(default=30.0, gt=0)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)


def load_settings(path: Path) -> ExecutorSettings:
    """Load settings from a YAML file, falling back to defaults if it is absent."""
    load_dotenv(path.parent / ".env", override=False)
    if not path.exists():
        logger.debug("Settings file %s not found, using defaults", path)
        return ExecutorSettings()
    try:
        return ExecutorSettings(**(yaml.safe_load(path.read_text()) or {}))
    except (yaml.YAMLError, ValueError, ValidationError, TypeError) as exc:
        raise ConfigurationError(f"Invalid settings file {path}: {exc}") from exc
