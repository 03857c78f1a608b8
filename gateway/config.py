"""Configuration for the SDS gateway, loaded once from a JSON file."""

import json
import os
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from common.constants import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH
from common.logging_config import get_logger
from gateway.exceptions import ConfigError

logger = get_logger(__name__)


class GatewayConfig(BaseModel):
    """
    Immutable gateway settings.

    Example config file::

        {
          "sdsUrl": "https://sds.example.com/api",
          "apiKey": "default-key",
          "apiKeys": {"tenant-a": "key-a"},
          "timeout": 30
        }
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    sds_url: str = Field(alias="sdsUrl")
    api_key: str = Field(alias="apiKey")
    api_keys: Dict[str, str] = Field(default_factory=dict, alias="apiKeys")
    timeout: Optional[float] = None
    accept_any_2xx: bool = Field(default=False, alias="acceptAny2xx")

    @field_validator("sds_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("sdsUrl must be an http(s) URL")
        return value

    @field_validator("api_key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("apiKey must not be empty")
        return value

    def api_key_for(self, config_id: Optional[str] = None) -> str:
        """
        Select the API key for a call.

        Args:
            config_id: Tenant/config identifier; None or "" selects the default key

        Returns:
            API key string

        Raises:
            ConfigError: If config_id names no configured tenant
        """
        if not config_id:
            return self.api_key
        try:
            return self.api_keys[config_id]
        except KeyError:
            raise ConfigError(f"No API key configured for config id '{config_id}'") from None


def resolve_config_path(path: Union[str, Path, None] = None) -> Path:
    """Explicit path, else SDS_GATEWAY_CONFIG, else the default location."""
    if path is not None:
        return Path(path)
    return Path(os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))


def load_config(path: Union[str, Path, None] = None) -> GatewayConfig:
    """
    Load and validate the gateway configuration.

    Args:
        path: Config JSON path (see resolve_config_path for the fallback order)

    Returns:
        GatewayConfig instance

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON or invalid
    """
    config_path = resolve_config_path(path)

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(
            f"Config file not found: {config_path}. Hint: set {CONFIG_PATH_ENV} or create it"
        ) from None
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")

    try:
        config = GatewayConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    logger.info(f"Gateway config loaded [path={config_path}, sds_url={config.sds_url}]")
    return config
