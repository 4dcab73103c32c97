"""
TinyCache Configuration Settings

Defaults come from environment variables. A YAML config file
(``tiny_cache.conf`` by default) may override them, and the command
line overrides both.

Example config file:

    host: 127.0.0.1
    port: 11211
    sweep_interval: 1
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = os.environ.get("TINY_CACHE_CONFIG", "tiny_cache.conf")


@dataclass
class Settings:
    """Server configuration settings."""

    # Network settings
    HOST: str = os.environ.get("TINY_CACHE_HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("TINY_CACHE_PORT", "11211"))
    READ_BUFFER_SIZE: int = 4096

    # Expiry settings
    SWEEP_INTERVAL: int = int(os.environ.get("TINY_CACHE_SWEEP_INTERVAL", "1"))

    # Logging settings
    DEBUG: bool = os.environ.get("TINY_CACHE_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("TINY_CACHE_LOG_LEVEL", "INFO")


def _parse_bool(value) -> bool:
    """Accept YAML booleans, or strings compared like the env vars."""
    if isinstance(value, bool):
        return value
    return str(value).lower() == "true"


# Config file key -> (Settings field, converter)
_FILE_KEYS = {
    "host": ("HOST", str),
    "port": ("PORT", int),
    "sweep_interval": ("SWEEP_INTERVAL", int),
    "debug": ("DEBUG", _parse_bool),
    "log_level": ("LOG_LEVEL", str),
}


def load_settings(path: Optional[str] = None, base: Optional[Settings] = None) -> Settings:
    """
    Build settings from defaults overlaid with a YAML config file.

    Args:
        path: Config file path (default DEFAULT_CONFIG_FILE). A missing
              file is not an error; the defaults are returned.
        base: Settings to overlay (default: a fresh Settings())

    Returns:
        A new Settings instance

    Raises:
        ValueError: If the file is not valid YAML or not a mapping, a
                    value cannot be converted, or the sweep interval is not positive
    """
    result = base if base is not None else Settings()
    config_path = Path(path if path is not None else DEFAULT_CONFIG_FILE)

    if not config_path.exists():
        logger.debug(f"No config file at {config_path}, using defaults")
        return result

    logger.info(f"Loading {config_path}")
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"{config_path}: invalid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a mapping at top level")

    overrides = {}
    for key, value in data.items():
        if key not in _FILE_KEYS:
            logger.warning(f"{config_path}: ignoring unknown key '{key}'")
            continue
        field_name, convert = _FILE_KEYS[key]
        try:
            overrides[field_name] = convert(value)
        except (TypeError, ValueError):
            raise ValueError(f"{config_path}: invalid value for '{key}': {value!r}") from None

    result = replace(result, **overrides)
    validate(result)
    return result


def validate(config: Settings) -> None:
    """Reject settings the server cannot run with."""
    if config.SWEEP_INTERVAL <= 0:
        raise ValueError("sweep_interval must be a positive number of seconds")
    if not 0 <= config.PORT <= 65535:
        raise ValueError(f"port out of range: {config.PORT}")


# Global settings instance
settings = Settings()
