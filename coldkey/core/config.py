# core/config.py - Configuration loading and validation
"""
SINGLE SOURCE OF TRUTH for configuration handling.

This module provides:
- Default configuration (from core.constants.Defaults)
- Loading of the optional config.json with type validation
- Merging of command-line overrides on top of the file

Per-run precedence: command-line flag > config.json > Defaults.
config.json is never written by coldkey.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from coldkey.core.constants import ConfigKeys, Defaults
from coldkey.core.errors import ConfigError
from coldkey.core.paths import Paths

# Logger for config operations
_config_logger = logging.getLogger("coldkey.config")


# Accepted JSON types per key. None is allowed for every optional string key.
_KEY_TYPES = {
    ConfigKeys.DEVICE: (str, type(None)),
    ConfigKeys.LABEL: (str, type(None)),
    ConfigKeys.UUID: (str, type(None)),
    ConfigKeys.KEY_FILE: (str,),
    ConfigKeys.GPG_PROGRAM: (str,),
    ConfigKeys.GPGCONF_PROGRAM: (str,),
    ConfigKeys.UDISKSCTL_PROGRAM: (str,),
    ConfigKeys.FINDFS_PROGRAM: (str,),
    ConfigKeys.FINDMNT_PROGRAM: (str,),
    ConfigKeys.REQUIRE_READ_ONLY_MOUNT: (bool,),
    ConfigKeys.LOG_FILE: (str, type(None)),
}


def default_config() -> Dict[str, Any]:
    """Return a fresh dictionary of default settings."""
    return {
        ConfigKeys.DEVICE: None,
        ConfigKeys.LABEL: None,
        ConfigKeys.UUID: None,
        ConfigKeys.KEY_FILE: Defaults.KEY_FILE,
        ConfigKeys.GPG_PROGRAM: Defaults.GPG_PROGRAM,
        ConfigKeys.GPGCONF_PROGRAM: Defaults.GPGCONF_PROGRAM,
        ConfigKeys.UDISKSCTL_PROGRAM: Defaults.UDISKSCTL_PROGRAM,
        ConfigKeys.FINDFS_PROGRAM: Defaults.FINDFS_PROGRAM,
        ConfigKeys.FINDMNT_PROGRAM: Defaults.FINDMNT_PROGRAM,
        ConfigKeys.REQUIRE_READ_ONLY_MOUNT: Defaults.REQUIRE_READ_ONLY_MOUNT,
        ConfigKeys.LOG_FILE: None,
    }


def validate_config(raw: Any, source: str = "config") -> Dict[str, Any]:
    """
    Validate a parsed config document and merge it over the defaults.

    Unknown keys are logged and dropped so that a config written for a newer
    version still loads.

    Args:
        raw: Parsed JSON document
        source: Name used in error messages

    Returns:
        Complete configuration dictionary

    Raises:
        ConfigError: If the document is not an object or a value has the wrong type
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"{source}: top level must be a JSON object, got {type(raw).__name__}")

    config = default_config()
    for key, value in raw.items():
        expected = _KEY_TYPES.get(key)
        if expected is None:
            _config_logger.warning(f"{source}: ignoring unknown key '{key}'")
            continue
        if not isinstance(value, expected):
            names = " or ".join("null" if t is type(None) else t.__name__ for t in expected)
            raise ConfigError(f"{source}: '{key}' must be {names}, got {type(value).__name__}")
        config[key] = value

    if not config[ConfigKeys.KEY_FILE].strip():
        raise ConfigError(f"{source}: '{ConfigKeys.KEY_FILE}' must not be empty")

    return config


def load_config(config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """
    Load configuration from file.

    Args:
        config_path: Explicit config file (--config). When None, the default
            location from Paths.config_file() is used if it exists.
        environ: Environment used to locate the default file

    Returns:
        Complete configuration dictionary

    Raises:
        ConfigError: If an explicit file is missing, or any file is unreadable or invalid
    """
    explicit = config_path is not None
    path = Path(config_path).expanduser() if explicit else Paths.config_file(environ)

    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        _config_logger.debug(f"No config file at {path}, using defaults")
        return default_config()

    _config_logger.info(f"Loading config from {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON at line {e.lineno}: {e.msg}") from e
    except OSError as e:
        raise ConfigError(f"{path}: cannot read config: {e}") from e

    return validate_config(raw, source=str(path))


def apply_overrides(config: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``config`` with every non-None override applied.

    If any device identifier is given on the command line, all three device
    keys from the file are dropped so a configured label cannot shadow an
    explicit --device.
    """
    merged = dict(config)
    device_keys = (ConfigKeys.DEVICE, ConfigKeys.LABEL, ConfigKeys.UUID)
    if any(overrides.get(key) for key in device_keys):
        for key in device_keys:
            merged[key] = None

    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged
