"""
Pump Fleet Utils - Configuration Management
===========================================

Configuration loading, validation, and merging utilities.

Features:
---------
1. YAML Loading
   - Load configuration from YAML files
   - Environment variable substitution (${VAR} or ${VAR:default})
   - Packaged defaults (pump_fleet/config/default.yaml)

2. Validation
   - Required credential/endpoint checking
   - Device list and scenario checking
   - Simulation bounds validation

3. Merging
   - Override defaults with custom configs
   - Deep merge capabilities

Configuration Structure:
-----------------------
transport:
  kind: "mqtt"             # or "loopback"
  id_scope: ${ID_SCOPE}
  endpoint: ${DPS_ENDPOINT}

simulation:
  sample_size: 10000
  fail_over_iterations: 625
  cycle_time_s: 0.5
  progress_every: 50

devices:
  - number: 1
    key: ${DEVICE_1_KEY}
    serial_number: "DEVICE001"
    ip_address: "192.168.1.1"
    location: {lat: 10.9145, lon: 76.9486}
    scenario: "gradual"    # gradual | none | immediate

Example:
--------
>>> from pump_fleet.utils import load_config, validate_config
>>>
>>> config = merge_configs(load_default_config(), load_config("fleet.yaml"))
>>> validate_config(config)
True

Author: Pump Fleet Team
"""

import os
import re
from pathlib import Path
from typing import Dict, Any
import logging

import yaml

from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"

VALID_SCENARIOS = ["none", "immediate", "gradual"]
VALID_TRANSPORTS = ["mqtt", "loopback"]

_ENV_PATTERN = re.compile(r'\$\{(\w+)(?::([^}]*))?\}')


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file not found or invalid YAML
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Error loading config: {e}")

    if config is None:
        raise ConfigError(f"Empty config file: {config_path}")

    config = _substitute_env_vars(config)

    logger.info(f"Loaded config from {config_path}")

    return config


def load_default_config() -> Dict[str, Any]:
    """Load the configuration shipped with the package."""
    return load_config(str(DEFAULT_CONFIG_PATH))


def _substitute_env_vars(obj: Any) -> Any:
    """
    Recursively substitute environment variables in config.

    Supports format: ${VAR_NAME:default_value}

    Args:
        obj: Config object (dict, list, str, etc.)

    Returns:
        Config with substituted variables
    """
    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_var(match):
            var_name = match.group(1)
            default = match.group(2) or ""
            return os.environ.get(var_name, default)

        return _ENV_PATTERN.sub(replace_var, obj)
    else:
        return obj


def validate_config(config: Dict[str, Any],
                    require_credentials: bool = True) -> bool:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary
        require_credentials: Require scope, endpoint and device keys
            (not needed by the loopback transport)

    Returns:
        True if valid

    Raises:
        ConfigError: If validation fails
    """
    for key in ["transport", "simulation", "devices"]:
        if key not in config:
            raise ConfigError(f"Missing required key: {key}")

    _validate_transport(config["transport"], require_credentials)
    _validate_simulation(config["simulation"])
    _validate_devices(config["devices"], require_credentials)

    logger.info("Configuration validation passed")
    return True


def _is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _validate_transport(transport: Dict[str, Any], require_credentials: bool) -> None:
    """Validate transport settings."""
    if not isinstance(transport, dict):
        raise ConfigError("Transport config must be a dictionary")

    kind = transport.get("kind", "mqtt")
    if kind not in VALID_TRANSPORTS:
        raise ConfigError(
            f"Invalid transport kind: {kind}. "
            f"Must be one of {VALID_TRANSPORTS}"
        )

    if not require_credentials:
        return

    if _is_blank(transport.get("id_scope")):
        raise ConfigError("ID_SCOPE must be provided")
    if _is_blank(transport.get("endpoint")):
        raise ConfigError("DPS_ENDPOINT must be provided")


def _validate_simulation(simulation: Dict[str, Any]) -> None:
    """Validate simulation parameters."""
    if not isinstance(simulation, dict):
        raise ConfigError("Simulation config must be a dictionary")

    sample_size = simulation.get("sample_size", 0)
    if not isinstance(sample_size, int) or sample_size < 2:
        raise ConfigError("sample_size must be an integer >= 2")

    fail_over = simulation.get("fail_over_iterations", 0)
    if not isinstance(fail_over, int) or fail_over < 0:
        raise ConfigError("fail_over_iterations must be a non-negative integer")

    if not (simulation.get("cycle_time_s", 0) > 0):
        raise ConfigError("cycle_time_s must be positive")

    if not (simulation.get("progress_every", 0) > 0):
        raise ConfigError("progress_every must be positive")


def _validate_devices(devices: Any, require_credentials: bool) -> None:
    """Validate the device list."""
    if not isinstance(devices, list) or not devices:
        raise ConfigError("At least one device must be configured")

    seen = set()
    for device in devices:
        number = device.get("number")
        if not isinstance(number, int) or number <= 0:
            raise ConfigError(f"Invalid device number: {number}")
        if number in seen:
            raise ConfigError(f"Duplicate device number: {number}")
        seen.add(number)

        if require_credentials and _is_blank(device.get("key")):
            raise ConfigError(f"DEVICE_{number}_KEY must be provided")

        scenario = device.get("scenario", "none")
        if scenario not in VALID_SCENARIOS:
            raise ConfigError(
                f"Invalid scenario for device {number}: {scenario}. "
                f"Must be one of {VALID_SCENARIOS}"
            )

        location = device.get("location", {})
        if not isinstance(location, dict) or "lat" not in location or "lon" not in location:
            raise ConfigError(f"Device {number} location needs lat and lon")


def merge_configs(base: Dict[str, Any],
                  override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge override config into base config.

    Lists are replaced, not merged.

    Example:
        >>> merge_configs({"a": 1, "b": {"c": 2}}, {"b": {"d": 3}})
        {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    logger.debug(f"Merged {len(override)} config keys")
    return result


def get_config_value(config: Dict[str, Any],
                     key_path: str,
                     default: Any = None) -> Any:
    """
    Get nested config value using dot notation.

    Example:
        >>> get_config_value({"simulation": {"sample_size": 10}}, "simulation.sample_size")
        10
    """
    value = config

    for key in key_path.split("."):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
