"""
Pump Fleet Utils Module - Initialization
========================================

Utility functions and helpers for the pump fleet simulator.

Submodules:
-----------
1. config.py   - Configuration loading and validation
2. logging.py  - Logging setup and run summaries

Usage:
------
from pump_fleet.utils import load_default_config, setup_logging

setup_logging("logs/", level="INFO")
config = load_default_config()
"""

from .config import (
    load_config,
    load_default_config,
    validate_config,
    merge_configs,
    get_config_value,
    ConfigError,
)

from .logging import (
    setup_logging,
    log_statistics,
    StructuredFormatter,
)

__all__ = [
    # Config functions
    "load_config",
    "load_default_config",
    "validate_config",
    "merge_configs",
    "get_config_value",
    "ConfigError",
    # Logging functions
    "setup_logging",
    "log_statistics",
    "StructuredFormatter",
]
