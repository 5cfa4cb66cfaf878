"""Configuration loading and validation."""

from artifactstore.config.loader import (
    ConfigError,
    ConfigErrorCode,
    load_config,
    load_config_from_dict,
    resolve_env_var,
)
from artifactstore.config.validation import validate_plugin_configs, validate_plugin_names

__all__ = [
    "ConfigError",
    "ConfigErrorCode",
    "load_config",
    "load_config_from_dict",
    "resolve_env_var",
    "validate_plugin_configs",
    "validate_plugin_names",
]
