"""Plugin-aware configuration validation."""

from __future__ import annotations

from pydantic import ValidationError

from artifactstore.config.loader import ConfigError, ConfigErrorCode, format_validation_error
from artifactstore.models.config import Config
from artifactstore.plugins.registry import PluginType, get_plugin_names, validate_plugin


def validate_plugin_names(config: Config) -> None:
    """Validate that the configured store backend and delivery host are registered.

    Raises:
        ConfigError: If a plugin name is unknown
    """
    errors = []
    stores = get_plugin_names(PluginType.STORE)
    if config.store.backend not in stores:
        errors.append(
            f"store.backend '{config.store.backend}' is not registered "
            f"(available: {', '.join(stores)})"
        )
    hosts = get_plugin_names(PluginType.HOST)
    if config.delivery.host not in hosts:
        errors.append(
            f"delivery.host '{config.delivery.host}' is not registered "
            f"(available: {', '.join(hosts)})"
        )
    if errors:
        raise ConfigError(
            "Invalid plugin names:\n  " + "\n  ".join(errors),
            code=ConfigErrorCode.PLUGIN_CONFIG_INVALID,
        )


def validate_plugin_configs(config: Config) -> None:
    """Validate the backend-specific sections against each plugin's config model."""
    validate_plugin_names(config)
    try:
        validate_plugin(PluginType.STORE, config.store.backend, config.store.backend_config())
        validate_plugin(PluginType.HOST, config.delivery.host, config.delivery.host_config())
    except (ValidationError, ValueError) as e:
        message = (
            format_validation_error(e) if isinstance(e, ValidationError) else str(e)
        )
        raise ConfigError(
            message,
            code=ConfigErrorCode.PLUGIN_CONFIG_INVALID,
            cause=e,
        ) from e
