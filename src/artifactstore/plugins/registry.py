"""Registries for store backends and delivery hosts.

A plugin is a class carrying a pydantic ``config_cls`` and a ``create``
classmethod. The :func:`plugin` decorator files it under a
:class:`PluginType`; config sections are validated against ``config_cls``
before ``create`` ever sees them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar, cast

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class PluginType(str, Enum):
    """What a plugin provides."""

    STORE = "store"  # RemoteStore implementations
    HOST = "host"  # Environment implementations


ConfigT = TypeVar("ConfigT", bound=BaseModel)
PluginT = TypeVar("PluginT", covariant=True)


class PluginFactory(Protocol[ConfigT, PluginT]):
    """Shape every registered plugin class must have."""

    config_cls: type[ConfigT]

    @classmethod
    def create(cls, config: ConfigT) -> PluginT: ...


class PluginRegistry(Generic[ConfigT, PluginT]):
    """Name to plugin-class mapping for one PluginType."""

    def __init__(self, plugin_type: PluginType) -> None:
        self.plugin_type = plugin_type
        self._classes: dict[str, type[PluginFactory[ConfigT, PluginT]]] = {}

    def register(self, name: str, plugin_cls: type[PluginFactory[ConfigT, PluginT]]) -> None:
        if name in self._classes:
            raise ValueError(f"{self.plugin_type.value} plugin '{name}' is already registered.")
        self._classes[name] = plugin_cls
        logger.debug("Registered %s plugin: %s", self.plugin_type.value, name)

    def names(self) -> list[str]:
        return sorted(self._classes)

    def validate(
        self, name: str, config: Mapping[str, Any] | BaseModel, **runtime_context: Any
    ) -> BaseModel:
        """Check a config section against the plugin's model.

        ``runtime_context`` values (e.g. ``timeout_s`` from the fetch section)
        override the section, but only for fields the model declares.

        Raises:
            ValueError: unknown plugin name
            ValidationError: section does not satisfy ``config_cls``
        """
        config_cls = self._lookup(name).config_cls
        data = dict(config.model_dump() if isinstance(config, BaseModel) else config)
        data.update(
            (key, value) for key, value in runtime_context.items() if key in config_cls.model_fields
        )
        return config_cls.model_validate(data)

    def load(
        self, name: str, config: Mapping[str, Any] | BaseModel, **runtime_context: Any
    ) -> PluginT:
        """Validate the section and build the plugin instance."""
        validated = self.validate(name, config, **runtime_context)
        return self._lookup(name).create(cast(ConfigT, validated))

    def _lookup(self, name: str) -> type[PluginFactory[ConfigT, PluginT]]:
        try:
            return self._classes[name]
        except KeyError:
            raise ValueError(
                f"Unknown {self.plugin_type.value} plugin: '{name}'. "
                f"Available: {', '.join(self.names())}"
            ) from None


_REGISTRIES: dict[PluginType, PluginRegistry[Any, Any]] = {
    plugin_type: PluginRegistry(plugin_type) for plugin_type in PluginType
}


def plugin(plugin_type: PluginType, name: str) -> Callable[[type], type]:
    """Class decorator registering a store backend or delivery host under ``name``."""

    def register(cls: type) -> type:
        for attr in ("config_cls", "create"):
            if not hasattr(cls, attr):
                raise TypeError(f"Plugin class {cls.__name__} must define '{attr}'")
        _REGISTRIES[plugin_type].register(name, cls)
        cast(Any, cls).__plugin_name__ = name
        return cls

    return register


def load_plugin(
    plugin_type: PluginType,
    name: str,
    config: Mapping[str, Any] | BaseModel,
    **runtime_context: Any,
) -> Any:
    return _REGISTRIES[plugin_type].load(name, config, **runtime_context)


def validate_plugin(
    plugin_type: PluginType,
    name: str,
    config: Mapping[str, Any] | BaseModel,
    **runtime_context: Any,
) -> BaseModel:
    return _REGISTRIES[plugin_type].validate(name, config, **runtime_context)


def get_plugin_names(plugin_type: PluginType) -> list[str]:
    return _REGISTRIES[plugin_type].names()
