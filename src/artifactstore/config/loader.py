"""Load artifactstore settings from YAML."""

from __future__ import annotations

import logging
import os
import stat
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from artifactstore.models.config import Config

logger = logging.getLogger(__name__)

# Store credentials are resolved from the environment, but the file still
# names them, so group/other access is flagged.
_PRIVATE_MODE_BITS = stat.S_IRWXG | stat.S_IRWXO


class ConfigErrorCode(str, Enum):
    """Stable codes for configuration failures."""

    FILE_NOT_FOUND = "CONFIG_FILE_NOT_FOUND"
    YAML_INVALID = "CONFIG_YAML_INVALID"
    EMPTY_FILE = "CONFIG_EMPTY_FILE"
    ROOT_NOT_MAPPING = "CONFIG_ROOT_NOT_MAPPING"
    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    PLUGIN_CONFIG_INVALID = "CONFIG_PLUGIN_CONFIG_INVALID"
    ENV_VAR_MISSING = "CONFIG_ENV_VAR_MISSING"
    UNKNOWN = "CONFIG_UNKNOWN"


class ConfigError(Exception):
    """Settings could not be read, parsed or validated."""

    def __init__(
        self,
        message: str,
        *,
        code: ConfigErrorCode = ConfigErrorCode.UNKNOWN,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.path = path
        self.__cause__ = cause


def load_config(path: Path) -> Config:
    """Read a YAML settings file and build a validated Config.

    Store and host sections are checked against the registered plugins'
    config models, so an unknown backend fails here rather than at upload.

    Raises:
        ConfigError: file missing, unparsable, empty, not a mapping, or invalid
    """
    raw = _read_mapping(path)
    return _build(raw, path)


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Build a validated Config from an in-memory mapping."""
    return _build(data, None)


def _read_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(
            f"Config file not found: {path}",
            code=ConfigErrorCode.FILE_NOT_FOUND,
            path=path,
        )
    _check_file_mode(path)

    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Invalid YAML in {path}: {exc}",
            code=ConfigErrorCode.YAML_INVALID,
            path=path,
            cause=exc,
        ) from exc

    if raw is None:
        raise ConfigError(
            f"Config file is empty: {path}", code=ConfigErrorCode.EMPTY_FILE, path=path
        )
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config must be a YAML mapping, got {type(raw).__name__}",
            code=ConfigErrorCode.ROOT_NOT_MAPPING,
            path=path,
        )
    return raw


def _build(data: dict[str, Any], path: Path | None) -> Config:
    try:
        config = Config.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(
            format_validation_error(exc, path),
            code=ConfigErrorCode.VALIDATION_FAILED,
            path=path,
            cause=exc,
        ) from exc

    # Deferred: plugin modules import the config models defined above.
    from artifactstore.config.validation import validate_plugin_configs
    from artifactstore.plugins import discover_all_plugins

    discover_all_plugins()
    validate_plugin_configs(config)
    return config


def resolve_env_var(env_var_name: str, required: bool = True) -> str | None:
    """Look up a credential named by config.

    Empty values count as unset. Raises ConfigError(ENV_VAR_MISSING) when
    ``required`` and the variable is unset.
    """
    value = os.environ.get(env_var_name) or None
    if value is None and required:
        raise ConfigError(
            f"Required environment variable not set: {env_var_name}",
            code=ConfigErrorCode.ENV_VAR_MISSING,
        )
    return value


def format_validation_error(exc: ValidationError, path: Path | None = None) -> str:
    """Render pydantic errors as one ``loc -> loc: msg`` line each."""
    header = "Config validation failed"
    if path is not None:
        header += f" ({path})"
    lines = [header + ":"]
    lines.extend(
        f"  {' -> '.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    return "\n".join(lines)


def _check_file_mode(path: Path) -> None:
    if os.name != "posix":
        return
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except OSError:
        return
    if mode & _PRIVATE_MODE_BITS:
        logger.warning(
            "Config file permissions are too permissive: path=%s mode=%04o expected=0600",
            path,
            mode,
        )
