from __future__ import annotations

import json
import logging
import logging.config
import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

_NO_ARTIFACT = "-"
_artifact_id: ContextVar[str] = ContextVar("artifact_id", default=_NO_ARTIFACT)

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_DEFAULT_FORMAT = (
    "%(asctime)s %(levelname)s [%(artifact_id)s] %(module)s %(pathname)s:%(lineno)d %(message)s"
)
_QUIET_LOGGERS = ("cloudinary", "urllib3", "aiohttp.access")


class ArtifactIdFilter(logging.Filter):
    """Fill ``record.artifact_id`` from the current context unless set by the caller."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "artifact_id", None):
            record.artifact_id = _artifact_id.get()
        return True


class JsonExtraFormatter(logging.Formatter):
    """Append ``extra=`` fields as sorted, indented JSON below the message."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key != "artifact_id"
        }
        if not extras:
            return text
        return f"{text}\n{json.dumps(extras, indent=2, default=str, sort_keys=True)}"


def set_artifact_id(artifact_id: str | None) -> Token[str]:
    """Tag log records in the current context with ``artifact_id``."""
    return _artifact_id.set(artifact_id or _NO_ARTIFACT)


@contextmanager
def artifact_context(artifact_id: str | None) -> Iterator[None]:
    """Tag log records with ``artifact_id`` for the duration of the block."""
    token = set_artifact_id(artifact_id)
    try:
        yield
    finally:
        _artifact_id.reset(token)


def configure_logging(
    *,
    log_level: str = "INFO",
    artifact_id: str | None = None,
    stream: str = "ext://sys.stdout",
) -> None:
    """Send all logging to ``stream`` (stdout by default) with artifact tagging and JSON extras.

    ``CONSOLE_LOG_FORMAT`` overrides the line format. Python warnings
    (including ArtifactWarning) are routed through logging.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"artifact": {"()": ArtifactIdFilter}},
            "formatters": {
                "default": {
                    "()": JsonExtraFormatter,
                    "format": os.getenv("CONSOLE_LOG_FORMAT", _DEFAULT_FORMAT),
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": str(log_level).upper(),
                    "formatter": "default",
                    "filters": ["artifact"],
                    "stream": stream,
                }
            },
            "root": {"level": "DEBUG", "handlers": ["console"]},
        }
    )
    set_artifact_id(artifact_id)
    logging.captureWarnings(True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
