"""Hand validated content to the user as a named file."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass

from artifactstore.errors import DeliveryError
from artifactstore.integrity import ValidatedPayload
from artifactstore.interfaces import Environment

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "document"
DEFAULT_RELEASE_DELAY_S = 1.0

_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*]')
_HAS_EXTENSION = re.compile(r"\.[A-Za-z0-9]{2,6}$")
_MIME_EXTENSIONS = (
    ("pdf", ".pdf"),
    ("jpeg", ".jpg"),
    ("jpg", ".jpg"),
    ("png", ".png"),
    ("gif", ".gif"),
)


def has_extension(name: str) -> bool:
    return bool(_HAS_EXTENSION.search(name))


def extension_for_mime(mime_type: str | None) -> str:
    """Extension for a MIME type, or "" when unknown."""
    mime = (mime_type or "").lower()
    for token, ext in _MIME_EXTENSIONS:
        if token in mime:
            return ext
    return ""


def sanitize_filename(name: str) -> str:
    """Replace characters that are illegal in file systems. Idempotent."""
    cleaned = _ILLEGAL_CHARS.sub("_", name).strip()
    return cleaned or DEFAULT_FILENAME


def display_filename(original_name: str | None, mime_type: str | None) -> str:
    """Sanitized file name, with an extension inferred from the MIME type if missing."""
    base = sanitize_filename(original_name or "")
    if has_extension(base):
        return base
    return f"{base}{extension_for_mime(mime_type)}"


class TransientHandle:
    """Short-lived, exclusively owned reference to in-memory content.

    Created for a single delivery and released by the same call after a
    bounded delay.
    """

    def __init__(self, body: bytes, mime_type: str) -> None:
        self._body: memoryview | None = memoryview(body)
        self.mime_type = mime_type
        self.size = len(body)

    @property
    def released(self) -> bool:
        return self._body is None

    def read(self) -> bytes:
        if self._body is None:
            raise RuntimeError("Transient handle has been released")
        return self._body.tobytes()

    def release(self) -> None:
        if self._body is None:
            return
        self._body.release()
        self._body = None
        logger.debug("Transient handle released")


@dataclass(frozen=True)
class DeliveryReceipt:
    """What was presented to the user and where."""

    file_name: str
    byte_size: int
    mime_type: str
    location: str
    handle: TransientHandle


async def deliver(
    payload: ValidatedPayload,
    env: Environment,
    original_name: str | None,
    *,
    release_delay_s: float = DEFAULT_RELEASE_DELAY_S,
) -> DeliveryReceipt:
    """Present the payload to the user through the host's save capability.

    The handle is released `release_delay_s` after a successful hand-off, or
    immediately if the host fails.

    Raises:
        DeliveryError: If the host could not present the file.
    """
    file_name = display_filename(original_name, payload.mime_type)
    if not payload.body:
        raise DeliveryError(file_name, cause=ValueError("file is empty"))

    handle = TransientHandle(payload.body, payload.mime_type)
    try:
        location = await env.present_file(handle, file_name)
    except Exception as exc:
        handle.release()
        raise DeliveryError(file_name, cause=exc) from exc

    asyncio.get_running_loop().call_later(release_delay_s, handle.release)
    logger.info(
        "Download triggered: name=%s bytes=%d type=%s",
        file_name,
        handle.size,
        payload.mime_type,
    )
    return DeliveryReceipt(
        file_name=file_name,
        byte_size=handle.size,
        mime_type=payload.mime_type,
        location=location,
        handle=handle,
    )
