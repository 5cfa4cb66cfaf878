"""Map declared MIME types and upload hints to store resource types."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from artifactstore.models.config import UploadPolicyConfig
from artifactstore.models.enums import ResourceType, UploadHint
from artifactstore.models.storage import StoreOptions

logger = logging.getLogger(__name__)

GENERIC_BINARY = "application/octet-stream"

_DOCUMENT_TYPES = {
    "application/pdf",
    "application/x-pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/csv",
}
_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/pjpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
}
_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"%PDF", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


@dataclass(frozen=True)
class Classification:
    """Resource type decision and the store options that go with it."""

    resource_type: ResourceType
    mime_type: str
    options: StoreOptions


def normalize_mime(mime_type: str | None) -> str:
    """Lowercase and drop parameters such as `; charset=...`."""
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def sniff_mime(head: bytes | None) -> str | None:
    """Detect a MIME type from leading bytes."""
    if not head:
        return None
    for signature, mime in _SIGNATURES:
        if head.startswith(signature):
            return mime
    return None


def detect_mime(
    mime_type: str | None,
    *,
    file_name: str | None = None,
    head: bytes | None = None,
) -> str:
    """Best-effort MIME detection, defaulting to generic binary."""
    declared = normalize_mime(mime_type)
    if declared and declared != GENERIC_BINARY:
        return declared
    sniffed = sniff_mime(head)
    if sniffed:
        return sniffed
    if file_name:
        guessed, _ = mimetypes.guess_type(file_name)
        if guessed:
            return guessed
    return GENERIC_BINARY


def classify(
    mime_type: str | None,
    hint: UploadHint | None = None,
    *,
    file_name: str | None = None,
    head: bytes | None = None,
) -> ResourceType:
    """Choose the store resource type for an upload.

    An explicit hint wins. Otherwise documents map to DOCUMENT and common image
    types map to IMAGE. Anything unrecognized is stored raw as a DOCUMENT.
    """
    if hint == UploadHint.GALLERY_IMAGE:
        return ResourceType.IMAGE
    if hint == UploadHint.DOCUMENT:
        return ResourceType.DOCUMENT

    detected = detect_mime(mime_type, file_name=file_name, head=head)
    if detected in _DOCUMENT_TYPES:
        return ResourceType.DOCUMENT
    if detected in _IMAGE_TYPES:
        return ResourceType.IMAGE
    return ResourceType.DOCUMENT


def build_store_options(
    resource_type: ResourceType,
    policy: UploadPolicyConfig,
    folder: str | None = None,
) -> StoreOptions:
    """Build store options; image transform options are attached only for images."""
    target = folder.strip("/") if folder else policy.folder
    if resource_type == ResourceType.IMAGE:
        return StoreOptions(
            folder=target,
            resource_type=resource_type,
            quality=policy.image_quality,
            fetch_format=policy.image_fetch_format,
        )
    return StoreOptions(folder=target, resource_type=resource_type)


def classify_upload(
    local_path: Path,
    mime_type: str | None,
    policy: UploadPolicyConfig,
    hint: UploadHint | None = None,
    *,
    original_name: str | None = None,
    folder: str | None = None,
) -> Classification:
    """Classify a staged file and build its store options."""
    head: bytes | None = None
    if not normalize_mime(mime_type) or normalize_mime(mime_type) == GENERIC_BINARY:
        with local_path.open("rb") as f:
            head = f.read(16)

    name = original_name or local_path.name
    detected = detect_mime(mime_type, file_name=name, head=head)
    resource_type = classify(detected, hint, file_name=name, head=head)
    options = build_store_options(resource_type, policy, folder)

    logger.debug(
        "Classified upload: name=%s mime=%s resource_type=%s image_options=%s",
        name,
        detected,
        resource_type,
        options.has_image_options,
    )
    return Classification(resource_type=resource_type, mime_type=detected, options=options)
