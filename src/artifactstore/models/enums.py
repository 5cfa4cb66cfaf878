"""Centralized enums for type safety and IDE support."""

from __future__ import annotations

from enum import StrEnum


class ResourceType(StrEnum):
    """Store classification of a blob.

    The value doubles as the delivery URL path segment.
    """

    DOCUMENT = "raw"
    IMAGE = "image"

    @classmethod
    def from_store(cls, value: str | None) -> ResourceType | None:
        """Map a store-reported resource type string, or None if unrecognized."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class UploadHint(StrEnum):
    """Caller-supplied use-case for an upload."""

    DOCUMENT = "document"
    GALLERY_IMAGE = "gallery_image"
    ATTACHMENT = "attachment"


class DeliveryIntent(StrEnum):
    """Whether retrieved content is for viewing or saving."""

    VIEW = "view"
    DOWNLOAD = "download"


class ArtifactKind(StrEnum):
    """Content kind expected when validating fetched bytes."""

    DOCUMENT = "document"
    IMAGE = "image"
    UNKNOWN = "unknown"


class RetrievalStrategy(StrEnum):
    """Read-path strategy chosen by the resolver."""

    REMOTE = "remote"
    LEGACY = "legacy"
    INLINE = "inline"
