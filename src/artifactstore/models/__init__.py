"""Data models."""

from artifactstore.models.artifact import (
    ArtifactDescriptor,
    InlineArtifact,
    LegacyServerArtifact,
    RemoteArtifact,
    descriptor_from_record,
    is_valid_record,
    parse_descriptor,
)
from artifactstore.models.enums import (
    ArtifactKind,
    DeliveryIntent,
    ResourceType,
    RetrievalStrategy,
    UploadHint,
)
from artifactstore.models.storage import DeleteResult, StoreOptions, UploadResult

__all__ = [
    "ArtifactDescriptor",
    "ArtifactKind",
    "DeleteResult",
    "DeliveryIntent",
    "InlineArtifact",
    "LegacyServerArtifact",
    "RemoteArtifact",
    "ResourceType",
    "RetrievalStrategy",
    "StoreOptions",
    "UploadHint",
    "UploadResult",
    "descriptor_from_record",
    "is_valid_record",
    "parse_descriptor",
]
