"""Artifact storage and retrieval."""

__version__ = "0.1.0"

# Export commonly used types
from artifactstore.errors import ArtifactError
from artifactstore.models.artifact import InlineArtifact, LegacyServerArtifact, RemoteArtifact
from artifactstore.models.enums import DeliveryIntent, ResourceType, UploadHint
from artifactstore.models.storage import DeleteResult, UploadResult

__all__ = [
    "ArtifactError",
    "DeleteResult",
    "DeliveryIntent",
    "InlineArtifact",
    "LegacyServerArtifact",
    "RemoteArtifact",
    "ResourceType",
    "UploadHint",
    "UploadResult",
    "__version__",
]
