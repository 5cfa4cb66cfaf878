"""Storage-related data models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from artifactstore.errors import ArtifactWarning
from artifactstore.models.artifact import RemoteArtifact
from artifactstore.models.enums import ResourceType


class StoreOptions(BaseModel):
    """Options passed to a remote store put.

    Image transform options are refused for documents.
    """

    model_config = ConfigDict(frozen=True)

    folder: str
    resource_type: ResourceType
    access_mode: str = "public"
    delivery_type: str = "upload"
    quality: str | None = None
    fetch_format: str | None = None

    @model_validator(mode="after")
    def _image_options_only_for_images(self) -> StoreOptions:
        if self.resource_type is not ResourceType.IMAGE and (
            self.quality is not None or self.fetch_format is not None
        ):
            raise ValueError(
                f"quality/fetch_format are image-only options, got resource_type={self.resource_type}"
            )
        return self

    @property
    def has_image_options(self) -> bool:
        return self.quality is not None or self.fetch_format is not None

    def to_upload_kwargs(self) -> dict[str, Any]:
        """Return store keyword arguments, omitting unset options."""
        kwargs: dict[str, Any] = {
            "folder": self.folder,
            "resource_type": str(self.resource_type),
            "type": self.delivery_type,
            "access_mode": self.access_mode,
        }
        if self.quality is not None:
            kwargs["quality"] = self.quality
        if self.fetch_format is not None:
            kwargs["fetch_format"] = self.fetch_format
        return kwargs


class UploadResult(BaseModel):
    """Result of a successful store put."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    store_id: str
    delivery_url: str
    resource_type: ResourceType
    byte_size: int = Field(ge=0)
    format: str | None = None
    warnings: tuple[ArtifactWarning, ...] = ()

    def to_descriptor(
        self, original_name: str | None = None, mime_type: str | None = None
    ) -> RemoteArtifact:
        """Build the descriptor the caller persists on its record."""
        return RemoteArtifact(
            store_id=self.store_id,
            delivery_url=self.delivery_url,
            original_name=original_name,
            byte_size=self.byte_size,
            mime_type=mime_type,
        )


class DeleteResult(BaseModel):
    """Outcome of a best-effort store delete."""

    model_config = ConfigDict(frozen=True)

    store_id: str
    resource_type: ResourceType
    deleted: bool
    error: str | None = None
