"""Artifact descriptor variants.

Three historical shapes reference a stored file. Each is its own frozen model
so that a descriptor is always exactly one of them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from artifactstore.errors import InvalidDescriptorError


class RemoteArtifact(BaseModel):
    """Current format: object lives in the remote store."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["remote"] = "remote"
    delivery_url: str = Field(min_length=1)
    store_id: str | None = None
    original_name: str | None = None
    byte_size: int | None = Field(default=None, ge=0)
    mime_type: str | None = None


class LegacyServerArtifact(BaseModel):
    """Historical format: served from an application-managed file path."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["legacy"] = "legacy"
    file_name: str | None = None
    file_id: str | None = None
    original_name: str | None = None
    mime_type: str | None = None

    @model_validator(mode="after")
    def _require_reference(self) -> LegacyServerArtifact:
        if not self.file_name and not self.file_id:
            raise ValueError("legacy artifact requires file_name or file_id")
        return self

    @property
    def identifier(self) -> str:
        """Identifier used to build the legacy file URL."""
        return self.file_id or self.file_name or ""


class InlineArtifact(BaseModel):
    """Oldest format: content embedded as a data URI."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["inline"] = "inline"
    data_uri: str
    display_name: str | None = None

    @field_validator("data_uri")
    @classmethod
    def _require_data_scheme(cls, value: str) -> str:
        if not value.startswith("data:"):
            raise ValueError("data_uri must use the data: scheme")
        return value


ArtifactDescriptor = Annotated[
    RemoteArtifact | LegacyServerArtifact | InlineArtifact,
    Field(discriminator="kind"),
]

_DESCRIPTOR_ADAPTER: TypeAdapter[ArtifactDescriptor] = TypeAdapter(ArtifactDescriptor)

# Stored records use camelCase keys; snake_case is accepted too.
_REMOTE_KEYS = {
    "delivery_url": ("url", "deliveryUrl", "delivery_url", "secure_url"),
    "store_id": ("publicId", "storeId", "store_id", "public_id"),
    "original_name": ("originalName", "original_name"),
    "byte_size": ("size", "byteSize", "byte_size", "bytes"),
    "mime_type": ("mimetype", "mimeType", "mime_type"),
}
_LEGACY_KEYS = {
    "file_name": ("filename", "fileName", "file_name"),
    "file_id": ("fileId", "file_id"),
    "original_name": ("originalName", "original_name"),
    "mime_type": ("mimetype", "mimeType", "mime_type"),
}
_INLINE_KEYS = {
    "data_uri": ("data", "dataUri", "data_uri"),
    "display_name": ("name", "displayName", "display_name", "originalName"),
}


def _pick(raw: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    for key in aliases:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _collect(raw: Mapping[str, Any], keys: dict[str, tuple[str, ...]]) -> dict[str, Any]:
    return {field: _pick(raw, aliases) for field, aliases in keys.items()}


def parse_descriptor(value: Any) -> RemoteArtifact | LegacyServerArtifact | InlineArtifact:
    """Validate an already-tagged descriptor (dict with `kind` or model instance)."""
    return _DESCRIPTOR_ADAPTER.validate_python(value)


def descriptor_from_record(
    raw: Mapping[str, Any] | None,
) -> RemoteArtifact | LegacyServerArtifact | InlineArtifact:
    """Convert a duck-typed stored file record into exactly one descriptor variant.

    Priority is fixed: a delivery URL wins over legacy file fields, which win
    over an inline payload. Fields belonging to lower-priority variants are
    dropped, since migrated records may still carry stale legacy fields.

    Raises:
        InvalidDescriptorError: If the record has none of the three shapes, or
            the chosen shape carries malformed fields.
    """
    if not raw:
        raise InvalidDescriptorError("no file record provided")

    try:
        return _build_descriptor(raw)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
        raise InvalidDescriptorError(f"malformed fields: {fields}", cause=exc) from exc


def _build_descriptor(
    raw: Mapping[str, Any],
) -> RemoteArtifact | LegacyServerArtifact | InlineArtifact:
    if "kind" in raw:
        return parse_descriptor(dict(raw))

    remote = _collect(raw, _REMOTE_KEYS)
    if remote["delivery_url"]:
        return RemoteArtifact(**remote)

    legacy = _collect(raw, _LEGACY_KEYS)
    if legacy["file_name"] or legacy["file_id"]:
        legacy["file_name"] = str(legacy["file_name"]) if legacy["file_name"] else None
        legacy["file_id"] = str(legacy["file_id"]) if legacy["file_id"] else None
        return LegacyServerArtifact(**legacy)

    inline = _collect(raw, _INLINE_KEYS)
    if inline["data_uri"]:
        return InlineArtifact(**inline)

    raise InvalidDescriptorError()


def is_valid_record(raw: Mapping[str, Any] | None) -> bool:
    """Return True if ``descriptor_from_record`` would accept the record."""
    try:
        descriptor_from_record(raw)
    except InvalidDescriptorError:
        return False
    return True
