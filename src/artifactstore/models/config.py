"""Configuration models."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ALLOWED_MIME_TYPES = [
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
]


class CloudinaryStoreConfig(BaseModel):
    """Cloudinary store configuration.

    Credentials are read from the named env vars, never from the file.
    """

    cloud_name_env: str = "CLOUDINARY_CLOUD_NAME"
    api_key_env: str = "CLOUDINARY_API_KEY"
    api_secret_env: str = "CLOUDINARY_API_SECRET"
    delivery_host: str = "https://res.cloudinary.com"
    secure: bool = True


class LocalStoreConfig(BaseModel):
    """Local filesystem store configuration (development and tests)."""

    root: str = "./storage"
    # Defaults to the root's file:// URI so delivery URLs can be read back directly.
    base_url: str | None = None


class StoreConfig(BaseModel):
    """Remote store backend configuration.

    Note: Backend names are validated against the registry at runtime. This allows
    third-party store plugins via entry points.
    """

    model_config = {"extra": "allow"}  # Allow third-party backend configs

    backend: str = "cloudinary"
    cloudinary: CloudinaryStoreConfig | None = None
    local: LocalStoreConfig | None = None

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @model_validator(mode="after")
    def _fill_builtin_backends(self) -> StoreConfig:
        match self.backend:
            case "cloudinary":
                if self.cloudinary is None:
                    self.cloudinary = CloudinaryStoreConfig()
            case "local":
                if self.local is None:
                    raise ValueError(
                        "store.local is required when backend=local. "
                        "Add 'store.local' section to your config."
                    )
            case _:
                # Third-party backend - validated when the plugin is loaded
                pass
        return self

    def backend_config(self) -> dict[str, Any] | BaseModel:
        """Return the section for the selected backend."""
        section = getattr(self, self.backend, None)
        if section is None:
            extra = self.model_extra or {}
            section = extra.get(self.backend)
        if section is None:
            raise ValueError(f"Missing 'store.{self.backend}' config section")
        return section


class UploadPolicyConfig(BaseModel):
    """Staging and classification policy for incoming files."""

    folder: str = "artifacts"
    staging_dir: str = "./temp"
    allowed_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES)
    )
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    image_quality: str = "auto"
    image_fetch_format: str = "auto"

    @field_validator("allowed_mime_types")
    @classmethod
    def _lowercase_mime_types(cls, value: list[str]) -> list[str]:
        return [item.strip().lower() for item in value]

    @field_validator("folder")
    @classmethod
    def _strip_folder(cls, value: str) -> str:
        cleaned = value.strip().strip("/")
        if not cleaned:
            raise ValueError("upload.folder must not be empty")
        return cleaned

    @property
    def staging_path(self) -> Path:
        return Path(self.staging_dir).expanduser()


class LegacyServerConfig(BaseModel):
    """Application server that serves legacy file references."""

    base_url: str = "http://localhost:5000/api"

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class FetchConfig(BaseModel):
    """Read-path HTTP settings."""

    timeout_s: float = Field(default=30.0, gt=0)
    accept: str = "application/pdf, application/octet-stream, */*"


class FilesystemHostConfig(BaseModel):
    """Host that saves delivered files into a directory."""

    download_dir: str = "./downloads"
    notify_stderr: bool = True
    timeout_s: float = Field(default=30.0, gt=0)


class DeliveryConfig(BaseModel):
    """Delivery host configuration."""

    model_config = {"extra": "allow"}

    host: str = "filesystem"
    filesystem: FilesystemHostConfig | None = None
    release_delay_s: float = Field(default=1.0, gt=0, le=30)

    @field_validator("host", mode="before")
    @classmethod
    def _normalize_host(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @model_validator(mode="after")
    def _fill_builtin_host(self) -> DeliveryConfig:
        if self.host == "filesystem" and self.filesystem is None:
            self.filesystem = FilesystemHostConfig()
        return self

    def host_config(self) -> dict[str, Any] | BaseModel:
        """Return the section for the selected host."""
        section = getattr(self, self.host, None)
        if section is None:
            extra = self.model_extra or {}
            section = extra.get(self.host, {})
        return section


class Config(BaseModel):
    """Main configuration."""

    version: int = 1
    store: StoreConfig = Field(default_factory=StoreConfig)
    upload: UploadPolicyConfig = Field(default_factory=UploadPolicyConfig)
    legacy: LegacyServerConfig = Field(default_factory=LegacyServerConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
