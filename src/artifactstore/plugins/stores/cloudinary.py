"""Cloudinary store plugin."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

cloudinary: Any

try:
    import cloudinary as _cloudinary  # type: ignore[import-untyped]
    import cloudinary.api  # type: ignore[import-untyped]  # noqa: F401
    import cloudinary.uploader  # type: ignore[import-untyped]  # noqa: F401
except Exception:
    cloudinary = None
else:
    cloudinary = _cloudinary

from artifactstore.config.loader import resolve_env_var
from artifactstore.errors import StoreUploadError
from artifactstore.interfaces import RemoteStore
from artifactstore.models.config import CloudinaryStoreConfig
from artifactstore.models.enums import ResourceType
from artifactstore.models.storage import DeleteResult, StoreOptions, UploadResult
from artifactstore.plugins.registry import PluginType, plugin
from artifactstore.store_results import build_upload_result, delete_failed

logger = logging.getLogger(__name__)


def _require_cloudinary() -> Any:
    if cloudinary is None:
        raise RuntimeError(
            "Missing dependency: cloudinary. Install with: uv pip install cloudinary"
        )
    return cloudinary


@plugin(plugin_type=PluginType.STORE, name="cloudinary")
class CloudinaryStore(RemoteStore):
    """Cloudinary store backend.

    Uses the cloudinary SDK for uploads and deletes. Credentials are passed per
    call rather than through the SDK's global config, so several stores can
    coexist in one process.

    Required env vars (names configurable):
        CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET
    """

    config_cls = CloudinaryStoreConfig

    @classmethod
    def create(cls, config: CloudinaryStoreConfig) -> RemoteStore:
        return cls(config)

    def __init__(self, config: CloudinaryStoreConfig) -> None:
        _require_cloudinary()
        cloud_name = resolve_env_var(config.cloud_name_env)
        api_key = resolve_env_var(config.api_key_env)
        api_secret = resolve_env_var(config.api_secret_env)
        assert cloud_name is not None and api_key is not None and api_secret is not None

        self.cloud_name = cloud_name
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
            "secure": config.secure,
        }
        self._base_url = f"{config.delivery_host.rstrip('/')}/{cloud_name}"
        self._shutdown_called = False

        logger.info("CloudinaryStore initialized: cloud_name=%s", cloud_name)

    @property
    def base_delivery_url(self) -> str:
        return self._base_url

    async def put(self, local_path: Path, options: StoreOptions) -> UploadResult:
        """Upload a staged file to Cloudinary."""
        self._ensure_open()
        upload_kwargs = options.to_upload_kwargs()

        logger.info(
            "Uploading to Cloudinary: resource_type=%s folder=%s image_options=%s file=%s",
            options.resource_type.value,
            options.folder,
            options.has_image_options,
            local_path.name,
        )

        try:
            response = await asyncio.to_thread(self._upload, local_path, upload_kwargs)
        except Exception as exc:
            raise StoreUploadError(local_path.name, cause=exc) from exc

        store_id = response.get("public_id")
        delivery_url = response.get("secure_url") or response.get("url")
        if not store_id or not delivery_url:
            raise StoreUploadError(
                local_path.name,
                cause=ValueError("Cloudinary response missing public_id or url"),
            )

        logger.info(
            "Cloudinary upload result: resource_type=%s format=%s public_id=%s bytes=%s",
            response.get("resource_type"),
            response.get("format"),
            store_id,
            response.get("bytes"),
        )

        return build_upload_result(
            store_id=str(store_id),
            delivery_url=str(delivery_url),
            requested=options.resource_type,
            reported=response.get("resource_type"),
            byte_size=int(response.get("bytes") or 0),
            base_url=self._base_url,
            fmt=response.get("format"),
        )

    def _upload(self, local_path: Path, upload_kwargs: dict[str, Any]) -> dict[str, Any]:
        """Upload file (blocking operation)."""
        sdk = _require_cloudinary()
        return dict(sdk.uploader.upload(str(local_path), **upload_kwargs, **self._credentials))

    async def delete(self, store_id: str, resource_type: ResourceType) -> DeleteResult:
        """Delete an asset from Cloudinary.

        Best-effort: errors are logged and returned, never raised. A missing asset
        counts as deleted.
        """
        try:
            self._ensure_open()
            response = await asyncio.to_thread(self._destroy, store_id, resource_type)
        except Exception as exc:
            return delete_failed(store_id, resource_type, exc)

        outcome = response.get("result")
        if outcome not in ("ok", "not found"):
            return delete_failed(
                store_id, resource_type, RuntimeError(f"unexpected destroy result: {outcome}")
            )

        logger.info(
            "Deleted file from Cloudinary: %s (resource_type=%s result=%s)",
            store_id,
            resource_type.value,
            outcome,
        )
        return DeleteResult(store_id=store_id, resource_type=resource_type, deleted=True)

    def _destroy(self, store_id: str, resource_type: ResourceType) -> dict[str, Any]:
        """Destroy asset (blocking operation)."""
        sdk = _require_cloudinary()
        return dict(
            sdk.uploader.destroy(
                store_id,
                resource_type=resource_type.value,
                invalidate=True,
                **self._credentials,
            )
        )

    async def ping(self) -> bool:
        """Health check - verify Cloudinary credentials and connectivity."""
        if self._shutdown_called:
            return False
        try:
            sdk = _require_cloudinary()
            await asyncio.to_thread(sdk.api.ping, **self._credentials)
            return True
        except Exception as e:
            logger.warning("Cloudinary ping failed: %s", e, exc_info=True)
            return False

    async def shutdown(self, timeout: float | None = None) -> None:
        """Cleanup resources."""
        _ = timeout
        if self._shutdown_called:
            return

        self._shutdown_called = True
        logger.info("CloudinaryStore closed")

    def _ensure_open(self) -> None:
        if self._shutdown_called:
            raise RuntimeError("Store has been shut down")
