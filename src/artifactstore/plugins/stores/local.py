"""Local filesystem store backend."""

from __future__ import annotations

import asyncio
import logging
import shutil
import uuid
from pathlib import Path, PurePosixPath

from artifactstore.errors import StoreUploadError
from artifactstore.interfaces import RemoteStore
from artifactstore.models.config import LocalStoreConfig
from artifactstore.models.enums import ResourceType
from artifactstore.models.storage import DeleteResult, StoreOptions, UploadResult
from artifactstore.plugins.registry import PluginType, plugin
from artifactstore.store_results import build_upload_result, delete_failed

logger = logging.getLogger(__name__)


@plugin(plugin_type=PluginType.STORE, name="local")
class LocalStore(RemoteStore):
    """Local store backend for development and tests.

    Files are laid out the same way delivery URLs are shaped:
    `<root>/<resource type>/upload/<folder>/<id><ext>`.
    """

    config_cls = LocalStoreConfig

    @classmethod
    def create(cls, config: LocalStoreConfig) -> RemoteStore:
        return cls(config)

    def __init__(self, config: LocalStoreConfig) -> None:
        self.root = Path(config.root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self._base_url = (config.base_url or self.root.as_uri()).rstrip("/")
        self._shutdown_called = False

    @property
    def base_delivery_url(self) -> str:
        return self._base_url

    async def put(self, local_path: Path, options: StoreOptions) -> UploadResult:
        self._ensure_open()
        folder = self._clean_folder(options.folder)
        store_id = f"{folder}/{uuid.uuid4().hex}"
        suffix = local_path.suffix.lower()
        dest = self._object_path(options.resource_type, store_id, suffix)

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copy2, local_path, dest)
            byte_size = dest.stat().st_size
        except OSError as exc:
            raise StoreUploadError(local_path.name, cause=exc) from exc

        delivery_url = (
            f"{self._base_url}/{options.resource_type.value}/{options.delivery_type}/"
            f"{store_id}{suffix}"
        )
        logger.debug("Stored %s as %s", local_path.name, store_id)
        return build_upload_result(
            store_id=store_id,
            delivery_url=delivery_url,
            requested=options.resource_type,
            reported=options.resource_type.value,
            byte_size=byte_size,
            base_url=self._base_url,
            fmt=suffix.lstrip(".") or None,
        )

    async def delete(self, store_id: str, resource_type: ResourceType) -> DeleteResult:
        try:
            self._ensure_open()
            matches = await asyncio.to_thread(self._find_objects, resource_type, store_id)
            for path in matches:
                await asyncio.to_thread(path.unlink, True)
        except Exception as exc:
            return delete_failed(store_id, resource_type, exc)
        return DeleteResult(store_id=store_id, resource_type=resource_type, deleted=True)

    async def ping(self) -> bool:
        return self.root.exists() and self.root.is_dir()

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        self._shutdown_called = True

    def _ensure_open(self) -> None:
        if self._shutdown_called:
            raise RuntimeError("Store has been shut down")

    def _find_objects(self, resource_type: ResourceType, store_id: str) -> list[Path]:
        base = self._object_path(resource_type, store_id, "")
        return [base, *base.parent.glob(f"{base.name}.*")] if base.parent.exists() else []

    def _object_path(self, resource_type: ResourceType, store_id: str, suffix: str) -> Path:
        path = PurePosixPath(store_id)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError(f"Invalid store_id: {store_id}")
        return self.root.joinpath(resource_type.value, "upload", *path.parts).with_name(
            f"{path.name}{suffix}"
        )

    def _clean_folder(self, folder: str) -> str:
        cleaned = str(folder).strip("/")
        if not cleaned or "\\" in cleaned:
            raise ValueError(f"Invalid folder: {folder}")
        path = PurePosixPath(cleaned)
        if ".." in path.parts:
            raise ValueError(f"Invalid folder: {folder}")
        return str(path)
