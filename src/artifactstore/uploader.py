"""Write path: staged file -> classify -> store -> normalized URL.

The staged file is removed on every exit path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from artifactstore.classifier import classify, classify_upload
from artifactstore.errors import StoreUploadError
from artifactstore.interfaces import RemoteStore
from artifactstore.models.artifact import InlineArtifact, LegacyServerArtifact, RemoteArtifact
from artifactstore.models.config import UploadPolicyConfig
from artifactstore.models.enums import ResourceType, UploadHint
from artifactstore.models.storage import DeleteResult, UploadResult
from artifactstore.staging import TempFileGuard
from artifactstore.store_results import delete_failed
from artifactstore.urls import normalize_delivery_url, parse_delivery_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplaceResult:
    """New upload plus the outcome of removing the artifact it replaced."""

    upload: UploadResult
    previous_deleted: DeleteResult | None


async def upload_artifact(
    store: RemoteStore,
    local_path: Path,
    mime_type: str | None,
    policy: UploadPolicyConfig,
    hint: UploadHint | None = None,
    *,
    original_name: str | None = None,
    folder: str | None = None,
) -> UploadResult:
    """Upload a staged file and return the normalized result.

    Raises:
        StoreUploadError: If classification or the store put fails. The staged
            file has been removed by the time this propagates.
    """
    with TempFileGuard.acquire(local_path):
        try:
            classification = classify_upload(
                local_path,
                mime_type,
                policy,
                hint,
                original_name=original_name,
                folder=folder,
            )
            result = await store.put(local_path, classification.options)
        except StoreUploadError:
            raise
        except Exception as exc:
            raise StoreUploadError(original_name or local_path.name, cause=exc) from exc

    requested = classification.options.resource_type
    url = normalize_delivery_url(
        result.delivery_url,
        requested,
        store_id=result.store_id,
        base_url=store.base_delivery_url,
    )
    if url != result.delivery_url or result.resource_type != requested:
        result = result.model_copy(update={"delivery_url": url, "resource_type": requested})

    logger.info(
        "Uploaded artifact: store_id=%s resource_type=%s bytes=%d",
        result.store_id,
        result.resource_type.value,
        result.byte_size,
        extra={"artifact_id": result.store_id},
    )
    return result


def resource_type_of(descriptor: RemoteArtifact) -> ResourceType:
    """Infer the store resource type of an existing remote artifact."""
    parsed = parse_delivery_url(descriptor.delivery_url)
    if parsed is not None:
        from_url = ResourceType.from_store(parsed.segment)
        if from_url is not None:
            # A document may have been stored with a stale image URL.
            if from_url == ResourceType.IMAGE and descriptor.mime_type:
                return classify(descriptor.mime_type, file_name=descriptor.original_name)
            return from_url
    return classify(descriptor.mime_type, file_name=descriptor.original_name)


async def discard_artifact(
    store: RemoteStore,
    descriptor: RemoteArtifact | LegacyServerArtifact | InlineArtifact | None,
) -> DeleteResult | None:
    """Best-effort removal of a descriptor's remote object.

    Never raises, so deleting the owning record is not blocked. Returns None when
    there is nothing in the remote store to delete.
    """
    if not isinstance(descriptor, RemoteArtifact) or not descriptor.store_id:
        logger.debug("No remote object to delete for descriptor: %s", descriptor)
        return None

    resource_type = resource_type_of(descriptor)
    try:
        return await store.delete(descriptor.store_id, resource_type)
    except Exception as exc:
        return delete_failed(descriptor.store_id, resource_type, exc)


async def replace_artifact(
    store: RemoteStore,
    local_path: Path,
    mime_type: str | None,
    policy: UploadPolicyConfig,
    previous: RemoteArtifact | LegacyServerArtifact | InlineArtifact | None,
    hint: UploadHint | None = None,
    *,
    original_name: str | None = None,
    folder: str | None = None,
) -> ReplaceResult:
    """Upload a new artifact, then remove the one it replaces.

    The previous object is only deleted after the new upload succeeded; if the
    upload fails the previous artifact is untouched.
    """
    upload = await upload_artifact(
        store,
        local_path,
        mime_type,
        policy,
        hint,
        original_name=original_name,
        folder=folder,
    )
    previous_deleted = await discard_artifact(store, previous)
    return ReplaceResult(upload=upload, previous_deleted=previous_deleted)
