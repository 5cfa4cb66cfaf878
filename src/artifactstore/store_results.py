"""Helpers shared by store backends for turning put responses into results."""

from __future__ import annotations

import logging

from artifactstore.errors import ArtifactWarning, ResourceTypeMismatchWarning
from artifactstore.models.enums import ResourceType
from artifactstore.models.storage import DeleteResult, UploadResult
from artifactstore.urls import normalize_delivery_url

logger = logging.getLogger(__name__)


def build_upload_result(
    *,
    store_id: str,
    delivery_url: str,
    requested: ResourceType,
    reported: str | None,
    byte_size: int,
    base_url: str | None,
    fmt: str | None = None,
) -> UploadResult:
    """Check the reported resource type and normalize the delivery URL.

    A mismatch between requested and reported type is non-fatal: it is logged,
    recorded on the result, and the URL is still normalized for the requested type.
    """
    warnings: list[ArtifactWarning] = []
    reported_type = ResourceType.from_store(reported)
    if reported_type != requested:
        warning = ResourceTypeMismatchWarning(store_id, requested.value, reported)
        warnings.append(warning)
        logger.warning(
            "%s",
            warning,
            extra={"store_id": store_id, "delivery_url": delivery_url},
        )

    url = normalize_delivery_url(delivery_url, requested, store_id=store_id, base_url=base_url)
    return UploadResult(
        store_id=store_id,
        delivery_url=url,
        resource_type=requested,
        byte_size=byte_size,
        format=fmt,
        warnings=tuple(warnings),
    )


def delete_failed(store_id: str, resource_type: ResourceType, exc: Exception) -> DeleteResult:
    """Log a swallowed delete failure and report it as a value."""
    logger.warning(
        "Error deleting %s from store (resource_type=%s): %s",
        store_id,
        resource_type.value,
        exc,
    )
    return DeleteResult(
        store_id=store_id,
        resource_type=resource_type,
        deleted=False,
        error=f"{type(exc).__name__}: {exc}",
    )
