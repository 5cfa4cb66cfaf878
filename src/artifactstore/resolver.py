"""Choose a retrieval strategy for an artifact descriptor."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, unquote, urlsplit

from artifactstore.errors import InvalidDescriptorError
from artifactstore.integrity import expected_kind
from artifactstore.models.artifact import (
    InlineArtifact,
    LegacyServerArtifact,
    RemoteArtifact,
    descriptor_from_record,
)
from artifactstore.models.enums import ArtifactKind, ResourceType, RetrievalStrategy
from artifactstore.urls import normalize_delivery_url

logger = logging.getLogger(__name__)

Descriptor = RemoteArtifact | LegacyServerArtifact | InlineArtifact


@dataclass(frozen=True)
class RetrievalPlan:
    """How to obtain an artifact's bytes."""

    strategy: RetrievalStrategy
    descriptor: Descriptor
    url: str | None = None
    store_id: str | None = None
    display_name: str | None = None
    mime_type: str | None = None

    @property
    def expected(self) -> ArtifactKind:
        """Content kind from the name and MIME type, else from the stored object's extension."""
        kind = expected_kind(self.display_name, self.mime_type)
        if kind is not ArtifactKind.UNKNOWN or self.strategy is not RetrievalStrategy.REMOTE:
            return kind
        for candidate in (_url_file_name(self.url), self.store_id):
            kind = expected_kind(candidate, None)
            if kind is not ArtifactKind.UNKNOWN:
                break
        return kind


def legacy_file_url(legacy_base_url: str, descriptor: LegacyServerArtifact) -> str:
    """Build `<base>/files/<id>` for a legacy server artifact."""
    return f"{legacy_base_url.rstrip('/')}/files/{quote(descriptor.identifier, safe='')}"


def resolve(
    descriptor: Descriptor | Mapping[str, Any] | None,
    legacy_base_url: str,
) -> RetrievalPlan:
    """Select a retrieval strategy; first match wins: remote, legacy, inline.

    Raw mappings are converted with the same fixed priority, so stale legacy
    fields on a migrated record never shadow its delivery URL.

    Raises:
        InvalidDescriptorError: If no strategy applies.
    """
    if descriptor is None or isinstance(descriptor, Mapping):
        descriptor = descriptor_from_record(descriptor)

    match descriptor:
        case RemoteArtifact():
            plan = RetrievalPlan(
                strategy=RetrievalStrategy.REMOTE,
                descriptor=descriptor,
                url=descriptor.delivery_url,
                store_id=descriptor.store_id,
                display_name=descriptor.original_name,
                mime_type=descriptor.mime_type,
            )
        case LegacyServerArtifact():
            plan = RetrievalPlan(
                strategy=RetrievalStrategy.LEGACY,
                descriptor=descriptor,
                url=legacy_file_url(legacy_base_url, descriptor),
                display_name=descriptor.original_name or descriptor.file_name,
                mime_type=descriptor.mime_type,
            )
        case InlineArtifact():
            plan = RetrievalPlan(
                strategy=RetrievalStrategy.INLINE,
                descriptor=descriptor,
                display_name=descriptor.display_name,
                mime_type=_data_uri_mime(descriptor.data_uri),
            )
        case _:
            raise InvalidDescriptorError(f"unsupported descriptor type {type(descriptor).__name__}")

    logger.debug("Resolved descriptor: strategy=%s url=%s", plan.strategy.value, plan.url)
    return plan


def view_url(
    descriptor: Descriptor | Mapping[str, Any] | None,
    legacy_base_url: str,
) -> str:
    """URL to open the artifact for viewing (no attachment hint)."""
    plan = resolve(descriptor, legacy_base_url)
    if plan.strategy is RetrievalStrategy.INLINE:
        assert isinstance(plan.descriptor, InlineArtifact)
        return plan.descriptor.data_uri
    assert plan.url is not None
    if plan.strategy is RetrievalStrategy.REMOTE and plan.expected is ArtifactKind.DOCUMENT:
        return normalize_delivery_url(plan.url, ResourceType.DOCUMENT, store_id=plan.store_id)
    return plan.url


def _data_uri_mime(data_uri: str) -> str | None:
    header = data_uri[len("data:") :].split(",", 1)[0]
    mime = header.split(";", 1)[0].strip()
    return mime or None


def _url_file_name(url: str | None) -> str | None:
    if not url:
        return None
    return unquote(urlsplit(url).path.rsplit("/", 1)[-1]) or None
