"""Read path network retrieval."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from artifactstore.errors import EmptyPayloadError, FetchError, InvalidDescriptorError
from artifactstore.interfaces import Environment
from artifactstore.models.artifact import InlineArtifact
from artifactstore.models.enums import ArtifactKind, DeliveryIntent, ResourceType, RetrievalStrategy
from artifactstore.resolver import RetrievalPlan
from artifactstore.urls import normalize_delivery_url, with_attachment_hint

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT = "application/pdf, application/octet-stream, */*"


@dataclass(frozen=True)
class FetchedContent:
    """Raw bytes obtained for a plan, before validation."""

    body: bytes
    content_type: str | None
    source_url: str | None


def remote_fetch_url(
    plan: RetrievalPlan,
    intent: DeliveryIntent,
    store_base_url: str | None = None,
) -> str:
    """Correct a stored delivery URL and add the attachment hint for downloads."""
    assert plan.url is not None
    url = plan.url
    if plan.expected is ArtifactKind.DOCUMENT:
        url = normalize_delivery_url(
            url, ResourceType.DOCUMENT, store_id=plan.store_id, base_url=store_base_url
        )
    if intent is DeliveryIntent.DOWNLOAD:
        url = with_attachment_hint(url)
    return url


async def fetch_content(
    plan: RetrievalPlan,
    env: Environment,
    intent: DeliveryIntent = DeliveryIntent.DOWNLOAD,
    *,
    accept: str = DEFAULT_ACCEPT,
    store_base_url: str | None = None,
) -> FetchedContent:
    """Obtain the bytes for a plan.

    Remote and legacy plans issue a single GET with no credentials and no retry.
    Inline plans decode the embedded payload without touching the network.

    Raises:
        FetchError: On a non-2xx status or transport failure.
        EmptyPayloadError: If the body is empty.
    """
    if plan.strategy is RetrievalStrategy.INLINE:
        assert isinstance(plan.descriptor, InlineArtifact)
        mime, body = decode_data_uri(plan.descriptor.data_uri)
        if not body:
            raise EmptyPayloadError(None)
        return FetchedContent(body=body, content_type=mime, source_url=None)

    if plan.strategy is RetrievalStrategy.REMOTE:
        url = remote_fetch_url(plan, intent, store_base_url)
    else:
        assert plan.url is not None
        url = plan.url

    logger.info("Fetching artifact: strategy=%s url=%s", plan.strategy.value, url)
    response = await env.fetch_bytes(url, {"Accept": accept})

    if not response.ok:
        raise FetchError(url, response.status)
    if not response.body:
        raise EmptyPayloadError(url)

    logger.info(
        "Artifact received: bytes=%d content_type=%s",
        len(response.body),
        response.content_type,
    )
    return FetchedContent(body=response.body, content_type=response.content_type, source_url=url)


def decode_data_uri(data_uri: str) -> tuple[str | None, bytes]:
    """Decode `data:[<mime>][;base64],<payload>` into (mime, bytes).

    Raises:
        InvalidDescriptorError: If the URI is malformed.
    """
    if not data_uri.startswith("data:") or "," not in data_uri:
        raise InvalidDescriptorError("malformed data URI")

    header, payload = data_uri[len("data:") :].split(",", 1)
    params = [part.strip() for part in header.split(";")]
    mime = params[0] or None
    if "base64" in (p.lower() for p in params[1:]):
        try:
            body = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise InvalidDescriptorError("data URI payload is not valid base64") from exc
    else:
        body = unquote_to_bytes(payload)
    return mime, body
