"""Delivery URL parsing and repair.

Delivery URLs have the shape
`<base>/<resource-type segment>/<delivery type>/<folder>/<store id>[.ext]`.
Stores do not always honour the requested resource type in the URL they
return, and stored URLs may be stale, so documents are re-pointed at the raw
segment before use.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from artifactstore.models.enums import ResourceType

logger = logging.getLogger(__name__)

ATTACHMENT_FLAG = "fl_attachment"
_RESOURCE_SEGMENTS = {"image", "raw", "video"}
_DELIVERY_TYPES = {"upload", "authenticated", "private"}
_KNOWN_EXTENSION = re.compile(r"\.(pdf|jpg|jpeg|png|gif)$", re.IGNORECASE)


@dataclass(frozen=True)
class DeliveryUrl:
    """Parsed view of a delivery URL."""

    base: str
    segment: str
    delivery_type: str
    path: str
    query: str = ""

    def with_segment(self, segment: str) -> str:
        url = f"{self.base}/{segment}/{self.delivery_type}/{self.path}"
        return f"{url}?{self.query}" if self.query else url

    def __str__(self) -> str:
        return self.with_segment(self.segment)


def parse_delivery_url(url: str) -> DeliveryUrl | None:
    """Split a delivery URL around its resource-type segment, or None if it has none."""
    parts = urlsplit(url)
    segments = parts.path.split("/")
    for index in range(len(segments) - 2):
        segment = segments[index]
        if segment in _RESOURCE_SEGMENTS and segments[index + 1] in _DELIVERY_TYPES:
            prefix = "/".join(segments[:index])
            base = urlunsplit((parts.scheme, parts.netloc, prefix, "", "")).rstrip("/")
            return DeliveryUrl(
                base=base,
                segment=segment,
                delivery_type=segments[index + 1],
                path="/".join(segments[index + 2 :]),
                query=parts.query,
            )
    return None


def url_matches_resource_type(url: str, resource_type: ResourceType) -> bool:
    parsed = parse_delivery_url(url)
    return parsed is not None and parsed.segment == resource_type.value


def strip_known_extension(store_id: str) -> str:
    """Remove a trailing file extension such as `.pdf` from a store id."""
    return _KNOWN_EXTENSION.sub("", store_id)


def build_delivery_url(
    base_url: str,
    resource_type: ResourceType,
    store_id: str,
    delivery_type: str = "upload",
) -> str:
    """Construct a delivery URL directly from the store's base and the store id."""
    clean_id = strip_known_extension(store_id.strip("/"))
    return f"{base_url.rstrip('/')}/{resource_type.value}/{delivery_type}/{clean_id}"


def normalize_delivery_url(
    url: str,
    resource_type: ResourceType,
    store_id: str | None = None,
    base_url: str | None = None,
) -> str:
    """Make sure a document URL never goes through the image-delivery segment.

    Image URLs are returned unchanged. For documents the image segment is
    rewritten to the raw segment; if the URL still does not carry the raw
    segment and a store id is known, the URL is rebuilt from the base and id.
    """
    if resource_type != ResourceType.DOCUMENT:
        return url

    fixed = url
    parsed = parse_delivery_url(url)
    if parsed is not None and parsed.segment == ResourceType.IMAGE.value:
        fixed = parsed.with_segment(ResourceType.DOCUMENT.value)
        logger.info("Rewrote image delivery URL to raw: %s", fixed)

    if url_matches_resource_type(fixed, ResourceType.DOCUMENT):
        return fixed

    if store_id:
        base = base_url or (parsed.base if parsed is not None else None)
        if base:
            rebuilt = build_delivery_url(
                base,
                ResourceType.DOCUMENT,
                store_id,
                delivery_type=parsed.delivery_type if parsed is not None else "upload",
            )
            logger.info("Rebuilt document delivery URL from store id: %s", rebuilt)
            return rebuilt

    logger.warning("Could not normalize document delivery URL: %s", url)
    return fixed


def with_attachment_hint(url: str) -> str:
    """Append the attachment flag so the store serves the file for download."""
    parts = urlsplit(url)
    flags = parts.query.split("&") if parts.query else []
    if ATTACHMENT_FLAG in flags or ATTACHMENT_FLAG in parts.path:
        return url
    flags.append(ATTACHMENT_FLAG)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(flags), parts.fragment))
