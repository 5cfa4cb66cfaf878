"""Check fetched bytes against the expected file signature."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from artifactstore.classifier import GENERIC_BINARY, normalize_mime, sniff_mime
from artifactstore.errors import ArtifactWarning, ValidationWarning
from artifactstore.models.enums import ArtifactKind

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"
PDF_MIME = "application/pdf"
_GENERIC_TYPES = {"", GENERIC_BINARY, "binary/octet-stream"}
_PDF_NAME = re.compile(r"\.pdf$", re.IGNORECASE)
_IMAGE_NAME = re.compile(r"\.(jpe?g|png|gif)$", re.IGNORECASE)


@dataclass(frozen=True)
class ValidatedPayload:
    """Fetched content after signature check and MIME reconciliation."""

    body: bytes
    mime_type: str
    kind: ArtifactKind
    signature_ok: bool
    warnings: tuple[ArtifactWarning, ...] = field(default=())

    @property
    def byte_size(self) -> int:
        return len(self.body)


def expected_kind(file_name: str | None, mime_type: str | None) -> ArtifactKind:
    """Derive the expected content kind from a file name extension or declared MIME type."""
    mime = normalize_mime(mime_type)
    if (file_name and _PDF_NAME.search(file_name.strip())) or "pdf" in mime:
        return ArtifactKind.DOCUMENT
    if (file_name and _IMAGE_NAME.search(file_name.strip())) or mime.startswith("image/"):
        return ArtifactKind.IMAGE
    return ArtifactKind.UNKNOWN


def validate_payload(
    body: bytes,
    reported_mime: str | None,
    expected: ArtifactKind,
    *,
    source: str | None = None,
) -> ValidatedPayload:
    """Inspect the leading bytes and reconcile the content type.

    A document whose first four bytes are not `%PDF` only produces a
    ValidationWarning: some stores alter leading bytes in transit, so delivery
    proceeds. An expected document reported with a generic or empty type is
    given application/pdf; a specific reported type is kept.
    """
    reported = normalize_mime(reported_mime)
    warnings: list[ArtifactWarning] = []

    if expected is ArtifactKind.DOCUMENT:
        header = body[:4]
        signature_ok = header == PDF_SIGNATURE
        if not signature_ok:
            warning = ValidationWarning("PDF", header)
            warnings.append(warning)
            logger.warning("%s", warning, extra={"source": source, "reported_mime": reported})
        else:
            logger.debug("PDF header validated: %r", header)
        if reported in _GENERIC_TYPES:
            logger.debug("Reconciled MIME type %r -> %s", reported, PDF_MIME)
            mime = PDF_MIME
        else:
            mime = reported
    else:
        signature_ok = True
        sniffed = sniff_mime(body[:16])
        mime = reported if reported not in _GENERIC_TYPES else (sniffed or GENERIC_BINARY)

    return ValidatedPayload(
        body=body,
        mime_type=mime,
        kind=expected,
        signature_ok=signature_ok,
        warnings=tuple(warnings),
    )
