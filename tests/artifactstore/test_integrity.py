"""Tests for payload signature validation."""

from __future__ import annotations

import pytest

from artifactstore.errors import ValidationWarning
from artifactstore.integrity import expected_kind, validate_payload
from artifactstore.models.enums import ArtifactKind


@pytest.mark.parametrize(
    ("name", "mime", "expected"),
    [
        ("report.pdf", None, ArtifactKind.DOCUMENT),
        ("REPORT.PDF ", None, ArtifactKind.DOCUMENT),
        (None, "application/pdf", ArtifactKind.DOCUMENT),
        ("photo.jpeg", None, ArtifactKind.IMAGE),
        (None, "image/png", ArtifactKind.IMAGE),
        ("notes", "application/octet-stream", ArtifactKind.UNKNOWN),
        (None, None, ArtifactKind.UNKNOWN),
    ],
)
def test_expected_kind(name: str | None, mime: str | None, expected: ArtifactKind) -> None:
    assert expected_kind(name, mime) is expected


def test_valid_pdf_passes_without_warnings(pdf_bytes: bytes) -> None:
    """A document starting with %PDF validates cleanly."""
    # Given PDF bytes reported as generic binary
    # When validating as a document
    payload = validate_payload(pdf_bytes, "application/octet-stream", ArtifactKind.DOCUMENT)

    # Then the signature is accepted and the type reconciled
    assert payload.signature_ok
    assert payload.warnings == ()
    assert payload.mime_type == "application/pdf"
    assert payload.byte_size == len(pdf_bytes)


def test_bad_pdf_header_warns_but_is_delivered(caplog: pytest.LogCaptureFixture) -> None:
    """A wrong header only produces a warning; the payload is kept."""
    # Given HTML where a PDF was expected
    body = b"<html>error page</html>"

    # When validating as a document
    payload = validate_payload(body, "text/html", ArtifactKind.DOCUMENT, source="https://x")

    # Then a warning is recorded and logged, and the body is unchanged
    assert not payload.signature_ok
    assert payload.body == body
    assert payload.mime_type == "text/html"
    assert len(payload.warnings) == 1
    warning = payload.warnings[0]
    assert isinstance(warning, ValidationWarning)
    assert warning.header == b"<htm"
    assert "may not be a valid PDF" in caplog.text


@pytest.mark.parametrize(
    ("reported", "delivered"),
    [
        (None, "application/pdf"),
        ("", "application/pdf"),
        ("binary/octet-stream", "application/pdf"),
        ("application/pdf; charset=binary", "application/pdf"),
        ("application/x-pdf", "application/x-pdf"),
    ],
)
def test_document_type_reconciled_only_from_placeholders(
    pdf_bytes: bytes, reported: str | None, delivered: str
) -> None:
    """Generic or missing types become application/pdf; specific ones are kept."""
    payload = validate_payload(pdf_bytes, reported, ArtifactKind.DOCUMENT)

    assert payload.mime_type == delivered


def test_image_keeps_reported_type(png_bytes: bytes) -> None:
    payload = validate_payload(png_bytes, "image/webp", ArtifactKind.IMAGE)
    assert payload.mime_type == "image/webp"
    assert payload.signature_ok


def test_generic_type_is_sniffed_for_non_documents(png_bytes: bytes) -> None:
    """Unknown content reported as generic binary is sniffed."""
    payload = validate_payload(png_bytes, None, ArtifactKind.UNKNOWN)
    assert payload.mime_type == "image/png"


def test_unrecognized_content_stays_generic() -> None:
    payload = validate_payload(b"plain bytes", "", ArtifactKind.UNKNOWN)
    assert payload.mime_type == "application/octet-stream"
