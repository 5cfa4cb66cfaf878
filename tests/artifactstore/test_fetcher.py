"""Tests for content retrieval."""

from __future__ import annotations

import pytest

from artifactstore.errors import EmptyPayloadError, FetchError, InvalidDescriptorError
from artifactstore.fetcher import decode_data_uri, fetch_content, remote_fetch_url
from artifactstore.interfaces import HttpResponse
from artifactstore.models.artifact import InlineArtifact, RemoteArtifact
from artifactstore.models.enums import DeliveryIntent
from artifactstore.resolver import resolve
from tests.artifactstore.mocks import MockEnvironment

LEGACY_BASE = "https://app.example.test/api"
BASE = "https://res.cloudinary.com/demo"


class TestRemoteFetchUrl:
    """Tests for URL preparation on the remote strategy."""

    def test_download_of_stale_document_url_is_normalized_and_flagged(self) -> None:
        """Documents stored with an image URL are fetched from raw with the attachment flag."""
        # Given a document descriptor with an image URL
        plan = resolve(
            RemoteArtifact(
                delivery_url=f"{BASE}/image/upload/artifacts/abc.pdf",
                store_id="artifacts/abc",
                original_name="report.pdf",
            ),
            LEGACY_BASE,
        )

        # When preparing a download URL
        url = remote_fetch_url(plan, DeliveryIntent.DOWNLOAD, BASE)

        # Then the segment is raw and the attachment flag is present
        assert url == f"{BASE}/raw/upload/artifacts/abc.pdf?fl_attachment"

    def test_view_has_no_attachment_flag(self) -> None:
        plan = resolve({"url": f"{BASE}/raw/upload/artifacts/abc.pdf"}, LEGACY_BASE)
        assert remote_fetch_url(plan, DeliveryIntent.VIEW) == f"{BASE}/raw/upload/artifacts/abc.pdf"

    def test_record_without_name_or_mime_is_fetched_from_raw(self) -> None:
        """The stored object's extension marks a bare record as a document."""
        # Given a record carrying only an image URL and a store id
        plan = resolve(
            {"url": f"{BASE}/image/upload/v1/notices/abc.pdf", "publicId": "notices/abc"},
            LEGACY_BASE,
        )

        # When preparing a download URL
        url = remote_fetch_url(plan, DeliveryIntent.DOWNLOAD, BASE)

        # Then the image delivery path is never used
        assert "/image/upload/" not in url
        assert url == f"{BASE}/raw/upload/v1/notices/abc.pdf?fl_attachment"

    def test_image_urls_keep_their_segment(self) -> None:
        plan = resolve(
            {"url": f"{BASE}/image/upload/gallery/p.jpg", "originalName": "p.jpg"}, LEGACY_BASE
        )
        url = remote_fetch_url(plan, DeliveryIntent.DOWNLOAD)
        assert url == f"{BASE}/image/upload/gallery/p.jpg?fl_attachment"


@pytest.mark.asyncio
async def test_fetch_returns_body_and_content_type(pdf_bytes: bytes) -> None:
    """A successful GET yields the body and reported type."""
    # Given a legacy artifact served by the application
    url = f"{LEGACY_BASE}/files/123"
    env = MockEnvironment(
        {url: HttpResponse(status=200, body=pdf_bytes, content_type="application/pdf")}
    )
    plan = resolve({"fileId": "123", "originalName": "scan.pdf"}, LEGACY_BASE)

    # When fetching
    content = await fetch_content(plan, env)

    # Then the bytes come back with a single credential-free GET
    assert content.body == pdf_bytes
    assert content.content_type == "application/pdf"
    assert content.source_url == url
    assert len(env.fetch_calls) == 1
    fetched_url, headers = env.fetch_calls[0]
    assert fetched_url == url
    assert "Authorization" not in headers
    assert "application/pdf" in headers["Accept"]


@pytest.mark.asyncio
async def test_legacy_urls_get_no_attachment_flag(pdf_bytes: bytes) -> None:
    url = f"{LEGACY_BASE}/files/scan.pdf"
    env = MockEnvironment({url: HttpResponse(status=200, body=pdf_bytes)})
    plan = resolve({"filename": "scan.pdf"}, LEGACY_BASE)

    await fetch_content(plan, env, DeliveryIntent.DOWNLOAD)

    assert env.fetch_calls[0][0] == url


@pytest.mark.asyncio
async def test_not_found_raises_fetch_error_with_status() -> None:
    """Non-2xx responses raise FetchError carrying the status."""
    # Given a server answering 404
    env = MockEnvironment()
    plan = resolve({"fileId": "404"}, LEGACY_BASE)

    # When fetching
    with pytest.raises(FetchError) as exc_info:
        await fetch_content(plan, env)

    # Then the status is reported and no delivery handle was created
    assert exc_info.value.status == 404
    assert str(exc_info.value) == "HTTP error! status: 404"
    assert env.handles == []
    assert len(env.fetch_calls) == 1


@pytest.mark.asyncio
async def test_empty_body_raises_empty_payload_error() -> None:
    """A 200 with no body is an error, not an empty file."""
    url = f"{LEGACY_BASE}/files/1"
    env = MockEnvironment({url: HttpResponse(status=200, body=b"")})
    plan = resolve({"fileId": "1"}, LEGACY_BASE)

    with pytest.raises(EmptyPayloadError, match="empty"):
        await fetch_content(plan, env)


@pytest.mark.asyncio
async def test_transport_failure_is_not_retried() -> None:
    """Transport failures propagate after a single attempt."""
    env = MockEnvironment(fail_fetch=True)
    plan = resolve({"fileId": "1"}, LEGACY_BASE)

    with pytest.raises(FetchError) as exc_info:
        await fetch_content(plan, env)

    assert exc_info.value.status is None
    assert len(env.fetch_calls) == 1


@pytest.mark.asyncio
async def test_inline_payload_never_touches_network() -> None:
    """Inline artifacts are decoded locally."""
    # Given an inline PDF
    env = MockEnvironment()
    plan = resolve(
        InlineArtifact(data_uri="data:application/pdf;base64,JVBERi0xLjQK"), LEGACY_BASE
    )

    # When fetching
    content = await fetch_content(plan, env)

    # Then no request is made
    assert content.body == b"%PDF-1.4\n"
    assert content.content_type == "application/pdf"
    assert env.fetch_calls == []


@pytest.mark.asyncio
async def test_empty_inline_payload_raises() -> None:
    plan = resolve(InlineArtifact(data_uri="data:application/pdf;base64,"), LEGACY_BASE)
    with pytest.raises(EmptyPayloadError):
        await fetch_content(plan, MockEnvironment())


class TestDecodeDataUri:
    """Tests for data URI decoding."""

    def test_percent_encoded_payload(self) -> None:
        assert decode_data_uri("data:text/plain,hello%20world") == ("text/plain", b"hello world")

    def test_missing_mime(self) -> None:
        assert decode_data_uri("data:;base64,aGk=") == (None, b"hi")

    def test_malformed(self) -> None:
        with pytest.raises(InvalidDescriptorError):
            decode_data_uri("data:application/pdf;base64")
