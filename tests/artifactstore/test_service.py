"""End-to-end tests for ArtifactService."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path

import pytest

from artifactstore.errors import (
    DeliveryError,
    FetchError,
    InvalidDescriptorError,
    StoreUploadError,
)
from artifactstore.interfaces import HttpResponse
from artifactstore.models.artifact import RemoteArtifact
from artifactstore.models.config import (
    Config,
    DeliveryConfig,
    FilesystemHostConfig,
    LocalStoreConfig,
    StoreConfig,
)
from artifactstore.models.enums import DeliveryIntent, ResourceType, UploadHint
from artifactstore.plugins.hosts.filesystem import FilesystemHost
from artifactstore.plugins.stores.local import LocalStore
from artifactstore.service import ArtifactService, build_service
from tests.artifactstore.mocks import MockEnvironment, MockStore
from tests.artifactstore.mocks.store import DEFAULT_BASE_URL

LEGACY_BASE = "https://app.example.test/api"


class TestRoundTrip:
    """Upload then download through the same service."""

    @pytest.mark.asyncio
    async def test_pdf_round_trip(
        self,
        service: ArtifactService,
        mock_store: MockStore,
        mock_env: MockEnvironment,
        staging_dir: Path,
        pdf_bytes: bytes,
    ) -> None:
        """A PDF uploaded as a document downloads with a valid header."""
        # Given a PDF uploaded through the service
        result = await service.upload(pdf_bytes, "Quarterly Report.pdf", "application/pdf")
        descriptor = result.to_descriptor(
            original_name="Quarterly Report.pdf", mime_type="application/pdf"
        )

        # When downloading it
        outcome = await service.download(descriptor)

        # Then the bytes are identical, signed and delivered under the original name
        assert list(staging_dir.iterdir()) == []
        assert outcome.payload.body == pdf_bytes
        assert outcome.payload.body[:4] == b"%PDF"
        assert outcome.payload.signature_ok
        assert outcome.payload.mime_type == "application/pdf"
        assert outcome.receipt.file_name == "Quarterly Report.pdf"
        assert mock_env.presented[0][1] == pdf_bytes
        fetched_url = mock_env.fetch_calls[0][0]
        assert "/raw/upload/" in fetched_url
        assert fetched_url.endswith("?fl_attachment")
        assert mock_env.notifications == []

    @pytest.mark.asyncio
    async def test_stale_image_url_document_still_downloads(
        self, service: ArtifactService, mock_env: MockEnvironment, pdf_bytes: bytes
    ) -> None:
        """A record persisted with an image URL for a PDF is fetched from raw."""
        # Given a stored record whose URL points at the image segment
        result = await service.upload(pdf_bytes, "scan.pdf", "application/pdf")
        stale_url = result.delivery_url.replace("/raw/upload/", "/image/upload/")
        record = {
            "url": stale_url,
            "publicId": result.store_id,
            "originalName": "scan.pdf",
            "mimetype": "application/pdf",
        }

        # When downloading
        outcome = await service.download(record)

        # Then the raw URL was used and the content is intact
        assert outcome.payload.body == pdf_bytes
        assert "/image/upload/" not in mock_env.fetch_calls[0][0]

    @pytest.mark.asyncio
    async def test_view_intent_omits_attachment_flag(
        self, service: ArtifactService, mock_env: MockEnvironment, png_bytes: bytes
    ) -> None:
        result = await service.upload(png_bytes, "photo.png", "image/png", UploadHint.GALLERY_IMAGE)
        descriptor = result.to_descriptor(original_name="photo.png", mime_type="image/png")

        outcome = await service.download(descriptor, DeliveryIntent.VIEW)

        assert "fl_attachment" not in mock_env.fetch_calls[0][0]
        assert outcome.payload.mime_type == "image/png"
        assert outcome.receipt.file_name == "photo.png"

    @pytest.mark.asyncio
    async def test_handle_released_after_delay(
        self, service: ArtifactService, pdf_bytes: bytes
    ) -> None:
        result = await service.upload(pdf_bytes, "r.pdf", "application/pdf")

        outcome = await service.download(result.to_descriptor(original_name="r.pdf"))
        assert not outcome.receipt.handle.released

        await asyncio.sleep(0.05)
        assert outcome.receipt.handle.released


class TestDownloadStrategies:
    """Tests for legacy and inline downloads."""

    @pytest.mark.asyncio
    async def test_legacy_record_downloads_from_files_endpoint(
        self, app_config: Config, mock_store: MockStore, pdf_bytes: bytes
    ) -> None:
        """Legacy records are fetched from <base>/files/<id>."""
        # Given the application serving a legacy file
        env = MockEnvironment(
            {f"{LEGACY_BASE}/files/123": HttpResponse(status=200, body=pdf_bytes)}
        )
        service = ArtifactService(app_config, mock_store, env)

        # When downloading a legacy record
        outcome = await service.download({"fileId": "123", "originalName": "old scan"})

        # Then the extension is inferred and the PDF delivered
        assert env.fetch_calls[0][0] == f"{LEGACY_BASE}/files/123"
        assert outcome.receipt.file_name == "old scan.pdf"
        assert outcome.payload.body == pdf_bytes

    @pytest.mark.asyncio
    async def test_inline_record_needs_no_network(
        self, service: ArtifactService, mock_env: MockEnvironment
    ) -> None:
        outcome = await service.download(
            {"data": "data:application/pdf;base64,JVBERi0xLjQK", "name": "inline.pdf"}
        )

        assert mock_env.fetch_calls == []
        assert outcome.payload.body == b"%PDF-1.4\n"
        assert outcome.receipt.file_name == "inline.pdf"

    @pytest.mark.asyncio
    async def test_corrupted_pdf_is_delivered_with_warning(
        self, app_config: Config, mock_store: MockStore
    ) -> None:
        """Bad signatures warn but do not block delivery."""
        url = f"{LEGACY_BASE}/files/7"
        env = MockEnvironment({url: HttpResponse(status=200, body=b"garbage")})
        service = ArtifactService(app_config, mock_store, env)

        outcome = await service.download({"fileId": "7", "originalName": "x.pdf"})

        assert not outcome.payload.signature_ok
        assert len(outcome.payload.warnings) == 1
        assert env.presented[0][1] == b"garbage"


class TestDownloadFailures:
    """Failures are reported to the user and re-raised."""

    @pytest.mark.asyncio
    async def test_not_found_notifies_user(
        self, service: ArtifactService, mock_env: MockEnvironment
    ) -> None:
        """A 404 raises FetchError, notifies the user and creates no handle."""
        # Given a remote record whose object does not exist
        record = {
            "url": f"{DEFAULT_BASE_URL}/raw/upload/artifacts/missing.pdf",
            "publicId": "artifacts/missing",
            "originalName": "missing.pdf",
        }

        # When downloading
        with pytest.raises(FetchError) as exc_info:
            await service.download(record)

        # Then the user was told and nothing was presented
        assert exc_info.value.status == 404
        assert len(mock_env.notifications) == 1
        assert "HTTP error! status: 404" in mock_env.notifications[0]
        assert "Please try again" in mock_env.notifications[0]
        assert mock_env.handles == []

    @pytest.mark.asyncio
    async def test_invalid_record_notifies_user(
        self, service: ArtifactService, mock_env: MockEnvironment
    ) -> None:
        with pytest.raises(InvalidDescriptorError):
            await service.download({"originalName": "orphan.pdf"})

        assert mock_env.notifications
        assert mock_env.fetch_calls == []

    @pytest.mark.asyncio
    async def test_host_failure_releases_handle(
        self, app_config: Config, mock_store: MockStore, pdf_bytes: bytes
    ) -> None:
        env = MockEnvironment(
            {f"{LEGACY_BASE}/files/1": HttpResponse(status=200, body=pdf_bytes)},
            fail_present=True,
        )
        service = ArtifactService(app_config, mock_store, env)

        with pytest.raises(DeliveryError):
            await service.download({"fileId": "1"})

        assert env.handles[0].released
        assert "Failed to save file" in env.notifications[0]


class TestWritePathThroughService:
    """Tests for replace, discard and upload failures."""

    @pytest.mark.asyncio
    async def test_replace_deletes_previous_record(
        self, service: ArtifactService, mock_store: MockStore, pdf_bytes: bytes
    ) -> None:
        first = await service.upload(pdf_bytes, "v1.pdf", "application/pdf")
        record = {
            "url": first.delivery_url,
            "publicId": first.store_id,
            "originalName": "v1.pdf",
            "mimetype": "application/pdf",
        }

        replaced = await service.replace(record, io.BytesIO(pdf_bytes), "v2.pdf", "application/pdf")

        assert first.store_id not in mock_store.objects
        assert replaced.upload.store_id in mock_store.objects
        assert mock_store.delete_calls == [(first.store_id, ResourceType.DOCUMENT)]

    @pytest.mark.asyncio
    async def test_replace_of_legacy_record_deletes_nothing(
        self, service: ArtifactService, mock_store: MockStore, pdf_bytes: bytes
    ) -> None:
        replaced = await service.replace(
            {"fileId": "12"}, pdf_bytes, "v2.pdf", "application/pdf"
        )

        assert replaced.previous_deleted is None
        assert mock_store.delete_calls == []

    @pytest.mark.asyncio
    async def test_discard_invalid_record_is_noop(
        self, service: ArtifactService, mock_store: MockStore
    ) -> None:
        assert await service.discard({"originalName": "x.pdf"}) is None
        assert await service.discard(None) is None
        assert mock_store.delete_calls == []

    @pytest.mark.asyncio
    async def test_discard_failure_is_returned(
        self, app_config: Config, mock_env: MockEnvironment
    ) -> None:
        store = MockStore(fail_delete=True)
        service = ArtifactService(app_config, store, mock_env)

        result = await service.discard(
            RemoteArtifact(
                delivery_url=f"{DEFAULT_BASE_URL}/raw/upload/a/b", store_id="a/b"
            )
        )

        assert result is not None
        assert not result.deleted

    @pytest.mark.asyncio
    async def test_upload_failure_leaves_no_staged_file(
        self, app_config: Config, mock_env: MockEnvironment, staging_dir: Path, pdf_bytes: bytes
    ) -> None:
        service = ArtifactService(app_config, MockStore(simulate_failure=True), mock_env)

        with pytest.raises(StoreUploadError):
            await service.upload(pdf_bytes, "r.pdf", "application/pdf")

        assert list(staging_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_concurrent_uploads_are_independent(
        self, service: ArtifactService, mock_store: MockStore, staging_dir: Path, pdf_bytes: bytes
    ) -> None:
        """Parallel uploads stage distinct files and all clean up."""
        mock_store.delay_s = 0.01

        results = await asyncio.gather(
            *(service.upload(pdf_bytes, f"doc{i}.pdf", "application/pdf") for i in range(5))
        )

        assert len({r.store_id for r in results}) == 5
        assert len({path for path, _ in mock_store.put_calls}) == 5
        assert list(staging_dir.iterdir()) == []


def test_view_url_and_is_valid(service: ArtifactService) -> None:
    assert service.view_url({"fileId": "5"}) == f"{LEGACY_BASE}/files/5"
    assert service.is_valid({"url": f"{DEFAULT_BASE_URL}/raw/upload/a"})
    assert not service.is_valid({"originalName": "a.pdf"})


@pytest.mark.asyncio
async def test_build_service_round_trip_on_local_store(tmp_path: Path, pdf_bytes: bytes) -> None:
    """Config-driven assembly with the local store and filesystem host works end to end."""
    # Given a config using only local plugins
    config = Config(
        store=StoreConfig(backend="local", local=LocalStoreConfig(root=str(tmp_path / "objects"))),
        upload={"staging_dir": str(tmp_path / "temp")},
        delivery=DeliveryConfig(
            filesystem=FilesystemHostConfig(
                download_dir=str(tmp_path / "downloads"), notify_stderr=False
            ),
            release_delay_s=0.01,
        ),
    )
    service = build_service(config)
    assert isinstance(service.store, LocalStore)
    assert isinstance(service.env, FilesystemHost)

    # When uploading and downloading a PDF
    result = await service.upload(pdf_bytes, "report.pdf", "application/pdf")
    outcome = await service.download(
        result.to_descriptor(original_name="report.pdf", mime_type="application/pdf")
    )
    await service.shutdown()

    # Then the downloaded file matches the upload
    saved = Path(outcome.receipt.location)
    assert saved == tmp_path / "downloads" / "report.pdf"
    assert saved.read_bytes() == pdf_bytes
    assert list((tmp_path / "temp").iterdir()) == []


@pytest.mark.asyncio
async def test_malformed_record_notifies_user(
    service: ArtifactService, mock_env: MockEnvironment
) -> None:
    """A record with a recognizable shape but bad fields is reported, not leaked."""
    # Given a remote record whose size is not a number
    record = {"url": f"{DEFAULT_BASE_URL}/raw/upload/a/b.pdf", "size": "big"}

    # When downloading
    with pytest.raises(InvalidDescriptorError):
        await service.download(record)

    # Then the user was told and nothing was fetched
    assert "This file reference is invalid" in mock_env.notifications[0]
    assert mock_env.fetch_calls == []
    assert not service.is_valid(record)
