"""Facade binding configuration, a remote store and a delivery host."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

from artifactstore.delivery import DeliveryReceipt, deliver
from artifactstore.errors import ArtifactError
from artifactstore.fetcher import fetch_content
from artifactstore.integrity import ValidatedPayload, validate_payload
from artifactstore.interfaces import Environment, RemoteStore
from artifactstore.logging_setup import artifact_context
from artifactstore.models.artifact import (
    InlineArtifact,
    LegacyServerArtifact,
    RemoteArtifact,
    descriptor_from_record,
    is_valid_record,
)
from artifactstore.models.config import Config
from artifactstore.models.enums import DeliveryIntent, UploadHint
from artifactstore.models.storage import DeleteResult, UploadResult
from artifactstore.plugins.registry import PluginType, load_plugin
from artifactstore.resolver import resolve
from artifactstore.resolver import view_url as resolve_view_url
from artifactstore.staging import stage_upload
from artifactstore.uploader import ReplaceResult, discard_artifact, replace_artifact, upload_artifact

logger = logging.getLogger(__name__)

Descriptor = RemoteArtifact | LegacyServerArtifact | InlineArtifact
DescriptorInput = Descriptor | Mapping[str, Any] | None


@dataclass(frozen=True)
class DownloadOutcome:
    """Validated payload and the delivery receipt for one download."""

    payload: ValidatedPayload
    receipt: DeliveryReceipt


class ArtifactService:
    """Upload, replace, discard and download artifacts.

    Holds no per-call state: concurrent calls are independent.
    """

    def __init__(self, config: Config, store: RemoteStore, env: Environment) -> None:
        self.config = config
        self.store = store
        self.env = env

    async def upload(
        self,
        source: bytes | BinaryIO | Path,
        original_name: str,
        mime_type: str,
        hint: UploadHint | None = None,
        *,
        folder: str | None = None,
    ) -> UploadResult:
        """Stage, classify and store an incoming file."""
        with artifact_context(original_name):
            staged = stage_upload(source, original_name, mime_type, self.config.upload)
            return await upload_artifact(
                self.store,
                staged.path,
                staged.mime_type,
                self.config.upload,
                hint,
                original_name=original_name,
                folder=folder,
            )

    async def replace(
        self,
        previous: DescriptorInput,
        source: bytes | BinaryIO | Path,
        original_name: str,
        mime_type: str,
        hint: UploadHint | None = None,
        *,
        folder: str | None = None,
    ) -> ReplaceResult:
        """Store a new file, then remove the artifact it replaces."""
        with artifact_context(original_name):
            staged = stage_upload(source, original_name, mime_type, self.config.upload)
            return await replace_artifact(
                self.store,
                staged.path,
                staged.mime_type,
                self.config.upload,
                _coerce_or_none(previous),
                hint,
                original_name=original_name,
                folder=folder,
            )

    async def discard(self, descriptor: DescriptorInput) -> DeleteResult | None:
        """Best-effort remote delete for a record being destroyed. Never raises."""
        return await discard_artifact(self.store, _coerce_or_none(descriptor))

    async def download(
        self,
        descriptor: DescriptorInput,
        intent: DeliveryIntent = DeliveryIntent.DOWNLOAD,
    ) -> DownloadOutcome:
        """Resolve, fetch, validate and deliver an artifact.

        Failures are reported to the user through the host and re-raised.
        """
        try:
            plan = resolve(descriptor, self.config.legacy.base_url)
            with artifact_context(plan.display_name):
                content = await fetch_content(
                    plan,
                    self.env,
                    intent,
                    accept=self.config.fetch.accept,
                    store_base_url=self.store.base_delivery_url,
                )
                payload = validate_payload(
                    content.body,
                    content.content_type or plan.mime_type,
                    plan.expected,
                    source=content.source_url,
                )
                receipt = await deliver(
                    payload,
                    self.env,
                    plan.display_name,
                    release_delay_s=self.config.delivery.release_delay_s,
                )
        except ArtifactError as exc:
            logger.error("Artifact download failed: %s", exc, exc_info=True)
            self.env.notify_user(
                f"{exc.user_message}\n\nPlease try again or contact support if the problem persists."
            )
            raise
        return DownloadOutcome(payload=payload, receipt=receipt)

    def view_url(self, descriptor: DescriptorInput) -> str:
        """URL to open the artifact for viewing."""
        return resolve_view_url(descriptor, self.config.legacy.base_url)

    @staticmethod
    def is_valid(record: Mapping[str, Any] | None) -> bool:
        return is_valid_record(record)

    async def shutdown(self, timeout: float | None = None) -> None:
        await self.env.shutdown(timeout)
        await self.store.shutdown(timeout)


def _coerce_or_none(descriptor: DescriptorInput) -> Descriptor | None:
    if descriptor is None or not isinstance(descriptor, Mapping):
        return descriptor
    if not is_valid_record(descriptor):
        return None
    return descriptor_from_record(descriptor)


def build_service(config: Config) -> ArtifactService:
    """Assemble store and host plugins from config."""
    from artifactstore.plugins import discover_all_plugins

    discover_all_plugins()
    store: RemoteStore = load_plugin(
        PluginType.STORE, config.store.backend, config.store.backend_config()
    )
    env: Environment = load_plugin(
        PluginType.HOST,
        config.delivery.host,
        config.delivery.host_config(),
        timeout_s=config.fetch.timeout_s,
    )
    return ArtifactService(config, store, env)
