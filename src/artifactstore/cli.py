"""CLI entrypoint for artifactstore."""

from __future__ import annotations

import asyncio
import json
import mimetypes
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]

from artifactstore.config import ConfigError, load_config
from artifactstore.errors import ArtifactError
from artifactstore.logging_setup import configure_logging
from artifactstore.models.enums import DeliveryIntent, UploadHint
from artifactstore.service import ArtifactService, build_service

T = TypeVar("T")


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for CLI.

    Logs go to stderr: stdout carries command output such as upload records.
    """
    configure_logging(log_level=level, stream="ext://sys.stderr")


def _parse_record(record: str | dict[str, Any]) -> dict[str, Any]:
    # fire already parses JSON-looking arguments into dicts.
    if isinstance(record, dict):
        return record
    text = record if record.lstrip().startswith("{") else Path(record).read_text()
    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError("record must be a JSON object")
    return parsed


def _run(config: str, action: Callable[[ArtifactService], Awaitable[T]]) -> T:
    try:
        cfg = load_config(Path(config))
    except ConfigError as e:
        print(f"✗ Config invalid: {e}", file=sys.stderr)
        sys.exit(1)

    async def _main() -> T:
        service = build_service(cfg)
        try:
            return await action(service)
        finally:
            await service.shutdown()

    try:
        return asyncio.run(_main())
    except (ArtifactError, ConfigError) as e:
        print(f"✗ {e}", file=sys.stderr)
        sys.exit(1)


class ArtifactStore:
    """artifactstore CLI - upload and retrieve stored artifacts."""

    def upload(
        self,
        file: str,
        config: str = "config.yaml",
        mime: str | None = None,
        hint: str | None = None,
        folder: str | None = None,
        log_level: str = "INFO",
    ) -> None:
        """Upload a local file and print the descriptor to persist.

        Args:
            file: Path to the file to upload
            config: Path to YAML config file
            mime: Declared MIME type (guessed from the name if omitted)
            hint: Upload use-case (document, gallery_image, attachment)
            folder: Store folder override
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        setup_logging(log_level)
        source = Path(file)
        declared = mime or mimetypes.guess_type(source.name)[0] or "application/octet-stream"
        upload_hint = UploadHint(hint) if hint else None

        result = _run(
            config,
            lambda service: service.upload(
                source, source.name, declared, upload_hint, folder=folder
            ),
        )
        descriptor = result.to_descriptor(original_name=source.name, mime_type=declared)
        print(descriptor.model_dump_json(indent=2))

    def download(
        self,
        record: str,
        config: str = "config.yaml",
        view: bool = False,
        log_level: str = "INFO",
    ) -> None:
        """Fetch an artifact and save it through the configured host.

        Args:
            record: File record as JSON, or a path to a JSON file
            config: Path to YAML config file
            view: Fetch for viewing rather than as an attachment
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        setup_logging(log_level)
        raw = _parse_record(record)
        intent = DeliveryIntent.VIEW if view else DeliveryIntent.DOWNLOAD
        outcome = _run(config, lambda service: service.download(raw, intent))
        print(f"✓ Saved {outcome.receipt.file_name} -> {outcome.receipt.location}")
        for warning in outcome.payload.warnings:
            print(f"! {warning}", file=sys.stderr)

    def view_url(self, record: str, config: str = "config.yaml") -> None:
        """Print the URL to open an artifact for viewing.

        Args:
            record: File record as JSON, or a path to a JSON file
            config: Path to YAML config file
        """
        raw = _parse_record(record)

        async def _view(service: ArtifactService) -> str:
            return service.view_url(raw)

        print(_run(config, _view))

    def delete(self, record: str, config: str = "config.yaml", log_level: str = "INFO") -> None:
        """Best-effort delete of an artifact's remote object.

        Args:
            record: File record as JSON, or a path to a JSON file
            config: Path to YAML config file
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        setup_logging(log_level)
        raw = _parse_record(record)
        result = _run(config, lambda service: service.discard(raw))
        if result is None:
            print("Nothing to delete in the remote store")
        elif result.deleted:
            print(f"✓ Deleted {result.store_id}")
        else:
            print(f"✗ Delete failed for {result.store_id}: {result.error}", file=sys.stderr)

    def validate(self, config: str) -> None:
        """Validate config file without running.

        Args:
            config: Path to YAML config file
        """
        try:
            cfg = load_config(Path(config))
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        print(f"✓ Config valid: {config}")
        print(f"  Store: {cfg.store.backend}")
        print(f"  Upload folder: {cfg.upload.folder}")
        print(f"  Legacy base URL: {cfg.legacy.base_url}")
        print(f"  Delivery host: {cfg.delivery.host}")


def main() -> None:
    """Main CLI entrypoint."""
    # Strip --help/-h when it's the only arg so Fire shows its commands list
    if len(sys.argv) == 2 and sys.argv[1] in ("--help", "-h"):
        sys.argv.pop()
    fire.Fire(ArtifactStore)


if __name__ == "__main__":
    main()
