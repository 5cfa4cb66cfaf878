"""Shared pytest fixtures for artifactstore tests."""

from __future__ import annotations

import sys
from pathlib import Path

# Add src to sys.path for imports
src_path = Path(__file__).parent.parent.parent / "src"
if str(src_path.resolve()) not in sys.path:
    sys.path.insert(0, str(src_path.resolve()))

import pytest

from artifactstore.models.config import (
    Config,
    DeliveryConfig,
    LegacyServerConfig,
    UploadPolicyConfig,
)
from artifactstore.service import ArtifactService
from tests.artifactstore.mocks import MockEnvironment, MockStore

LEGACY_BASE_URL = "https://app.example.test/api"

# Minimal well-formed PDF body, as produced by most writers.
PDF_BYTES = (
    b"%PDF-1.4\n"
    b"1 0 obj << /Type /Catalog /Pages 2 0 R >> endobj\n"
    b"2 0 obj << /Type /Pages /Kids [] /Count 0 >> endobj\n"
    b"trailer << /Root 1 0 R >>\n"
    b"%%EOF\n"
)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def pdf_bytes() -> bytes:
    """Return a small PDF payload."""
    return PDF_BYTES


@pytest.fixture
def png_bytes() -> bytes:
    """Return a small PNG payload."""
    return PNG_BYTES


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    """Return an empty staging directory."""
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def upload_policy(staging_dir: Path) -> UploadPolicyConfig:
    """Return an upload policy that stages into tmp_path."""
    return UploadPolicyConfig(folder="artifacts", staging_dir=str(staging_dir))


@pytest.fixture
def app_config(upload_policy: UploadPolicyConfig) -> Config:
    """Return a Config wired to the test staging dir and legacy server."""
    return Config(
        upload=upload_policy,
        legacy=LegacyServerConfig(base_url=LEGACY_BASE_URL),
        delivery=DeliveryConfig(release_delay_s=0.01),
    )


@pytest.fixture
def mock_store() -> MockStore:
    """Return a MockStore with default config."""
    return MockStore()


@pytest.fixture
def mock_env(mock_store: MockStore) -> MockEnvironment:
    """Return a MockEnvironment that serves objects held by mock_store."""
    return MockEnvironment(fallback=mock_store.serve)


@pytest.fixture
def service(app_config: Config, mock_store: MockStore, mock_env: MockEnvironment) -> ArtifactService:
    """Return an ArtifactService over the mock store and environment."""
    return ArtifactService(app_config, mock_store, mock_env)
