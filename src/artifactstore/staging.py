"""Local staging of incoming uploads."""

from __future__ import annotations

import logging
import secrets
import shutil
import time
from dataclasses import dataclass
from pathlib import Path, PurePath
from types import TracebackType
from typing import BinaryIO

from artifactstore.errors import UploadRejectedError
from artifactstore.models.config import UploadPolicyConfig

logger = logging.getLogger(__name__)

_COPY_CHUNK = 1024 * 1024


class TempFileGuard:
    """Scoped ownership of a staged file.

    The file is removed on release, which happens on every exit path when the
    guard is used as a context manager.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._released = False

    @classmethod
    def acquire(cls, path: Path | str) -> TempFileGuard:
        return cls(Path(path))

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Remove the file if it still exists. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove staged file %s: %s", self.path, exc)
            return
        logger.debug("Removed staged file: %s", self.path)

    def detach(self) -> Path:
        """Give up ownership without removing the file."""
        self._released = True
        return self.path

    def __enter__(self) -> TempFileGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


@dataclass(frozen=True)
class StagedUpload:
    """A file written to the staging directory, ready for classification."""

    path: Path
    original_name: str
    mime_type: str
    byte_size: int

    def guard(self) -> TempFileGuard:
        return TempFileGuard.acquire(self.path)


def staged_file_name(original_name: str, field_name: str = "file") -> str:
    """Build a unique staging name: `<field>-<epoch_ms>-<random><ext>`."""
    suffix = PurePath(original_name).suffix.lower()
    unique = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"
    return f"{field_name}-{unique}{suffix}"


def check_upload_policy(
    original_name: str, mime_type: str, byte_size: int, policy: UploadPolicyConfig
) -> str:
    """Validate an incoming file against the policy. Returns the normalized MIME type."""
    normalized = (mime_type or "").split(";", 1)[0].strip().lower()
    if normalized not in policy.allowed_mime_types:
        raise UploadRejectedError(original_name, "Only PDF and image files are allowed")
    if byte_size > policy.max_bytes:
        raise UploadRejectedError(
            original_name, f"File exceeds the {policy.max_bytes} byte limit"
        )
    if byte_size == 0:
        raise UploadRejectedError(original_name, "File is empty")
    return normalized


def stage_upload(
    source: bytes | BinaryIO | Path,
    original_name: str,
    mime_type: str,
    policy: UploadPolicyConfig,
    *,
    field_name: str = "file",
) -> StagedUpload:
    """Write an incoming file into the staging directory.

    Raises:
        UploadRejectedError: If the MIME type or size violates the policy. Nothing
            is left in the staging directory in that case.
    """
    if isinstance(source, Path):
        size = source.stat().st_size
        normalized = check_upload_policy(original_name, mime_type, size, policy)
    elif isinstance(source, bytes):
        size = len(source)
        normalized = check_upload_policy(original_name, mime_type, size, policy)
    else:
        # Stream size is unknown until written; the limit is enforced while copying.
        normalized = check_upload_policy(original_name, mime_type, 1, policy)
        size = -1

    staging_dir = policy.staging_path
    staging_dir.mkdir(parents=True, exist_ok=True)
    dest = staging_dir / staged_file_name(original_name, field_name)

    with TempFileGuard.acquire(dest) as guard:
        if isinstance(source, Path):
            shutil.copyfile(source, dest)
        elif isinstance(source, bytes):
            dest.write_bytes(source)
        else:
            size = _copy_limited(source, dest, policy.max_bytes, original_name)
            if size == 0:
                raise UploadRejectedError(original_name, "File is empty")
        guard.detach()

    logger.info(
        "Staged upload: name=%s mime=%s bytes=%d path=%s",
        original_name,
        normalized,
        size,
        dest,
    )
    return StagedUpload(path=dest, original_name=original_name, mime_type=normalized, byte_size=size)


def _copy_limited(stream: BinaryIO, dest: Path, limit: int, original_name: str) -> int:
    written = 0
    with dest.open("wb") as out:
        while True:
            chunk = stream.read(_COPY_CHUNK)
            if not chunk:
                break
            written += len(chunk)
            if written > limit:
                raise UploadRejectedError(original_name, f"File exceeds the {limit} byte limit")
            out.write(chunk)
    return written
