"""Error hierarchy for artifact storage and retrieval."""

from __future__ import annotations


class ArtifactError(Exception):
    """Base exception for all artifact errors.

    Compatible with error-as-value pattern: instances can be returned as values
    instead of raised. Preserves stack traces via exception chaining.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        artifact_ref: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.artifact_ref = artifact_ref
        self.cause = cause
        self.__cause__ = cause  # Python's exception chaining

    @property
    def user_message(self) -> str:
        """Message safe to show an end user (no credentials or store paths)."""
        return str(self)


class UploadRejectedError(ArtifactError):
    """Incoming file was refused before it reached the store."""

    def __init__(self, original_name: str, reason: str) -> None:
        super().__init__(
            f"Upload rejected for {original_name}: {reason}",
            stage="stage",
            artifact_ref=original_name,
        )
        self.reason = reason

    @property
    def user_message(self) -> str:
        return f"Upload rejected: {self.reason}"


class StoreUploadError(ArtifactError):
    """Remote store put failed (network, auth or quota)."""

    def __init__(self, local_name: str, cause: Exception | None = None) -> None:
        super().__init__(
            f"Store upload failed for {local_name}",
            stage="upload",
            artifact_ref=local_name,
            cause=cause,
        )

    @property
    def user_message(self) -> str:
        return "Failed to upload file"


class InvalidDescriptorError(ArtifactError):
    """Descriptor has no remote URL, legacy file reference or inline payload."""

    def __init__(
        self,
        detail: str = "missing url, file name, file id and data",
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            f"Invalid artifact descriptor: {detail}",
            stage="resolve",
            cause=cause,
        )

    @property
    def user_message(self) -> str:
        return "This file reference is invalid"


class FetchError(ArtifactError):
    """Retrieval returned a non-2xx status or failed in transport."""

    def __init__(
        self,
        url: str | None,
        status: int | None,
        cause: Exception | None = None,
        message: str | None = None,
    ) -> None:
        if message is None:
            message = (
                f"HTTP error! status: {status}" if status is not None else "Network request failed"
            )
        super().__init__(message, stage="fetch", artifact_ref=url, cause=cause)
        self.url = url
        self.status = status

    @property
    def user_message(self) -> str:
        return f"Download failed: {self}"


class EmptyPayloadError(FetchError):
    """Retrieval succeeded but the body was empty."""

    def __init__(self, url: str | None) -> None:
        super().__init__(url, status=None, message="Downloaded file is empty")


class DeliveryError(ArtifactError):
    """Host could not present the file to the user."""

    def __init__(self, file_name: str, cause: Exception | None = None) -> None:
        super().__init__(
            f"Failed to deliver {file_name}",
            stage="deliver",
            artifact_ref=file_name,
            cause=cause,
        )
        self.file_name = file_name

    @property
    def user_message(self) -> str:
        detail = f": {self.cause}" if self.cause is not None else ""
        return f"Failed to save file{detail}"


class ArtifactWarning(UserWarning):
    """Non-fatal condition recorded on results and logged, never raised."""


class ResourceTypeMismatchWarning(ArtifactWarning):
    """Store reported a different resource type than the one requested."""

    def __init__(self, store_id: str, expected: str, actual: str | None) -> None:
        super().__init__(
            f"Store returned resource_type={actual!r} for {store_id}, expected {expected!r}"
        )
        self.store_id = store_id
        self.expected = expected
        self.actual = actual


class ValidationWarning(ArtifactWarning):
    """Fetched content does not carry the expected file signature."""

    def __init__(self, expected: str, header: bytes) -> None:
        super().__init__(f"Content may not be a valid {expected}. First bytes: {header!r}")
        self.expected = expected
        self.header = header
