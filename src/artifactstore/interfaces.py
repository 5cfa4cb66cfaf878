"""Interface definitions for the remote store and the delivery host."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from artifactstore.delivery import TransientHandle
    from artifactstore.models.enums import ResourceType
    from artifactstore.models.storage import DeleteResult, StoreOptions, UploadResult


class Shutdownable(ABC):
    """Async shutdown interface for managed components."""

    @abstractmethod
    async def shutdown(self, timeout: float | None = None) -> None:
        """Release resources and stop background work."""
        raise NotImplementedError


class RemoteStore(Shutdownable, ABC):
    """Client of the remote object store."""

    @property
    @abstractmethod
    def base_delivery_url(self) -> str:
        """Base of delivery URLs, i.e. everything before the resource-type segment."""
        raise NotImplementedError

    @abstractmethod
    async def put(self, local_path: Path, options: StoreOptions) -> UploadResult:
        """Upload a staged file.

        Implementation notes:
        - MUST compare the reported resource type with options.resource_type and
          record a ResourceTypeMismatchWarning on mismatch
        - MUST return a delivery URL normalized for the requested resource type
        - Does not remove local_path; the caller owns the staged file

        Raises:
            StoreUploadError: On transport, auth or quota failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, store_id: str, resource_type: ResourceType) -> DeleteResult:
        """Delete an object from the store.

        Best-effort: never raises. Failures are logged and reported in the result.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Health check. Returns True if the store is reachable."""
        raise NotImplementedError


@dataclass(frozen=True)
class HttpResponse:
    """Raw result of a single GET."""

    status: int
    body: bytes
    content_type: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Environment(Shutdownable, ABC):
    """Host capabilities used by the read path.

    Production binds these to real network and OS primitives; tests bind them
    to in-memory fakes.
    """

    @abstractmethod
    async def fetch_bytes(self, url: str, headers: Mapping[str, str]) -> HttpResponse:
        """Issue one GET without credentials.

        Returns the response for any HTTP status. Raises FetchError only when no
        response was received at all.
        """
        raise NotImplementedError

    @abstractmethod
    def notify_user(self, message: str) -> None:
        """Show a message to the user."""
        raise NotImplementedError

    @abstractmethod
    async def present_file(self, handle: TransientHandle, name: str) -> str:
        """Present the handle's bytes to the user as file `name`.

        Returns a host-specific location (path, URL). Raises on failure.
        """
        raise NotImplementedError
