"""Filesystem delivery host: HTTP fetch via aiohttp, saves files into a directory."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

aiohttp: Any

try:
    import aiohttp as _aiohttp
except Exception:
    aiohttp = None
else:
    aiohttp = _aiohttp

from artifactstore.delivery import TransientHandle
from artifactstore.errors import FetchError
from artifactstore.interfaces import Environment, HttpResponse
from artifactstore.models.config import FilesystemHostConfig
from artifactstore.plugins.registry import PluginType, plugin

logger = logging.getLogger(__name__)


def _ensure_aiohttp_dependencies() -> None:
    """Fail fast with a clear error if aiohttp is missing."""
    if aiohttp is None:
        raise RuntimeError(
            "Missing dependency for filesystem host. Install with: uv pip install aiohttp"
        )


@plugin(plugin_type=PluginType.HOST, name="filesystem")
class FilesystemHost(Environment):
    """Host for CLI use: downloads over HTTP and writes delivered files to disk."""

    config_cls = FilesystemHostConfig

    @classmethod
    def create(cls, config: FilesystemHostConfig) -> Environment:
        return cls(config)

    def __init__(self, config: FilesystemHostConfig) -> None:
        _ensure_aiohttp_dependencies()
        self.download_dir = Path(config.download_dir).expanduser()
        self._notify_stderr = config.notify_stderr
        self._timeout_s = config.timeout_s
        self._session: aiohttp.ClientSession | None = None
        self._shutdown_called = False

    async def fetch_bytes(self, url: str, headers: Mapping[str, str]) -> HttpResponse:
        """Single GET without credentials or cookies; no retry."""
        if self._shutdown_called:
            raise RuntimeError("Host has been shut down")

        parts = urlsplit(url)
        if parts.scheme == "file":
            return await asyncio.to_thread(self._read_local, Path(unquote(parts.path)))

        session = await self._get_session()
        try:
            async with session.get(url, headers=dict(headers), allow_redirects=True) as response:
                body = await response.read()
                return HttpResponse(
                    status=response.status,
                    body=body,
                    content_type=response.headers.get("Content-Type"),
                )
        except asyncio.TimeoutError as exc:
            raise FetchError(url, None, cause=exc, message="Request timed out") from exc
        except aiohttp.ClientError as exc:
            raise FetchError(url, None, cause=exc) from exc

    def notify_user(self, message: str) -> None:
        logger.info("User notice: %s", message)
        if self._notify_stderr:
            print(message, file=sys.stderr)

    async def present_file(self, handle: TransientHandle, name: str) -> str:
        """Write the handle's bytes to the download directory without overwriting."""
        if Path(name).name != name or name in (".", ".."):
            raise ValueError(f"Invalid file name: {name}")
        dest = await asyncio.to_thread(self._write_unique, name, handle.read())
        logger.info("Saved %s (%d bytes)", dest, handle.size)
        return str(dest)

    async def shutdown(self, timeout: float | None = None) -> None:
        """Cleanup resources - close HTTP session."""
        _ = timeout
        if self._shutdown_called:
            return
        self._shutdown_called = True

        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            _ensure_aiohttp_dependencies()
            timeout = aiohttp.ClientTimeout(total=self._timeout_s)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                cookie_jar=aiohttp.DummyCookieJar(),
            )
        return self._session

    def _read_local(self, path: Path) -> HttpResponse:
        if not path.is_file():
            return HttpResponse(status=404, body=b"")
        return HttpResponse(status=200, body=path.read_bytes())

    def _write_unique(self, name: str, data: bytes) -> Path:
        self.download_dir.mkdir(parents=True, exist_ok=True)
        candidate = self.download_dir / name
        stem, suffix = candidate.stem, candidate.suffix
        counter = 1
        while True:
            try:
                with candidate.open("xb") as f:
                    f.write(data)
                return candidate
            except FileExistsError:
                candidate = self.download_dir / f"{stem} ({counter}){suffix}"
                counter += 1
