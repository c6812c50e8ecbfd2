"""
Process-local, revocable handles for resolved payloads.

Each resolved payload is written to its own file inside the store's
directory and exposed to the rendering layer as a ``file://`` URI. Releasing
a handle deletes the file and revokes the URI, so a released handle can no
longer be read through the store.
"""

import asyncio
import logging
import mimetypes
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class LocalHandle:
    """
    Resolved payload materialized on local disk.

    Attributes:
        key: ResourceKey the payload was resolved for
        path: File holding the payload
        content_type: MIME type reported by the resource server
        size: Payload size in bytes
        released: True once the handle has been revoked
    """

    key: str
    path: Path
    content_type: str | None
    size: int
    released: bool = False

    @property
    def uri(self) -> str:
        return self.path.as_uri()


class HandleStore:
    """
    Creates and revokes LocalHandles.

    When no directory is given a private temporary directory is created on
    first use and removed again by close().
    """

    def __init__(self, root: Path | str | None = None):
        self._root = Path(root) if root else None
        self._owns_root = root is None
        self._live: dict[str, LocalHandle] = {}

    @property
    def root(self) -> Path:
        if self._root is None:
            self._root = Path(tempfile.mkdtemp(prefix="secure-assets-"))
        else:
            self._root.mkdir(parents=True, exist_ok=True)
        return self._root

    @property
    def live_count(self) -> int:
        return len(self._live)

    @staticmethod
    def _suffix_for(content_type: str | None) -> str:
        if not content_type:
            return ""
        return mimetypes.guess_extension(content_type.split(";")[0].strip()) or ""

    async def create(self, key: str, payload: bytes, content_type: str | None = None) -> LocalHandle:
        """Write payload to a new file and register its handle."""
        path = self.root / f"{uuid.uuid4().hex}{self._suffix_for(content_type)}"
        await asyncio.to_thread(path.write_bytes, payload)

        handle = LocalHandle(key=key, path=path, content_type=content_type, size=len(payload))
        self._live[handle.uri] = handle
        logger.debug(
            "Created local handle",
            extra={"resource_key": key, "handle_uri": handle.uri, "bytes_downloaded": handle.size},
        )
        return handle

    def release(self, handle: LocalHandle) -> None:
        """Revoke a handle and delete its payload. Releasing twice is a no-op."""
        if handle.released:
            return
        handle.released = True
        self._live.pop(handle.uri, None)
        handle.path.unlink(missing_ok=True)

    def get(self, uri: str) -> LocalHandle | None:
        return self._live.get(uri)

    def is_live(self, uri: str) -> bool:
        return uri in self._live

    async def read(self, uri: str) -> bytes:
        """
        Read the payload behind a live handle URI.

        Raises:
            KeyError: If the URI is unknown or has been released
        """
        handle = self._live.get(uri)
        if handle is None:
            raise KeyError(f"Handle not found or released: {uri}")
        return await asyncio.to_thread(handle.path.read_bytes)

    def close(self) -> None:
        """Release every live handle and remove a store-owned directory."""
        for handle in list(self._live.values()):
            self.release(handle)
        if self._owns_root and self._root is not None:
            shutil.rmtree(self._root, ignore_errors=True)
            self._root = None


__all__ = ["LocalHandle", "HandleStore"]
