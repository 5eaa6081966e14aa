"""Directory-backed uploader for local development and demos."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

from draftkit.errors import PersistenceError
from draftkit.media.files import LocalFile, UploadedMedia

logger = logging.getLogger(__name__)


class DirectoryUploader:
    """Writes uploaded files under a directory and returns their URLs.

    URLs are ``<base_url>/<stored name>`` when a base URL is given,
    otherwise ``file://`` URIs.
    """

    def __init__(self, directory: Path, base_url: str = "") -> None:
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")

    def _write(self, file: LocalFile) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / f"{uuid.uuid4().hex[:12]}-{Path(file.name).name}"
        try:
            target.write_bytes(file.data)
        except OSError as exc:
            raise PersistenceError(f"Cannot store {file.name}: {exc}") from exc
        return target

    async def upload(self, file: LocalFile) -> UploadedMedia:
        target = await asyncio.to_thread(self._write, file)
        logger.info("Stored upload %s at %s", file.name, target)
        if self.base_url:
            return UploadedMedia(url=f"{self.base_url}/{target.name}")
        return UploadedMedia(url=target.resolve().as_uri())
