"""Local file payloads and upload results."""

from __future__ import annotations

import mimetypes
from pathlib import Path

from pydantic import BaseModel


class LocalFile(BaseModel):
    """A file picked by the user that has not been uploaded yet."""

    name: str
    content_type: str
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path, content_type: str | None = None) -> LocalFile:
        """Read *path* into memory, guessing the content type from its name."""
        guessed = content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, content_type=guessed, data=path.read_bytes())

    def __repr__(self) -> str:
        return f"LocalFile(name={self.name!r}, content_type={self.content_type!r}, size={self.size})"


class UploadedMedia(BaseModel):
    """Remote descriptor returned by the upload collaborator."""

    url: str
    thumbnail_url: str | None = None
