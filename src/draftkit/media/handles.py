"""Ephemeral local handles and reference classification.

A media field holds one of three things: a remote reference, an
ephemeral local handle pointing at a staged file, or nothing.
``MediaRef.parse`` is the single place that tells them apart; handles
are recognised by the allocator's reserved prefix.
"""

from __future__ import annotations

import logging
import uuid
from enum import StrEnum
from typing import Protocol, runtime_checkable

from draftkit.config import DEFAULT_HANDLE_PREFIX
from draftkit.media.files import LocalFile
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class RefKind(StrEnum):
    """Which branch of the remote / local / empty union a field holds."""

    REMOTE = "remote"
    LOCAL = "local"
    EMPTY = "empty"


class MediaRef(BaseModel, frozen=True):
    """Tagged view over a media url field."""

    kind: RefKind
    value: str = ""

    @classmethod
    def parse(cls, value: str | None, prefix: str = DEFAULT_HANDLE_PREFIX) -> MediaRef:
        text = (value or "").strip()
        if not text:
            return cls(kind=RefKind.EMPTY)
        if text.startswith(prefix):
            return cls(kind=RefKind.LOCAL, value=text)
        return cls(kind=RefKind.REMOTE, value=text)

    @property
    def is_remote(self) -> bool:
        return self.kind is RefKind.REMOTE

    @property
    def is_local(self) -> bool:
        return self.kind is RefKind.LOCAL

    @property
    def is_empty(self) -> bool:
        return self.kind is RefKind.EMPTY


@runtime_checkable
class HandleAllocator(Protocol):
    """Creates and frees preview handles for staged files."""

    prefix: str

    def allocate(self, file: LocalFile) -> str: ...

    def release(self, handle: str) -> None: ...


class LocalHandleAllocator:
    """In-process allocator issuing ``<prefix><uuid>`` handles.

    Tracks which handles are live so double or foreign releases are
    logged instead of counted.
    """

    def __init__(self, prefix: str = DEFAULT_HANDLE_PREFIX) -> None:
        self.prefix = prefix
        self._live: dict[str, str] = {}
        self.allocated_count = 0
        self.released_count = 0

    def allocate(self, file: LocalFile) -> str:
        handle = f"{self.prefix}{uuid.uuid4()}"
        self._live[handle] = file.name
        self.allocated_count += 1
        logger.debug("Allocated handle %s for %s", handle, file.name)
        return handle

    def release(self, handle: str) -> None:
        name = self._live.pop(handle, None)
        if name is None:
            logger.warning("Release of unknown or already released handle %s", handle)
            return
        self.released_count += 1
        logger.debug("Released handle %s (%s)", handle, name)

    @property
    def live_handles(self) -> set[str]:
        return set(self._live)
