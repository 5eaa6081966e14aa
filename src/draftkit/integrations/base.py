"""Collaborator interfaces consumed by the upload and publish flow."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from draftkit.media.files import LocalFile, UploadedMedia


@runtime_checkable
class Uploader(Protocol):
    """Persists one local file remotely.

    Implementations raise on failure; the message is shown to the user.
    """

    async def upload(self, file: LocalFile) -> UploadedMedia: ...


@runtime_checkable
class EntityApi(Protocol):
    """Create, update and fetch the entity being authored.

    Implementations raise ``draftkit.errors.ApiError`` for rejected
    requests.
    """

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, entity_id: int | str, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def get_by_id(self, entity_id: int | str) -> dict[str, Any]: ...
