"""Draft domain models as plain Pydantic v2 data types.

A Draft is the in-progress form of a catalog item: scalar fields, a
cover image, an ordered gallery of staged media, attachment records and
foreign-key id lists.  Fields named ``pending_*`` / ``cover_image_file``
carry local file payloads that exist only for the editing session and
are excluded from every serialization.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from draftkit.media.files import LocalFile
from pydantic import BaseModel, Field


def new_client_id() -> str:
    """Stable client-side id, independent of any backend id."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class MediaKind(StrEnum):
    """Kind of gallery entry."""

    IMAGE = "image"
    VIDEO = "video"


class DraftStatus(StrEnum):
    """Publication status carried by the entity."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class StagedMediaItem(BaseModel):
    """One ordered gallery entry.

    ``url`` and ``thumbnail_url`` each hold a remote reference, an
    ephemeral local handle, or ``""``.  For videos the thumbnail is the
    required artifact and ``url`` is an externally supplied link.
    """

    id: str = Field(default_factory=new_client_id)
    kind: MediaKind = MediaKind.IMAGE
    url: str = ""
    thumbnail_url: str = ""
    title: str = ""
    caption: str = ""
    duration: float | None = None
    sort_order: int = 1

    pending_file: LocalFile | None = Field(default=None, exclude=True)
    pending_thumbnail_file: LocalFile | None = Field(default=None, exclude=True)

    @property
    def label(self) -> str:
        """Display label used in error messages."""
        return self.title.strip() or self.caption.strip() or f"item {self.sort_order}"

    def without_pending(self) -> StagedMediaItem:
        return self.model_copy(update={"pending_file": None, "pending_thumbnail_file": None})


class AttachmentDescriptor(BaseModel):
    """Flat record of an auxiliary file uploaded by a separate flow."""

    id: str = Field(default_factory=new_client_id)
    file_type_id: int | None = None
    file_name: str = ""
    file_path: str = ""
    file_size_mb: float | None = None
    description: str = ""


class Draft(BaseModel):
    """In-progress catalog item."""

    draft_id: str = Field(default_factory=new_client_id)

    title: str = ""
    slug: str = ""
    description: str = ""
    price: float = 0
    original_price: float = 0
    active: bool = True
    featured: bool = False
    status: DraftStatus = DraftStatus.DRAFT
    accent_color: str = ""
    polygon_count: int | None = None

    category_id: int | None = None
    author_id: int | None = None

    cover_image_url: str = ""
    cover_image_file: LocalFile | None = Field(default=None, exclude=True)

    gallery: list[StagedMediaItem] = Field(default_factory=list)
    attachments: list[AttachmentDescriptor] = Field(default_factory=list)
    tag_ids: list[int] = Field(default_factory=list)
    related_ids: list[int] = Field(default_factory=list)

    updated_at: datetime = Field(default_factory=utc_now)


def renumber(items: list[StagedMediaItem]) -> list[StagedMediaItem]:
    """Return copies of *items* with dense 1-based ``sort_order``."""
    return [item.model_copy(update={"sort_order": index}) for index, item in enumerate(items, start=1)]
