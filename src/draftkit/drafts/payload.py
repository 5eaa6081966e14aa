"""Submission payload sent to the entity API."""

from __future__ import annotations

from draftkit.config import DEFAULT_HANDLE_PREFIX
from draftkit.drafts.models import Draft, DraftStatus, MediaKind
from draftkit.errors import StagingContractError
from draftkit.media.handles import MediaRef
from pydantic import BaseModel, Field


class MediaPayloadItem(BaseModel):
    """Flattened gallery entry as the backend receives it."""

    kind: MediaKind
    url: str
    thumbnail_url: str
    title: str = ""
    caption: str = ""
    duration: float | None = None
    sort_order: int


class AttachmentPayloadItem(BaseModel):
    file_type_id: int | None = None
    file_name: str
    file_path: str
    file_size_mb: float | None = None
    description: str = ""


class EntityPayload(BaseModel):
    """The draft minus transient and client-only fields."""

    title: str
    slug: str
    description: str = ""
    price: float = 0
    original_price: float = 0
    active: bool = True
    featured: bool = False
    status: DraftStatus = DraftStatus.DRAFT
    accent_color: str | None = None
    polygon_count: int | None = None
    category_id: int | None = None
    author_id: int | None = None
    cover_image_url: str
    gallery: list[MediaPayloadItem] = Field(default_factory=list)
    attachments: list[AttachmentPayloadItem] = Field(default_factory=list)
    tag_ids: list[int] = Field(default_factory=list)
    related_ids: list[int] = Field(default_factory=list)


def build_payload(draft: Draft, handle_prefix: str = DEFAULT_HANDLE_PREFIX) -> EntityPayload:
    """Flatten a fully resolved draft into the API payload.

    Raises StagingContractError if any local preview handle is left.
    """
    if MediaRef.parse(draft.cover_image_url, handle_prefix).is_local:
        raise StagingContractError("Cover image has not been uploaded")

    gallery: list[MediaPayloadItem] = []
    for position, item in enumerate(draft.gallery, start=1):
        for value in (item.url, item.thumbnail_url):
            if MediaRef.parse(value, handle_prefix).is_local:
                raise StagingContractError(f'Gallery item "{item.label}" has not been uploaded')
        gallery.append(
            MediaPayloadItem(
                kind=item.kind,
                url=item.url,
                thumbnail_url=item.thumbnail_url,
                title=item.title,
                caption=item.caption,
                duration=item.duration if item.kind is MediaKind.VIDEO else None,
                sort_order=position,
            )
        )

    return EntityPayload(
        title=draft.title.strip(),
        slug=draft.slug.strip(),
        description=draft.description,
        price=draft.price,
        original_price=draft.original_price,
        active=draft.active,
        featured=draft.featured,
        status=draft.status,
        accent_color=draft.accent_color.strip() or None,
        polygon_count=draft.polygon_count,
        category_id=draft.category_id,
        author_id=draft.author_id,
        cover_image_url=draft.cover_image_url,
        gallery=gallery,
        attachments=[
            AttachmentPayloadItem(
                file_type_id=attachment.file_type_id,
                file_name=attachment.file_name,
                file_path=attachment.file_path,
                file_size_mb=attachment.file_size_mb,
                description=attachment.description,
            )
            for attachment in draft.attachments
        ],
        tag_ids=list(draft.tag_ids),
        related_ids=list(draft.related_ids),
    )
