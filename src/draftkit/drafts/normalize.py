"""Field-by-field coercion of stored or remote draft data.

Stored drafts may come from older versions, be hand-edited, or be cut
short by a failed write.  ``coerce_draft`` never rejects a document
because of one bad field: each field falls back to its documented
default so the rest of the draft survives.

Fallbacks:
    strings               -> ""
    price, original_price -> 0
    optional ids / counts -> None
    active                -> True
    featured              -> False
    status                -> "draft"
    id lists              -> numeric entries only
    item / attachment ids -> fresh client id
    media kind            -> "image"
    duration              -> normalized for videos, None for images
    updated_at            -> now
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from draftkit.drafts.models import (
    AttachmentDescriptor,
    Draft,
    DraftStatus,
    MediaKind,
    StagedMediaItem,
    new_client_id,
    renumber,
    utc_now,
)


def normalize_duration(value: Any) -> float | None:
    """Parse a duration in seconds from a number, numeric string, or ``mm:ss``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    if ":" in text:
        minutes, _, seconds = text.partition(":")
        m = _as_number(minutes.strip())
        s = _as_number(seconds.strip())
        if m is None or s is None:
            return None
        return m * 60 + s
    return _as_number(text)


def _as_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def _as_float(value: Any, fallback: float = 0) -> float:
    number = _as_number(value)
    return fallback if number is None else number


def _as_optional_int(value: Any) -> int | None:
    number = _as_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _as_optional_id(value: Any) -> int | None:
    number = _as_optional_int(value)
    if number is None or number <= 0:
        return None
    return number


def _as_bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _as_id_list(value: Any) -> list[int]:
    if not isinstance(value, list):
        return []
    ids: list[int] = []
    for entry in value:
        number = _as_optional_int(entry)
        if number is not None:
            ids.append(number)
    return ids


def _as_client_id(value: Any) -> str:
    text = _as_str(value).strip()
    return text or new_client_id()


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return utc_now()
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return utc_now()


def _as_status(value: Any) -> DraftStatus:
    try:
        return DraftStatus(str(value))
    except ValueError:
        return DraftStatus.DRAFT


def _as_kind(value: Any) -> MediaKind:
    try:
        return MediaKind(str(value))
    except ValueError:
        return MediaKind.IMAGE


def coerce_media_item(raw: Mapping[str, Any]) -> StagedMediaItem:
    kind = _as_kind(raw.get("kind", raw.get("type")))
    duration = normalize_duration(raw.get("duration")) if kind is MediaKind.VIDEO else None
    return StagedMediaItem(
        id=_as_client_id(raw.get("id")),
        kind=kind,
        url=_as_str(raw.get("url")),
        thumbnail_url=_as_str(raw.get("thumbnail_url")),
        title=_as_str(raw.get("title")),
        caption=_as_str(raw.get("caption")),
        duration=duration,
        sort_order=_as_optional_int(raw.get("sort_order")) or 0,
    )


def coerce_attachment(raw: Mapping[str, Any]) -> AttachmentDescriptor:
    size = _as_number(raw.get("file_size_mb"))
    return AttachmentDescriptor(
        id=_as_client_id(raw.get("id")),
        file_type_id=_as_optional_id(raw.get("file_type_id")),
        file_name=_as_str(raw.get("file_name")),
        file_path=_as_str(raw.get("file_path")),
        file_size_mb=size,
        description=_as_str(raw.get("description")),
    )


def coerce_draft(raw: Mapping[str, Any]) -> Draft:
    """Build a Draft from loosely-shaped data, never raising."""
    gallery_raw = raw.get("gallery", raw.get("previews"))
    gallery_items = (
        [coerce_media_item(entry) for entry in gallery_raw if isinstance(entry, Mapping)]
        if isinstance(gallery_raw, list)
        else []
    )

    attachments_raw = raw.get("attachments")
    attachments = (
        [coerce_attachment(entry) for entry in attachments_raw if isinstance(entry, Mapping)]
        if isinstance(attachments_raw, list)
        else []
    )

    polygon_count = _as_optional_int(raw.get("polygon_count"))
    if polygon_count is not None and polygon_count < 0:
        polygon_count = None

    return Draft(
        draft_id=_as_client_id(raw.get("draft_id")),
        title=_as_str(raw.get("title")),
        slug=_as_str(raw.get("slug")),
        description=_as_str(raw.get("description")),
        price=_as_float(raw.get("price"), 0),
        original_price=_as_float(raw.get("original_price"), 0),
        active=_as_bool(raw.get("active"), True),
        featured=_as_bool(raw.get("featured"), False),
        status=_as_status(raw.get("status")),
        accent_color=_as_str(raw.get("accent_color")),
        polygon_count=polygon_count,
        category_id=_as_optional_id(raw.get("category_id")),
        author_id=_as_optional_id(raw.get("author_id")),
        cover_image_url=_as_str(raw.get("cover_image_url", raw.get("image_url"))),
        gallery=renumber(gallery_items),
        attachments=attachments,
        tag_ids=_as_id_list(raw.get("tag_ids", raw.get("tags"))),
        related_ids=_as_id_list(raw.get("related_ids")),
        updated_at=_as_datetime(raw.get("updated_at")),
    )
