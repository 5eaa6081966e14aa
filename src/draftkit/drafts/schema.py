"""Validation schemas for the catalog item draft."""

from __future__ import annotations

import re
from typing import Any

from draftkit.drafts.models import MediaKind
from draftkit.validation import Schema, custom, hex_color, int_min, min_len, pattern, required

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def _non_negative(value: Any, data: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


def gallery_problems(items: Any) -> list[str]:
    """Describe gallery items that cannot be published as they are."""
    problems: list[str] = []
    for item in items or []:
        if item.kind is MediaKind.VIDEO:
            if not item.url.strip():
                problems.append(f'Video "{item.label}" needs a video link')
            if not (item.thumbnail_url.strip() or item.pending_thumbnail_file):
                problems.append(f'Video "{item.label}" needs a thumbnail')
        elif not (item.url.strip() or item.pending_file):
            problems.append(f'Image "{item.label}" has no image')
    return problems


def _gallery_rule(value: Any, data: Any) -> str | None:
    problems = gallery_problems(value)
    return "; ".join(problems) if problems else None


def _cover_rule(value: Any, data: Any) -> str | None:
    if str(value or "").strip() or getattr(data, "cover_image_file", None) is not None:
        return None
    return "Cover image is required"


def _attachments_rule(value: Any, data: Any) -> str | None:
    for attachment in value or []:
        if not attachment.file_name.strip() or not attachment.file_path.strip():
            return "Every attachment needs a file name and a path"
    return None


DRAFT_SCHEMA: Schema = {
    "title": [required("Title is required"), min_len(3, "Title must be at least 3 characters")],
    "slug": [required("Slug is required"), pattern(SLUG_RE, "Use lowercase letters, digits and hyphens")],
    "cover_image_url": [_cover_rule],
    "price": [custom(_non_negative, "Price cannot be negative")],
    "original_price": [custom(_non_negative, "Original price cannot be negative")],
    "accent_color": [hex_color()],
    "polygon_count": [int_min(0)],
    "category_id": [required("Category is required")],
}

PUBLISH_SCHEMA: Schema = {
    **DRAFT_SCHEMA,
    "description": [required("Description is required to publish")],
    "gallery": [_gallery_rule],
    "attachments": [_attachments_rule],
}
