"""Draft domain models, tolerant decoding, local persistence and schemas.

The controller that ties drafts to staging and uploads lives in
``draftkit.drafts.controller`` and is imported from there.
"""

from draftkit.drafts.models import (
    AttachmentDescriptor,
    Draft,
    DraftStatus,
    MediaKind,
    StagedMediaItem,
)
from draftkit.drafts.normalize import coerce_draft, normalize_duration
from draftkit.drafts.payload import EntityPayload, MediaPayloadItem, build_payload
from draftkit.drafts.schema import DRAFT_SCHEMA, PUBLISH_SCHEMA
from draftkit.drafts.store import (
    NEW_ENTITY,
    DraftStore,
    JsonFileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    draft_key,
)

__all__ = [
    "DRAFT_SCHEMA",
    "NEW_ENTITY",
    "PUBLISH_SCHEMA",
    "AttachmentDescriptor",
    "Draft",
    "DraftStatus",
    "DraftStore",
    "EntityPayload",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "MediaKind",
    "MediaPayloadItem",
    "MemoryKeyValueStore",
    "StagedMediaItem",
    "build_payload",
    "coerce_draft",
    "draft_key",
    "normalize_duration",
]
