"""Draftkit: draft authoring with staged media uploads.

Drafts are edited locally, validated on every change, saved to a
durable key-value store while valid, and published only after every
staged local file has been uploaded and replaced by its remote
reference.
"""

from draftkit.config import DraftkitConfig, load_config
from draftkit.drafts import (
    DRAFT_SCHEMA,
    PUBLISH_SCHEMA,
    Draft,
    DraftStore,
    JsonFileKeyValueStore,
    MediaKind,
    MemoryKeyValueStore,
    StagedMediaItem,
    draft_key,
)
from draftkit.drafts.controller import DraftController, PublishResult, ResultKind
from draftkit.errors import (
    ApiError,
    DraftkitError,
    InvalidMediaFileError,
    PersistenceError,
    StagingContractError,
    UploadError,
)
from draftkit.integrations import DirectoryUploader, EntityApi, Uploader
from draftkit.media.files import LocalFile, UploadedMedia
from draftkit.media.handles import LocalHandleAllocator, MediaRef, RefKind
from draftkit.media.orchestrator import UploadOrchestrator
from draftkit.media.staging import CoverImageSlot, MediaStagingManager, Slot
from draftkit.validation import ValidationResult, validate

__version__ = "0.1.0"

__all__ = [
    "DRAFT_SCHEMA",
    "PUBLISH_SCHEMA",
    "ApiError",
    "CoverImageSlot",
    "DirectoryUploader",
    "Draft",
    "DraftController",
    "DraftStore",
    "DraftkitConfig",
    "DraftkitError",
    "EntityApi",
    "InvalidMediaFileError",
    "JsonFileKeyValueStore",
    "LocalFile",
    "LocalHandleAllocator",
    "MediaKind",
    "MediaRef",
    "MediaStagingManager",
    "MemoryKeyValueStore",
    "PersistenceError",
    "PublishResult",
    "RefKind",
    "ResultKind",
    "Slot",
    "StagedMediaItem",
    "StagingContractError",
    "UploadError",
    "UploadOrchestrator",
    "UploadedMedia",
    "Uploader",
    "ValidationResult",
    "__version__",
    "draft_key",
    "load_config",
    "validate",
]
