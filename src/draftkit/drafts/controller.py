"""Editing-session controller.

Composes validation, local persistence, media staging and the upload
orchestrator into the surface a form binds to.  Every mutation
revalidates the draft; a draft that validates cleanly is saved to the
local store right away, an invalid one never overwrites the last good
snapshot.  ``publish`` and ``update`` never raise: every outcome comes
back as a ``PublishResult``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum
from typing import Any

from draftkit.config import DEFAULT_HANDLE_PREFIX, DraftkitConfig
from draftkit.drafts.models import Draft, StagedMediaItem, utc_now
from draftkit.drafts.normalize import coerce_draft
from draftkit.drafts.payload import build_payload
from draftkit.drafts.schema import DRAFT_SCHEMA, PUBLISH_SCHEMA
from draftkit.drafts.store import DraftStore, KeyValueStore, draft_key
from draftkit.errors import (
    ApiError,
    StagingContractError,
    UploadError,
    describe_api_error,
)
from draftkit.integrations.base import EntityApi, Uploader
from draftkit.media.files import LocalFile
from draftkit.media.handles import HandleAllocator, LocalHandleAllocator
from draftkit.media.orchestrator import UploadOrchestrator
from draftkit.media.staging import CoverImageSlot, MediaStagingManager
from draftkit.validation import FieldErrors, Schema, ValidationResult, validate
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Something went wrong preparing your files. Please try again."
_READ_ONLY_FIELDS = {"gallery", "cover_image_url", "cover_image_file", "draft_id", "updated_at"}


class ResultKind(StrEnum):
    SUCCESS = "success"
    VALIDATION = "validation"
    API = "api"


class FailureKind(StrEnum):
    """What went wrong in a non-validation failure."""

    STAGING = "staging"
    UPLOAD = "upload"
    API = "api"


class PublishResult(BaseModel):
    """Uniform outcome of ``publish`` / ``update``.

    ``field_errors`` feeds inline messages, ``message`` feeds a toast.
    """

    kind: ResultKind
    entity: dict[str, Any] | None = None
    field_errors: FieldErrors = Field(default_factory=dict)
    message: str = ""
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.kind is ResultKind.SUCCESS


class DraftController:
    """One editing session for one draft key."""

    def __init__(
        self,
        key: str,
        store: DraftStore,
        orchestrator: UploadOrchestrator,
        api: EntityApi,
        media: MediaStagingManager,
        cover: CoverImageSlot,
        *,
        draft: Draft | None = None,
        schema: Schema = DRAFT_SCHEMA,
        publish_schema: Schema = PUBLISH_SCHEMA,
        autosave: bool = True,
        skip_unchanged: bool = True,
        handle_prefix: str = DEFAULT_HANDLE_PREFIX,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.key = key
        self._store = store
        self._orchestrator = orchestrator
        self._api = api
        self.media = media
        self.cover = cover
        self._schema = schema
        self._publish_schema = publish_schema
        self._autosave = autosave
        self._skip_unchanged = skip_unchanged
        self._handle_prefix = handle_prefix
        self._clock = clock or utc_now
        self._touched: set[str] = set()
        self.submit_attempted = False
        self.is_saving = False
        self._last_saved: str | None = None

        initial = draft or Draft(updated_at=self._clock())
        self._hydrate_staging(initial)
        self._draft = initial.model_copy(update={"gallery": self.media.items})
        self.media.on_change = self._on_gallery_change
        self._errors = validate(self._draft, self._schema)

    @classmethod
    def open(
        cls,
        key: str,
        store: DraftStore,
        orchestrator: UploadOrchestrator,
        api: EntityApi,
        media: MediaStagingManager,
        cover: CoverImageSlot,
        **kwargs: Any,
    ) -> DraftController:
        """Start a session, resuming the stored draft for *key* if there is one."""
        draft = store.load(key)
        if draft is not None:
            logger.info("Resuming draft '%s'", key)
        return cls(key, store, orchestrator, api, media, cover, draft=draft, **kwargs)

    @classmethod
    def from_config(
        cls,
        config: DraftkitConfig,
        entity_kind: str,
        entity_id: int | str | None = None,
        *,
        backend: KeyValueStore,
        uploader: Uploader,
        api: EntityApi,
        allocator: HandleAllocator | None = None,
        **kwargs: Any,
    ) -> DraftController:
        """Wire a session for one entity from configuration.

        The store key uses ``store.key_prefix``; autosave follows the
        ``[autosave]`` section and media checks the ``[media]`` section.
        """
        prefix = config.media.handle_prefix
        allocator = allocator or LocalHandleAllocator(prefix)
        kwargs.setdefault("autosave", config.autosave.enabled)
        kwargs.setdefault("skip_unchanged", config.autosave.skip_unchanged)
        return cls.open(
            draft_key(entity_kind, entity_id, config.store.key_prefix),
            DraftStore(backend, prefix),
            UploadOrchestrator(uploader, prefix),
            api,
            MediaStagingManager(allocator, config.media),
            CoverImageSlot(allocator, config.media),
            handle_prefix=prefix,
            **kwargs,
        )

    # ── State ────────────────────────────────────────────────────

    @property
    def draft(self) -> Draft:
        return self._draft.model_copy()

    @property
    def validation(self) -> ValidationResult:
        return self._errors

    @property
    def field_errors(self) -> FieldErrors:
        return dict(self._errors.errors)

    @property
    def is_valid(self) -> bool:
        return self._errors.is_valid

    @property
    def visible_errors(self) -> FieldErrors:
        """Errors for touched fields, or all of them after a submit attempt."""
        return {
            field: messages
            for field, messages in self._errors.errors.items()
            if self.submit_attempted or field in self._touched
        }

    def mark_touched(self, field: str) -> None:
        self._touched.add(field)

    # ── Mutation ─────────────────────────────────────────────────

    def _hydrate_staging(self, draft: Draft) -> None:
        on_change = self.media.on_change
        self.media.on_change = None
        self.media.load(draft.gallery)
        self.media.on_change = on_change
        if draft.cover_image_file is not None:
            self.cover.adopt(draft.cover_image_url, draft.cover_image_file)
        elif self.cover.url != draft.cover_image_url:
            self.cover.set_remote(draft.cover_image_url)

    def _apply(self, draft: Draft) -> None:
        self._draft = draft.model_copy(update={"updated_at": self._clock()})
        self._errors = validate(self._draft, self._schema)
        self._autosave_if_valid()

    def _autosave_if_valid(self) -> None:
        if not self._autosave or not self._errors.is_valid:
            return
        snapshot = self._store.serialize(self._draft.model_copy(update={"updated_at": datetime.min}))
        if self._skip_unchanged and snapshot == self._last_saved:
            return
        self._store.save(self.key, self._draft)
        self._last_saved = snapshot

    def _on_gallery_change(self, items: list[StagedMediaItem]) -> None:
        self._apply(self._draft.model_copy(update={"gallery": items}))

    def set_field(self, name: str, value: Any) -> None:
        """Set one scalar or list field and mark it touched."""
        if name in _READ_ONLY_FIELDS or name not in Draft.model_fields:
            raise ValueError(f"Field {name!r} cannot be set directly")
        self._touched.add(name)
        self._apply(self._draft.model_copy(update={name: value}))

    def set_draft(self, draft: Draft) -> None:
        """Replace the whole draft, e.g. after loading an existing entity."""
        self._hydrate_staging(draft)
        self._apply(
            draft.model_copy(
                update={
                    "gallery": self.media.items,
                    "cover_image_url": self.cover.url,
                    "cover_image_file": self.cover.file,
                }
            )
        )

    def stage_cover(self, file: LocalFile) -> str:
        handle = self.cover.stage(file)
        self._touched.add("cover_image_url")
        self._apply(self._draft.model_copy(update={"cover_image_url": handle, "cover_image_file": file}))
        return handle

    def clear_cover(self) -> None:
        self.cover.clear()
        self._touched.add("cover_image_url")
        self._apply(self._draft.model_copy(update={"cover_image_url": "", "cover_image_file": None}))

    def reset(self) -> None:
        """Start over with an empty draft and forget the stored one."""
        self.cover.clear()
        self.media.on_change = None
        self.media.load([])
        self.media.on_change = self._on_gallery_change
        self._draft = Draft(updated_at=self._clock())
        self._errors = validate(self._draft, self._schema)
        self._touched.clear()
        self.submit_attempted = False
        self._last_saved = None
        self._store.clear(self.key)

    async def load_remote(self, entity_id: int | str) -> PublishResult:
        """Hydrate the session from an existing entity."""
        try:
            entity = await self._api.get_by_id(entity_id)
        except Exception as exc:
            logger.warning("Failed to load entity %s", entity_id, exc_info=True)
            return PublishResult(kind=ResultKind.API, failure=FailureKind.API, message=describe_api_error(exc))
        self.set_draft(coerce_draft(entity))
        self._touched.clear()
        return PublishResult(kind=ResultKind.SUCCESS, entity=entity)

    def close(self) -> None:
        """Release every preview handle held by this session."""
        self.media.on_change = None
        self.media.close()
        self.cover.close()

    # ── Submission ───────────────────────────────────────────────

    async def publish(self, draft: Draft | None = None) -> PublishResult:
        """Validate, resolve uploads, create the entity, clear the stored draft."""
        return await self._submit(draft, None)

    async def update(self, entity_id: int | str, draft: Draft | None = None) -> PublishResult:
        """Validate, resolve uploads, update *entity_id*, clear the stored draft."""
        return await self._submit(draft, entity_id)

    async def _submit(self, draft: Draft | None, entity_id: int | str | None) -> PublishResult:
        self.submit_attempted = True
        candidate = draft if draft is not None else self._draft

        result = validate(candidate, self._publish_schema)
        if not result.is_valid:
            return PublishResult(
                kind=ResultKind.VALIDATION,
                field_errors=result.errors,
                message="Please fill in all required fields",
            )

        self.is_saving = True
        try:
            resolved = await self._orchestrator.resolve_draft(candidate)
            payload = self._build_payload(resolved)
            if entity_id is None:
                entity = await self._api.create(payload)
            else:
                entity = await self._api.update(entity_id, payload)
        except StagingContractError as exc:
            logger.warning("Staging contract violated: %s", exc)
            return PublishResult(kind=ResultKind.API, failure=FailureKind.STAGING, message=RETRY_MESSAGE)
        except UploadError as exc:
            return PublishResult(kind=ResultKind.API, failure=FailureKind.UPLOAD, message=str(exc))
        except ApiError as exc:
            logger.warning("Entity API rejected the draft: %s", exc)
            return PublishResult(kind=ResultKind.API, failure=FailureKind.API, message=describe_api_error(exc))
        except Exception as exc:
            logger.warning("Submitting draft '%s' failed", self.key, exc_info=True)
            return PublishResult(kind=ResultKind.API, failure=FailureKind.API, message=describe_api_error(exc))
        finally:
            self.is_saving = False

        self._finish()
        return PublishResult(kind=ResultKind.SUCCESS, entity=entity)

    def _build_payload(self, draft: Draft) -> dict[str, Any]:
        return build_payload(draft, self._handle_prefix).model_dump(mode="json")

    def _finish(self) -> None:
        self._store.clear(self.key)
        self.media.on_change = None
        self.media.load([])
        self.media.on_change = self._on_gallery_change
        self.cover.clear()
        self._draft = Draft(updated_at=self._clock())
        self._errors = validate(self._draft, self._schema)
        self._touched.clear()
        self.submit_attempted = False
        self._last_saved = None
        logger.info("Draft '%s' submitted", self.key)
