"""Tests for DraftController, the editing-session facade."""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from draftkit.config import AutosaveConfig, DraftkitConfig, MediaConfig, StoreConfig
from draftkit.drafts.controller import (
    RETRY_MESSAGE,
    DraftController,
    FailureKind,
    ResultKind,
)
from draftkit.drafts.models import Draft, MediaKind, StagedMediaItem
from draftkit.drafts.store import DraftStore, MemoryKeyValueStore
from draftkit.errors import ApiError, InvalidMediaFileError
from draftkit.media.files import LocalFile, UploadedMedia
from draftkit.media.handles import LocalHandleAllocator
from draftkit.media.orchestrator import UploadOrchestrator
from draftkit.media.staging import CoverImageSlot, MediaStagingManager

KEY = "draftkit:asset:new"
NOW = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)


def _png(name: str = "cover.png") -> LocalFile:
    return LocalFile(name=name, content_type="image/png", data=b"\x89PNG")


class _Session:
    """Wires a controller to in-memory collaborators."""

    def __init__(self, draft: Draft | None = None, resume: bool = False) -> None:
        self.backend = MemoryKeyValueStore()
        self.store = DraftStore(self.backend)
        self.allocator = LocalHandleAllocator()
        self.uploader = AsyncMock()
        self.uploader.upload.side_effect = lambda file: UploadedMedia(url=f"https://cdn/{file.name}")
        self.api = AsyncMock()
        self.api.create.return_value = {"id": 7}
        self.api.update.return_value = {"id": 7}
        collaborators = (
            self.store,
            UploadOrchestrator(self.uploader),
            self.api,
            MediaStagingManager(self.allocator),
            CoverImageSlot(self.allocator),
        )
        if resume:
            if draft is not None:
                self.store.save(KEY, draft)
            self.controller = DraftController.open(KEY, *collaborators, clock=lambda: NOW)
        else:
            self.controller = DraftController(KEY, *collaborators, draft=draft, clock=lambda: NOW)


def _fill(controller: DraftController) -> None:
    controller.set_field("title", "Low-poly fox")
    controller.set_field("slug", "low-poly-fox")
    controller.set_field("description", "A small fox.")
    controller.set_field("category_id", 3)


@pytest.fixture
def session() -> _Session:
    return _Session()


class TestValidationAndAutosave:
    def test_new_session_is_invalid_and_nothing_saved(self, session: _Session):
        assert session.controller.is_valid is False
        assert session.store.load(KEY) is None

    def test_invalid_edits_are_not_saved(self, session: _Session):
        session.controller.set_field("title", "Low-poly fox")

        assert "slug" in session.controller.field_errors
        assert session.store.load(KEY) is None

    def test_valid_draft_is_saved(self, session: _Session):
        _fill(session.controller)
        session.controller.stage_cover(_png())

        assert session.controller.is_valid
        stored = session.store.load(KEY)
        assert stored is not None
        assert stored.title == "Low-poly fox"
        assert stored.cover_image_url == ""

    def test_last_valid_snapshot_survives_invalid_edit(self, session: _Session):
        _fill(session.controller)
        session.controller.stage_cover(_png())

        session.controller.set_field("title", "")

        stored = session.store.load(KEY)
        assert stored is not None
        assert stored.title == "Low-poly fox"

    def test_autosave_disabled(self):
        session = _Session()
        controller = DraftController(
            KEY,
            session.store,
            UploadOrchestrator(session.uploader),
            session.api,
            MediaStagingManager(session.allocator),
            CoverImageSlot(session.allocator),
            autosave=False,
        )
        _fill(controller)
        controller.stage_cover(_png())

        assert controller.is_valid
        assert session.store.load(KEY) is None

    def test_read_only_fields_rejected(self, session: _Session):
        with pytest.raises(ValueError):
            session.controller.set_field("gallery", [])
        with pytest.raises(ValueError):
            session.controller.set_field("no_such_field", 1)

    def test_visible_errors_follow_touched_fields(self, session: _Session):
        assert session.controller.visible_errors == {}

        session.controller.mark_touched("title")

        assert list(session.controller.visible_errors) == ["title"]

    def test_gallery_edits_flow_into_draft(self, session: _Session):
        item = session.controller.media.add_item(MediaKind.VIDEO)

        assert [entry.id for entry in session.controller.draft.gallery] == [item.id]


class TestResume:
    def test_open_resumes_stored_draft(self):
        gallery = [StagedMediaItem(url="https://cdn/1.png", thumbnail_url="https://cdn/1.png")]
        stored = Draft(title="Resumed", cover_image_url="https://cdn/cover.png", gallery=gallery)

        session = _Session(stored, resume=True)

        assert session.controller.draft.title == "Resumed"
        assert session.controller.cover.url == "https://cdn/cover.png"
        assert len(session.controller.media) == 1

    def test_open_without_stored_draft(self):
        session = _Session(resume=True)

        assert session.controller.draft.title == ""


class TestPublish:
    def test_uploads_cover_then_creates_and_clears(self, session: _Session):
        controller = session.controller
        _fill(controller)
        controller.stage_cover(_png())
        item = controller.media.add_item()
        controller.media.stage_local_file(item.id, _png("front.png"))
        assert session.store.load(KEY) is not None

        result = asyncio.run(controller.publish())

        assert result.kind is ResultKind.SUCCESS
        assert result.ok
        assert result.entity == {"id": 7}
        names = [call.args[0].name for call in session.uploader.upload.await_args_list]
        assert names == ["cover.png", "front.png"]
        payload = session.api.create.await_args.args[0]
        assert payload["cover_image_url"] == "https://cdn/cover.png"
        assert payload["gallery"][0]["url"] == "https://cdn/front.png"
        assert payload["gallery"][0]["sort_order"] == 1
        assert session.store.load(KEY) is None
        assert controller.draft.title == ""
        assert session.allocator.live_handles == set()

    def test_validation_failure_skips_uploads(self, session: _Session):
        session.controller.set_field("title", "Fox")

        result = asyncio.run(session.controller.publish())

        assert result.kind is ResultKind.VALIDATION
        assert "slug" in result.field_errors
        assert result.message == "Please fill in all required fields"
        session.uploader.upload.assert_not_awaited()
        session.api.create.assert_not_awaited()
        assert "slug" in session.controller.visible_errors

    def test_publish_requires_description(self, session: _Session):
        _fill(session.controller)
        session.controller.set_field("description", "")
        session.controller.stage_cover(_png())

        result = asyncio.run(session.controller.publish())

        assert result.kind is ResultKind.VALIDATION
        assert list(result.field_errors) == ["description"]

    def test_upload_failure_keeps_stored_draft(self, session: _Session):
        session.uploader.upload.side_effect = ConnectionError("offline")
        _fill(session.controller)
        session.controller.stage_cover(_png())

        result = asyncio.run(session.controller.publish())

        assert result.kind is ResultKind.API
        assert result.failure is FailureKind.UPLOAD
        assert result.message == 'Upload failed for "cover image": offline'
        session.api.create.assert_not_awaited()
        assert session.store.load(KEY) is not None
        assert session.controller.draft.title == "Low-poly fox"
        assert session.controller.is_saving is False

    def test_gallery_upload_failure_commits_nothing(self, session: _Session):
        controller = session.controller
        _fill(controller)
        controller.stage_cover(_png())
        first = controller.media.add_item()
        second = controller.media.add_item()
        first_handle = controller.media.stage_local_file(first.id, _png("a.png"))
        controller.media.stage_local_file(second.id, _png("b.png"))
        before = session.backend.get(KEY)
        assert before is not None

        def upload(file: LocalFile) -> UploadedMedia:
            if file.name == "b.png":
                raise ConnectionError("offline")
            return UploadedMedia(url=f"https://cdn/{file.name}")

        session.uploader.upload.side_effect = upload

        result = asyncio.run(controller.publish())

        assert result.failure is FailureKind.UPLOAD
        assert result.message == 'Upload failed for "b.png": offline'
        names = [call.args[0].name for call in session.uploader.upload.await_args_list]
        assert names == ["cover.png", "a.png", "b.png"]
        session.api.create.assert_not_awaited()
        assert session.backend.get(KEY) == before
        gallery = controller.draft.gallery
        assert gallery[0].url == first_handle
        assert gallery[0].pending_file is not None

    def test_pending_cover_with_empty_url_is_uploaded(self, session: _Session):
        draft = Draft(
            title="Low-poly fox",
            slug="low-poly-fox",
            description="A fox.",
            category_id=3,
            cover_image_url="",
            cover_image_file=_png(),
        )

        result = asyncio.run(session.controller.publish(draft))

        assert result.ok
        assert session.uploader.upload.await_args_list[0].args[0].name == "cover.png"
        payload = session.api.create.await_args.args[0]
        assert payload["cover_image_url"] == "https://cdn/cover.png"

    def test_set_draft_keeps_staged_cover_file(self, session: _Session):
        handle = "blob:draftkit/staged-cover"
        session.controller.set_draft(
            Draft(
                title="Low-poly fox",
                slug="low-poly-fox",
                description="A fox.",
                category_id=3,
                cover_image_url=handle,
                cover_image_file=_png(),
            )
        )

        assert session.controller.cover.url == handle
        assert session.controller.draft.cover_image_file is not None

        result = asyncio.run(session.controller.publish())

        assert result.ok
        payload = session.api.create.await_args.args[0]
        assert payload["cover_image_url"] == "https://cdn/cover.png"

    def test_initial_draft_keeps_staged_cover_file(self):
        draft = Draft(cover_image_url="blob:draftkit/staged-cover", cover_image_file=_png())

        session = _Session(draft)

        assert session.controller.cover.file is not None
        assert session.controller.cover.url == "blob:draftkit/staged-cover"

    def test_api_error_message(self, session: _Session):
        session.api.create.side_effect = ApiError("Conflict", status=409, body={"error": "Slug already taken"})
        _fill(session.controller)
        session.controller.stage_cover(_png())

        result = asyncio.run(session.controller.publish())

        assert result.failure is FailureKind.API
        assert result.message == "Slug already taken"
        assert session.store.load(KEY) is not None

    def test_api_error_status_fallback(self, session: _Session):
        session.api.create.side_effect = ApiError("Forbidden", status=403)
        _fill(session.controller)
        session.controller.stage_cover(_png())

        result = asyncio.run(session.controller.publish())

        assert result.message == "Access denied"

    def test_staging_contract_error_gives_retry_message(self, session: _Session):
        draft = Draft(
            title="Low-poly fox",
            slug="low-poly-fox",
            description="A fox.",
            category_id=3,
            cover_image_url="blob:draftkit/lost",
        )

        result = asyncio.run(session.controller.publish(draft))

        assert result.failure is FailureKind.STAGING
        assert result.message == RETRY_MESSAGE

    def test_update_sends_entity_id(self, session: _Session):
        _fill(session.controller)
        session.controller.stage_cover(_png())

        result = asyncio.run(session.controller.update(7))

        assert result.ok
        assert session.api.update.await_args.args[0] == 7
        session.api.create.assert_not_awaited()


class TestLifecycle:
    def test_reset_clears_store_and_handles(self, session: _Session):
        _fill(session.controller)
        session.controller.stage_cover(_png())

        session.controller.reset()

        assert session.store.load(KEY) is None
        assert session.controller.draft.title == ""
        assert session.allocator.live_handles == set()

    def test_close_releases_handles(self, session: _Session):
        item = session.controller.media.add_item()
        session.controller.media.stage_local_file(item.id, _png("front.png"))
        session.controller.stage_cover(_png())

        session.controller.close()

        assert session.allocator.live_handles == set()

    def test_load_remote(self, session: _Session):
        session.api.get_by_id.return_value = {
            "title": "Existing fox",
            "slug": "existing-fox",
            "category_id": 3,
            "image_url": "https://cdn/cover.png",
            "previews": [{"type": "video", "url": "https://youtu.be/x", "thumbnail_url": "https://cdn/t.png"}],
        }

        result = asyncio.run(session.controller.load_remote(7))

        assert result.ok
        draft = session.controller.draft
        assert draft.title == "Existing fox"
        assert draft.cover_image_url == "https://cdn/cover.png"
        assert draft.gallery[0].kind is MediaKind.VIDEO
        assert session.controller.cover.url == "https://cdn/cover.png"
        assert session.controller.visible_errors == {}

    def test_load_remote_failure(self, session: _Session):
        session.api.get_by_id.side_effect = ApiError("Not found", status=404)

        result = asyncio.run(session.controller.load_remote(99))

        assert result.failure is FailureKind.API
        assert result.message == "Not found"


class TestFromConfig:
    def _open(self, config: DraftkitConfig, backend: MemoryKeyValueStore, entity_id: int | None = None):
        return DraftController.from_config(
            config,
            "asset",
            entity_id,
            backend=backend,
            uploader=AsyncMock(),
            api=AsyncMock(),
        )

    def test_key_uses_configured_prefix(self):
        config = DraftkitConfig(store=StoreConfig(key_prefix="shop"))

        controller = self._open(config, MemoryKeyValueStore(), 7)

        assert controller.key == "shop:asset:7"

    def test_resumes_stored_draft(self):
        backend = MemoryKeyValueStore()
        DraftStore(backend).save("shop:asset:new", Draft(title="Stored fox"))

        controller = self._open(DraftkitConfig(store=StoreConfig(key_prefix="shop")), backend)

        assert controller.draft.title == "Stored fox"

    def test_autosave_disabled_by_config(self):
        backend = MemoryKeyValueStore()
        controller = self._open(DraftkitConfig(autosave=AutosaveConfig(enabled=False)), backend)

        _fill(controller)
        controller.stage_cover(_png())

        assert controller.is_valid
        assert backend.keys() == []

    def test_autosave_enabled_by_default(self):
        backend = MemoryKeyValueStore()
        controller = self._open(DraftkitConfig(), backend)

        _fill(controller)
        controller.stage_cover(_png())

        assert backend.keys() == ["draftkit:asset:new"]

    def test_media_limits_apply(self):
        controller = self._open(DraftkitConfig(media=MediaConfig(max_image_bytes=2)), MemoryKeyValueStore())

        with pytest.raises(InvalidMediaFileError):
            controller.stage_cover(_png())
