"""Tests for DraftStore and its key-value backends."""

import json
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from draftkit.drafts.models import AttachmentDescriptor, Draft, MediaKind, StagedMediaItem
from draftkit.drafts.store import (
    STORE_FILENAME,
    DraftStore,
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    draft_key,
    sanitize_for_storage,
)
from draftkit.errors import PersistenceError
from draftkit.media.files import LocalFile

KEY = "draftkit:asset:new"


def _png(name: str = "a.png") -> LocalFile:
    return LocalFile(name=name, content_type="image/png", data=b"\x89PNG")


def _make_draft(**kwargs: object) -> Draft:
    defaults: dict[str, object] = {
        "title": "Low-poly fox",
        "slug": "low-poly-fox",
        "price": 12.5,
        "category_id": 2,
        "cover_image_url": "https://cdn/cover.png",
        "gallery": [
            StagedMediaItem(id="img", url="https://cdn/1.png", thumbnail_url="https://cdn/1.png", sort_order=1),
            StagedMediaItem(
                id="vid",
                kind=MediaKind.VIDEO,
                url="https://youtu.be/fox",
                thumbnail_url="https://cdn/thumb.png",
                duration=42.0,
                sort_order=2,
            ),
        ],
        "attachments": [AttachmentDescriptor(id="att", file_name="fox.fbx", file_path="https://cdn/fox.fbx")],
        "tag_ids": [1, 2],
        "updated_at": datetime(2026, 3, 1, 12, 0, tzinfo=UTC),
    }
    defaults.update(kwargs)
    return Draft(**defaults)  # type: ignore[arg-type]


class TestDraftKey:
    def test_new_entity(self):
        assert draft_key("asset") == "draftkit:asset:new"
        assert draft_key("asset", "  ") == "draftkit:asset:new"

    def test_existing_entity(self):
        assert draft_key("asset", 42, prefix="app") == "app:asset:42"


class TestRoundTrip:
    def test_save_then_load_is_equal(self):
        store = DraftStore(MemoryKeyValueStore())
        draft = _make_draft()

        store.save(KEY, draft)

        assert store.load(KEY) == draft

    def test_pending_files_are_not_persisted(self):
        backend = MemoryKeyValueStore()
        store = DraftStore(backend)
        draft = _make_draft(cover_image_file=_png())
        draft.gallery[0] = draft.gallery[0].model_copy(update={"pending_file": _png()})

        store.save(KEY, draft)

        raw = backend.get(KEY)
        assert raw is not None
        assert "pending_file" not in raw
        assert "cover_image_file" not in raw
        loaded = store.load(KEY)
        assert loaded is not None
        assert loaded.cover_image_file is None
        assert loaded.gallery[0].pending_file is None

    def test_local_handles_become_empty(self):
        store = DraftStore(MemoryKeyValueStore())
        gallery = [StagedMediaItem(url="blob:draftkit/abc", thumbnail_url="blob:draftkit/abc")]
        draft = _make_draft(cover_image_url="blob:draftkit/cover", gallery=gallery)

        store.save(KEY, draft)
        loaded = store.load(KEY)

        assert loaded is not None
        assert loaded.cover_image_url == ""
        assert loaded.gallery[0].url == ""
        assert loaded.gallery[0].thumbnail_url == ""

    def test_sanitize_does_not_touch_input(self):
        draft = _make_draft(cover_image_url="blob:draftkit/cover", cover_image_file=_png())

        sanitize_for_storage(draft)

        assert draft.cover_image_url == "blob:draftkit/cover"
        assert draft.cover_image_file is not None


class TestLoad:
    def test_missing_key(self):
        assert DraftStore(MemoryKeyValueStore()).load(KEY) is None

    def test_malformed_json(self):
        backend = MemoryKeyValueStore()
        backend.set(KEY, "{not json")

        assert DraftStore(backend).load(KEY) is None

    def test_non_object_json(self):
        backend = MemoryKeyValueStore()
        backend.set(KEY, json.dumps([1, 2, 3]))

        assert DraftStore(backend).load(KEY) is None

    def test_partial_document_keeps_good_fields(self):
        backend = MemoryKeyValueStore()
        backend.set(KEY, json.dumps({"title": "Half saved", "price": "oops", "gallery": [{"url": "https://x"}]}))

        draft = DraftStore(backend).load(KEY)

        assert draft is not None
        assert draft.title == "Half saved"
        assert draft.price == 0
        assert draft.gallery[0].url == "https://x"

    def test_backend_read_failure(self):
        backend = MagicMock()
        backend.get.side_effect = OSError("disk gone")

        assert DraftStore(backend).load(KEY) is None


class TestSaveAndClear:
    def test_backend_write_failure_is_swallowed(self):
        backend = MagicMock()
        backend.set.side_effect = PersistenceError("quota exceeded")

        DraftStore(backend).save(KEY, _make_draft())

        backend.set.assert_called_once()

    def test_clear_is_idempotent(self):
        backend = MemoryKeyValueStore()
        store = DraftStore(backend)
        store.save(KEY, _make_draft())

        store.clear(KEY)
        store.clear(KEY)

        assert store.load(KEY) is None

    def test_has_draft_and_last_updated(self):
        store = DraftStore(MemoryKeyValueStore())
        assert store.has_draft(KEY) is False
        assert store.last_updated(KEY) is None

        store.save(KEY, _make_draft())

        assert store.has_draft(KEY) is True
        assert store.last_updated(KEY) == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def test_keys_are_independent(self):
        store = DraftStore(MemoryKeyValueStore())
        store.save("a", _make_draft(title="A draft"))
        store.save("b", _make_draft(title="B draft"))
        store.clear("a")

        loaded = store.load("b")
        assert store.load("a") is None
        assert loaded is not None
        assert loaded.title == "B draft"


class TestJsonFileKeyValueStore:
    def test_persists_across_instances(self, tmp_path: Path):
        JsonFileKeyValueStore(tmp_path).set("k", "v")

        assert JsonFileKeyValueStore(tmp_path).get("k") == "v"
        assert (tmp_path / STORE_FILENAME).exists()

    def test_remove(self, tmp_path: Path):
        backend = JsonFileKeyValueStore(tmp_path)
        backend.set("k", "v")
        backend.remove("k")
        backend.remove("k")

        assert JsonFileKeyValueStore(tmp_path).get("k") is None

    def test_keys_sorted(self, tmp_path: Path):
        backend = JsonFileKeyValueStore(tmp_path)
        backend.set("b", "2")
        backend.set("a", "1")

        assert backend.keys() == ["a", "b"]

    def test_corrupt_file_starts_fresh(self, tmp_path: Path):
        (tmp_path / STORE_FILENAME).write_text("{{{{", encoding="utf-8")

        backend = JsonFileKeyValueStore(tmp_path)

        assert backend.keys() == []

    def test_write_failure_raises_persistence_error(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory", encoding="utf-8")
        backend = JsonFileKeyValueStore(blocker / "nested")

        with pytest.raises(PersistenceError):
            backend.set("k", "v")

    def test_draft_store_on_file_backend(self, tmp_path: Path):
        draft = _make_draft()
        DraftStore(JsonFileKeyValueStore(tmp_path)).save(KEY, draft)

        assert DraftStore(JsonFileKeyValueStore(tmp_path)).load(KEY) == draft
