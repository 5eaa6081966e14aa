"""In-memory staging of gallery media and the cover image.

The manager owns every preview handle it allocates.  A handle is
released exactly once, at the moment no slot of its item references it
any more: when it is superseded by a new file, when its item is
removed, or when the manager is closed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import StrEnum
from typing import Any

from draftkit.config import MediaConfig
from draftkit.drafts.models import MediaKind, StagedMediaItem, renumber
from draftkit.drafts.normalize import normalize_duration
from draftkit.errors import InvalidMediaFileError, StagingContractError
from draftkit.media.files import LocalFile
from draftkit.media.handles import HandleAllocator, MediaRef

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"kind", "url", "thumbnail_url", "title", "caption", "duration"}


class Slot(StrEnum):
    """Which file slot of a media item a staged file goes into."""

    PRIMARY = "primary"
    THUMBNAIL = "thumbnail"


def check_image_file(file: LocalFile, config: MediaConfig) -> None:
    """Raise InvalidMediaFileError unless *file* is an accepted image."""
    if file.content_type not in config.accepted_image_types:
        accepted = ", ".join(t.split("/")[-1].upper() for t in config.accepted_image_types)
        raise InvalidMediaFileError(f"Only {accepted} images are accepted")
    if file.size > config.max_image_bytes:
        limit_mb = config.max_image_bytes / (1024 * 1024)
        raise InvalidMediaFileError(f"Image is larger than {limit_mb:g} MB")


def owned_handles(item: StagedMediaItem, prefix: str) -> set[str]:
    """Local handles referenced by either slot of *item*."""
    handles = set()
    for value in (item.url, item.thumbnail_url):
        ref = MediaRef.parse(value, prefix)
        if ref.is_local:
            handles.add(ref.value)
    return handles


def has_content(item: StagedMediaItem) -> bool:
    """Whether the item carries its required artifact.

    Images need the image itself; videos need a thumbnail, which is what
    the gallery shows.
    """
    if item.kind is MediaKind.IMAGE:
        return bool(item.url.strip() or item.pending_file)
    return bool(item.thumbnail_url.strip() or item.pending_thumbnail_file)


class MediaStagingManager:
    """Ordered gallery of staged media items."""

    def __init__(
        self,
        allocator: HandleAllocator,
        config: MediaConfig | None = None,
        on_change: Callable[[list[StagedMediaItem]], None] | None = None,
    ) -> None:
        self._allocator = allocator
        self._config = config or MediaConfig(handle_prefix=allocator.prefix)
        self._items: list[StagedMediaItem] = []
        self.on_change = on_change

    def __enter__(self) -> MediaStagingManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Private helpers ──────────────────────────────────────────

    @property
    def _prefix(self) -> str:
        return self._allocator.prefix

    def _index(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        return -1

    def _release(self, handles: Iterable[str]) -> None:
        for handle in sorted(handles):
            self._allocator.release(handle)

    def _release_dropped(self, before: StagedMediaItem, after: StagedMediaItem | None) -> None:
        kept = owned_handles(after, self._prefix) if after is not None else set()
        self._release(owned_handles(before, self._prefix) - kept)

    def _commit(self, items: list[StagedMediaItem], renumbered: bool = False) -> None:
        self._items = renumber(items) if renumbered else items
        if self.on_change is not None:
            self.on_change(self.items)

    # ── Read operations ──────────────────────────────────────────

    @property
    def items(self) -> list[StagedMediaItem]:
        """Copies of the current items, in gallery order."""
        return [item.model_copy() for item in self._items]

    def get(self, item_id: str) -> StagedMediaItem | None:
        index = self._index(item_id)
        return self._items[index].model_copy() if index >= 0 else None

    def __len__(self) -> int:
        return len(self._items)

    def has_content(self, item_id: str) -> bool:
        index = self._index(item_id)
        return index >= 0 and has_content(self._items[index])

    # ── Structural operations ────────────────────────────────────

    def load(self, items: Iterable[StagedMediaItem]) -> None:
        """Replace the gallery wholesale, e.g. when hydrating a draft.

        Handles owned by the previous items are released.
        """
        previous = self._items
        incoming = [item.model_copy() for item in items]
        still_used = set().union(*(owned_handles(item, self._prefix) for item in incoming))
        for item in previous:
            self._release(owned_handles(item, self._prefix) - still_used)
        self._commit(incoming, renumbered=True)

    def replace_items(self, items: Iterable[StagedMediaItem]) -> None:
        """Swap in resolved items, releasing handles nothing references any more."""
        self.load(items)

    def add_item(self, kind: MediaKind | str = MediaKind.IMAGE) -> StagedMediaItem:
        media_kind = MediaKind(kind)
        item = StagedMediaItem(
            kind=media_kind,
            duration=self._config.default_video_duration if media_kind is MediaKind.VIDEO else None,
            sort_order=len(self._items) + 1,
        )
        self._commit([*self._items, item])
        logger.debug("Added %s item %s", media_kind, item.id)
        return item.model_copy()

    def remove_item(self, item_id: str) -> bool:
        index = self._index(item_id)
        if index < 0:
            logger.debug("remove_item: unknown id %s", item_id)
            return False
        target = self._items[index]
        self._release_dropped(target, None)
        remaining = self._items[:index] + self._items[index + 1 :]
        self._commit(remaining, renumbered=True)
        return True

    def reorder(self, from_id: str, to_id: str) -> bool:
        """Move *from_id* to the position currently held by *to_id*."""
        from_index = self._index(from_id)
        to_index = self._index(to_id)
        if from_index < 0 or to_index < 0 or from_index == to_index:
            return False
        items = list(self._items)
        moved = items.pop(from_index)
        items.insert(to_index, moved)
        self._commit(items, renumbered=True)
        return True

    # ── Field operations ─────────────────────────────────────────

    def update_item(self, item_id: str, **changes: Any) -> bool:
        """Merge *changes* into the item.

        Switching to image clears ``duration``; switching to video
        normalizes it, defaulting to the configured duration.  Replacing a
        local handle drops the matching pending file.
        """
        index = self._index(item_id)
        if index < 0:
            logger.debug("update_item: unknown id %s", item_id)
            return False
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        before = self._items[index]
        update: dict[str, Any] = dict(changes)

        if "kind" in update:
            new_kind = MediaKind(update["kind"])
            update["kind"] = new_kind
            if new_kind is MediaKind.IMAGE:
                update["duration"] = None
            elif before.kind is not MediaKind.VIDEO or "duration" not in update:
                update.update(self._to_video(before, update))
        if "duration" in update and update["duration"] is not None:
            kind = update.get("kind", before.kind)
            update["duration"] = normalize_duration(update["duration"]) if kind is MediaKind.VIDEO else None

        if "url" in update and update["url"] != before.url:
            update.setdefault("pending_file", None)
            if "thumbnail_url" not in update and self._mirrors_local_url(before):
                update["thumbnail_url"] = update["url"]
        if "thumbnail_url" in update and update["thumbnail_url"] != before.thumbnail_url:
            update.setdefault("pending_thumbnail_file", None)

        after = before.model_copy(update=update)
        self._release_dropped(before, after)
        items = list(self._items)
        items[index] = after
        self._commit(items)
        return True

    def _mirrors_local_url(self, item: StagedMediaItem) -> bool:
        return item.thumbnail_url == item.url and MediaRef.parse(item.url, self._prefix).is_local

    def _to_video(self, item: StagedMediaItem, update: dict[str, Any]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        duration = normalize_duration(update.get("duration", item.duration))
        result["duration"] = duration if duration is not None else self._config.default_video_duration
        url_ref = MediaRef.parse(update.get("url", item.url), self._prefix)
        if url_ref.is_local:
            # A staged image can only survive as the video's thumbnail.
            if item.thumbnail_url == url_ref.value:
                result["thumbnail_url"] = item.thumbnail_url
                result["pending_thumbnail_file"] = item.pending_file
            result["url"] = ""
            result["pending_file"] = None
        return result

    def stage_local_file(self, item_id: str, file: LocalFile, slot: Slot | str = Slot.PRIMARY) -> str:
        """Stage *file* into *slot* of the item and return its preview handle."""
        slot = Slot(slot)
        index = self._index(item_id)
        if index < 0:
            raise StagingContractError(f"No media item with id {item_id!r}")
        before = self._items[index]
        check_image_file(file, self._config)

        if slot is Slot.PRIMARY and before.kind is not MediaKind.IMAGE:
            raise StagingContractError(
                "This item is a video. For videos, add the thumbnail instead."
            )

        handle = self._allocator.allocate(file)
        if slot is Slot.THUMBNAIL:
            update: dict[str, Any] = {"thumbnail_url": handle, "pending_thumbnail_file": file}
        else:
            mirrored = not before.thumbnail_url.strip() or self._mirrors_local_url(before)
            update = {"url": handle, "pending_file": file}
            if mirrored:
                update["thumbnail_url"] = handle
                update["pending_thumbnail_file"] = None
            if not before.title.strip():
                update["title"] = file.name

        after = before.model_copy(update=update)
        self._release_dropped(before, after)
        items = list(self._items)
        items[index] = after
        self._commit(items)
        logger.info("Staged %s for item %s (%s slot)", file.name, item_id, slot)
        return handle

    def close(self) -> None:
        """Release every handle still owned by the gallery."""
        handles = set().union(*(owned_handles(item, self._prefix) for item in self._items))
        self._release(handles)
        self._items = [
            item.without_pending().model_copy(
                update={
                    "url": "" if MediaRef.parse(item.url, self._prefix).is_local else item.url,
                    "thumbnail_url": (
                        "" if MediaRef.parse(item.thumbnail_url, self._prefix).is_local else item.thumbnail_url
                    ),
                }
            )
            for item in self._items
        ]


class CoverImageSlot:
    """Single staged cover image with its own preview handle."""

    def __init__(self, allocator: HandleAllocator, config: MediaConfig | None = None) -> None:
        self._allocator = allocator
        self._config = config or MediaConfig(handle_prefix=allocator.prefix)
        self._url = ""
        self._file: LocalFile | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def file(self) -> LocalFile | None:
        return self._file

    def _release_current(self) -> None:
        ref = MediaRef.parse(self._url, self._allocator.prefix)
        if ref.is_local:
            self._allocator.release(ref.value)

    def stage(self, file: LocalFile) -> str:
        check_image_file(file, self._config)
        handle = self._allocator.allocate(file)
        self._release_current()
        self._url = handle
        self._file = file
        logger.info("Staged cover image %s", file.name)
        return handle

    def adopt(self, url: str, file: LocalFile | None) -> None:
        """Take over a cover staged elsewhere, keeping its file for upload."""
        if url != self._url:
            self._release_current()
        self._url = url
        self._file = file

    def set_remote(self, url: str) -> None:
        """Point the cover at an existing reference, dropping any staged file."""
        self._release_current()
        self._url = url
        self._file = None

    def clear(self) -> None:
        self.set_remote("")

    def close(self) -> None:
        self.clear()
