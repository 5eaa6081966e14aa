"""Resolve staged local files into remote references before submission.

Items are processed strictly in gallery order and each upload is awaited
before the next starts, so a failure maps to exactly one item and the
output order is the input order.  The first failure aborts the whole
pass; results built so far live only in the discarded local list.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from draftkit.config import DEFAULT_HANDLE_PREFIX
from draftkit.drafts.models import Draft, MediaKind, StagedMediaItem
from draftkit.errors import StagingContractError, UploadError
from draftkit.integrations.base import Uploader
from draftkit.media.files import LocalFile, UploadedMedia
from draftkit.media.handles import MediaRef

logger = logging.getLogger(__name__)

COVER_LABEL = "cover image"


class UploadOrchestrator:
    """Sequential, fail-fast resolver for cover, gallery and attachments."""

    def __init__(self, uploader: Uploader, handle_prefix: str = DEFAULT_HANDLE_PREFIX) -> None:
        self._uploader = uploader
        self._prefix = handle_prefix

    def _ref(self, value: str) -> MediaRef:
        return MediaRef.parse(value, self._prefix)

    async def _upload(self, file: LocalFile, label: str) -> UploadedMedia:
        logger.info("Uploading %s for %s (%d bytes)", file.name, label, file.size)
        try:
            uploaded = await self._uploader.upload(file)
        except Exception as exc:
            logger.warning("Upload failed for %s", label, exc_info=True)
            raise UploadError(label, str(exc) or exc.__class__.__name__) from exc
        if not uploaded.url:
            raise UploadError(label, "upload returned no url")
        return uploaded

    # ── Cover ────────────────────────────────────────────────────

    async def resolve_cover(self, url: str, file: LocalFile | None) -> str:
        """Return a remote cover reference, uploading the staged file if there is one."""
        if file is not None:
            uploaded = await self._upload(file, COVER_LABEL)
            return uploaded.url
        if self._ref(url).is_local:
            raise StagingContractError("Please select the cover image again")
        return url

    # ── Gallery ──────────────────────────────────────────────────

    async def resolve(self, items: Sequence[StagedMediaItem]) -> list[StagedMediaItem]:
        """Resolve every local file in *items*, in order.

        Returns new items with remote references only, no pending files,
        and dense ``sort_order``.
        """
        out: list[StagedMediaItem] = []
        for position, item in enumerate(items, start=1):
            if self._ref(item.url).is_remote and self._ref(item.thumbnail_url).is_remote:
                resolved = item
            elif item.kind is MediaKind.VIDEO:
                resolved = await self._resolve_video(item)
            else:
                resolved = await self._resolve_image(item)
            out.append(resolved.without_pending().model_copy(update={"sort_order": position}))
        logger.info("Resolved %d media item(s)", len(out))
        return out

    async def _resolve_image(self, item: StagedMediaItem) -> StagedMediaItem:
        url_ref = self._ref(item.url)
        thumb_ref = self._ref(item.thumbnail_url)
        update: dict[str, object] = {}

        if url_ref.is_local:
            if item.pending_file is None:
                raise StagingContractError(
                    f'Gallery item "{item.label}" has a local preview but no file; '
                    "select the image again"
                )
            uploaded = await self._upload(item.pending_file, item.label)
            update["url"] = uploaded.url
            if thumb_ref.is_empty or item.thumbnail_url == item.url:
                update["thumbnail_url"] = uploaded.thumbnail_url or uploaded.url
                return item.model_copy(update=update)

        if thumb_ref.is_local:
            update["thumbnail_url"] = await self._upload_thumbnail(item)
        return item.model_copy(update=update)

    async def _resolve_video(self, item: StagedMediaItem) -> StagedMediaItem:
        if self._ref(item.url).is_local:
            raise StagingContractError(
                f'Video "{item.label}" cannot point at a local file; use a real video link'
            )
        if self._ref(item.thumbnail_url).is_local:
            return item.model_copy(update={"thumbnail_url": await self._upload_thumbnail(item)})
        return item

    async def _upload_thumbnail(self, item: StagedMediaItem) -> str:
        if item.pending_thumbnail_file is None:
            raise StagingContractError(
                f'Gallery item "{item.label}" has a local thumbnail but no file; '
                "select the thumbnail again"
            )
        uploaded = await self._upload(item.pending_thumbnail_file, f"{item.label} (thumbnail)")
        return uploaded.url

    # ── Whole draft ──────────────────────────────────────────────

    async def resolve_draft(self, draft: Draft) -> Draft:
        """Resolve cover, then gallery, then check attachments.

        Returns a new Draft; *draft* itself is not modified.
        """
        cover_url = await self.resolve_cover(draft.cover_image_url, draft.cover_image_file)
        gallery = await self.resolve(draft.gallery)
        for attachment in draft.attachments:
            if self._ref(attachment.file_path).is_local:
                raise StagingContractError(
                    f'Attachment "{attachment.file_name or attachment.id}" has not been uploaded'
                )
        return draft.model_copy(
            update={
                "cover_image_url": cover_url,
                "cover_image_file": None,
                "gallery": gallery,
                "attachments": [attachment.model_copy() for attachment in draft.attachments],
            }
        )
