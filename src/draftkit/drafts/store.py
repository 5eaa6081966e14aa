"""Durable local persistence for drafts.

``DraftStore`` sits on a synchronous string key-value backend and keeps
the editing session usable whatever that backend does: reads never
raise, writes that fail are logged and dropped.  The write path strips
everything that cannot survive the session (pending files and local
preview handles) so a snapshot is always safe to reload.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from draftkit.config import DEFAULT_HANDLE_PREFIX
from draftkit.drafts.models import Draft
from draftkit.drafts.normalize import coerce_draft
from draftkit.errors import PersistenceError
from draftkit.media.handles import MediaRef
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

STORE_FILENAME = ".draftkit-drafts.json"
NEW_ENTITY = "new"


def draft_key(entity_kind: str, entity_id: int | str | None = None, prefix: str = "draftkit") -> str:
    """Build the store key for one entity kind and id (or the new-entity sentinel)."""
    ident = NEW_ENTITY if entity_id is None or str(entity_id).strip() == "" else str(entity_id)
    return f"{prefix}:{entity_kind}:{ident}"


# ── Backends ─────────────────────────────────────────────────────


@runtime_checkable
class KeyValueStore(Protocol):
    """Synchronous string key-value substrate."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local backend, mostly for tests and embedding."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    entries: dict[str, str] = Field(default_factory=dict)


class JsonFileKeyValueStore:
    """JSON-file backend.

    Loads the file on init and saves after every mutation.  I/O failures
    surface as PersistenceError.
    """

    def __init__(self, directory: Path) -> None:
        self._path = Path(directory) / STORE_FILENAME
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError, OSError):
            logger.warning("Corrupt draft store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(self._data.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self._path}: {exc}") from exc

    def get(self, key: str) -> str | None:
        return self._data.entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._data.entries[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._data.entries.pop(key, None) is not None:
            self._save()

    def keys(self) -> list[str]:
        return sorted(self._data.entries)


# ── Draft store ──────────────────────────────────────────────────


def sanitize_for_storage(draft: Draft, handle_prefix: str = DEFAULT_HANDLE_PREFIX) -> Draft:
    """Return a copy of *draft* holding only data that survives the session.

    Pending files are dropped and local preview handles become ``""``.
    """

    def keep(value: str) -> str:
        return "" if MediaRef.parse(value, handle_prefix).is_local else value

    gallery = [
        item.without_pending().model_copy(
            update={"url": keep(item.url), "thumbnail_url": keep(item.thumbnail_url)}
        )
        for item in draft.gallery
    ]
    attachments = [attachment.model_copy() for attachment in draft.attachments]
    return draft.model_copy(
        update={
            "cover_image_url": keep(draft.cover_image_url),
            "cover_image_file": None,
            "gallery": gallery,
            "attachments": attachments,
            "tag_ids": list(draft.tag_ids),
            "related_ids": list(draft.related_ids),
        }
    )


class DraftStore:
    """Keyed draft persistence with tolerant load."""

    def __init__(self, backend: KeyValueStore, handle_prefix: str = DEFAULT_HANDLE_PREFIX) -> None:
        self._backend = backend
        self._handle_prefix = handle_prefix

    def _read(self, key: str) -> str | None:
        try:
            return self._backend.get(key)
        except Exception:
            logger.warning("Failed to read draft '%s'", key, exc_info=True)
            return None

    def load(self, key: str) -> Draft | None:
        """Return the stored draft, or None if absent or unreadable."""
        raw = self._read(key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Corrupt draft at '%s', ignoring", key)
            return None
        if not isinstance(data, dict):
            logger.warning("Draft at '%s' is not an object, ignoring", key)
            return None
        draft = coerce_draft(data)
        logger.debug("Loaded draft '%s' (%s)", key, draft.title or "untitled")
        return draft

    def serialize(self, draft: Draft) -> str:
        """Serialize the sanitized snapshot of *draft*."""
        return sanitize_for_storage(draft, self._handle_prefix).model_dump_json()

    def save(self, key: str, draft: Draft) -> None:
        """Persist a sanitized snapshot; failures are logged, never raised."""
        try:
            payload = self.serialize(draft)
            self._backend.set(key, payload)
        except Exception:
            logger.warning("Failed to save draft '%s'", key, exc_info=True)
            return
        logger.debug("Saved draft '%s'", key)

    def clear(self, key: str) -> None:
        """Remove the stored draft; clearing an absent key is fine."""
        try:
            self._backend.remove(key)
        except Exception:
            logger.warning("Failed to clear draft '%s'", key, exc_info=True)
            return
        logger.debug("Cleared draft '%s'", key)

    def has_draft(self, key: str) -> bool:
        return self._read(key) is not None

    def last_updated(self, key: str) -> datetime | None:
        """Timestamp of the stored draft, or None if there is none."""
        draft = self.load(key)
        return draft.updated_at if draft is not None else None
