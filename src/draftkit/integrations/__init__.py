"""External collaborator interfaces and local stand-ins."""

from draftkit.integrations.base import EntityApi, Uploader
from draftkit.integrations.local import DirectoryUploader

__all__ = ["DirectoryUploader", "EntityApi", "Uploader"]
