"""Media staging: local files, preview handles and reference classification.

The staging manager and the upload orchestrator depend on the draft
models and are imported from ``draftkit.media.staging`` and
``draftkit.media.orchestrator``.
"""

from draftkit.media.files import LocalFile, UploadedMedia
from draftkit.media.handles import HandleAllocator, LocalHandleAllocator, MediaRef, RefKind

__all__ = [
    "HandleAllocator",
    "LocalFile",
    "LocalHandleAllocator",
    "MediaRef",
    "RefKind",
    "UploadedMedia",
]
