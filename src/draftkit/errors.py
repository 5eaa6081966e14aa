"""Error taxonomy for draft authoring and staged uploads.

Validation problems are never raised: they travel as data in a
``ValidationResult``.  Everything below is an exception type that some
layer raises and the ``DraftController`` turns into a uniform failure
result.
"""

from __future__ import annotations

from typing import Any


class DraftkitError(Exception):
    """Base error for the draftkit package."""


class StagingContractError(DraftkitError):
    """A local handle has no backing file, or staging targets the wrong kind.

    This is a caller bug rather than a user mistake, so the UI should show
    a generic "please retry" message.
    """


class InvalidMediaFileError(DraftkitError):
    """A file offered for staging is not an accepted image."""


class UploadError(DraftkitError):
    """An upload collaborator call failed for one media item."""

    def __init__(self, label: str, reason: str) -> None:
        self.label = label
        self.reason = reason
        super().__init__(f'Upload failed for "{label}": {reason}')


class ApiError(DraftkitError):
    """The entity API rejected a request."""

    def __init__(self, message: str, status: int | None = None, body: Any = None) -> None:
        self.message = message
        self.status = status
        self.body = body
        super().__init__(message)


class PersistenceError(DraftkitError):
    """Reading or writing the durable local store failed."""


API_ERROR_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    401: "Not authorized",
    403: "Access denied",
    404: "Not found",
    409: "Data conflict",
    422: "Invalid data",
    500: "Internal server error",
}

GENERIC_API_MESSAGE = "Unknown error"


def describe_api_error(exc: BaseException | None) -> str:
    """Return the best user-facing message for an API failure.

    Prefers a server-provided ``error``/``message`` in the response body,
    then a friendly message for the HTTP status, then the exception text.
    """
    if isinstance(exc, ApiError):
        body = exc.body
        if isinstance(body, dict):
            for key in ("error", "message"):
                value = body.get(key)
                if isinstance(value, str) and value.strip():
                    return value
        if exc.status is not None:
            return API_ERROR_MESSAGES.get(exc.status, exc.message or f"Error {exc.status}")
        return exc.message or GENERIC_API_MESSAGE
    if exc is not None and str(exc):
        return str(exc)
    return GENERIC_API_MESSAGE
