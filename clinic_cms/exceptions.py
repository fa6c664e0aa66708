"""
Domain errors raised by the CMS services.
Mapped to HTTP responses by the exception handlers in clinic_cms.main.
"""
from typing import Any, Optional


class CMSError(Exception):
    """Base class for errors raised by the CMS services."""

    error = "CMS error"

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail if detail is not None else message


class NotFoundError(CMSError):
    """A record referenced by id does not exist (in the requested scope)."""

    error = "Not found"


class InvalidInputError(CMSError):
    """Malformed reorder payload, DTO or upload."""

    error = "Invalid input"


class StorageWriteError(CMSError):
    """Writing an uploaded file to the storage root failed."""

    error = "Storage write failed"


class StorageCleanupWarning(CMSError):
    """
    Removing an old or orphaned file failed.
    Only ever logged; never raised out of a request.
    """

    error = "Storage cleanup failed"
