from __future__ import annotations

from typing import Optional


class SlorpitError(Exception):
    """Base class for Slorpit-specific errors."""


class ArchiveIOError(SlorpitError):
    """A filesystem operation failed; carries the operation and offending path."""

    def __init__(self, op: str, path: str, cause: Optional[BaseException] = None):
        self.op = op
        self.path = path
        self.cause = cause
        msg = f"{op} failed for {path}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)


# Container related
class ContainerError(SlorpitError):
    pass


class MissingCatalog(SlorpitError):
    pass


class InvalidCatalog(SlorpitError):
    pass


# Per-entry conditions
class CorruptPayload(SlorpitError):
    pass


class MissingPayload(SlorpitError):
    pass


class UnsafePath(SlorpitError, ValueError):
    pass


class TimestampNotRestored(SlorpitError):
    pass


# Build-time conditions
class SkippedInput(SlorpitError):
    """An input was neither a regular file nor a directory and was not archived."""


class DuplicatePath(SlorpitError):
    """Two inputs mapped to the same archive path; both are stored."""
