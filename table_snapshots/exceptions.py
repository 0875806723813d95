from __future__ import annotations

from typing import Optional


class SnapshotCatalogError(Exception):
    """Base exception for snapshot and manifest metadata failures."""


class InvalidArgumentError(SnapshotCatalogError, ValueError):
    """Raised when a caller passes an argument that can never be valid."""


class TypeMismatchError(SnapshotCatalogError, TypeError):
    """Raised when a typed positional read finds a value of another kind."""


class RuntimeIOError(SnapshotCatalogError, IOError):
    """Unrecoverable failure opening, decoding or closing a metadata file.

    The location of the file involved is kept on the exception so callers
    can report it without parsing the message.
    """

    def __init__(self, message: str, location: Optional[str] = None):
        if location:
            message = f"{message}: {location}"
        super().__init__(message)
        self.location = location
