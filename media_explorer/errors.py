"""
Error hierarchy for Media Explorer.

All project exceptions inherit from MediaExplorerError so the API and CLI
boundaries can catch them with a single ``except`` and turn them into one
descriptive error string.

Hierarchy:
    MediaExplorerError
    ├── PathNotFoundError        export root or conversation file missing
    ├── UnrecognizedFormatError  folder is neither a Facebook nor a Messenger export
    ├── ShardParseError          one JSON file could not be parsed
    ├── MediaNotFoundError       unknown media id
    └── StoreError               persistence failure (transaction rolled back)

A media file referenced by an export but missing on disk is not an error:
the reference is skipped and a warning is logged.
"""

from pathlib import Path
from typing import Optional, Union


class MediaExplorerError(Exception):
    """Base class for all Media Explorer errors."""


class PathNotFoundError(MediaExplorerError):
    """Raised when an export root (or a file inside it) does not exist."""

    def __init__(self, path: Union[str, Path], what: str = "Export path"):
        self.path = str(path)
        super().__init__(f"{what} does not exist: {self.path}")


class UnrecognizedFormatError(MediaExplorerError):
    """Raised when a folder matches neither known export layout."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        super().__init__(
            f"Unrecognized export format at {self.path}. "
            "Expected Facebook or Messenger data."
        )


class ShardParseError(MediaExplorerError):
    """Raised when a single conversation JSON file is malformed."""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to parse {self.path}: {reason}")


class MediaNotFoundError(MediaExplorerError):
    """Raised when a media id does not exist in the store."""

    def __init__(self, media_id: int):
        self.media_id = media_id
        super().__init__(f"Media not found: {media_id}")


class StoreError(MediaExplorerError):
    """Raised when a store operation fails."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
