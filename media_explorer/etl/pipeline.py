"""
Import pipeline orchestration.

Coordinates detection, parsing and loading of one or more exports into
explorer.db.

IMPORTANT: Parse First, Lock Second
    All exports are parsed completely (file I/O, JSON decoding, context
    extraction) before the store lock is taken. Only the delete+insert runs
    under the lock, inside a single transaction. Consequences:
    - A parse failure in any source leaves the store untouched
    - A store failure rolls back every source of the call
    - Disk-bound work never blocks readers

Pipeline Steps (import_exports):
    1. Validate paths and context window
    2. Detect the format of each root and parse it
    3. Open one transaction
    4. Clear every given source (by normalized path)
    5. Load all parsed conversations
    6. Commit, return ImportResult
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Sequence, Union
import logging

from media_explorer.errors import MediaExplorerError, PathNotFoundError, StoreError
from media_explorer.etl.detection import ExportFormat, detect_format as _detect_format
from media_explorer.etl.extractors import normalize_source_path, parse_export
from media_explorer.etl.loaders import ImportStats, clear_all as _clear_all, clear_source
from media_explorer.etl.loaders import load_conversations
from media_explorer.etl.models import ParsedConversation

if TYPE_CHECKING:
    from media_explorer.database import DatabaseConnection

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_WINDOW = 5


@dataclass
class ImportResult:
    """Result of an import or add-source run."""

    success: bool
    conversations: int = 0
    media: int = 0
    senders: int = 0
    skipped_conversations: int = 0
    sources: List[str] = field(default_factory=list)
    error: str = ""
    duration_seconds: float = 0.0

    @property
    def stats(self) -> Dict[str, int]:
        """The counts returned to API consumers."""
        return {
            "conversations": self.conversations,
            "media": self.media,
            "senders": self.senders,
        }

    def __str__(self) -> str:
        if not self.success:
            return f"Import FAILED: {self.error}\n  Duration: {self.duration_seconds:.2f}s"
        sources = "\n".join(f"    {s}" for s in self.sources)
        return (
            f"Import SUCCESS\n"
            f"  Sources:\n{sources}\n"
            f"  Conversations: {self.conversations} "
            f"({self.skipped_conversations} skipped)\n"
            f"  Media: {self.media}\n"
            f"  Senders in store: {self.senders}\n"
            f"  Duration: {self.duration_seconds:.2f}s"
        )


def detect_format(path: Union[str, Path]) -> ExportFormat:
    """
    Detect the export format of a folder.

    Raises:
        PathNotFoundError: If the folder does not exist.
        UnrecognizedFormatError: If the folder matches no known layout.
    """
    return _detect_format(normalize_source_path(path))


def _parse_all(
    paths: Sequence[Union[str, Path]], context_window: int
) -> tuple[List[str], List[ParsedConversation], int]:
    """
    Parse every export before the store is touched.

    Duplicate paths (after normalization) are parsed once.

    Returns:
        (normalized source paths, all conversations, skipped conversation count)
    """
    sources: List[str] = []
    conversations: List[ParsedConversation] = []
    skipped = 0

    for raw_path in paths:
        root = normalize_source_path(raw_path)
        if str(root) in sources:
            continue
        if not root.exists():
            raise PathNotFoundError(raw_path)

        logger.info(f"Parsing export: {root}")
        parsed = parse_export(root, context_window)
        sources.append(parsed.source_path)
        conversations.extend(parsed.conversations)
        skipped += parsed.skipped

    return sources, conversations, skipped


def _replace_sources(
    db: "DatabaseConnection", sources: List[str], conversations: List[ParsedConversation]
) -> ImportStats:
    """Clear the given sources and insert the new data in one transaction."""
    try:
        with db.transaction() as conn:
            for source in sources:
                clear_source(conn, source)
            return load_conversations(conn, conversations)
    except sqlite3.Error as e:
        raise StoreError(f"Store error during import: {e}", e) from e


def _run(
    db: "DatabaseConnection",
    paths: Sequence[Union[str, Path]],
    context_window: int,
) -> ImportResult:
    start_time = datetime.now()
    try:
        if not paths:
            raise ValueError("No export paths given")
        if context_window < 0:
            raise ValueError(f"context_window must be >= 0, got {context_window}")

        sources, conversations, skipped = _parse_all(paths, context_window)
        stats = _replace_sources(db, sources, conversations)

    except (MediaExplorerError, ValueError) as e:
        duration = (datetime.now() - start_time).total_seconds()
        logger.error(f"Import failed: {e}")
        return ImportResult(success=False, error=str(e), duration_seconds=duration)

    duration = (datetime.now() - start_time).total_seconds()
    result = ImportResult(
        success=True,
        conversations=stats.conversations,
        media=stats.media,
        senders=stats.senders,
        skipped_conversations=skipped,
        sources=sources,
        duration_seconds=duration,
    )
    logger.info(
        f"Import complete: {result.conversations} conversations, {result.media} media, "
        f"{result.senders} senders in {duration:.2f}s"
    )
    return result


def import_exports(
    db: "DatabaseConnection",
    paths: Sequence[Union[str, Path]],
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> ImportResult:
    """
    Import several exports, replacing only those sources.

    Every path is parsed before any store mutation; all sources are then
    cleared and reloaded inside one transaction.

    Args:
        db: Connected store.
        paths: Export roots.
        context_window: Messages of context on each side of a media item.

    Returns:
        ImportResult. On failure success is False, error holds the message
        and the store is unchanged.
    """
    return _run(db, paths, context_window)


def add_source(
    db: "DatabaseConnection",
    path: Union[str, Path],
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> ImportResult:
    """
    Import one additional export in its own transaction.

    Re-adding an already imported folder replaces its previous data.

    Args:
        db: Connected store.
        path: Export root.
        context_window: Messages of context on each side of a media item.

    Returns:
        ImportResult.
    """
    return _run(db, [path], context_window)


def remove_source(db: "DatabaseConnection", path: Union[str, Path]) -> int:
    """
    Remove everything imported from one export.

    Args:
        db: Connected store.
        path: Export root, as given at import time or any equivalent spelling.

    Returns:
        Number of conversations removed.

    Raises:
        StoreError: If the delete fails (nothing is removed).
    """
    source = str(normalize_source_path(path))
    try:
        with db.transaction() as conn:
            return clear_source(conn, source)
    except sqlite3.Error as e:
        raise StoreError(f"Failed to remove source {source}: {e}", e) from e


def clear_all(db: "DatabaseConnection") -> None:
    """
    Delete all data and reclaim disk space.

    Raises:
        StoreError: If the delete or VACUUM fails.
    """
    try:
        with db.transaction() as conn:
            _clear_all(conn)
        db.vacuum()
    except sqlite3.Error as e:
        raise StoreError(f"Failed to clear store: {e}", e) from e
