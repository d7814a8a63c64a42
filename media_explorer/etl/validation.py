"""
Store validation module.

Automated checks that the store still satisfies the invariants the import
pipeline is supposed to maintain. Run after an import, or from the CLI
(`media-explorer validate`), to spot corruption or stale media files.

Validation Checks:
    1. Schema version is current
    2. chat_type is 'dm' exactly when participant_count <= 2
    3. Context positions are contiguous per media item (-k..-1 and 1..k)
    4. No orphaned senders
    5. No dangling media / context / participant rows
    6. Media files still exist on disk (warning only: exports can move)
"""

import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional
import logging

from media_explorer.etl.schema import SCHEMA_VERSION, get_schema_version

if TYPE_CHECKING:
    from media_explorer.database import DatabaseConnection

logger = logging.getLogger(__name__)

# Cap on how many offending ids are listed in a check's details.
MAX_DETAIL_ITEMS = 10


@dataclass
class ValidationCheck:
    """Result of a single validation check."""

    name: str
    passed: bool
    message: str
    details: Optional[str] = None
    is_warning: bool = False


@dataclass
class ValidationResult:
    """Result of all validation checks."""

    passed: bool
    checks: List[ValidationCheck] = field(default_factory=list)

    def __str__(self) -> str:
        lines = []
        for check in self.checks:
            if check.passed:
                icon = "✓"
            elif check.is_warning:
                icon = "!"
            else:
                icon = "✗"
            lines.append(f"{icon} {check.name}: {check.message}")
            if check.details and not check.passed:
                lines.append(f"  → {check.details}")

        status = "All checks passed" if self.passed else "Some checks failed"
        lines.append(f"\n{status}.")
        return "\n".join(lines)


def _fetch_all(conn: sqlite3.Connection, query: str) -> List[tuple]:
    with closing(conn.cursor()) as cursor:
        cursor.execute(query)
        return cursor.fetchall()


def _ids_detail(ids: List[int]) -> str:
    shown = ", ".join(str(i) for i in ids[:MAX_DETAIL_ITEMS])
    if len(ids) > MAX_DETAIL_ITEMS:
        shown += f", ... ({len(ids)} total)"
    return shown


def check_schema_version(conn: sqlite3.Connection) -> ValidationCheck:
    """Check that the stored schema version is the current one."""
    version = get_schema_version(conn)
    if version == SCHEMA_VERSION:
        return ValidationCheck("Schema version", True, f"version {version}")
    return ValidationCheck(
        "Schema version",
        False,
        f"found {version}, expected {SCHEMA_VERSION}",
    )


def check_chat_types(conn: sqlite3.Connection) -> ValidationCheck:
    """Check chat_type against participant_count for every conversation."""
    rows = _fetch_all(
        conn,
        """
        SELECT id FROM conversations
        WHERE (participant_count <= 2 AND chat_type != 'dm')
           OR (participant_count > 2 AND chat_type != 'group')
        ORDER BY id;
        """,
    )
    bad = [row[0] for row in rows]
    if not bad:
        return ValidationCheck("Chat types", True, "all conversations consistent")
    return ValidationCheck(
        "Chat types",
        False,
        f"{len(bad)} conversations with wrong chat_type",
        details=f"conversation ids: {_ids_detail(bad)}",
    )


def _positions_contiguous(positions: List[int]) -> bool:
    before = sorted(p for p in positions if p < 0)
    after = sorted(p for p in positions if p > 0)
    return (
        0 not in positions
        and before == list(range(-len(before), 0))
        and after == list(range(1, len(after) + 1))
    )


def check_context_positions(conn: sqlite3.Connection) -> ValidationCheck:
    """Check that each media item's context positions are contiguous and unique."""
    by_media: Dict[int, List[int]] = {}
    for media_id, position in _fetch_all(
        conn, "SELECT media_id, position FROM context_messages ORDER BY media_id, position;"
    ):
        by_media.setdefault(media_id, []).append(position)

    bad = [media_id for media_id, positions in by_media.items() if not _positions_contiguous(positions)]
    if not bad:
        return ValidationCheck(
            "Context positions", True, f"{len(by_media)} media items with contiguous context"
        )
    return ValidationCheck(
        "Context positions",
        False,
        f"{len(bad)} media items with gaps or duplicates",
        details=f"media ids: {_ids_detail(bad)}",
    )


def check_orphan_senders(conn: sqlite3.Connection) -> ValidationCheck:
    """Check that every sender is still referenced somewhere."""
    rows = _fetch_all(
        conn,
        """
        SELECT id FROM senders
        WHERE id NOT IN (SELECT sender_id FROM media)
          AND id NOT IN (SELECT sender_id FROM conversation_participants)
          AND id NOT IN (SELECT sender_id FROM context_messages)
        ORDER BY id;
        """,
    )
    orphans = [row[0] for row in rows]
    if not orphans:
        return ValidationCheck("Orphaned senders", True, "none")
    return ValidationCheck(
        "Orphaned senders",
        False,
        f"{len(orphans)} senders without references",
        details=f"sender ids: {_ids_detail(orphans)}",
    )


def check_dangling_rows(conn: sqlite3.Connection) -> ValidationCheck:
    """Check that child rows point at existing parents."""
    counts = _fetch_all(
        conn,
        """
        SELECT
            (SELECT COUNT(*) FROM media
             WHERE conversation_id NOT IN (SELECT id FROM conversations)
                OR sender_id NOT IN (SELECT id FROM senders)),
            (SELECT COUNT(*) FROM context_messages
             WHERE media_id NOT IN (SELECT id FROM media)
                OR sender_id NOT IN (SELECT id FROM senders)),
            (SELECT COUNT(*) FROM conversation_participants
             WHERE conversation_id NOT IN (SELECT id FROM conversations)
                OR sender_id NOT IN (SELECT id FROM senders));
        """,
    )[0]
    media, context, participants = counts
    total = media + context + participants
    if total == 0:
        return ValidationCheck("Referential integrity", True, "no dangling rows")
    return ValidationCheck(
        "Referential integrity",
        False,
        f"{total} dangling rows",
        details=f"media={media}, context_messages={context}, participants={participants}",
    )


def check_media_files(conn: sqlite3.Connection) -> ValidationCheck:
    """Check that media files still exist (warning only)."""
    rows = _fetch_all(conn, "SELECT id, file_path FROM media ORDER BY id;")
    missing = [media_id for media_id, file_path in rows if not Path(file_path).is_file()]
    if not missing:
        return ValidationCheck("Media files", True, f"all {len(rows)} files present")
    return ValidationCheck(
        "Media files",
        False,
        f"{len(missing)} of {len(rows)} files missing on disk",
        details=f"media ids: {_ids_detail(missing)}",
        is_warning=True,
    )


def validate_store(db: "DatabaseConnection", check_files: bool = True) -> ValidationResult:
    """
    Run all validation checks.

    Args:
        db: Connected store.
        check_files: Also stat every media file (slow on large stores).

    Returns:
        ValidationResult; warnings do not make it fail.
    """
    with db.locked() as conn:
        checks = [
            check_schema_version(conn),
            check_chat_types(conn),
            check_context_positions(conn),
            check_orphan_senders(conn),
            check_dangling_rows(conn),
        ]
        if check_files:
            checks.append(check_media_files(conn))

    passed = all(check.passed or check.is_warning for check in checks)
    for check in checks:
        if not check.passed:
            log = logger.warning if check.is_warning else logger.error
            log(f"Validation {check.name}: {check.message}")

    return ValidationResult(passed=passed, checks=checks)
