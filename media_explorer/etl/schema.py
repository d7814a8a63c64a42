"""
Schema definitions for explorer.db.

Design Decisions:
    1. Senders are global: one row per display name across all sources
    2. Conversations carry (source_type, source_path) so a whole export can be
       removed or re-imported without touching other exports
    3. Foreign keys are declared for documentation but not enforced; deletes
       are ordered explicitly in loaders.clear_source
    4. Incompatible on-disk layouts are dropped and recreated, not migrated.
       Everything in the store can be re-derived from the original exports.
"""

import sqlite3
from contextlib import closing
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

# Bump whenever SCHEMA_DDL changes incompatibly.
SCHEMA_VERSION = 2

# Data tables, in an order that is safe to drop.
DATA_TABLES = (
    "context_messages",
    "media",
    "conversation_participants",
    "senders",
    "conversations",
)

SCHEMA_DDL = """
-- =============================================================================
-- conversations: one chat thread from one export
-- =============================================================================
-- chat_type is derived from participant_count ('dm' iff <= 2).
--
CREATE TABLE IF NOT EXISTS conversations (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    folder_name       TEXT NOT NULL,
    title             TEXT NOT NULL,
    chat_type         TEXT NOT NULL CHECK (chat_type IN ('group', 'dm')),
    participant_count INTEGER NOT NULL,
    thread_path       TEXT NOT NULL,
    source_type       TEXT NOT NULL,
    source_path       TEXT NOT NULL,
    UNIQUE (source_path, folder_name)
);

CREATE INDEX IF NOT EXISTS idx_conversations_source
    ON conversations(source_path);

-- =============================================================================
-- senders: people, unique by name across every source
-- =============================================================================
CREATE TABLE IF NOT EXISTS senders (
    id   INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS conversation_participants (
    conversation_id INTEGER NOT NULL REFERENCES conversations(id),
    sender_id       INTEGER NOT NULL REFERENCES senders(id),
    PRIMARY KEY (conversation_id, sender_id)
);

-- =============================================================================
-- media: one row per photo / video / gif that exists on disk
-- =============================================================================
CREATE TABLE IF NOT EXISTS media (
    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
    conversation_id    INTEGER NOT NULL REFERENCES conversations(id),
    sender_id          INTEGER NOT NULL REFERENCES senders(id),
    file_path          TEXT NOT NULL,
    relative_uri       TEXT NOT NULL,
    file_type          TEXT NOT NULL CHECK (file_type IN ('image', 'video', 'gif')),
    timestamp_ms       INTEGER NOT NULL,
    creation_timestamp INTEGER,
    message_content    TEXT
);

CREATE INDEX IF NOT EXISTS idx_media_conversation ON media(conversation_id);
CREATE INDEX IF NOT EXISTS idx_media_sender ON media(sender_id);
CREATE INDEX IF NOT EXISTS idx_media_file_type ON media(file_type);
CREATE INDEX IF NOT EXISTS idx_media_timestamp ON media(timestamp_ms);

-- =============================================================================
-- context_messages: messages around a media message
-- =============================================================================
-- position < 0: before the media message (-1 is the nearest)
-- position > 0: after the media message (1 is the nearest)
--
CREATE TABLE IF NOT EXISTS context_messages (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    media_id     INTEGER NOT NULL REFERENCES media(id),
    sender_id    INTEGER NOT NULL REFERENCES senders(id),
    content      TEXT NOT NULL,
    timestamp_ms INTEGER NOT NULL,
    position     INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_context_media ON context_messages(media_id);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def get_table_names(conn: sqlite3.Connection) -> List[str]:
    """
    Get all table names in the store.

    Args:
        conn: SQLite connection to explorer.db.

    Returns:
        Sorted list of table names.
    """
    with closing(conn.cursor()) as cursor:
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;")
        return [row[0] for row in cursor.fetchall()]


def get_schema_version(conn: sqlite3.Connection) -> Optional[int]:
    """
    Read the stored schema version.

    Returns:
        The version number, or None if the marker table is missing or empty.
    """
    if "schema_version" not in get_table_names(conn):
        return None
    with closing(conn.cursor()) as cursor:
        cursor.execute("SELECT MAX(version) FROM schema_version;")
        row = cursor.fetchone()
        return row[0] if row else None


def drop_schema(conn: sqlite3.Connection) -> None:
    """Drop every table this module owns."""
    for table in DATA_TABLES + ("schema_version",):
        conn.execute(f"DROP TABLE IF EXISTS {table};")


def create_schema(conn: sqlite3.Connection) -> bool:
    """
    Create the schema, replacing an incompatible one.

    Idempotent when the stored version matches SCHEMA_VERSION. A different
    version, or data tables without a version marker (an older layout), are
    dropped and recreated.

    Args:
        conn: SQLite connection to explorer.db (autocommit mode).

    Returns:
        True if an existing incompatible schema was dropped.

    Raises:
        sqlite3.Error: If schema creation fails.
    """
    existing = set(get_table_names(conn))
    version = get_schema_version(conn)

    migrated = False
    if version != SCHEMA_VERSION and existing & set(DATA_TABLES + ("schema_version",)):
        logger.warning(
            f"Store schema version {version} is incompatible with {SCHEMA_VERSION}; "
            "dropping existing tables"
        )
        drop_schema(conn)
        migrated = True

    try:
        conn.executescript(SCHEMA_DDL)
        if get_schema_version(conn) is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?);", (SCHEMA_VERSION,))
            conn.commit()
    except sqlite3.Error as e:
        logger.error(f"Schema creation failed: {e}")
        raise

    logger.debug(f"Schema verified (version {SCHEMA_VERSION})")
    return migrated


def verify_schema(conn: sqlite3.Connection) -> bool:
    """
    Verify that the schema exists at the current version.

    Args:
        conn: SQLite connection to explorer.db.

    Returns:
        True if all required tables exist and the version matches.
    """
    required_tables = set(DATA_TABLES) | {"schema_version"}
    if not required_tables.issubset(get_table_names(conn)):
        return False
    return get_schema_version(conn) == SCHEMA_VERSION
