"""
Loaders for explorer.db.

This module writes parsed conversations into the store and removes them
again. None of these functions commit: the caller wraps them in
DatabaseConnection.transaction() so a whole import is all-or-nothing.

Design Decisions:
    1. Re-importing a source is delete-then-insert, never an in-place update
    2. Deletes run child-first through subqueries on conversation membership;
       no ON DELETE CASCADE is relied on
    3. Orphaned senders are removed by a separate step after every delete
    4. Senders are looked up, then inserted on a miss. This is only safe
       because the store has a single writer holding the store lock.
"""

import sqlite3
from contextlib import closing
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List
import logging

from media_explorer.etl.models import ContextMessage, ParsedConversation, ParsedMedia

logger = logging.getLogger(__name__)

SOURCE_CONVERSATIONS = "SELECT id FROM conversations WHERE source_path = ?"


@dataclass
class ImportStats:
    """Row counts produced by one load."""

    conversations: int = 0
    media: int = 0
    senders: int = 0  # total senders in the store after the load

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


# =============================================================================
# Deletion
# =============================================================================


def remove_orphan_senders(conn: sqlite3.Connection) -> int:
    """
    Delete senders no longer referenced by any media, participant link or
    context message.

    A sender that only appears in context (never sent media, not a listed
    participant) is kept on purpose: deleting it would leave context rows
    pointing at a missing sender.

    Args:
        conn: SQLite connection to explorer.db.

    Returns:
        Number of senders deleted.
    """
    query = """
        DELETE FROM senders
        WHERE id NOT IN (SELECT sender_id FROM media)
          AND id NOT IN (SELECT sender_id FROM conversation_participants)
          AND id NOT IN (SELECT sender_id FROM context_messages);
    """
    with closing(conn.cursor()) as cursor:
        cursor.execute(query)
        removed = cursor.rowcount

    if removed:
        logger.info(f"Removed {removed} orphaned senders")
    return removed


def clear_source(conn: sqlite3.Connection, source_path: str) -> int:
    """
    Delete every row attributable to one source.

    Args:
        conn: SQLite connection to explorer.db.
        source_path: Normalized source path.

    Returns:
        Number of conversations deleted.
    """
    statements = (
        f"""
        DELETE FROM context_messages WHERE media_id IN (
            SELECT id FROM media WHERE conversation_id IN ({SOURCE_CONVERSATIONS})
        );
        """,
        f"DELETE FROM media WHERE conversation_id IN ({SOURCE_CONVERSATIONS});",
        f"DELETE FROM conversation_participants WHERE conversation_id IN ({SOURCE_CONVERSATIONS});",
        "DELETE FROM conversations WHERE source_path = ?;",
    )

    with closing(conn.cursor()) as cursor:
        for statement in statements:
            cursor.execute(statement, (source_path,))
        deleted = cursor.rowcount

    remove_orphan_senders(conn)

    logger.info(f"Cleared source {source_path} ({deleted} conversations)")
    return deleted


def clear_all(conn: sqlite3.Connection) -> None:
    """
    Delete every row from every data table.

    Run VACUUM afterwards (outside the transaction) to shrink the file.
    """
    with closing(conn.cursor()) as cursor:
        for table in (
            "context_messages",
            "media",
            "conversation_participants",
            "senders",
            "conversations",
        ):
            cursor.execute(f"DELETE FROM {table};")

    logger.info("Cleared all data")


# =============================================================================
# Insertion
# =============================================================================


def get_or_create_sender(conn: sqlite3.Connection, name: str) -> int:
    """
    Return the id of the sender with this name, inserting it if missing.

    Args:
        conn: SQLite connection to explorer.db.
        name: Sender display name.

    Returns:
        Sender id.
    """
    with closing(conn.cursor()) as cursor:
        cursor.execute("SELECT id FROM senders WHERE name = ?;", (name,))
        row = cursor.fetchone()
        if row:
            return row[0]

        cursor.execute("INSERT INTO senders (name) VALUES (?);", (name,))
        return cursor.lastrowid


def insert_conversation(conn: sqlite3.Connection, conversation: ParsedConversation) -> int:
    """Insert a conversation row and return its id."""
    query = """
        INSERT INTO conversations
            (folder_name, title, chat_type, participant_count, thread_path,
             source_type, source_path)
        VALUES (?, ?, ?, ?, ?, ?, ?);
    """
    with closing(conn.cursor()) as cursor:
        cursor.execute(
            query,
            (
                conversation.folder_name,
                conversation.title,
                conversation.chat_type,
                conversation.participant_count,
                conversation.thread_path,
                conversation.source_type,
                conversation.source_path,
            ),
        )
        return cursor.lastrowid


def insert_participants(
    conn: sqlite3.Connection, conversation_id: int, participants: Iterable[str]
) -> None:
    """Link participants to a conversation. Duplicate names are ignored."""
    with closing(conn.cursor()) as cursor:
        for name in participants:
            sender_id = get_or_create_sender(conn, name)
            cursor.execute(
                """
                INSERT OR IGNORE INTO conversation_participants (conversation_id, sender_id)
                VALUES (?, ?);
                """,
                (conversation_id, sender_id),
            )


def insert_media(
    conn: sqlite3.Connection, conversation_id: int, sender_id: int, media: ParsedMedia
) -> int:
    """Insert a media row and return its id."""
    query = """
        INSERT INTO media
            (conversation_id, sender_id, file_path, relative_uri, file_type,
             timestamp_ms, creation_timestamp, message_content)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?);
    """
    with closing(conn.cursor()) as cursor:
        cursor.execute(
            query,
            (
                conversation_id,
                sender_id,
                media.file_path,
                media.relative_uri,
                media.file_type,
                media.timestamp_ms,
                media.creation_timestamp,
                media.message_content,
            ),
        )
        return cursor.lastrowid


def insert_context_messages(
    conn: sqlite3.Connection, media_id: int, messages: Iterable[ContextMessage]
) -> int:
    """Insert context messages for one media item. Returns how many were inserted."""
    query = """
        INSERT INTO context_messages (media_id, sender_id, content, timestamp_ms, position)
        VALUES (?, ?, ?, ?, ?);
    """
    inserted = 0
    with closing(conn.cursor()) as cursor:
        for message in messages:
            sender_id = get_or_create_sender(conn, message.sender_name)
            cursor.execute(
                query,
                (media_id, sender_id, message.content, message.timestamp_ms, message.position),
            )
            inserted += 1
    return inserted


def get_sender_count(conn: sqlite3.Connection) -> int:
    """Total number of senders in the store."""
    with closing(conn.cursor()) as cursor:
        cursor.execute("SELECT COUNT(*) FROM senders;")
        result = cursor.fetchone()
        return result[0] if result else 0


def load_conversations(
    conn: sqlite3.Connection, conversations: List[ParsedConversation]
) -> ImportStats:
    """
    Insert parsed conversations, their participants, media and context.

    The caller is responsible for clearing the sources first and for the
    surrounding transaction.

    Args:
        conn: SQLite connection to explorer.db.
        conversations: Parsed conversations from one or more sources.

    Returns:
        ImportStats; senders is a fresh count over the whole store.
    """
    stats = ImportStats()

    for conversation in conversations:
        conversation_id = insert_conversation(conn, conversation)
        stats.conversations += 1

        insert_participants(conn, conversation_id, conversation.participants)

        for media in conversation.media:
            sender_id = get_or_create_sender(conn, media.sender_name)
            media_id = insert_media(conn, conversation_id, sender_id, media)
            insert_context_messages(conn, media_id, media.context_before)
            insert_context_messages(conn, media_id, media.context_after)
            stats.media += 1

    stats.senders = get_sender_count(conn)

    logger.info(
        f"Loaded {stats.conversations} conversations, {stats.media} media "
        f"({stats.senders} senders in store)"
    )
    return stats


# =============================================================================
# Counts
# =============================================================================


def get_media_count(conn: sqlite3.Connection) -> int:
    """Total number of media rows."""
    with closing(conn.cursor()) as cursor:
        cursor.execute("SELECT COUNT(*) FROM media;")
        result = cursor.fetchone()
        return result[0] if result else 0


def get_conversation_count(conn: sqlite3.Connection) -> int:
    """Total number of conversation rows."""
    with closing(conn.cursor()) as cursor:
        cursor.execute("SELECT COUNT(*) FROM conversations;")
        result = cursor.fetchone()
        return result[0] if result else 0
