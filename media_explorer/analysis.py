"""
Read operations over the media store.

Provides the browsing side of Media Explorer: listings, filtered media
queries, context retrieval and aggregates. Every function takes a connected
DatabaseConnection and returns plain dicts ready for JSON.
"""

import logging
from typing import Any, Dict, List, Optional

from media_explorer.database import DatabaseConnection
from media_explorer.errors import MediaNotFoundError
from media_explorer.queries import (
    MediaFilters,
    build_media_query,
    format_month_label,
    get_context_messages,
    get_conversations,
    get_import_status as import_status_query,
    get_media_by_id,
    get_senders,
    get_sources,
    get_timeline as timeline_query,
)

logger = logging.getLogger(__name__)


def _media_item(row: tuple) -> Dict[str, Any]:
    return {
        "id": row[0],
        "file_path": row[1],
        "sender_name": row[2],
        "timestamp_ms": row[3],
        "conversation_title": row[4],
        "chat_type": row[5],
        "file_type": row[6],
        "conversation_id": row[7],
        "sender_id": row[8],
    }


def get_import_status(db: DatabaseConnection) -> Dict[str, Any]:
    """
    Report whether anything has been imported.

    Returns:
        Dictionary with has_data, media_count and conversation_count.
    """
    rows = db.execute_query(import_status_query())
    media_count, conversation_count = rows[0] if rows else (0, 0)
    return {
        "has_data": media_count > 0,
        "media_count": media_count,
        "conversation_count": conversation_count,
    }


def list_conversations(db: DatabaseConnection) -> List[Dict[str, Any]]:
    """
    Get all conversations with their media counts, ordered by title.

    Args:
        db: Database connection.

    Returns:
        List of dictionaries with id, title, chat_type and media_count.
    """
    conversations = [
        {"id": row[0], "title": row[1], "chat_type": row[2], "media_count": row[3]}
        for row in db.execute_query(get_conversations())
    ]
    logger.debug(f"Retrieved {len(conversations)} conversations")
    return conversations


def list_senders(db: DatabaseConnection) -> List[Dict[str, Any]]:
    """Get senders with at least one media item, ordered by name."""
    return [
        {"id": row[0], "name": row[1], "media_count": row[2]}
        for row in db.execute_query(get_senders())
    ]


def list_media(
    db: DatabaseConnection, filters: Optional[MediaFilters] = None
) -> List[Dict[str, Any]]:
    """
    Get one page of media items matching the filters.

    Args:
        db: Database connection.
        filters: Filters, sort and pagination; defaults to the first 500
            items, newest first.

    Returns:
        List of media item dictionaries.
    """
    query, params = build_media_query(filters or MediaFilters())
    items = [_media_item(row) for row in db.execute_query(query, params)]
    logger.debug(f"Retrieved {len(items)} media items")
    return items


def get_context(db: DatabaseConnection, media_id: int) -> Dict[str, Any]:
    """
    Get a media item with the messages around it.

    Both lookups run under a single hold of the store lock so the media row
    and its context always come from the same state.

    Args:
        db: Database connection.
        media_id: Media id.

    Returns:
        Dictionary with media, context_before (oldest first) and
        context_after (nearest first).

    Raises:
        MediaNotFoundError: If no media item has this id.
    """
    media_query, media_params = get_media_by_id(media_id)
    context_query, context_params = get_context_messages(media_id)

    with db.locked() as conn:
        media_row = conn.execute(media_query, media_params).fetchone()
        if media_row is None:
            raise MediaNotFoundError(media_id)
        context_rows = conn.execute(context_query, context_params).fetchall()

    context_before: List[Dict[str, Any]] = []
    context_after: List[Dict[str, Any]] = []
    for sender_name, content, timestamp_ms, position in context_rows:
        entry = {
            "sender_name": sender_name,
            "content": content,
            "timestamp_ms": timestamp_ms,
            "position": position,
        }
        if position < 0:
            context_before.append(entry)
        else:
            context_after.append(entry)

    return {
        "media": _media_item(media_row),
        "context_before": context_before,
        "context_after": context_after,
    }


def get_timeline(db: DatabaseConnection) -> List[Dict[str, Any]]:
    """
    Get media counts per month, newest month first.

    Returns:
        List of dictionaries with label ("Mar 2024"), month_key ("2024-03")
        and count.
    """
    return [
        {"label": format_month_label(month_key), "month_key": month_key, "count": count}
        for month_key, count in db.execute_query(timeline_query())
    ]


def list_sources(db: DatabaseConnection) -> List[Dict[str, Any]]:
    """
    Get every imported source with its conversation and media counts.

    Returns:
        List of dictionaries with source_type, source_path, conversations and
        media_count.
    """
    sources = [
        {
            "source_type": row[0],
            "source_path": row[1],
            "conversations": row[2],
            "media_count": row[3],
        }
        for row in db.execute_query(get_sources())
    ]
    logger.debug(f"Retrieved {len(sources)} sources")
    return sources


def get_storage_info(db: DatabaseConnection) -> Dict[str, Any]:
    """Get the on-disk size of the store (0 for in-memory stores)."""
    path = db.path
    return {
        "db_size_bytes": db.size_bytes(),
        "db_path": str(path) if path is not None else None,
    }
