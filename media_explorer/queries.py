"""
SQL query definitions for the media store.

Contains reusable SQL query strings and the media filter builder. Query
functions return either a SQL string or a (SQL string, parameters) tuple;
nothing here executes SQL.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

DEFAULT_LIMIT = 500
DEFAULT_OFFSET = 0

SORT_DATE_DESC = "date-desc"
SORT_DATE_ASC = "date-asc"
SORT_SENDER = "sender"

# Month bucket ("YYYY-MM") of a media row, in UTC.
MONTH_EXPR = "strftime('%Y-%m', m.timestamp_ms / 1000, 'unixepoch')"

MONTH_ABBREVIATIONS = {
    "01": "Jan",
    "02": "Feb",
    "03": "Mar",
    "04": "Apr",
    "05": "May",
    "06": "Jun",
    "07": "Jul",
    "08": "Aug",
    "09": "Sep",
    "10": "Oct",
    "11": "Nov",
    "12": "Dec",
}

# Punctuation replaced by spaces before a whole-word match.
WORD_SEPARATORS = (",", ".", "!", "?", '"', "'")

MEDIA_COLUMNS = """
    m.id,
    m.file_path,
    s.name,
    m.timestamp_ms,
    c.title,
    c.chat_type,
    m.file_type,
    m.conversation_id,
    m.sender_id
"""

MEDIA_JOINS = """
    FROM media m
    JOIN senders s ON s.id = m.sender_id
    JOIN conversations c ON c.id = m.conversation_id
"""


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def word_normalized(column: str) -> str:
    """
    SQL expression for a column with punctuation turned into spaces and a
    space added on both ends, ready for LIKE '% word %'.
    """
    expr = column
    for char in WORD_SEPARATORS:
        expr = f"REPLACE({expr}, {_sql_literal(char)}, ' ')"
    return f"(' ' || {expr} || ' ')"


class PredicateList:
    """
    Ordered WHERE conditions with their bound parameters.

    Conditions are added only for filters that are present and rendered once,
    so the SQL text and the parameter tuple can never drift apart.
    """

    def __init__(self) -> None:
        self._conditions: List[Tuple[str, Tuple[Any, ...]]] = []

    def add(self, condition: str, *params: Any) -> "PredicateList":
        self._conditions.append((condition, params))
        return self

    def __len__(self) -> int:
        return len(self._conditions)

    def render(self) -> Tuple[str, Tuple[Any, ...]]:
        """
        Returns:
            ("WHERE 1=1 AND ...", flat parameter tuple)
        """
        clause = "WHERE 1=1"
        params: List[Any] = []
        for condition, condition_params in self._conditions:
            clause += f" AND {condition}"
            params.extend(condition_params)
        return clause, tuple(params)


@dataclass
class MediaFilters:
    """Filters, sort order and page for a media listing."""

    conversation_id: Optional[int] = None
    sender_id: Optional[int] = None
    file_type: Optional[str] = None
    month: Optional[str] = None  # "YYYY-MM"
    search: Optional[str] = None
    sort: str = SORT_DATE_DESC
    limit: Optional[int] = None
    offset: Optional[int] = None


def search_condition(term: str) -> Tuple[str, Tuple[Any, ...]]:
    """
    Condition matching a media item against a search term.

    Sender names and conversation titles match on substring; message and
    context content match on whole words only, so "cat" does not match
    "concatenate".
    """
    substring = f"%{term}%"
    whole_word = f"% {term} %"
    condition = f"""(
        s.name LIKE ?
        OR c.title LIKE ?
        OR {word_normalized('m.message_content')} LIKE ?
        OR m.id IN (
            SELECT cm.media_id
            FROM context_messages cm
            JOIN senders cs ON cs.id = cm.sender_id
            WHERE cs.name LIKE ? OR {word_normalized('cm.content')} LIKE ?
        )
    )"""
    return condition, (substring, substring, whole_word, substring, whole_word)


def order_by(sort: Optional[str]) -> str:
    """ORDER BY clause for a sort key. Unknown keys sort newest first."""
    if sort == SORT_DATE_ASC:
        return "ORDER BY m.timestamp_ms ASC, m.id ASC"
    if sort == SORT_SENDER:
        return "ORDER BY s.name ASC, m.timestamp_ms DESC, m.id DESC"
    return "ORDER BY m.timestamp_ms DESC, m.id DESC"


def build_media_query(filters: MediaFilters) -> Tuple[str, Tuple[Any, ...]]:
    """
    Get query to list media matching the given filters.

    Args:
        filters: Filters, sort and pagination.

    Returns:
        (SQL query string, parameters tuple).
    """
    predicates = PredicateList()
    if filters.conversation_id is not None:
        predicates.add("m.conversation_id = ?", filters.conversation_id)
    if filters.sender_id is not None:
        predicates.add("m.sender_id = ?", filters.sender_id)
    if filters.file_type:
        predicates.add("m.file_type = ?", filters.file_type)
    if filters.month:
        predicates.add(f"{MONTH_EXPR} = ?", filters.month)
    if filters.search:
        condition, params = search_condition(filters.search)
        predicates.add(condition, *params)

    where, params = predicates.render()
    limit = DEFAULT_LIMIT if filters.limit is None else int(filters.limit)
    offset = DEFAULT_OFFSET if filters.offset is None else int(filters.offset)

    query = f"""
        SELECT {MEDIA_COLUMNS}
        {MEDIA_JOINS}
        {where}
        {order_by(filters.sort)}
        LIMIT ? OFFSET ?;
    """
    return query, params + (limit, offset)


def get_media_by_id(media_id: int) -> Tuple[str, Tuple[Any, ...]]:
    """
    Get query to retrieve one media item.

    Returns:
        (SQL query string, parameters tuple).
    """
    query = f"""
        SELECT {MEDIA_COLUMNS}
        {MEDIA_JOINS}
        WHERE m.id = ?;
    """
    return query, (int(media_id),)


def get_context_messages(media_id: int) -> Tuple[str, Tuple[Any, ...]]:
    """
    Get query to retrieve the context of one media item, ordered by position.

    Returns:
        (SQL query string, parameters tuple).
    """
    query = """
        SELECT s.name, cm.content, cm.timestamp_ms, cm.position
        FROM context_messages cm
        JOIN senders s ON s.id = cm.sender_id
        WHERE cm.media_id = ?
        ORDER BY cm.position ASC;
    """
    return query, (int(media_id),)


def get_import_status() -> str:
    """Get query to count media and conversations."""
    return """
        SELECT
            (SELECT COUNT(*) FROM media),
            (SELECT COUNT(*) FROM conversations);
    """


def get_conversations() -> str:
    """Get query to list conversations with their media counts, by title."""
    return """
        SELECT c.id, c.title, c.chat_type, COUNT(m.id) AS media_count
        FROM conversations c
        LEFT JOIN media m ON m.conversation_id = c.id
        GROUP BY c.id
        ORDER BY c.title, c.id;
    """


def get_senders() -> str:
    """Get query to list senders that have sent at least one media item, by name."""
    return """
        SELECT s.id, s.name, COUNT(m.id) AS media_count
        FROM senders s
        JOIN media m ON m.sender_id = s.id
        GROUP BY s.id
        ORDER BY s.name;
    """


def get_timeline() -> str:
    """Get query to count media per month, newest month first."""
    return f"""
        SELECT {MONTH_EXPR} AS month_key, COUNT(*) AS count
        FROM media m
        GROUP BY month_key
        ORDER BY month_key DESC;
    """


def get_sources() -> str:
    """Get query to summarise imported sources."""
    return """
        SELECT
            c.source_type,
            c.source_path,
            COUNT(DISTINCT c.id) AS conversations,
            COUNT(m.id) AS media_count
        FROM conversations c
        LEFT JOIN media m ON m.conversation_id = c.id
        GROUP BY c.source_type, c.source_path
        ORDER BY c.source_path;
    """


def format_month_label(month_key: Optional[str]) -> Optional[str]:
    """
    Turn a "YYYY-MM" bucket key into a display label ("2024-03" → "Mar 2024").

    Keys that do not have that shape are returned unchanged.
    """
    if not month_key:
        return month_key
    parts = month_key.split("-")
    if len(parts) != 2 or parts[1] not in MONTH_ABBREVIATIONS:
        return month_key
    year, month = parts
    return f"{MONTH_ABBREVIATIONS[month]} {year}"
