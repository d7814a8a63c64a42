"""
Tests for loading parsed conversations into the store and removing them.
"""

from typing import List

import pytest

from media_explorer.database import DatabaseConnection
from media_explorer.etl.loaders import (
    ImportStats,
    clear_all,
    clear_source,
    get_conversation_count,
    get_media_count,
    get_or_create_sender,
    get_sender_count,
    load_conversations,
    remove_orphan_senders,
)
from media_explorer.etl.models import ContextMessage, ParsedConversation, ParsedMedia


def _media(sender: str, path: str, context_senders: List[str] = ()) -> ParsedMedia:
    before = [
        ContextMessage(sender_name=name, content=f"from {name}", timestamp_ms=i, position=i - len(context_senders))
        for i, name in enumerate(context_senders)
    ]
    return ParsedMedia(
        file_path=path,
        relative_uri=path.lstrip("/"),
        file_type="image",
        timestamp_ms=100,
        sender_name=sender,
        context_before=before,
        context_after=[ContextMessage(sender_name=sender, content="after", timestamp_ms=200, position=1)],
    )


def _conversation(source: str, folder: str, participants: List[str], media: List[ParsedMedia]):
    return ParsedConversation(
        folder_name=folder,
        title=folder.title(),
        thread_path=f"inbox/{folder}",
        chat_type="dm" if len(participants) <= 2 else "group",
        participants=participants,
        source_type="facebook",
        source_path=source,
        media=media,
    )


def _load(db: DatabaseConnection, conversations) -> ImportStats:
    with db.transaction() as conn:
        return load_conversations(conn, conversations)


class TestGetOrCreateSender:
    """Tests for get_or_create_sender function."""

    def test_creates_then_reuses(self, memory_db: DatabaseConnection):
        """The same name always maps to the same id."""
        with memory_db.transaction() as conn:
            first = get_or_create_sender(conn, "Alice")
            second = get_or_create_sender(conn, "Alice")
            other = get_or_create_sender(conn, "Bob")
        assert first == second
        assert other != first
        assert memory_db.get_row_count("senders") == 2


class TestLoadConversations:
    """Tests for load_conversations function."""

    def test_inserts_everything(self, memory_db: DatabaseConnection):
        """Conversations, participants, media and context should be stored."""
        stats = _load(
            memory_db,
            [_conversation("/src", "chat", ["Alice", "Bob"], [_media("Alice", "/p/1.jpg", ["Bob"])])],
        )

        assert stats == ImportStats(conversations=1, media=1, senders=2)
        assert memory_db.get_row_count("conversation_participants") == 2
        assert memory_db.get_row_count("context_messages") == 2

    def test_context_senders_created(self, memory_db: DatabaseConnection):
        """A context sender that is not a participant still gets a sender row."""
        _load(memory_db, [_conversation("/src", "chat", ["Alice"], [_media("Alice", "/p/1.jpg", ["Ghost"])])])
        names = [row[0] for row in memory_db.execute_query("SELECT name FROM senders ORDER BY name;")]
        assert names == ["Alice", "Ghost"]

    def test_duplicate_participants_ignored(self, memory_db: DatabaseConnection):
        """A participant listed twice is linked once."""
        _load(memory_db, [_conversation("/src", "chat", ["Alice", "Alice"], [_media("Alice", "/p/1.jpg")])])
        assert memory_db.get_row_count("conversation_participants") == 1

    def test_senders_shared_across_sources(self, memory_db: DatabaseConnection):
        """One name across two sources is one sender."""
        stats = _load(
            memory_db,
            [
                _conversation("/a", "chat", ["Alice", "Bob"], [_media("Alice", "/a/1.jpg")]),
                _conversation("/b", "chat", ["Alice", "Carol"], [_media("Alice", "/b/1.jpg")]),
            ],
        )
        assert stats.senders == 3

    def test_stats_to_dict(self):
        """ImportStats converts to a plain dict."""
        assert ImportStats(1, 2, 3).to_dict() == {"conversations": 1, "media": 2, "senders": 3}


class TestClearSource:
    """Tests for clear_source and orphan cleanup."""

    @pytest.fixture
    def two_sources(self, memory_db: DatabaseConnection) -> DatabaseConnection:
        _load(
            memory_db,
            [
                _conversation("/a", "chat", ["Alice", "Bob"], [_media("Bob", "/a/1.jpg", ["Dana"])]),
                _conversation("/b", "chat", ["Alice", "Carol"], [_media("Carol", "/b/1.jpg")]),
            ],
        )
        return memory_db

    def test_removes_only_that_source(self, two_sources: DatabaseConnection):
        """Rows of other sources are untouched."""
        with two_sources.transaction() as conn:
            deleted = clear_source(conn, "/a")

        assert deleted == 1
        rows = two_sources.execute_query("SELECT DISTINCT source_path FROM conversations;")
        assert rows == [("/b",)]
        assert two_sources.get_row_count("media") == 1
        assert two_sources.get_row_count("conversation_participants") == 2
        assert two_sources.get_row_count("context_messages") == 1

    def test_orphans_removed_shared_kept(self, two_sources: DatabaseConnection):
        """Senders only referenced by the removed source disappear."""
        with two_sources.transaction() as conn:
            clear_source(conn, "/a")

        names = {row[0] for row in two_sources.execute_query("SELECT name FROM senders;")}
        assert names == {"Alice", "Carol"}

    def test_unknown_source_is_noop(self, two_sources: DatabaseConnection):
        """Clearing a source that was never imported deletes nothing."""
        with two_sources.transaction() as conn:
            assert clear_source(conn, "/nope") == 0
        assert two_sources.get_row_count("conversations") == 2

    def test_remove_orphan_senders_counts(self, memory_db: DatabaseConnection):
        """remove_orphan_senders returns how many rows went away."""
        with memory_db.transaction() as conn:
            get_or_create_sender(conn, "Lonely")
            assert remove_orphan_senders(conn) == 1
            assert get_sender_count(conn) == 0

    def test_context_only_sender_kept(self, memory_db: DatabaseConnection):
        """A sender referenced only by context messages is not an orphan."""
        _load(memory_db, [_conversation("/a", "chat", ["Alice"], [_media("Alice", "/a/1.jpg", ["Ghost"])])])

        with memory_db.transaction() as conn:
            assert remove_orphan_senders(conn) == 0

        names = [row[0] for row in memory_db.execute_query("SELECT name FROM senders ORDER BY name;")]
        assert names == ["Alice", "Ghost"]


class TestClearAll:
    """Tests for clear_all function."""

    def test_empties_all_tables(self, memory_db: DatabaseConnection):
        """Every data table should be empty afterwards."""
        _load(memory_db, [_conversation("/a", "chat", ["Alice"], [_media("Alice", "/a/1.jpg", ["Bob"])])])
        with memory_db.transaction() as conn:
            clear_all(conn)
            assert get_media_count(conn) == 0
            assert get_conversation_count(conn) == 0
            assert get_sender_count(conn) == 0
        assert memory_db.get_row_count("context_messages") == 0
