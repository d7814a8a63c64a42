"""
Pytest fixtures for Media Explorer tests.

This module provides shared fixtures for testing the import pipeline and the
query layer, including synthetic exports on disk and fresh stores.

Fixture Categories:
    1. Export fixtures (Facebook and Messenger trees with real media files)
    2. Store fixtures (file-backed and in-memory explorer.db)
    3. Populated store fixtures

Design Notes:
    - Fixtures use tmp_path for isolation between tests
    - Factory fixtures take plain dicts shaped like the export JSON
    - Every media URI referenced by a message gets a small placeholder file
      unless it is listed as missing
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

from media_explorer.config import Config, set_config
from media_explorer.database import DatabaseConnection

# 2024-03-09 16:00:00 UTC
BASE_TS = 1710000000000
MINUTE_MS = 60_000

FACEBOOK_INBOX = Path("your_facebook_activity") / "messages" / "inbox"


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis property-based tests")


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


def _touch(root: Path, uri: str) -> None:
    path = root / (uri[2:] if uri.startswith("./") else uri)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x89PNG fake media " + uri.encode("utf-8"))


def _facebook_uris(messages: Iterable[Dict[str, Any]]) -> List[str]:
    uris = []
    for message in messages:
        for key in ("photos", "videos", "gifs"):
            uris.extend(ref["uri"] for ref in message.get(key) or [])
    return uris


@pytest.fixture(autouse=True)
def reset_global_config():
    """Keep the global Config from leaking between tests."""
    set_config(None)
    yield
    set_config(None)


# =============================================================================
# Export fixtures
# =============================================================================


@pytest.fixture
def make_facebook_export(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory for Facebook export trees.

    Usage:
        root = make_facebook_export({
            "group_abc": {
                "title": "Weekend",
                "participants": ["Alice", "Bob", "Carol"],
                "shards": [[newest messages...], [older messages...]],
            }
        })

    Each shard is a list of raw messages, newest first, written as
    message_1.json, message_2.json, ... Set "missing" to a list of URIs whose
    files should not be created.
    """

    def _make(conversations: Dict[str, Dict[str, Any]], name: str = "facebook_export") -> Path:
        root = tmp_path / name
        inbox = root / FACEBOOK_INBOX
        inbox.mkdir(parents=True)
        for folder, conversation in conversations.items():
            conv_dir = inbox / folder
            conv_dir.mkdir()
            missing = set(conversation.get("missing", ()))
            for index, messages in enumerate(conversation["shards"], start=1):
                _write_json(
                    conv_dir / f"message_{index}.json",
                    {
                        "participants": [{"name": n} for n in conversation["participants"]],
                        "messages": messages,
                        "title": conversation["title"],
                        "thread_path": f"inbox/{folder}",
                    },
                )
                for uri in _facebook_uris(messages):
                    if uri not in missing:
                        _touch(root, uri)
        return root

    return _make


@pytest.fixture
def make_messenger_export(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory for Messenger export trees.

    Usage:
        root = make_messenger_export({
            "alice": {
                "participants": ["Alice", "Bob"],
                "threadName": "Alice_123",
                "messages": [{"senderName": ..., "timestamp": ..., "text": ..., "media": [...]}],
            }
        })
    """

    def _make(
        threads: Dict[str, Dict[str, Any]],
        name: str = "messenger_export",
        missing: Optional[Iterable[str]] = None,
    ) -> Path:
        root = tmp_path / name
        (root / "media").mkdir(parents=True)
        skip = set(missing or ())
        for file_stem, thread in threads.items():
            _write_json(root / f"{file_stem}.json", thread)
            for message in thread.get("messages", []):
                for ref in message.get("media") or []:
                    if ref["uri"] not in skip:
                        _touch(root, ref["uri"])
        return root

    return _make


def _group_photo_conversation(folder: str = "group_abc") -> Dict[str, Any]:
    """
    Three-person chat over two shards with one photo in the middle.

    Chronological order:
        Alice  "Hello everyone"      BASE
        Bob    "Check this out"      BASE + 1m
        Bob    [photo cat.jpg]       BASE + 2m
        Carol  "What a cat!"         BASE + 3m
        Alice  "Love it"             BASE + 4m
        Bob    "Thanks"              BASE + 5m
    """
    photo_uri = str(FACEBOOK_INBOX / folder / "photos" / "cat.jpg")
    m = [
        {"sender_name": "Alice", "timestamp_ms": BASE_TS, "content": "Hello everyone"},
        {"sender_name": "Bob", "timestamp_ms": BASE_TS + MINUTE_MS, "content": "Check this out"},
        {
            "sender_name": "Bob",
            "timestamp_ms": BASE_TS + 2 * MINUTE_MS,
            "photos": [{"uri": photo_uri, "creation_timestamp": 1709999990}],
        },
        {"sender_name": "Carol", "timestamp_ms": BASE_TS + 3 * MINUTE_MS, "content": "What a cat!"},
        {"sender_name": "Alice", "timestamp_ms": BASE_TS + 4 * MINUTE_MS, "content": "Love it"},
        {"sender_name": "Bob", "timestamp_ms": BASE_TS + 5 * MINUTE_MS, "content": "Thanks"},
    ]
    return {
        "title": "Weekend Plans",
        "participants": ["Alice", "Bob", "Carol"],
        # Newest chunk first, each chunk newest-first
        "shards": [[m[5], m[4], m[3]], [m[2], m[1], m[0]]],
    }


@pytest.fixture
def facebook_export(make_facebook_export) -> Path:
    """
    Facebook export with one group conversation (one photo) and one
    text-only DM that has no media.
    """
    return make_facebook_export(
        {
            "group_abc": _group_photo_conversation(),
            "dm_xyz": {
                "title": "Dave",
                "participants": ["Dave", "Alice"],
                "shards": [
                    [
                        {"sender_name": "Dave", "timestamp_ms": BASE_TS + 1, "content": "yo"},
                        {"sender_name": "Alice", "timestamp_ms": BASE_TS, "content": "hey"},
                    ]
                ],
            },
        }
    )


@pytest.fixture
def messenger_export(make_messenger_export) -> Path:
    """
    Messenger export with one DM: a photo, a video and a voice note.

    Messages are stored out of chronological order on purpose.
    """
    return make_messenger_export(
        {
            "erin_thread": {
                "participants": ["Erin", "Alice"],
                "threadName": "Erin Smith_1234567890",
                "messages": [
                    {
                        "senderName": "Erin",
                        "timestamp": BASE_TS + 2 * MINUTE_MS,
                        "text": "",
                        "media": [{"uri": "media/beach.png"}, {"uri": "media/voice.ogg"}],
                    },
                    {"senderName": "Alice", "timestamp": BASE_TS, "text": "Any photos?"},
                    {
                        "senderName": "Alice",
                        "timestamp": BASE_TS + 3 * MINUTE_MS,
                        "text": "So nice",
                        "media": [{"uri": "media/clip.mp4"}],
                    },
                    {"senderName": "Erin", "timestamp": BASE_TS + MINUTE_MS, "text": "Sure, one sec"},
                ],
            }
        }
    )


# =============================================================================
# Store fixtures
# =============================================================================


@pytest.fixture
def store_config(tmp_path: Path) -> Config:
    """Config pointing at a fresh explorer.db under tmp_path."""
    return Config(db_path=str(tmp_path / "store" / "explorer.db"))


@pytest.fixture
def db(store_config: Config):
    """Connected, empty, file-backed store."""
    connection = DatabaseConnection(store_config)
    connection.connect()
    yield connection
    connection.close()


@pytest.fixture
def memory_db():
    """Connected, empty, in-memory store."""
    connection = DatabaseConnection(use_memory=True)
    connection.connect()
    yield connection
    connection.close()


@pytest.fixture
def populated_db(db: DatabaseConnection, facebook_export: Path, messenger_export: Path):
    """Store with both sample exports imported (window 2)."""
    from media_explorer.etl.pipeline import import_exports

    result = import_exports(db, [facebook_export, messenger_export], context_window=2)
    assert result.success, result.error
    return db
