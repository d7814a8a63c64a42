"""
Export extractors for Facebook and Messenger chat archives.

This module reads the raw JSON of a detected export and produces the shared
normalized representation (etl.models). It never touches the store.

Design Decisions:
    1. One parser class per format, each exposing parse(root, context_window);
       the format → parser mapping lives in PARSERS
    2. Every file is validated against etl.schemas first; a malformed file
       (bad JSON, missing keys or wrong value types) costs only its own
       conversation: ShardParseError is logged and siblings are still parsed
    3. Conversations are kept only for their media; threads without a single
       surviving media file are dropped
    4. Every free-text field goes through repair_mojibake

Facebook layout:
    inbox/<folder>/message_1.json, message_2.json, ...
    Each shard lists messages newest-first and shards are ordered newest
    chunk first, so the concatenation of all shards is reversed once.

Messenger layout:
    <root>/<thread>.json with camelCase keys and a flat "media" list whose
    kind is inferred from the file extension.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from media_explorer.errors import PathNotFoundError, ShardParseError
from media_explorer.etl.context import extract_media
from media_explorer.etl.detection import ExportFormat, detect_format, facebook_inbox
from media_explorer.etl.models import (
    ExportMessage,
    MediaRef,
    ParsedConversation,
    ParseResult,
)
from media_explorer.etl.normalizers import (
    classify_media_uri,
    derive_chat_type,
    repair_mojibake,
    strip_thread_suffix,
)
from media_explorer.etl.schemas import (
    FacebookMediaRef,
    FacebookMessage,
    FacebookShard,
    MessengerMessage,
    MessengerThread,
    validate_file,
)

logger = logging.getLogger(__name__)

SHARD_GLOB = "message_*.json"


def read_json(path: Path) -> Dict[str, Any]:
    """
    Read one JSON object from disk.

    Raises:
        ShardParseError: If the file cannot be read, is not valid JSON, or
            does not contain an object at the top level.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ShardParseError(path, str(e)) from e

    if not isinstance(data, dict):
        raise ShardParseError(path, "top-level JSON value is not an object")
    return data


def normalize_source_path(path: Union[str, Path]) -> Path:
    """
    Canonical form of an export root, used as the source key.

    Import, re-import and removal must all agree on this value.
    """
    return Path(path).expanduser().resolve()


# =============================================================================
# Facebook
# =============================================================================


def _facebook_refs(refs: Optional[List[FacebookMediaRef]]) -> List[MediaRef]:
    return [
        MediaRef(uri=ref.uri, creation_timestamp=ref.creation_timestamp)
        for ref in refs or []
    ]


def _facebook_message(raw: FacebookMessage) -> ExportMessage:
    return ExportMessage(
        sender_name=raw.sender_name,
        timestamp_ms=raw.timestamp_ms,
        content=raw.content,
        photos=_facebook_refs(raw.photos),
        videos=_facebook_refs(raw.videos),
        gifs=[MediaRef(uri=ref.uri) for ref in raw.gifs or []],
    )


class FacebookParser:
    """Parser for "Download Your Information" Facebook exports."""

    source_type = ExportFormat.FACEBOOK.value

    def parse(self, root: Path, context_window: int) -> ParseResult:
        """
        Parse every conversation folder in the export's inbox.

        Args:
            root: Normalized export root.
            context_window: Messages of context on each side of a media item.

        Returns:
            ParseResult with conversations that have at least one media item.

        Raises:
            PathNotFoundError: If the inbox directory is missing.
        """
        inbox = facebook_inbox(root)
        if not inbox.is_dir():
            raise PathNotFoundError(inbox, "Inbox directory")

        result = ParseResult(source_type=self.source_type, source_path=str(root))

        for conv_dir in sorted(p for p in inbox.iterdir() if p.is_dir()):
            try:
                conversation = self.parse_conversation(root, conv_dir, context_window)
            except ShardParseError as e:
                logger.warning(f"Skipping conversation {conv_dir.name}: {e}")
                result.skipped += 1
                continue

            if conversation.media:
                result.conversations.append(conversation)
            else:
                logger.debug(f"No media in {conv_dir.name}, dropping")

        logger.info(
            f"Parsed Facebook export {root}: {len(result.conversations)} conversations, "
            f"{result.media_count} media, {result.skipped} skipped"
        )
        return result

    def parse_conversation(
        self, root: Path, conv_dir: Path, context_window: int
    ) -> ParsedConversation:
        """
        Parse all shards of one conversation folder.

        Raises:
            ShardParseError: If the folder has no shards or any shard is malformed.
        """
        shards = sorted(
            (p for p in conv_dir.glob(SHARD_GLOB) if p.is_file()),
            key=lambda p: p.name,
        )
        if not shards:
            raise ShardParseError(conv_dir, f"no {SHARD_GLOB} files found")

        # Every shard is validated; the first one with a title supplies the header
        parsed = [validate_file(FacebookShard, read_json(path), path) for path in shards]
        header = next((shard for shard in parsed if shard.title), parsed[0])
        title = header.title
        thread_path = header.thread_path or ""
        participants = [p.name for p in header.participants]
        messages = [_facebook_message(raw) for shard in parsed for raw in shard.messages]

        # Shards are newest-first: one reversal yields oldest-to-newest
        messages.reverse()

        for message in messages:
            message.sender_name = repair_mojibake(message.sender_name)
            message.content = repair_mojibake(message.content)
        participants = [repair_mojibake(name) for name in participants]

        return ParsedConversation(
            folder_name=conv_dir.name,
            title=repair_mojibake(title),
            thread_path=thread_path,
            chat_type=derive_chat_type(participants),
            participants=participants,
            source_type=self.source_type,
            source_path=str(root),
            media=extract_media(root, messages, context_window),
        )


# =============================================================================
# Messenger
# =============================================================================


def to_export_message(raw: MessengerMessage) -> ExportMessage:
    """
    Map a Messenger message onto the shared message shape.

    Media are sorted into photos, videos and gifs by extension; anything else
    (voice notes, files) is dropped.
    """
    message = ExportMessage(
        sender_name=repair_mojibake(raw.sender_name),
        timestamp_ms=raw.timestamp,
        content=repair_mojibake(raw.text or None),
    )

    for ref in raw.media or []:
        uri = ref.uri
        kind = classify_media_uri(uri)
        if kind == "photo":
            message.photos.append(MediaRef(uri=uri))
        elif kind == "video":
            message.videos.append(MediaRef(uri=uri))
        elif kind == "gif":
            message.gifs.append(MediaRef(uri=uri))

    return message


class MessengerParser:
    """Parser for Messenger exports (flat JSON files plus a media/ folder)."""

    source_type = ExportFormat.MESSENGER.value

    def parse(self, root: Path, context_window: int) -> ParseResult:
        """
        Parse every top-level JSON file of the export.

        Args:
            root: Normalized export root.
            context_window: Messages of context on each side of a media item.

        Returns:
            ParseResult with conversations that have at least one media item.
        """
        result = ParseResult(source_type=self.source_type, source_path=str(root))

        for json_path in sorted(p for p in root.glob("*.json") if p.is_file()):
            try:
                conversation = self.parse_conversation(root, json_path, context_window)
            except ShardParseError as e:
                logger.warning(f"Skipping Messenger conversation {json_path.name}: {e}")
                result.skipped += 1
                continue

            if conversation.media:
                result.conversations.append(conversation)
            else:
                logger.debug(f"No media in {json_path.name}, dropping")

        logger.info(
            f"Parsed Messenger export {root}: {len(result.conversations)} conversations, "
            f"{result.media_count} media, {result.skipped} skipped"
        )
        return result

    def parse_conversation(
        self, root: Path, json_path: Path, context_window: int
    ) -> ParsedConversation:
        """
        Parse one Messenger thread file.

        Raises:
            ShardParseError: If the file is malformed.
        """
        thread = validate_file(MessengerThread, read_json(json_path), json_path)
        participants = [repair_mojibake(name) for name in thread.participants]
        thread_name = thread.thread_name
        messages = [to_export_message(raw) for raw in thread.messages]

        # Not guaranteed to be chronological on disk
        messages.sort(key=lambda m: m.timestamp_ms)

        return ParsedConversation(
            folder_name=json_path.stem,
            title=repair_mojibake(strip_thread_suffix(thread_name)),
            thread_path=thread_name,
            chat_type=derive_chat_type(participants),
            participants=participants,
            source_type=self.source_type,
            source_path=str(root),
            media=extract_media(root, messages, context_window),
        )


PARSERS = {
    ExportFormat.FACEBOOK: FacebookParser(),
    ExportFormat.MESSENGER: MessengerParser(),
}


def parse_export(root: Union[str, Path], context_window: int) -> ParseResult:
    """
    Detect the format of an export and parse it.

    Args:
        root: Export root as given by the user.
        context_window: Messages of context on each side of a media item.

    Returns:
        ParseResult for the export.

    Raises:
        ValueError: If context_window is negative.
        PathNotFoundError: If root does not exist.
        UnrecognizedFormatError: If root matches no known layout.
    """
    if context_window < 0:
        raise ValueError(f"context_window must be >= 0, got {context_window}")

    normalized = normalize_source_path(root)
    export_format = detect_format(normalized)
    return PARSERS[export_format].parse(normalized, context_window)
