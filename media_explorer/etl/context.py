"""
Media extraction with surrounding conversational context.

Given a conversation's messages in chronological order, every photo, video
and gif reference becomes one ParsedMedia carrying up to `window` messages
before and after the message that contained it.

Positions:
    before: -k, ..., -2, -1   (oldest first, -1 is adjacent to the media)
    after:   1,  2, ...,  k   (1 is adjacent to the media)

Windows are clamped at the ends of the conversation; they never wrap and are
never padded.
"""

from pathlib import Path
from typing import List, Sequence
import logging

from media_explorer.etl.models import ContextMessage, ExportMessage, MediaRef, ParsedMedia

logger = logging.getLogger(__name__)

# (attribute on ExportMessage, stored file_type, placeholder text)
MEDIA_KINDS = (
    ("photos", "image", "[Photo]"),
    ("videos", "video", "[Video]"),
    ("gifs", "gif", "[GIF]"),
)

FALLBACK_TEXT = "[Message]"


def display_text(message: ExportMessage) -> str:
    """
    Text shown for a message in a context list.

    Non-empty content wins; media-only messages get a placeholder for the
    first kind of media they carry.
    """
    if message.content:
        return message.content
    for attr, _, placeholder in MEDIA_KINDS:
        if getattr(message, attr):
            return placeholder
    return FALLBACK_TEXT


def resolve_uri(root: Path, uri: str) -> Path:
    """Resolve an export-relative URI (optionally "./"-prefixed) against root."""
    cleaned = uri[2:] if uri.startswith("./") else uri
    return (root / cleaned).resolve()


def build_context(
    messages: Sequence[ExportMessage], index: int, window: int
) -> tuple[List[ContextMessage], List[ContextMessage]]:
    """
    Build the before and after context lists for messages[index].

    Args:
        messages: Chronological message list.
        index: Position of the media message.
        window: Maximum messages in each direction.

    Returns:
        (context_before, context_after)
    """
    start = max(0, index - window)
    preceding = messages[start:index]
    following = messages[index + 1 : index + 1 + window]

    before = [
        ContextMessage(
            sender_name=msg.sender_name,
            content=display_text(msg),
            timestamp_ms=msg.timestamp_ms,
            position=offset - len(preceding),
        )
        for offset, msg in enumerate(preceding)
    ]
    after = [
        ContextMessage(
            sender_name=msg.sender_name,
            content=display_text(msg),
            timestamp_ms=msg.timestamp_ms,
            position=offset + 1,
        )
        for offset, msg in enumerate(following)
    ]
    return before, after


def _to_media(
    path: Path,
    message: ExportMessage,
    ref: MediaRef,
    file_type: str,
    before: List[ContextMessage],
    after: List[ContextMessage],
) -> ParsedMedia:
    return ParsedMedia(
        file_path=str(path),
        relative_uri=ref.uri,
        file_type=file_type,
        timestamp_ms=message.timestamp_ms,
        sender_name=message.sender_name,
        creation_timestamp=ref.creation_timestamp,
        message_content=message.content,
        # Each media item owns its copy of the context
        context_before=list(before),
        context_after=list(after),
    )


def extract_media(
    root: Path,
    messages: Sequence[ExportMessage],
    window: int,
) -> List[ParsedMedia]:
    """
    Extract every media reference whose file exists on disk.

    Args:
        root: Export root that media URIs are relative to.
        messages: Chronological message list.
        window: Context window size (>= 0).

    Returns:
        List of ParsedMedia in message order (photos, then videos, then gifs
        within a message).
    """
    items: List[ParsedMedia] = []

    for index, message in enumerate(messages):
        if not message.has_media():
            continue

        before, after = build_context(messages, index, window)

        for attr, file_type, _ in MEDIA_KINDS:
            for ref in getattr(message, attr):
                path = resolve_uri(root, ref.uri)
                if not path.is_file():
                    logger.warning(f"Media file not found, skipping: {path}")
                    continue
                items.append(_to_media(path, message, ref, file_type, before, after))

    return items
