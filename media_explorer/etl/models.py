"""
Normalized in-memory representation shared by both export parsers.

Each parser maps its own JSON into ExportMessage objects; everything after
that (context extraction, loading) only sees these types.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class MediaRef:
    """A photo, video or gif reference inside a message."""

    uri: str
    creation_timestamp: Optional[int] = None


@dataclass
class ExportMessage:
    """One chat message in chronological position."""

    sender_name: str
    timestamp_ms: int
    content: Optional[str] = None
    photos: List[MediaRef] = field(default_factory=list)
    videos: List[MediaRef] = field(default_factory=list)
    gifs: List[MediaRef] = field(default_factory=list)

    def has_media(self) -> bool:
        """True if the message carries any photo, video or gif."""
        return bool(self.photos or self.videos or self.gifs)


@dataclass
class ContextMessage:
    """A message shown around a media item."""

    sender_name: str
    content: str
    timestamp_ms: int
    position: int  # negative = before, positive = after


@dataclass
class ParsedMedia:
    """A media file ready for insertion, with its surrounding conversation."""

    file_path: str  # absolute
    relative_uri: str  # as declared in the export
    file_type: str  # 'image', 'video' or 'gif'
    timestamp_ms: int
    sender_name: str
    creation_timestamp: Optional[int] = None
    message_content: Optional[str] = None
    context_before: List[ContextMessage] = field(default_factory=list)
    context_after: List[ContextMessage] = field(default_factory=list)


@dataclass
class ParsedConversation:
    """A conversation with every media item extracted from it."""

    folder_name: str
    title: str
    thread_path: str
    chat_type: str  # 'group' or 'dm'
    participants: List[str]
    source_type: str
    source_path: str
    media: List[ParsedMedia] = field(default_factory=list)

    @property
    def participant_count(self) -> int:
        return len(self.participants)


@dataclass
class ParseResult:
    """Everything parsed from one export root."""

    source_type: str
    source_path: str
    conversations: List[ParsedConversation] = field(default_factory=list)
    skipped: int = 0  # conversations dropped because a shard failed to parse

    @property
    def media_count(self) -> int:
        return sum(len(c.media) for c in self.conversations)
