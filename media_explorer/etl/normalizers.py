"""
Text and metadata normalization for export parsing.

Design Decisions:
    1. Mojibake repair is all-or-nothing per string: either every character
       round-trips through Latin-1 and the bytes are valid UTF-8, or the
       string is returned untouched
    2. Repair is idempotent on correct text, so it is safe to apply to every
       free-text field of both export formats
    3. Chat type is derived from participant count, never read from the export

Facebook exports write UTF-8 text as if each byte were a separate Latin-1
character, so "ł" (UTF-8 C5 82) arrives as "\\u00c5\\u0082".
"""

import re
from typing import Literal, Optional, Sequence

ChatType = Literal["group", "dm"]
MediaKind = Literal["photo", "video", "gif"]

# Messenger thread names look like "Alice Smith_1234567890"
THREAD_SUFFIX_PATTERN = re.compile(r"^(.*)_\d+$", re.DOTALL)

PHOTO_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp"})
VIDEO_EXTENSIONS = frozenset({"mp4"})
GIF_EXTENSIONS = frozenset({"gif"})


def repair_mojibake(text: Optional[str]) -> Optional[str]:
    """
    Undo byte-per-character mis-decoding of UTF-8 text.

    Args:
        text: Possibly mis-decoded text.

    Returns:
        The repaired text, or the input unchanged if it is not mojibake.

    Examples:
        >>> repair_mojibake("Rafa\\u00c5\\u0082")
        'Rafał'
        >>> repair_mojibake("hello")
        'hello'
        >>> repair_mojibake("Rafał")
        'Rafał'
    """
    if not text:
        return text

    try:
        raw = text.encode("latin-1")
    except UnicodeEncodeError:
        # Contains characters above U+00FF: already proper text
        return text

    try:
        fixed = raw.decode("utf-8")
    except UnicodeDecodeError:
        return text

    return fixed


def derive_chat_type(participants: Sequence[str]) -> ChatType:
    """
    Derive the chat type from the participant list.

    Examples:
        >>> derive_chat_type(["Alice", "Bob"])
        'dm'
        >>> derive_chat_type(["Alice", "Bob", "Carol"])
        'group'
    """
    return "dm" if len(participants) <= 2 else "group"


def strip_thread_suffix(thread_name: str) -> str:
    """
    Build a display title from a Messenger thread name.

    A trailing "_<digits>" suffix is removed; anything else is kept as-is.

    Examples:
        >>> strip_thread_suffix("Alice Smith_1234567890")
        'Alice Smith'
        >>> strip_thread_suffix("Book_club")
        'Book_club'
    """
    match = THREAD_SUFFIX_PATTERN.match(thread_name)
    if match:
        return match.group(1)
    return thread_name


def classify_media_uri(uri: str) -> Optional[MediaKind]:
    """
    Classify a Messenger media URI by its file extension.

    Args:
        uri: Media URI as declared in the export.

    Returns:
        'photo', 'video', 'gif', or None for unsupported files (e.g. audio).

    Examples:
        >>> classify_media_uri("./media/IMG_01.JPG")
        'photo'
        >>> classify_media_uri("./media/voice.ogg") is None
        True
    """
    name = uri.rsplit("/", 1)[-1]
    if "." not in name:
        return None
    ext = name.rsplit(".", 1)[-1].lower()

    if ext in PHOTO_EXTENSIONS:
        return "photo"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    if ext in GIF_EXTENSIONS:
        return "gif"
    return None
