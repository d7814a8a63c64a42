"""
Pydantic schemas for the export JSON files.

Every Facebook shard and Messenger thread file is validated against these
models before any message is built from it. A file whose values have the
wrong type (a null sender, numeric text, a non-string media uri) fails as a
whole, and only its own conversation is skipped.

Unknown keys are ignored: exports carry reactions, share links, call
durations and more that the explorer has no use for.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from media_explorer.errors import ShardParseError

M = TypeVar("M", bound=BaseModel)


# =============================================================================
# Facebook: inbox/<folder>/message_N.json
# =============================================================================


class FacebookMediaRef(BaseModel):
    """An entry of a message's photos, videos or gifs list."""

    uri: str
    creation_timestamp: Optional[int] = None


class FacebookMessage(BaseModel):
    """A single message in a Facebook shard."""

    sender_name: str
    timestamp_ms: int
    content: Optional[str] = None
    photos: Optional[List[FacebookMediaRef]] = None
    videos: Optional[List[FacebookMediaRef]] = None
    gifs: Optional[List[FacebookMediaRef]] = None


class FacebookParticipant(BaseModel):
    name: str


class FacebookShard(BaseModel):
    """One message_N.json file; messages are newest first."""

    title: str
    participants: List[FacebookParticipant]
    messages: List[FacebookMessage]
    thread_path: Optional[str] = None


# =============================================================================
# Messenger: <root>/<thread>.json
# =============================================================================


class MessengerMedia(BaseModel):
    uri: str


class MessengerMessage(BaseModel):
    """A single message in a Messenger thread file."""

    model_config = ConfigDict(populate_by_name=True)

    sender_name: str = Field(alias="senderName")
    timestamp: int
    text: Optional[str] = None
    media: Optional[List[MessengerMedia]] = None


class MessengerThread(BaseModel):
    """A whole Messenger conversation; messages are in no particular order."""

    model_config = ConfigDict(populate_by_name=True)

    participants: List[str]
    thread_name: str = Field(alias="threadName")
    messages: List[MessengerMessage]


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "<root>"
    more = error.error_count() - 1
    suffix = f" (+{more} more)" if more else ""
    return f"unexpected structure at {location}: {first['msg']}{suffix}"


def validate_file(model: Type[M], data: dict, path: Path) -> M:
    """
    Validate the decoded JSON of one export file.

    Args:
        model: Schema the file must match.
        data: Decoded top-level JSON object.
        path: File the data came from, for the error message.

    Returns:
        The validated model.

    Raises:
        ShardParseError: If the data does not match the schema.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ShardParseError(path, _describe(e)) from e
