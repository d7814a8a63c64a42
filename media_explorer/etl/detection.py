"""
Export format detection.

Two layouts are recognised, checked in this order:

    Facebook:  <root>/your_facebook_activity/messages/inbox/<conversation>/message_N.json
    Messenger: <root>/<conversation>.json + <root>/media/
"""

from enum import Enum
from pathlib import Path
from typing import Union
import logging

from media_explorer.errors import PathNotFoundError, UnrecognizedFormatError

logger = logging.getLogger(__name__)

FACEBOOK_INBOX_PARTS = ("your_facebook_activity", "messages", "inbox")


class ExportFormat(str, Enum):
    """Known export layouts. Values double as the stored source_type."""

    FACEBOOK = "facebook"
    MESSENGER = "messenger"


def facebook_inbox(root: Path) -> Path:
    """Location of the inbox directory inside a Facebook export."""
    return root.joinpath(*FACEBOOK_INBOX_PARTS)


def detect_format(root: Union[str, Path]) -> ExportFormat:
    """
    Classify an export root directory.

    Args:
        root: Export root selected by the user.

    Returns:
        The detected ExportFormat.

    Raises:
        PathNotFoundError: If root does not exist.
        UnrecognizedFormatError: If root matches neither layout.
    """
    root = Path(root)
    if not root.exists():
        raise PathNotFoundError(root)

    if facebook_inbox(root).is_dir():
        logger.debug(f"Detected Facebook export at {root}")
        return ExportFormat.FACEBOOK

    if (root / "media").is_dir() and any(
        p.is_file() and p.suffix == ".json" for p in root.iterdir()
    ):
        logger.debug(f"Detected Messenger export at {root}")
        return ExportFormat.MESSENGER

    raise UnrecognizedFormatError(root)
