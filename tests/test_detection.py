"""
Tests for export format detection.
"""

from pathlib import Path

import pytest

from media_explorer.errors import PathNotFoundError, UnrecognizedFormatError
from media_explorer.etl.detection import ExportFormat, detect_format, facebook_inbox


class TestDetectFormat:
    """Tests for detect_format function."""

    def test_detects_facebook(self, facebook_export: Path):
        """A folder with the inbox layout is a Facebook export."""
        assert detect_format(facebook_export) == ExportFormat.FACEBOOK

    def test_detects_messenger(self, messenger_export: Path):
        """A folder with media/ and a JSON file is a Messenger export."""
        assert detect_format(messenger_export) == ExportFormat.MESSENGER

    def test_facebook_checked_first(self, facebook_export: Path):
        """An export matching both layouts is treated as Facebook."""
        (facebook_export / "media").mkdir()
        (facebook_export / "thread.json").write_text("{}")
        assert detect_format(facebook_export) == ExportFormat.FACEBOOK

    def test_missing_path_raises(self, tmp_path: Path):
        """A non-existent folder should raise PathNotFoundError."""
        with pytest.raises(PathNotFoundError):
            detect_format(tmp_path / "nope")

    def test_empty_folder_unrecognized(self, tmp_path: Path):
        """An empty folder is not an export."""
        with pytest.raises(UnrecognizedFormatError):
            detect_format(tmp_path)

    def test_media_without_json_unrecognized(self, tmp_path: Path):
        """media/ alone is not enough for Messenger."""
        (tmp_path / "media").mkdir()
        with pytest.raises(UnrecognizedFormatError):
            detect_format(tmp_path)

    def test_json_without_media_unrecognized(self, tmp_path: Path):
        """A JSON file alone is not enough for Messenger."""
        (tmp_path / "thread.json").write_text("{}")
        with pytest.raises(UnrecognizedFormatError):
            detect_format(tmp_path)

    def test_error_message_names_path(self, tmp_path: Path):
        """The error should say which folder was rejected."""
        with pytest.raises(UnrecognizedFormatError, match="Expected Facebook or Messenger"):
            detect_format(tmp_path)

    def test_format_values_are_source_types(self):
        """Enum values double as the stored source_type."""
        assert ExportFormat.FACEBOOK.value == "facebook"
        assert ExportFormat.MESSENGER.value == "messenger"


class TestFacebookInbox:
    """Tests for facebook_inbox helper."""

    def test_inbox_location(self, tmp_path: Path):
        """Inbox lives under your_facebook_activity/messages/inbox."""
        assert facebook_inbox(tmp_path) == (
            tmp_path / "your_facebook_activity" / "messages" / "inbox"
        )
