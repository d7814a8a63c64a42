"""
Configuration module for Media Explorer.

Handles configuration settings including the store location and the default
context window used when importing exports.

Environment Variables:
    MEDIA_EXPLORER_DB_PATH: Path to the SQLite store (explorer.db).
    MEDIA_EXPLORER_CONTEXT_WINDOW: Default number of messages captured
        before and after each media message.
    MEDIA_EXPLORER_ALLOWED_ORIGIN: Extra CORS origin for the API.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class Config:
    """Configuration class for Media Explorer."""

    # Default path for explorer.db (our store)
    DEFAULT_DATA_PATH = Path.home() / ".media_explorer"
    DEFAULT_DB_NAME = "explorer.db"

    DEFAULT_CONTEXT_WINDOW = 5
    DEFAULT_ALLOWED_ORIGIN = "http://127.0.0.1:5173"

    def __init__(
        self,
        db_path: Optional[str] = None,
        context_window: Optional[int] = None,
    ):
        """
        Initialize configuration.

        Args:
            db_path: Optional path to explorer.db. If not provided, reads
                    MEDIA_EXPLORER_DB_PATH, then defaults to
                    ~/.media_explorer/explorer.db
            context_window: Optional default context window. If not provided,
                    reads MEDIA_EXPLORER_CONTEXT_WINDOW, then defaults to 5.
        """
        self._db_path: Path
        if db_path:
            self._db_path = Path(db_path)
        elif os.getenv("MEDIA_EXPLORER_DB_PATH"):
            self._db_path = Path(os.environ["MEDIA_EXPLORER_DB_PATH"])
        else:
            self._db_path = self.DEFAULT_DATA_PATH / self.DEFAULT_DB_NAME

        if context_window is None:
            context_window = self._context_window_from_env()
        if context_window < 0:
            raise ValueError(f"context_window must be >= 0, got {context_window}")
        self._context_window = context_window

        self._allowed_origin = os.getenv(
            "MEDIA_EXPLORER_ALLOWED_ORIGIN", self.DEFAULT_ALLOWED_ORIGIN
        )

    def _context_window_from_env(self) -> int:
        """
        Read the context window from MEDIA_EXPLORER_CONTEXT_WINDOW.

        Invalid or negative values fall back to the default.
        """
        raw = os.getenv("MEDIA_EXPLORER_CONTEXT_WINDOW")
        if raw is None:
            return self.DEFAULT_CONTEXT_WINDOW
        try:
            value = int(raw)
        except ValueError:
            logger.warning(f"Invalid MEDIA_EXPLORER_CONTEXT_WINDOW={raw!r}, using default")
            return self.DEFAULT_CONTEXT_WINDOW
        if value < 0:
            logger.warning(f"Negative MEDIA_EXPLORER_CONTEXT_WINDOW={raw!r}, using default")
            return self.DEFAULT_CONTEXT_WINDOW
        return value

    @property
    def db_path(self) -> Path:
        """Get the explorer.db file path."""
        return self._db_path

    @property
    def db_path_str(self) -> str:
        """Get the explorer.db file path as a string."""
        return str(self._db_path)

    @property
    def context_window(self) -> int:
        """Get the default context window."""
        return self._context_window

    @property
    def allowed_origin(self) -> str:
        """Get the extra CORS origin for the API."""
        return self._allowed_origin

    def ensure_db_dir(self) -> None:
        """
        Ensure the explorer.db parent directory exists.

        Creates the directory if it doesn't exist.
        """
        self._db_path.parent.mkdir(parents=True, exist_ok=True)


# Global configuration instance
_config: Optional[Config] = None


def get_config(db_path: Optional[str] = None) -> Config:
    """
    Get or create the global configuration instance.

    Args:
        db_path: Optional path to explorer.db.

    Returns:
        Config instance.
    """
    global _config
    if _config is None or db_path is not None:
        _config = Config(db_path)
    return _config


def set_config(config: Optional[Config]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Config instance to use, or None to reset.
    """
    global _config
    _config = config
