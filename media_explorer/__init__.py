"""
Media Explorer - browse the photos, videos and gifs of chat exports in context.

This package provides functionality to:
- Detect and parse Facebook and Messenger exports
- Load their media, with surrounding messages, into a SQLite store
- Filter, search and page through the imported media
- Serve the store over HTTP and chart aggregate views
"""

__version__ = "0.1.0"

from media_explorer.config import get_config, Config
from media_explorer.database import DatabaseConnection
from media_explorer.errors import MediaExplorerError

__all__ = [
    "get_config",
    "Config",
    "DatabaseConnection",
    "MediaExplorerError",
]
