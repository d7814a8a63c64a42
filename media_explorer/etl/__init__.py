"""
ETL (Extract, Transform, Load) module for Media Explorer.

Turns chat exports on disk into a queryable media store (explorer.db).

Architecture Overview:
    Exports (read-only)                  Store (read-write)
    ├── Facebook  inbox/*/message_N.json  →  explorer.db
    └── Messenger *.json + media/            ├── conversations
                                             ├── senders
                                             ├── conversation_participants
                                             ├── media
                                             └── context_messages

Key Design Decisions:
    1. Exports are parsed completely before the store lock is taken
    2. Every import is one transaction: all sources land, or none do
    3. A source is identified by its resolved root path; re-importing it
       replaces exactly its own rows
    4. Context is captured at import time, so browsing never reopens exports
"""

from media_explorer.etl.schema import create_schema, SCHEMA_VERSION
from media_explorer.etl.normalizers import (
    repair_mojibake,
    derive_chat_type,
    strip_thread_suffix,
    classify_media_uri,
)
from media_explorer.etl.detection import ExportFormat
from media_explorer.etl.models import (
    MediaRef,
    ExportMessage,
    ContextMessage,
    ParsedMedia,
    ParsedConversation,
    ParseResult,
)
from media_explorer.etl.context import build_context, display_text, extract_media
from media_explorer.etl.extractors import (
    FacebookParser,
    MessengerParser,
    normalize_source_path,
    parse_export,
)
from media_explorer.etl.loaders import (
    ImportStats,
    clear_source,
    load_conversations,
    remove_orphan_senders,
)
from media_explorer.etl.pipeline import (
    ImportResult,
    add_source,
    clear_all,
    detect_format,
    import_exports,
    remove_source,
)
from media_explorer.etl.validation import validate_store, ValidationResult

__all__ = [
    # Schema
    "create_schema",
    "SCHEMA_VERSION",
    # Normalizers
    "repair_mojibake",
    "derive_chat_type",
    "strip_thread_suffix",
    "classify_media_uri",
    # Detection
    "ExportFormat",
    "detect_format",
    # Models
    "MediaRef",
    "ExportMessage",
    "ContextMessage",
    "ParsedMedia",
    "ParsedConversation",
    "ParseResult",
    # Context
    "build_context",
    "display_text",
    "extract_media",
    # Extractors
    "FacebookParser",
    "MessengerParser",
    "normalize_source_path",
    "parse_export",
    # Loaders
    "ImportStats",
    "clear_source",
    "load_conversations",
    "remove_orphan_senders",
    # Pipeline
    "ImportResult",
    "import_exports",
    "add_source",
    "remove_source",
    "clear_all",
    # Validation
    "validate_store",
    "ValidationResult",
]
