"""
Utility functions and classes for Media Explorer.
"""

from datetime import datetime, timezone


class Colors:
    """ANSI color codes for terminal output."""

    HEADER = "\033[95m"
    OKBLUE = "\033[94m"
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"


def format_timestamp_ms(timestamp_ms: int) -> str:
    """
    Convert an export timestamp to a readable UTC string.

    Both export formats store milliseconds since the Unix epoch.

    Args:
        timestamp_ms: Milliseconds since 1970-01-01 UTC.

    Returns:
        Formatted date string.
    """
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_count(count: int) -> str:
    """
    Format an item count with appropriate units.

    Args:
        count: Number of items.

    Returns:
        Formatted string (e.g., "999" or "1.2K").
    """
    if count < 1000:
        return str(count)
    elif count < 1_000_000:
        return f"{count / 1000:.1f}K"
    else:
        return f"{count / 1_000_000:.1f}M"


def format_bytes(size: int) -> str:
    """
    Format a byte count for display.

    Args:
        size: Size in bytes.

    Returns:
        Formatted string (e.g., "512 B", "3.4 MB").
    """
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"
