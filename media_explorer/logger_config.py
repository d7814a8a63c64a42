"""
Logging configuration for Media Explorer.

Uses dictConfig so setup can be repeated (CLI run, then API server) without
stacking handlers.

Environment Variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive).
               Defaults to INFO if not set or invalid.
    MEDIA_EXPLORER_LOG_FILE: Optional path of a rotating log file.

Usage:
    from media_explorer.logger_config import setup_logging
    setup_logging()

    # Import runs are chatty about skipped media; quieten them:
    setup_logging(module_levels={"media_explorer.etl.context": logging.ERROR})
"""

import logging
import logging.config
import os
from typing import Dict, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are too verbose at INFO.
NOISY_LOGGERS = ("uvicorn.access", "multipart")


def get_log_level() -> int:
    """
    Get log level from the LOG_LEVEL environment variable.

    Returns:
        Logging level constant, INFO if unset or not a known level name.
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)

    if not isinstance(level, int):
        return logging.INFO

    return level


def build_logging_config(
    level: int,
    format_string: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None,
    module_levels: Optional[Dict[str, int]] = None,
) -> dict:
    """
    Build the dictConfig mapping for the given settings.

    Args:
        level: Root log level.
        format_string: Record format.
        log_file: Optional rotating log file path.
        module_levels: Optional per-logger level overrides.

    Returns:
        A dictionary accepted by logging.config.dictConfig.
    """
    handlers = ["console"]
    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": format_string,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {},
        "root": {
            "level": level,
            "handlers": handlers,
        },
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 10_485_760,  # 10 MB
            "backupCount": 3,
            "encoding": "utf-8",
        }
        handlers.append("file")

    for name in NOISY_LOGGERS:
        config["loggers"][name] = {"level": max(level, logging.WARNING)}

    for name, module_level in (module_levels or {}).items():
        config["loggers"][name] = {"level": module_level}

    return config


def setup_logging(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
    module_levels: Optional[Dict[str, int]] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level. If None, reads LOG_LEVEL (default: INFO).
        format_string: Optional custom format string.
        log_file: Optional log file path. If None, reads MEDIA_EXPLORER_LOG_FILE.
        module_levels: Optional per-logger level overrides.
    """
    if level is None:
        level = get_log_level()
    if log_file is None:
        log_file = os.getenv("MEDIA_EXPLORER_LOG_FILE") or None

    logging.config.dictConfig(
        build_logging_config(
            level,
            format_string=format_string or DEFAULT_FORMAT,
            log_file=log_file,
            module_levels=module_levels,
        )
    )
