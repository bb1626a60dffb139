# FILE: gettext_mapper/utils/logging.py
"""
Unified logging helpers for gettext_mapper

- One package logger ("gettext_mapper") with a single stderr handler.
- Honors log level from the config file ("log_level") or the
  GETTEXT_MAPPER_LOG_LEVEL environment variable (e.g. "INFO", "DEBUG").
- Small helpers to shorten long strings and compact JSON for log lines.
"""

import json
import logging
import os
from typing import Any, Optional

LOGGER_NAME = "gettext_mapper"
ENV_LEVEL = "GETTEXT_MAPPER_LOG_LEVEL"


# ---------------------------
# Level helpers
# ---------------------------

def level_from_string(level_str: Optional[str], default: int = logging.WARNING) -> int:
    """Map string level to logging constant; returns ``default`` on unknown."""
    if not level_str:
        return default
    level = logging.getLevelName(str(level_str).strip().upper())
    return level if isinstance(level, int) else default


def level_from_verbosity(verbose: int, default: int = logging.WARNING) -> int:
    """-v => INFO, -vv => DEBUG."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return default


def _level_from_env(default: int = logging.WARNING) -> int:
    return level_from_string(os.environ.get(ENV_LEVEL), default=default)


# ---------------------------
# Public logger factory
# ---------------------------

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the package logger or one of its children.

    The handler is attached to the package logger only, children propagate.
    """
    root = logging.getLogger(LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        root.addHandler(handler)
        root.setLevel(_level_from_env())
    if not name or name == LOGGER_NAME:
        return root
    if not name.startswith(LOGGER_NAME + "."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_level(level: int) -> None:
    get_logger().setLevel(level)


# ---------------------------
# Format utilities
# ---------------------------

def shorten(text: Optional[str], limit: int = 80) -> str:
    """Shorten a message for single-line logs."""
    if text is None:
        return "<none>"
    s = str(text).replace("\n", "\\n")
    return s if len(s) <= limit else s[: limit - 1] + "…"


def compact_json(obj: Any, limit: int = 1200) -> str:
    """Compact JSON string for logging; truncate if too long."""
    try:
        s = json.dumps(obj, ensure_ascii=False, separators=(",", ":"), sort_keys=True)
    except (TypeError, ValueError):
        s = str(obj)
    return s if len(s) <= limit else s[:limit] + "…(truncated)"

