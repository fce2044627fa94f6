"""
Utility functions for Local History.

This module contains helper functions for timestamp parsing,
exclude-pattern matching, path containment, and other common operations.
"""

import fnmatch
import os
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable, Union

PathLike = Union[str, os.PathLike]


def parse_timestamp(timestamp_str: str) -> datetime:
    """
    Parse a timestamp string into a local datetime.

    Accepts multiple formats:
        - ISO format: 2025-06-27T14:30:00
        - Date and time with space: 2025-06-27 14:30:00
        - Date only: 2025-06-27 (uses midnight)
        - Revision stamp: 20250627143000

    Args:
        timestamp_str: The timestamp string to parse.

    Returns:
        Naive datetime in local time.

    Raises:
        ValueError: If the timestamp format is not recognized.
    """
    formats = [
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%d",
        "%Y%m%d%H%M%S",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(timestamp_str, fmt)
        except ValueError:
            continue

    raise ValueError(
        f"Unable to parse timestamp: {timestamp_str}. "
        f"Expected ISO format (2025-06-27T14:30:00), date (2025-06-27), "
        f"or revision stamp (20250627143000)."
    )


def format_timestamp(moment: datetime) -> str:
    """Format a revision timestamp for display."""
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def truncate_path(path: str, max_length: int = 60) -> str:
    """
    Truncate a path string for display, keeping the end.

    Args:
        path: The path to truncate.
        max_length: Maximum length of the result.

    Returns:
        Truncated path with '...' prefix if needed.
    """
    if len(path) <= max_length:
        return path
    return "..." + path[-(max_length - 3):]


def matches_any(path: PathLike, patterns: Iterable[str]) -> bool:
    """
    Check a path against glob patterns such as ``**/node_modules/**``.

    Separators are compared as forward slashes and matching is case-sensitive.
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    candidate = str(path).replace("\\", "/")
    return any(fnmatch.fnmatchcase(candidate, pattern) for pattern in patterns)


def normalize_path(path: PathLike) -> str:
    """Absolute, normalized path string; case-folded on case-insensitive platforms."""
    return os.path.normcase(os.path.normpath(os.path.abspath(os.fspath(path))))


def is_path_inside(child: PathLike, parent: PathLike) -> bool:
    """
    Whether ``child`` is strictly below ``parent``.

    A path is not inside itself. Trailing separators are ignored and
    case sensitivity follows the host platform.
    """
    child_norm = normalize_path(child)
    parent_norm = normalize_path(parent)
    if child_norm == parent_norm:
        return False
    return child_norm.startswith(parent_norm.rstrip(os.sep) + os.sep)


def strip_drive(path: PathLike) -> Path:
    """
    Turn an absolute path into a relative one that can live inside a store.

    ``/home/me/a.py`` becomes ``home/me/a.py``, ``C:\\src\\a.py`` becomes
    ``C/src/a.py`` and ``\\\\server\\share\\a.py`` becomes ``server/share/a.py``.
    """
    drive, rest = os.path.splitdrive(os.path.abspath(os.fspath(path)))
    parts = [part for part in re.split(r"[\\/]", drive.rstrip(":")) if part]
    return Path(*parts, rest.lstrip("/\\"))


class Timeout:
    """Elapsed-time check used to throttle recurring work."""

    def __init__(self, duration: float):
        self.duration = duration
        self.start_time = time.monotonic()

    def is_timed_out(self) -> bool:
        return time.monotonic() - self.start_time > self.duration
