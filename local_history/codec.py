"""
Revision file naming.

A revision of ``src/app.config.js`` saved on 2024-12-01 12:00:00 is stored as

    <store>/src/app.config_20241201120000.js

i.e. ``<stem>_<YYYYMMDDhhmmss><ext>``: the stem keeps its dots and
underscores, the timestamp is exactly 14 digits, and the extension keeps
its leading dot (or is empty). Decoding splits on the last underscore that
is followed by 14 digits and an optional extension.
"""

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from .constants import TIMESTAMP_FORMAT
from .models import HistorySettings, Revision
from .utils import PathLike, is_path_inside, strip_drive

_REVISION_NAME = re.compile(r"^(?P<name>.*)_(?P<stamp>\d{14})(?P<ext>\.[^.]*)?$", re.DOTALL)


def encode_revision_name(name: str, ext: str, timestamp: datetime) -> str:
    """Build the file name of a revision."""
    return f"{name}_{timestamp.strftime(TIMESTAMP_FORMAT)}{ext}"


def _parse_stamp(stamp: str) -> Optional[datetime]:
    try:
        return datetime(
            int(stamp[0:4]),
            int(stamp[4:6]),
            int(stamp[6:8]),
            int(stamp[8:10]),
            int(stamp[10:12]),
            int(stamp[12:14]),
        )
    except ValueError:
        return None


def decode_revision(path: PathLike, history_path: Optional[PathLike] = None) -> Optional[Revision]:
    """
    Decode a file name into a Revision.

    Args:
        path: File to decode.
        history_path: Store root. Files outside it are live files and
                      decode with ``timestamp=None``.

    Returns:
        The decoded Revision, or None when a file inside the store (or any
        file, when no store is given) does not follow the naming convention.
    """
    file = Path(path)
    match = _REVISION_NAME.match(file.name)
    if match:
        timestamp = _parse_stamp(match.group("stamp"))
        if timestamp is None:
            return None
        return Revision(
            name=match.group("name"),
            ext=match.group("ext") or "",
            path=file,
            timestamp=timestamp,
        )

    if history_path is not None and not is_path_inside(file, history_path):
        name, ext = os.path.splitext(file.name)
        return Revision(name=name, ext=ext, path=file)
    return None


def revision_directory(file: PathLike, settings: HistorySettings) -> Path:
    """
    Directory holding the revisions of ``file``.

    Raises:
        ValueError: If history is disabled for these settings.
    """
    if not settings.history_path:
        raise ValueError("History is disabled for these settings")

    source_dir = Path(os.path.abspath(os.fspath(file))).parent
    store = Path(settings.history_path)
    if settings.absolute or settings.folder is None:
        return store / strip_drive(source_dir)
    return store / os.path.relpath(source_dir, settings.folder)


def source_path(revision: Revision, settings: HistorySettings) -> Optional[Path]:
    """
    Live file a revision was taken from.

    Returns:
        The source path, or None if the revision is not inside the store.
    """
    if not settings.history_path or not is_path_inside(revision.path, settings.history_path):
        return None

    relative = Path(os.path.relpath(revision.directory, settings.history_path))
    if settings.absolute or settings.folder is None:
        parts = relative.parts
        if os.name == "nt" and parts:
            base = Path(parts[0] + ":\\", *parts[1:])
        else:
            base = Path(os.sep, *parts)
    else:
        base = Path(settings.folder) / relative
    return Path(os.path.normpath(base / revision.source_name))
