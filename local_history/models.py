"""
Data models for Local History.

This module contains the data classes that describe workspace roots,
resolved history settings, and the revisions kept in a history store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Optional


class HistoryEnabled(IntEnum):
    """When revisions are written."""
    NEVER = 0
    ALWAYS = 1
    WORKSPACE = 2  # only files inside a known root


@dataclass(frozen=True)
class WorkspaceFolder:
    """
    A known root directory.

    Attributes:
        path: Absolute path of the root.
        name: Display name, used by ``${workspaceFolder: name}``.
        index: Position in the known-roots sequence.
    """
    path: Path
    name: str
    index: int = 0

    def __repr__(self) -> str:
        return f"WorkspaceFolder(name={self.name!r}, path={str(self.path)!r})"


@dataclass
class HistorySettings:
    """
    Resolved settings for every file owned by one root.

    Attributes:
        folder: Owning root, or None for files outside every known root.
        enabled: True when a usable history_path was computed.
        history_path: Root of the history store, or None.
        absolute: Revisions stored by absolute source path instead of
                  the path relative to the owning root.
        days_limit: Purge horizon in days (0 disables purging).
        save_delay: Seconds to defer the copy after a save.
        max_display: Cap on listed revisions.
        exclude: Glob patterns of files that are never versioned.
        date_locale: Display-only locale tag.
    """
    folder: Optional[Path]
    enabled: bool
    history_path: Optional[str]
    absolute: bool = False
    days_limit: int = 30
    save_delay: float = 0
    max_display: int = 10
    exclude: list[str] = field(default_factory=list)
    date_locale: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "folder": str(self.folder) if self.folder else None,
            "enabled": self.enabled,
            "historyPath": self.history_path,
            "absolute": self.absolute,
            "daysLimit": self.days_limit,
            "saveDelay": self.save_delay,
            "maxDisplay": self.max_display,
            "exclude": list(self.exclude),
            "dateLocale": self.date_locale,
        }


@dataclass(frozen=True)
class Revision:
    """
    A file decoded from the history store, or the live file itself.

    Attributes:
        name: Source file name without extension.
        ext: Source extension including the leading dot, or "".
        path: Absolute location of the file.
        timestamp: When the revision was captured; None for the live file.
    """
    name: str
    ext: str
    path: Path
    timestamp: Optional[datetime] = None

    @property
    def source_name(self) -> str:
        """Name of the file this revision was taken from."""
        return f"{self.name}{self.ext}"

    @property
    def directory(self) -> Path:
        return self.path.parent

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "name": self.name,
            "ext": self.ext,
            "path": str(self.path),
            "datetime": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self) -> str:
        stamp = self.timestamp.isoformat() if self.timestamp else None
        return f"Revision(file={self.source_name!r}, datetime={stamp!r})"


@dataclass
class FileHistory:
    """
    A live file together with its revisions.

    Attributes:
        current: Decoded identity of the live file (timestamp is None).
        settings: Settings the revisions were looked up with.
        revisions: Revisions, newest first.
    """
    current: Revision
    settings: HistorySettings
    revisions: list[Revision] = field(default_factory=list)

    @property
    def latest_revision(self) -> Optional[Revision]:
        """Get the most recent revision."""
        if not self.revisions:
            return None
        return max(self.revisions, key=lambda r: r.timestamp)

    def get_revision_at(self, moment: datetime) -> Optional[Revision]:
        """
        Get the revision that was current at the specified moment.

        Returns the most recent revision that is not newer than ``moment``.

        Args:
            moment: Point in time to look up.

        Returns:
            The matching revision, or None if every revision is newer.
        """
        valid = [r for r in self.revisions if r.timestamp <= moment]
        if not valid:
            return None
        return max(valid, key=lambda r: r.timestamp)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON export."""
        return {
            "file": str(self.current.path),
            "historyPath": self.settings.history_path,
            "revisions": [r.to_dict() for r in self.revisions],
        }

    def __repr__(self) -> str:
        return (
            f"FileHistory(file={self.current.source_name!r}, "
            f"revisions={len(self.revisions)})"
        )
