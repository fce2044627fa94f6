"""
Local History

Keeps a timestamped copy of a file every time it is saved, in a history
store next to the project or in a configured location, and restores or
compares those revisions later.

License: MIT
"""

from .codec import decode_revision, encode_revision_name
from .compare import HistoryComparer
from .config import Configuration, Workspace
from .models import FileHistory, HistoryEnabled, HistorySettings, Revision, WorkspaceFolder
from .settings import SettingsResolver, resolve_settings
from .store import HistoryStore

__version__ = "1.0.0"
__all__ = [
    "Configuration",
    "FileHistory",
    "HistoryComparer",
    "HistoryEnabled",
    "HistorySettings",
    "HistoryStore",
    "Revision",
    "SettingsResolver",
    "Workspace",
    "WorkspaceFolder",
    "decode_revision",
    "encode_revision_name",
    "resolve_settings",
]
