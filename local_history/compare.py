"""
Comparison commands.

Picks the files to compare through the history store and hands them to the
host's diff viewer. Nothing here modifies the store.
"""

import logging
from pathlib import Path
from typing import Optional

from .codec import decode_revision, source_path
from .host import Host
from .models import HistorySettings
from .store import HistoryStore
from .utils import PathLike

logger = logging.getLogger(__name__)


class HistoryComparer:
    """Compare revisions with each other and with live files."""

    def __init__(self, store: HistoryStore, host: Optional[Host] = None):
        self.store = store
        self.host = host or store.host

    def compare(
        self,
        left: PathLike,
        right: PathLike,
        view_column: Optional[int] = None,
        selection: Optional[tuple] = None,
    ) -> bool:
        """Show ``left`` against ``right`` in the diff viewer."""
        left, right = Path(left), Path(right)
        title = f"{left.name}<->{right.name}"
        self.host.diff(left, right, title, view_column=view_column, selection=selection)
        return True

    def compare_to_current(
        self,
        revision: PathLike,
        settings: HistorySettings,
        view_column: Optional[int] = None,
        selection: Optional[tuple] = None,
    ) -> bool:
        """
        Compare a revision with the live file it was taken from.

        Returns:
            False if ``revision`` is not a revision or its source is unknown.
        """
        decoded = decode_revision(revision)
        if decoded is None:
            return False
        live = source_path(decoded, settings)
        if live is None:
            return False
        return self.compare(decoded.path, live, view_column, selection)

    def compare_to_previous(
        self,
        file: PathLike,
        settings: Optional[HistorySettings] = None,
        view_column: Optional[int] = None,
        selection: Optional[tuple] = None,
    ) -> bool:
        """
        Compare the most recent revision of ``file`` with the live file.

        Returns:
            False when the file has no revisions.
        """
        revisions = self.store.find_history(file, settings)
        if not revisions:
            logger.info("No history for %s", file)
            return False
        return self.compare(revisions[0].path, file, view_column, selection)

    def compare_to_active(
        self,
        active_file: PathLike,
        revision: PathLike,
        view_column: Optional[int] = None,
        selection: Optional[tuple] = None,
    ) -> bool:
        """Compare the file open in the editor with a chosen revision."""
        decoded = decode_revision(revision)
        if decoded is None:
            return False
        return self.compare(active_file, decoded.path, view_column, selection)
