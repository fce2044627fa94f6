"""
Host collaborator for Local History.

The host is whatever embeds the history core: an editor extension, the
command line, or a test. The core only talks to it to report messages and
to hand two files to a diff viewer.
"""

import difflib
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

logger = logging.getLogger(__name__)

SETTINGS_ACTION = "Settings"


class Host:
    """
    Base host: logs messages and ignores diff requests.

    Subclasses override what their environment can show.
    """

    def show_warning(self, message: str, *actions: str) -> Optional[str]:
        """Show a warning; return the chosen action, if any."""
        logger.warning(message)
        return None

    def show_error(self, message: str) -> None:
        logger.error(message)

    def open_settings(self) -> None:
        """Open the user settings."""

    def diff(
        self,
        left: Path,
        right: Path,
        title: str,
        view_column: Optional[int] = None,
        selection: Optional[tuple] = None,
    ) -> None:
        """Show ``left`` against ``right``."""


class ConsoleHost(Host):
    """Host for the command line: unified diffs on a text stream."""

    def __init__(self, settings_file: Optional[str] = None, stream: Optional[TextIO] = None):
        self.settings_file = settings_file
        self.stream = stream or sys.stdout

    def open_settings(self) -> None:
        if self.settings_file:
            print(f"Edit settings in: {self.settings_file}", file=self.stream)

    def diff(
        self,
        left: Path,
        right: Path,
        title: str,
        view_column: Optional[int] = None,
        selection: Optional[tuple] = None,
    ) -> None:
        print(title, file=self.stream)
        left_lines = _read_lines(left)
        right_lines = _read_lines(right)
        self.stream.writelines(
            difflib.unified_diff(left_lines, right_lines, str(left), str(right))
        )


def _read_lines(path: Path) -> list[str]:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.readlines()
