"""
Exceptions raised by Local History.
"""


class LocalHistoryError(Exception):
    """Base class for all Local History errors."""


class ConfigurationError(LocalHistoryError):
    """The settings source could not be read."""


class HistoryDirectoryError(LocalHistoryError):
    """The revision directory could not be created."""

    def __init__(self, directory, reason: str):
        super().__init__(f"Unable to create history directory {directory}: {reason}")
        self.directory = directory


class RevisionCopyError(LocalHistoryError):
    """Copying a file into the history store failed."""

    def __init__(self, source, destination, reason: str):
        super().__init__(f"Unable to save revision of {source} to {destination}: {reason}")
        self.source = source
        self.destination = destination


class RestoreError(LocalHistoryError):
    """A revision could not be written back to its source file."""


class SearchPatternError(LocalHistoryError):
    """A store search pattern is not a usable relative glob."""
