"""
Core history store functionality.

This module contains the HistoryStore class that writes revisions on save,
lists and filters them, purges old ones, and restores them.
"""

import logging
import os
import shutil
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from .codec import decode_revision, encode_revision_name, revision_directory, source_path
from .constants import PURGE_INTERVAL
from .errors import (
    HistoryDirectoryError,
    LocalHistoryError,
    RestoreError,
    RevisionCopyError,
    SearchPatternError,
)
from .host import Host
from .models import FileHistory, HistorySettings, Revision
from .settings import SettingsResolver
from .utils import PathLike, Timeout, matches_any

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _PendingCopy:
    source: Path
    destination: Path
    settings: HistorySettings
    timer: Optional[threading.Timer] = None


def _sorted(revisions: Iterable[Optional[Revision]], limit: Optional[int]) -> list[Revision]:
    found = [r for r in revisions if r is not None and r.timestamp is not None]
    found.sort(key=lambda r: r.timestamp, reverse=True)
    if limit is not None:
        found = found[:limit]
    return found


class HistoryStore:
    """
    Reads and writes the revisions of files.

    This class provides methods to:
    - Save a revision when a file is saved (optionally delayed)
    - Find the revisions of one file or of a whole store
    - Purge revisions older than the retention window
    - Delete revisions and restore one over its live file

    Example:
        >>> store = HistoryStore(SettingsResolver(Configuration(), workspace))
        >>> store.save("/src/app/main.py")
        PosixPath('/src/app/.history/main_20250627143000.py')
        >>> store.find_all("/src/app/main.py")
        FileHistory(file='main.py', revisions=1)
    """

    def __init__(self, resolver: SettingsResolver, host: Optional[Host] = None):
        """
        Initialize the store.

        Args:
            resolver: Settings resolver used for every file.
            host: Receives errors from delayed saves. Defaults to the
                  resolver's host.
        """
        self.resolver = resolver
        self.host = host or resolver.host
        self._pending: dict[str, _PendingCopy] = {}
        self._lock = threading.Lock()
        self._purge_timeouts: dict[str, Timeout] = {}

    def get_settings(self, file: PathLike) -> HistorySettings:
        """Settings for ``file``."""
        return self.resolver.get(os.path.abspath(os.fspath(file)))

    def _target(self, file: PathLike) -> Optional[tuple[Path, HistorySettings]]:
        source = Path(os.path.abspath(os.fspath(file)))
        settings = self.resolver.get(str(source))
        if not settings.enabled:
            logger.debug("History disabled for %s", source)
            return None
        if matches_any(source, settings.exclude):
            logger.debug("Excluded from history: %s", source)
            return None
        return source, settings

    def _prepare(self, source: Path, settings: HistorySettings, timestamp: datetime) -> Path:
        directory = revision_directory(source, settings)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise HistoryDirectoryError(directory, str(e)) from e
        name, ext = os.path.splitext(source.name)
        return directory / encode_revision_name(name, ext, timestamp)

    def save(self, file: PathLike) -> Optional[Path]:
        """
        Save a revision of ``file`` after it was written.

        With a ``save_delay`` the copy runs later; a newer save of the same
        file replaces a copy that is still pending. The timestamp is taken
        when the save is requested.

        Args:
            file: The saved file.

        Returns:
            Path of the revision, or None when the file is not versioned.

        Raises:
            HistoryDirectoryError: If the revision directory cannot be created.
            RevisionCopyError: If an immediate copy fails.
        """
        target = self._target(file)
        if target is None:
            return None
        source, settings = target

        destination = self._prepare(source, settings, datetime.now().replace(microsecond=0))

        if settings.save_delay and settings.save_delay > 0:
            self._schedule(source, destination, settings)
        else:
            self._copy(source, destination, settings)
        return destination

    def save_first_revision(self, file: PathLike) -> Optional[Path]:
        """
        Keep the on-disk content of a file that has no history yet.

        Meant to run just before the file is overwritten, so the content
        predating the first save is not lost. The revision is stamped with
        the file's modification time.

        Returns:
            Path of the revision, or None when nothing was saved.
        """
        target = self._target(file)
        if target is None:
            return None
        source, settings = target

        if not source.is_file() or self.find_history(source, settings, no_limit=True):
            return None

        modified = datetime.fromtimestamp(source.stat().st_mtime).replace(microsecond=0)
        destination = self._prepare(source, settings, modified)
        self._copy(source, destination, settings, purge=False)
        return destination

    def _schedule(self, source: Path, destination: Path, settings: HistorySettings) -> None:
        key = str(source)
        with self._lock:
            previous = self._pending.pop(key, None)
            if previous is not None:
                previous.timer.cancel()
                logger.debug("Replacing pending revision %s", previous.destination)

            pending = _PendingCopy(source, destination, settings)
            pending.timer = threading.Timer(settings.save_delay, self._run_pending, args=(key, pending))
            pending.timer.daemon = True
            self._pending[key] = pending
            pending.timer.start()

    def _run_pending(self, key: str, pending: _PendingCopy) -> None:
        with self._lock:
            if self._pending.get(key) is not pending:
                return
            del self._pending[key]
        self._copy_reported(pending)

    def _copy_reported(self, pending: _PendingCopy) -> None:
        try:
            self._copy(pending.source, pending.destination, pending.settings)
        except LocalHistoryError as e:
            logger.error("%s", e)
            self.host.show_error(str(e))

    def flush(self) -> int:
        """
        Run every pending delayed copy now.

        Returns:
            Number of copies run.
        """
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for entry in pending:
            entry.timer.cancel()
            self._copy_reported(entry)
        return len(pending)

    def cancel_pending(self) -> None:
        """Drop every pending delayed copy."""
        with self._lock:
            for entry in self._pending.values():
                entry.timer.cancel()
            self._pending.clear()

    def _copy(self, source: Path, destination: Path, settings: HistorySettings, purge: bool = True) -> None:
        try:
            shutil.copy2(source, destination)
        except OSError as e:
            raise RevisionCopyError(source, destination, str(e)) from e
        logger.debug("Saved revision %s", destination)
        if purge:
            self._purge_if_due(settings)

    def _purge_if_due(self, settings: HistorySettings) -> None:
        timeout = self._purge_timeouts.get(settings.history_path)
        if timeout is not None and not timeout.is_timed_out():
            return
        self._purge_timeouts[settings.history_path] = Timeout(PURGE_INTERVAL)
        self.purge(settings)

    def find_history(
        self,
        file: PathLike,
        settings: Optional[HistorySettings] = None,
        no_limit: bool = False,
    ) -> list[Revision]:
        """
        List the revisions of one file.

        Args:
            file: The live file.
            settings: Settings to use; resolved from ``file`` if omitted.
            no_limit: Return every revision instead of at most ``max_display``.

        Returns:
            Revisions, newest first.
        """
        settings = settings or self.get_settings(file)
        if not settings.enabled:
            return []

        directory = revision_directory(file, settings)
        if not directory.is_dir():
            return []

        name, ext = os.path.splitext(Path(file).name)
        revisions = (
            revision
            for revision in (decode_revision(p, settings.history_path) for p in directory.iterdir())
            if revision is not None and revision.name == name and revision.ext == ext
        )
        return _sorted(revisions, None if no_limit else settings.max_display)

    def find_all(
        self,
        file: PathLike,
        settings: Optional[HistorySettings] = None,
        no_limit: bool = False,
    ) -> Optional[FileHistory]:
        """
        The live file together with its revisions.

        Returns:
            FileHistory, or None if history is disabled for the file.
        """
        settings = settings or self.get_settings(file)
        if not settings.enabled:
            return None

        live = Path(os.path.abspath(os.fspath(file)))
        name, ext = os.path.splitext(live.name)
        return FileHistory(
            current=Revision(name=name, ext=ext, path=live),
            settings=settings,
            revisions=self.find_history(live, settings, no_limit),
        )

    def find_global_history(
        self,
        pattern: str,
        settings: HistorySettings,
        no_limit: bool = False,
    ) -> list[Revision]:
        """
        Search a whole store with a glob pattern relative to its root.

        Args:
            pattern: Glob such as ``**/*.py`` or ``**/*main*``.
            settings: Settings naming the store.
            no_limit: Return every match instead of at most ``max_display``.

        Returns:
            Matching revisions, newest first.

        Raises:
            SearchPatternError: If ``pattern`` is empty or absolute.
        """
        if not pattern or os.path.isabs(pattern) or Path(pattern).anchor:
            raise SearchPatternError(f"Search pattern must be a relative glob: {pattern!r}")
        if not settings.enabled:
            return []
        store = Path(settings.history_path)
        if not store.is_dir():
            return []

        try:
            matches = [p for p in store.glob(pattern) if p.is_file()]
        except (ValueError, NotImplementedError) as e:
            raise SearchPatternError(f"Invalid search pattern {pattern!r}: {e}") from e

        revisions = (decode_revision(p, settings.history_path) for p in matches)
        return _sorted(revisions, None if no_limit else settings.max_display)

    def purge(self, settings: HistorySettings) -> list[Path]:
        """
        Delete revisions older than ``days_limit`` days.

        Files that do not decode as revisions are left alone.

        Returns:
            Paths that were deleted.
        """
        if not settings.enabled or not settings.days_limit or settings.days_limit <= 0:
            return []
        store = Path(settings.history_path)
        if not store.is_dir():
            return []

        cutoff = datetime.now() - timedelta(days=settings.days_limit)
        expired = []
        for path in store.rglob("*"):
            if not path.is_file():
                continue
            revision = decode_revision(path, settings.history_path)
            if revision is not None and revision.timestamp is not None and revision.timestamp < cutoff:
                expired.append(path)

        failed = set(self.delete_files(expired))
        purged = [p for p in expired if p not in failed]
        if purged:
            logger.info("Purged %d revisions from %s", len(purged), store)
        return purged

    def delete_file(self, path: PathLike) -> bool:
        """
        Delete one revision. A missing file counts as deleted.

        Returns:
            False if the file could not be removed.
        """
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Unable to delete %s: %s", path, e)
            return False
        return True

    def delete_files(self, paths: Iterable[PathLike]) -> list[Path]:
        """
        Delete several revisions, continuing past failures.

        Returns:
            Paths that could not be removed.
        """
        return [Path(p) for p in paths if not self.delete_file(p)]

    def delete_history(self, file: PathLike, settings: Optional[HistorySettings] = None) -> list[Path]:
        """Delete every revision of one file; returns the failures."""
        revisions = self.find_history(file, settings, no_limit=True)
        return self.delete_files(r.path for r in revisions)

    def delete_all(self, store_root: PathLike) -> None:
        """Delete a whole store subtree. A missing directory is not an error."""
        root = Path(store_root)
        if not root.exists():
            return
        shutil.rmtree(root)
        self._purge_timeouts.pop(str(root), None)
        logger.info("Deleted history %s", root)

    def restore(
        self,
        revision: PathLike,
        settings: HistorySettings,
        target: Optional[PathLike] = None,
    ) -> Optional[Path]:
        """
        Overwrite the live file with the content of a revision.

        Args:
            revision: Path of the revision.
            settings: Settings of the store holding the revision.
            target: Live file to overwrite; derived from the store
                    layout if omitted.

        Returns:
            The restored file, or None if ``revision`` is not a revision.

        Raises:
            RestoreError: If the content cannot be written.
        """
        decoded = decode_revision(revision)
        if decoded is None:
            logger.debug("Not a revision, nothing restored: %s", revision)
            return None

        live = Path(target) if target is not None else source_path(decoded, settings)
        if live is None:
            logger.debug("No source file known for %s", revision)
            return None

        try:
            live.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(decoded.path, live)
        except OSError as e:
            raise RestoreError(f"Unable to restore {decoded.path} to {live}: {e}") from e
        logger.info("Restored %s from %s", live, decoded.path)
        return live
