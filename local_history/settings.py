"""
Settings resolution for Local History.

``resolve_settings`` decides, for one owning root, whether history is kept
and where its store lives:

    path set, absolute            <path>/.history/<absolute source path>
    path set, not absolute        <path>/.history/<root name>/<relative path>
                                  (no <root name> when the root lies inside
                                  the root named in the template)
    path set, no root, Always     treated as absolute
    no path                       <root>/.history/<relative path>
    no path, no root              not saved

``SettingsResolver`` caches the result per owning root.
"""

import logging
import os
from typing import Callable, Optional, Sequence

from .config import Configuration, Workspace
from .constants import (
    CONFIG_SECTION,
    DEFAULT_DAYS_LIMIT,
    DEFAULT_EXCLUDE,
    DEFAULT_MAX_DISPLAY,
    DEFAULT_SAVE_DELAY,
    HISTORY_DIRNAME,
)
from .host import SETTINGS_ACTION, Host
from .models import HistoryEnabled, HistorySettings, WorkspaceFolder
from .paths import resolve_path_template
from .utils import is_path_inside, normalize_path

logger = logging.getLogger(__name__)

Reporter = Callable[[str, str], None]


def _validate(config: Configuration) -> Optional[str]:
    """Return one message naming every wrongly typed setting."""
    problems = []
    if isinstance(config.get("enabled"), bool):
        problems.append(f"{CONFIG_SECTION}.enabled must be a number")
    if isinstance(config.get("exclude"), str):
        problems.append(f"{CONFIG_SECTION}.exclude must be an array")
    if not problems:
        return None
    return "Change setting: " + ", ".join(problems)


def _locate_store(
    config: Configuration,
    mode: int,
    owner: Optional[WorkspaceFolder],
    folders: Sequence[WorkspaceFolder],
    report: Reporter,
) -> tuple[Optional[str], bool]:
    raw = config.get("path")
    if not raw or not isinstance(raw, str):
        if owner is None:
            return None, False
        return os.path.join(str(owner.path), HISTORY_DIRNAME), False

    resolution = resolve_path_template(raw, folders, owner)
    if not resolution.usable:
        if resolution.error:
            report("error", resolution.error)
        return None, False

    if config.get("absolute") or (owner is None and mode == HistoryEnabled.ALWAYS):
        return os.path.join(resolution.path, HISTORY_DIRNAME), True

    if owner is None:
        return None, False

    store = os.path.join(resolution.path, HISTORY_DIRNAME)
    target = resolution.target
    if target and is_path_inside(owner.path, target.path):
        return store, False
    return os.path.join(store, owner.path.name), False


def resolve_settings(
    config: Configuration,
    owner: Optional[WorkspaceFolder],
    folders: Sequence[WorkspaceFolder],
    report: Optional[Reporter] = None,
) -> HistorySettings:
    """
    Compute the settings for files owned by ``owner``.

    Args:
        config: Raw configuration values.
        owner: Root owning the file, or None.
        folders: All known roots, in order.
        report: Called with ``(level, message)`` for configuration problems;
                level is "warning" or "error".

    Returns:
        Fresh HistorySettings. ``enabled`` is True exactly when a
        history path was computed.
    """
    report = report or (lambda level, message: logger.warning(message))

    message = _validate(config)
    if message:
        report("warning", message)

    mode = config.get("enabled")
    history_path = None
    absolute = False
    if mode != HistoryEnabled.NEVER:
        history_path, absolute = _locate_store(config, mode, owner, folders, report)

    if history_path:
        history_path = history_path.replace("/", os.sep)

    days_limit = config.get("daysLimit")
    exclude = config.get("exclude") or DEFAULT_EXCLUDE
    if isinstance(exclude, str):
        exclude = [exclude]
    return HistorySettings(
        folder=owner.path if owner else None,
        enabled=bool(history_path),
        history_path=history_path,
        absolute=absolute,
        days_limit=DEFAULT_DAYS_LIMIT if days_limit is None else days_limit,
        save_delay=config.get("saveDelay") or DEFAULT_SAVE_DELAY,
        max_display=config.get("maxDisplay") or DEFAULT_MAX_DISPLAY,
        exclude=list(exclude),
        date_locale=config.get("dateLocale") or None,
    )


class SettingsResolver:
    """
    Per-root cache of resolved settings.

    The cache is cleared whenever the configuration is reloaded.

    Example:
        >>> resolver = SettingsResolver(Configuration(), Workspace.from_paths(["/src/app"]))
        >>> resolver.get("/src/app/main.py").history_path
        '/src/app/.history'
    """

    def __init__(self, config: Configuration, workspace: Workspace, host: Optional[Host] = None):
        self.config = config
        self.workspace = workspace
        self.host = host or Host()
        self._cache: dict[Optional[str], HistorySettings] = {}
        config.on_change(lambda _config: self.clear())

    def get(self, file: str) -> HistorySettings:
        """Get the settings for ``file``, computing them on first use per root."""
        owner = self.workspace.get_workspace_folder(file)
        key = normalize_path(owner.path) if owner else None

        settings = self._cache.get(key)
        if settings is None:
            settings = resolve_settings(self.config, owner, self.workspace.folders, self._report)
            logger.debug("Resolved settings for %s: %s", owner or "no folder", settings.history_path)
            self._cache[key] = settings
        return settings

    def clear(self) -> None:
        """Drop every cached entry."""
        self._cache.clear()

    def _report(self, level: str, message: str) -> None:
        if level == "error":
            self.host.show_error(message)
            return
        if self.host.show_warning(message, SETTINGS_ACTION) == SETTINGS_ACTION:
            self.host.open_settings()
