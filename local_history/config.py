"""
Configuration and workspace sources for Local History.

``Configuration`` exposes the raw values of the ``local-history`` settings
section, read from a VS Code style JSON settings file or a plain dict.
``Workspace`` holds the known root folders.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from .constants import CONFIG_SECTION, DEFAULTS
from .errors import ConfigurationError
from .models import WorkspaceFolder
from .utils import is_path_inside, normalize_path

logger = logging.getLogger(__name__)


class Configuration:
    """
    Raw settings for one section.

    Values may be given with dotted keys (``"local-history.path"``) or as a
    nested section object (``{"local-history": {"path": ...}}``). Values are
    returned exactly as stored; validation belongs to the settings resolver.

    Example:
        >>> config = Configuration({"local-history.daysLimit": 7})
        >>> config.get("daysLimit")
        7
    """

    def __init__(self, values: Optional[dict] = None, section: str = CONFIG_SECTION):
        self.section = section
        self._values = dict(values or {})
        self._listeners: list[Callable[["Configuration"], None]] = []

    @classmethod
    def from_file(cls, path: str, section: str = CONFIG_SECTION) -> "Configuration":
        """
        Load settings from a JSON file.

        A missing file yields an empty configuration.

        Raises:
            ConfigurationError: If the file is not valid JSON.
        """
        settings_file = Path(path).expanduser()
        if not settings_file.exists():
            logger.debug("Settings file %s not found, using defaults", settings_file)
            return cls({}, section)

        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                values = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Invalid settings file {settings_file}: {e}") from e

        if not isinstance(values, dict):
            raise ConfigurationError(f"Settings file {settings_file} must contain an object")
        return cls(values, section)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a setting, falling back to its documented default."""
        dotted = f"{self.section}.{key}"
        if dotted in self._values:
            return self._values[dotted]

        nested = self._values.get(self.section)
        if isinstance(nested, dict) and key in nested:
            return nested[key]

        if default is not None:
            return default
        return DEFAULTS.get(key)

    def on_change(self, listener: Callable[["Configuration"], None]) -> None:
        """Register a callback run synchronously after every reload."""
        self._listeners.append(listener)

    def reload(self, values: dict) -> None:
        """Replace all values and notify listeners."""
        self._values = dict(values)
        for listener in self._listeners:
            listener(self)


class Workspace:
    """The ordered set of known root folders."""

    def __init__(self, folders: Sequence[WorkspaceFolder] = ()):
        self.folders = list(folders)

    @classmethod
    def from_paths(cls, specs: Sequence[str]) -> "Workspace":
        """
        Build a workspace from ``path`` or ``name=path`` strings.

        Without an explicit name the folder's base name is used.
        """
        folders = []
        for index, spec in enumerate(specs):
            name, sep, raw = spec.partition("=")
            if not sep:
                raw, name = spec, ""
            path = Path(os.path.abspath(os.path.expanduser(raw)))
            folders.append(WorkspaceFolder(path=path, name=name or path.name, index=index))
        return cls(folders)

    def get_workspace_folder(self, file: str) -> Optional[WorkspaceFolder]:
        """
        Find the root owning ``file``.

        With nested roots the deepest one wins.
        """
        owner = None
        for folder in self.folders:
            inside = is_path_inside(file, folder.path) or normalize_path(file) == normalize_path(folder.path)
            if inside and (owner is None or is_path_inside(folder.path, owner.path)):
                owner = folder
        return owner
