from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

from local_history.codec import encode_revision_name
from local_history.config import Configuration, Workspace
from local_history.host import Host
from local_history.settings import SettingsResolver
from local_history.store import HistoryStore


class RecordingHost(Host):
    """Host that records what the core asks it to show."""

    def __init__(self, action: Optional[str] = None):
        self.action = action
        self.warnings: list[tuple] = []
        self.errors: list[str] = []
        self.diffs: list[dict] = []
        self.settings_opened = 0

    def show_warning(self, message, *actions):
        self.warnings.append((message,) + actions)
        return self.action

    def show_error(self, message):
        self.errors.append(message)

    def open_settings(self):
        self.settings_opened += 1

    def diff(self, left, right, title, view_column=None, selection=None):
        self.diffs.append(
            {
                "left": left,
                "right": right,
                "title": title,
                "view_column": view_column,
                "selection": selection,
            }
        )


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture
def project(tmp_path) -> Path:
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    return root


@pytest.fixture
def make_store(project, host):
    """Build a store over ``project`` with the given settings."""

    def _make(values: Optional[dict] = None, roots: Optional[list] = None) -> HistoryStore:
        config = Configuration({f"local-history.{k}": v for k, v in (values or {}).items()})
        workspace = Workspace.from_paths([str(r) for r in (roots or [project])])
        return HistoryStore(SettingsResolver(config, workspace, host))

    return _make


def write_revision(directory: Path, name: str, ext: str, moment: datetime, content: str = "old") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / encode_revision_name(name, ext, moment)
    path.write_text(content, encoding="utf-8")
    return path

