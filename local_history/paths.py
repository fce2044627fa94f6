"""
Path template expansion for the ``path`` setting.

Supported tokens, expanded in this order:

    %NAME%                        environment variable (unset -> "")
    ~                             home directory, leading position only
    ${workspaceFolder}            root owning the current file
    ${workspaceFolder: 1}         root at that position (0-based)
    ${workspaceFolder: name}      root with that display name

A ``${workspaceFolder...}`` token must start the template.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .constants import CONFIG_SECTION
from .models import WorkspaceFolder

_ENV_TOKEN = re.compile(r"%([^%]+)%")
_WORKSPACE_TOKEN = re.compile(r"\$\{workspaceFolder(?:\s*:\s*([^}]*?))?\s*\}", re.IGNORECASE)


@dataclass(frozen=True)
class TemplateResolution:
    """
    Outcome of expanding a path template.

    Attributes:
        path: Expanded path, or None when the template is unusable.
        target: Root referenced by a named or indexed token.
        error: Message describing why the template is unusable.
    """
    path: Optional[str]
    target: Optional[WorkspaceFolder] = None
    error: Optional[str] = None

    @property
    def usable(self) -> bool:
        return bool(self.path)


def expand_environment(raw: str) -> str:
    """Replace ``%NAME%`` tokens and a leading ``~``."""
    expanded = _ENV_TOKEN.sub(lambda m: os.environ.get(m.group(1), ""), raw)
    if expanded.startswith("~"):
        expanded = str(Path.home()) + expanded[1:]
    return expanded


def _find_folder(qualifier: str, folders: Sequence[WorkspaceFolder]) -> Optional[WorkspaceFolder]:
    try:
        position = int(qualifier)
    except ValueError:
        return next((f for f in folders if f.name == qualifier), None)
    return next((f for f in folders if f.index == position), None)


def resolve_path_template(
    raw: str,
    folders: Sequence[WorkspaceFolder],
    owner: Optional[WorkspaceFolder],
) -> TemplateResolution:
    """
    Expand a configured history location into an absolute path.

    Args:
        raw: Template from the ``path`` setting.
        folders: Known roots, in order.
        owner: Root owning the current file, if any.

    Returns:
        A TemplateResolution; never raises for bad templates.
    """
    expanded = expand_environment(raw)

    match = _WORKSPACE_TOKEN.search(expanded)
    if not match:
        return TemplateResolution(path=expanded)

    if match.start() != 0:
        return TemplateResolution(
            path=None,
            error=f"${{workspaceFolder}} must start setting {CONFIG_SECTION}.path {expanded}",
        )

    qualifier = (match.group(1) or "").strip()
    target = None
    if qualifier:
        target = _find_folder(qualifier, folders)
        if target is None:
            return TemplateResolution(path=None, error=f"workspaceFolder not found {expanded}")
        root = target
    elif owner is not None:
        root = owner
    else:
        return TemplateResolution(path=None, error=f"workspaceFolder not found {expanded}")

    return TemplateResolution(
        path=str(root.path) + expanded[match.end():],
        target=target,
    )
