"""Workspace layout shared by quiz-bank commands.

The workspace (data home) holds the configuration file, JSON logs and the
question bank document. It defaults to ``~/.quiz-bank-data`` and can be moved
with the ``QUIZ_BANK_DATA_HOME`` environment variable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, MutableMapping

__all__ = [
    "WORKSPACE_ENV",
    "DEFAULT_WORKSPACE",
    "WorkspaceError",
    "WorkspaceLayout",
    "resolve_home",
    "ensure_workspace",
]

WORKSPACE_ENV = "QUIZ_BANK_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".quiz-bank-data"

_SUBDIRS = {
    "config": "config",
    "logs": "logs",
    "bank": "bank",
}


class WorkspaceError(RuntimeError):
    """Raised when the workspace layout cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace paths and which of them were just created."""

    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool]

    def path_for(self, key: str) -> Path:
        try:
            return self.directories[key]
        except KeyError as exc:
            raise WorkspaceError(
                f"Unknown workspace directory '{key}'."
            ) from exc

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple(self.directories.items())


def resolve_home(
    *, env: Mapping[str, str] | None = None, path: Path | None = None
) -> Path:
    """Return the workspace root from ``path``, the env var, or the default."""

    if path is None:
        env_map = os.environ if env is None else env
        custom = (env_map.get(WORKSPACE_ENV) or "").strip()
        path = Path(custom) if custom else DEFAULT_WORKSPACE
    return path.expanduser().absolute()


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Resolve the workspace and, when ``create`` is set, materialize it."""

    home = resolve_home(env=env, path=path)
    if home.exists() and not home.is_dir():
        raise WorkspaceError(
            f"Configured workspace exists and is not a directory: {home}"
        )

    created: MutableMapping[str, bool] = {
        "home": _ensure_dir(home) if create else False
    }
    directories: MutableMapping[str, Path] = {}
    for key, relative in _SUBDIRS.items():
        target = home / relative
        if create:
            created[key] = _ensure_dir(target)
        else:
            created[key] = False
            if target.exists() and not target.is_dir():
                raise WorkspaceError(
                    f"Expected workspace directory for '{key}' but found a "
                    f"file: {target}"
                )
        directories[key] = target

    return WorkspaceLayout(
        home=home,
        directories=MappingProxyType(dict(directories)),
        created=MappingProxyType(dict(created)),
    )


def _ensure_dir(path: Path) -> bool:
    existed = path.exists()
    if existed and not path.is_dir():
        raise WorkspaceError(
            f"Expected directory but found a non-directory entry: {path}"
        )
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WorkspaceError(f"Unable to create directory {path}") from exc
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):  # pragma: no cover
        pass
    return not existed
