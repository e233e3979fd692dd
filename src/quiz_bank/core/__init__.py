"""Core shared helpers for quiz-bank subcommands."""

from __future__ import annotations

from .config import (
    TomlConfigError,
    load_optional_toml,
    load_toml,
    merge_defaults,
    write_toml_template,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
    resolve_home,
)

__all__ = [
    "TomlConfigError",
    "load_toml",
    "load_optional_toml",
    "merge_defaults",
    "write_toml_template",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "resolve_home",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
