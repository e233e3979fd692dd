"""Configuration for the question bank.

Settings live in ``<workspace>/config/bank.toml`` unless ``QUIZ_BANK_CONFIG``
or an explicit path points elsewhere. A missing default file means "use the
defaults"; an explicit path that does not exist is an error.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from quiz_bank.core import config as toml_config
from quiz_bank.core import workspace as workspace_mod

from .grading import YesNoVocabulary

__all__ = [
    "CONFIG_PATH_ENV",
    "CONFIG_FILENAME",
    "BankConfigError",
    "StorageConfig",
    "TopicsConfig",
    "GradingConfig",
    "LoggingConfig",
    "BankConfig",
    "default_tree",
    "config_template",
    "resolve_config_path",
    "load_config",
    "write_template",
]

CONFIG_PATH_ENV = "QUIZ_BANK_CONFIG"
CONFIG_FILENAME = "bank.toml"

_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class BankConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class StorageConfig:
    filename: str
    lock_timeout_seconds: float


@dataclass(frozen=True)
class TopicsConfig:
    untitled_label: str


@dataclass(frozen=True)
class GradingConfig:
    yes_token: str
    no_token: str

    @property
    def vocabulary(self) -> YesNoVocabulary:
        return YesNoVocabulary(yes=self.yes_token, no=self.no_token)


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class BankConfig:
    layout: workspace_mod.WorkspaceLayout
    storage: StorageConfig
    topics: TopicsConfig
    grading: GradingConfig
    logging: LoggingConfig

    @property
    def bank_path(self) -> Path:
        return self.layout.path_for("bank") / self.storage.filename

    @property
    def log_dir(self) -> Path:
        return self.layout.path_for("logs")


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    return _CONFIG_TEMPLATE.strip() + "\n"


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    layout: workspace_mod.WorkspaceLayout | None = None,
) -> Path:
    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().absolute()
    override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if override:
        return Path(override).expanduser().absolute()
    if layout is None:
        layout = workspace_mod.ensure_workspace(env=env_map, create=False)
    return layout.path_for("config") / CONFIG_FILENAME


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    workspace_path: Optional[Path] = None,
) -> BankConfig:
    """Resolve the workspace, read the TOML file and validate it."""

    try:
        layout = workspace_mod.ensure_workspace(env=env, path=workspace_path)
    except workspace_mod.WorkspaceError as exc:
        raise BankConfigError(str(exc)) from exc
    path = resolve_config_path(
        explicit_path=explicit_path, env=env, layout=layout
    )
    tree = default_tree()
    try:
        if explicit_path is not None:
            raw = toml_config.load_toml(path)
        else:
            raw = toml_config.load_optional_toml(path)
        toml_config.merge_defaults(tree, raw)
    except toml_config.TomlConfigError as exc:
        raise BankConfigError(str(exc)) from exc
    return _build_config(tree, layout)


def write_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return toml_config.write_toml_template(
            path, template=config_template(), overwrite=overwrite
        )
    except toml_config.TomlConfigError as exc:
        raise BankConfigError(str(exc)) from exc


def _build_config(
    tree: Mapping[str, Any], layout: workspace_mod.WorkspaceLayout
) -> BankConfig:
    storage = tree["storage"]
    topics = tree["topics"]
    grading = tree["grading"]
    logging_section = tree["logging"]

    filename = _require_string(storage["filename"], field="storage.filename")
    if Path(filename).name != filename:
        raise BankConfigError("storage.filename must be a bare file name.")
    timeout = storage["lock_timeout_seconds"]
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise BankConfigError("storage.lock_timeout_seconds must be a number.")
    if timeout <= 0:
        raise BankConfigError("storage.lock_timeout_seconds must be positive.")

    yes_token = _require_string(
        grading["yes_token"], field="grading.yes_token"
    )
    no_token = _require_string(grading["no_token"], field="grading.no_token")
    if yes_token.upper() == no_token.upper():
        raise BankConfigError("grading.yes_token and no_token must differ.")

    level = _require_string(logging_section["level"], field="logging.level")
    if level.upper() not in _LEVELS:
        raise BankConfigError(
            "logging.level must be one of DEBUG, INFO, WARNING, ERROR, "
            "CRITICAL."
        )
    verbose = logging_section["verbose"]
    if not isinstance(verbose, bool):
        raise BankConfigError("logging.verbose must be a boolean.")

    return BankConfig(
        layout=layout,
        storage=StorageConfig(
            filename=filename, lock_timeout_seconds=float(timeout)
        ),
        topics=TopicsConfig(
            untitled_label=_require_string(
                topics["untitled_label"], field="topics.untitled_label"
            )
        ),
        grading=GradingConfig(yes_token=yes_token, no_token=no_token),
        logging=LoggingConfig(level=level.upper(), verbose=verbose),
    )


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise BankConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


_DEFAULTS: Dict[str, Any] = {
    "storage": {
        "filename": "questions.json",
        "lock_timeout_seconds": 5.0,
    },
    "topics": {
        "untitled_label": "untitled",
    },
    "grading": {
        "yes_token": "TAK",
        "no_token": "NIE",
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# quiz-bank configuration

[storage]
# File name of the bank document inside <workspace>/bank
filename = "questions.json"
# Seconds to wait for another process holding the bank lock
lock_timeout_seconds = 5.0

[topics]
# Topic assigned to questions whose metadata has no topic
untitled_label = "untitled"

[grading]
# The two literals accepted for yes/no questions
yes_token = "TAK"
no_token = "NIE"

[logging]
level = "INFO"
verbose = false
"""
