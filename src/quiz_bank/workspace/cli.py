"""CLI entry point for workspace bootstrap."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from quiz_bank.bank import config as bank_config
from quiz_bank.core import workspace as workspace_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizbank init",
        description=(
            "Create the quiz-bank workspace (config, logs and bank "
            "directories) and a default bank.toml."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to QUIZ_BANK_DATA_HOME "
            "or ~/.quiz-bank-data)."
        ),
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    config_path = layout.path_for("config") / bank_config.CONFIG_FILENAME
    wrote_config = not config_path.exists()
    if wrote_config:
        bank_config.write_template(config_path)

    if args.quiet:
        return 0

    lines = [
        f"Workspace ready at {layout.home} "
        f"({_format_created(layout.created, 'home')})"
    ]
    width = max(len(name) for name in layout.directories)
    for name, directory in layout.items():
        status = _format_created(layout.created, name)
        lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    config_status = "created" if wrote_config else "exists"
    lines.append(f"Config: {config_path} ({config_status})")
    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
