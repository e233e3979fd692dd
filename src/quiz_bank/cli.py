"""Unified CLI entry point for quiz-bank."""

from __future__ import annotations

import inspect
import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence


CommandHandler = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class CommandSpec:
    """Represents a quizbank subcommand."""

    name: str
    summary: str
    module: str
    func: str = "main"

    def run(self, argv: Sequence[str]) -> int:
        target = getattr(import_module(self.module), self.func)
        return _invoke_main(target, f"quizbank {self.name}", argv)


_COMMAND_SPECS: Sequence[CommandSpec] = (
    CommandSpec(
        name="init",
        summary="Bootstrap the quiz-bank workspace.",
        module="quiz_bank.workspace.cli",
    ),
    CommandSpec(
        name="bank",
        summary="Ingest, browse, answer and rate stored questions.",
        module="quiz_bank.bank.cli",
    ),
)

COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec for spec in _COMMAND_SPECS
}


def format_command_table() -> str:
    """Return a formatted command table for help output."""

    width = max(len(spec.name) for spec in _COMMAND_SPECS)
    lines = ["Available commands:"]
    for spec in _COMMAND_SPECS:
        lines.append(f"  {spec.name.ljust(width)}  {spec.summary}")
    return "\n".join(lines)


def format_usage() -> str:
    return "\n".join(
        [
            "Usage: quizbank <command> [args...]",
            "Run `quizbank list` for commands or `quizbank help <name>` "
            "for details.",
            "",
            format_command_table(),
        ]
    )


def _print(
    text: str, *, stream: Optional[Callable[[str], object]] = None
) -> None:
    target = stream if stream is not None else sys.stdout.write
    if text:
        target(text + "\n")


def _handle_version() -> int:
    try:
        version = metadata.version("quiz-bank")
    except metadata.PackageNotFoundError:
        version = "unknown"
    _print(version)
    return 0


def _handle_help(argv: Sequence[str]) -> int:
    if not argv:
        _print(format_usage())
        return 0
    spec = COMMANDS.get(argv[0])
    if spec is None:
        _print(f"Unknown command '{argv[0]}'.", stream=sys.stderr.write)
        _print(format_command_table(), stream=sys.stderr.write)
        return 2
    _print(f"{spec.name}: {spec.summary}")
    _print(f"Run `quizbank {spec.name} --help` for CLI-specific options.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])
    if not args:
        _print(format_usage())
        return 2

    head, *tail = args
    if head in ("-h", "--help"):
        _print(format_usage())
        return 0
    if head in ("-V", "--version", "version"):
        return _handle_version()
    if head == "list":
        _print(format_command_table())
        return 0
    if head == "help":
        return _handle_help(tail)

    spec = COMMANDS.get(head)
    if spec is not None:
        return spec.run(tail)

    _print(f"Unknown command '{head}'.", stream=sys.stderr.write)
    _print(format_command_table(), stream=sys.stderr.write)
    return 2


def _invoke_main(
    func: Callable[..., object], prog_name: str, argv: Sequence[str]
) -> int:
    accepts_argv = bool(inspect.signature(func).parameters)
    old_argv = sys.argv
    sys.argv = [prog_name, *argv]
    try:
        result = func(list(argv)) if accepts_argv else func()
    except SystemExit as exc:
        return _normalize_system_exit(exc)
    finally:
        sys.argv = old_argv
    return result if isinstance(result, int) else 0


def _normalize_system_exit(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    _print(str(code), stream=sys.stderr.write)
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
