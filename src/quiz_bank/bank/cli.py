"""Command-line entry points for the local question bank."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from quiz_bank.core.logging import configure_logger

from . import config as config_mod
from .errors import InvalidArgument, NotFound, StorageUnavailable
from .grading import YesNoVocabulary, correct_option_index
from .ingest import ingest_payload
from .models import QuestionKind, QuestionRecord
from .normalize import letter_for_index
from .progress import ProgressTracker
from .store import RecordStore
from .topics import summarize


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizbank bank",
        description="Browse and answer questions stored in the local bank.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to bank.toml (defaults to <workspace>/config/bank.toml).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root (defaults to QUIZ_BANK_DATA_HOME).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror debug logs to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser(
        "config", help="Manage the bank configuration file."
    )
    config_sub = config_parser.add_subparsers(
        dest="config_command", required=True
    )
    init_parser = config_sub.add_parser(
        "init", help="Write the default configuration template."
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file.",
    )
    config_sub.add_parser("validate", help="Validate the active config.")
    config_sub.add_parser("path", help="Print the resolved config path.")

    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Store generated questions from JSON response files.",
    )
    ingest_parser.add_argument(
        "files",
        nargs="+",
        help="Generation responses (single wrapper or {items: [...]}); "
        "use '-' for stdin.",
    )

    subparsers.add_parser("topics", help="List topics, most recent first.")

    show_parser = subparsers.add_parser(
        "show", help="Show the questions of a topic in quiz order."
    )
    show_parser.add_argument("topic")

    answer_parser = subparsers.add_parser(
        "answer", help="Submit an answer (the first answer is kept)."
    )
    answer_parser.add_argument("question_id")
    answer_parser.add_argument("answer")

    rate_parser = subparsers.add_parser("rate", help="Rate a question 1-10.")
    rate_parser.add_argument("question_id")
    rate_parser.add_argument("score", type=int)
    rate_parser.add_argument("--feedback")

    progress_parser = subparsers.add_parser(
        "progress", help="Show answer progress for a topic."
    )
    progress_parser.add_argument("topic")

    reset_parser = subparsers.add_parser(
        "reset", help="Clear the answers of a topic."
    )
    reset_parser.add_argument("topic")

    delete_parser = subparsers.add_parser(
        "delete", help="Delete one question or whole topics."
    )
    target = delete_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--question", dest="question_id")
    target.add_argument("--topic", dest="topics", nargs="+")

    clear_parser = subparsers.add_parser(
        "clear", help="Delete every stored question."
    )
    clear_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm removal of the whole bank.",
    )
    return parser


def main(
    argv: Sequence[str] | None = None, *, console: Console | None = None
) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    out = console or Console()

    try:
        cfg = config_mod.load_config(
            explicit_path=args.config, workspace_path=args.workspace
        )
    except config_mod.BankConfigError as exc:
        _print_error(str(exc))
        return 2

    if args.command == "config":
        return _handle_config(args, cfg, out)
    if args.command == "clear" and not args.yes:
        _print_error("Refusing to clear the bank without --yes.")
        return 2

    logger, _ = configure_logger(
        "quiz_bank",
        log_dir=cfg.log_dir,
        level=cfg.logging.level,
        verbose=cfg.logging.verbose or args.verbose,
        filename="bank.log",
    )
    logger.debug("bank CLI invoked", extra={"command": args.command})

    try:
        return asyncio.run(_dispatch(args, cfg, out))
    except StorageUnavailable as exc:
        logger.error("Question bank unavailable", extra={"reason": str(exc)})
        _print_error(str(exc))
        return 1
    except NotFound as exc:
        _print_error(str(exc))
        return 1
    except InvalidArgument as exc:
        _print_error(str(exc))
        return 2


def _handle_config(
    args: argparse.Namespace, cfg: config_mod.BankConfig, out: Console
) -> int:
    path = config_mod.resolve_config_path(
        explicit_path=args.config, layout=cfg.layout
    )
    command = args.config_command
    if command == "init":
        try:
            config_mod.write_template(path, overwrite=args.force)
        except config_mod.BankConfigError as exc:
            _print_error(str(exc))
            return 2
        out.print(f"Wrote config template to {escape(str(path))}")
        return 0
    if command == "validate":
        out.print("Configuration OK")
        out.print(Text(f"  bank: {cfg.bank_path}"))
        out.print(Text(f"  untitled topic: {cfg.topics.untitled_label}"))
        out.print(
            Text(
                f"  yes/no choices: {cfg.grading.yes_token}/"
                f"{cfg.grading.no_token}"
            )
        )
        return 0
    if command == "path":
        out.print(Text(str(path)))
        return 0
    raise RuntimeError(f"Unhandled config command: {command}")


async def _dispatch(
    args: argparse.Namespace, cfg: config_mod.BankConfig, out: Console
) -> int:
    store = await RecordStore.open(
        cfg.bank_path, lock_timeout=cfg.storage.lock_timeout_seconds
    )
    tracker = ProgressTracker(store)
    command = args.command

    if command == "ingest":
        total = 0
        for name in args.files:
            ids = await ingest_payload(
                store,
                _read_json(name),
                untitled_label=cfg.topics.untitled_label,
            )
            total += len(ids)
        out.print(Text(f"Stored {total} question(s) in {store.path}"))
        return 0
    if command == "topics":
        return await _show_topics(store, tracker, out)
    if command == "show":
        return await _show_topic(
            store, args.topic, cfg.grading.vocabulary, out
        )
    if command == "answer":
        return await _answer(store, tracker, args, out)
    if command == "rate":
        state = await tracker.rate(args.question_id, args.score, args.feedback)
        out.print(Text(f"Rated {args.question_id}: {state.score}/10"))
        return 0
    if command == "progress":
        progress = await tracker.progress(args.topic)
        status = "complete" if progress.is_complete else "in progress"
        out.print(
            Text(
                f"{progress.topic}: {progress.answered_count}/"
                f"{progress.total_count} answered, "
                f"{progress.correct_count} correct "
                f"({progress.percent_correct}%) - {status}"
            )
        )
        return 0
    if command == "reset":
        count = await tracker.reset_topic(args.topic)
        out.print(Text(f"Reset {count} answer(s) in {args.topic}"))
        return 0
    if command == "delete":
        if args.question_id:
            await store.delete_one(args.question_id)
            out.print(Text(f"Deleted question {args.question_id}"))
        else:
            await store.delete_topics(args.topics)
            out.print(Text(f"Deleted topic(s): {', '.join(args.topics)}"))
        return 0
    if command == "clear":
        await store.clear_all()
        out.print("Question bank cleared.")
        return 0
    raise RuntimeError(f"Unhandled bank command: {command}")


async def _show_topics(
    store: RecordStore, tracker: ProgressTracker, out: Console
) -> int:
    summaries = await summarize(store)
    if not summaries:
        out.print("No stored questions. Ingest generated questions first.")
        return 1
    table = Table(title="Topics", box=box.SIMPLE, expand=False)
    table.add_column("Topic")
    table.add_column("Questions", justify="right")
    table.add_column("Answered", justify="right")
    table.add_column("Last activity")
    for summary in summaries:
        progress = await tracker.progress(summary.topic)
        table.add_row(
            Text(summary.topic),
            str(summary.count),
            f"{progress.answered_count}/{progress.total_count}",
            summary.last_timestamp,
        )
    out.print(table)
    return 0


async def _show_topic(
    store: RecordStore,
    topic: str,
    vocabulary: YesNoVocabulary,
    out: Console,
) -> int:
    records = await store.get_by_topic(topic)
    if not records:
        out.print(Text(f"No questions in topic '{topic}'."))
        return 1
    for position, record in enumerate(records, start=1):
        out.print()
        out.rule(
            Text.assemble(
                (f"{position} / {len(records)}", "bold cyan"),
                (f"  {record.kind.value}  {record.question_id}", "dim"),
            )
        )
        out.print(Text(record.stem, style="bold"))
        _print_choices(record, vocabulary, out)
        if record.answer_state is not None:
            verdict = "correct" if record.answer_state.is_correct else "wrong"
            style = "green" if record.answer_state.is_correct else "red"
            out.print(
                Text(
                    f"Your answer: {record.answer_state.user_answer} "
                    f"({verdict})",
                    style=style,
                )
            )
    return 0


def _print_choices(
    record: QuestionRecord, vocabulary: YesNoVocabulary, out: Console
) -> None:
    if record.kind is QuestionKind.YES_NO:
        choices = f"Answer {vocabulary.yes} or {vocabulary.no}"
        out.print(Text(choices, style="cyan"))
        return
    if record.kind is QuestionKind.MULTIPLE_CHOICE:
        correct = (
            correct_option_index(record) if record.answer_state else None
        )
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Choice")
        for index, option in enumerate(record.options or ()):
            text = Text(option)
            if index == correct:
                text.stylize("bold green")
            table.add_row(letter_for_index(index), text)
        out.print(table)


async def _answer(
    store: RecordStore,
    tracker: ProgressTracker,
    args: argparse.Namespace,
    out: Console,
) -> int:
    before = await store.get(args.question_id)
    already = before is not None and before.answer_state is not None
    state = await tracker.submit_answer(args.question_id, args.answer)
    if already:
        out.print("[yellow]Already answered; keeping the first answer.[/]")
    record = await store.get(args.question_id)
    if state.is_correct:
        out.print("[bold green]Correct[/]")
    else:
        out.print("[bold red]Incorrect[/]")
    if record is not None and record.explanation:
        out.print(Text(record.explanation))
    if record is not None:
        for citation in record.citations:
            page = f", p. {citation.page}" if citation.page is not None else ""
            line = f'{citation.source}{page}: "{citation.quote}"'
            out.print(Text(line, style="dim"))
    return 0


def _read_json(name: str) -> Any:
    try:
        if name == "-":
            return json.load(sys.stdin)
        with Path(name).expanduser().open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise InvalidArgument(f"Cannot read {name}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InvalidArgument(f"Invalid JSON in {name}: {exc}") from exc


def _print_error(message: str) -> None:
    sys.stderr.write(message + "\n")


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
