"""CLI entry points for parsing pasted questions and running quizzes."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from quizbook.config import ConfigOverrides, QuizbookConfigError
from quizbook.controller import QuizController
from quizbook.core.files import read_source
from quizbook.errorbook.storage import StorageError
from quizbook.runtime import Runtime, build_runtime

from .console import run_quiz_session
from .parser import parse_questions, segment, usable_questions
from .view import QuizApp


def add_runtime_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used for config, logs and storage.",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log records to stderr.",
    )


def runtime_from_args(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    **overrides: object,
) -> Runtime:
    """Build the runtime or exit through ``parser.error`` on bad config."""

    try:
        return build_runtime(
            config_path=args.config,
            workspace_path=args.workspace,
            overrides=ConfigOverrides(log_level=args.log_level, **overrides),
            verbose=args.verbose,
        )
    except (QuizbookConfigError, StorageError) as exc:
        parser.error(str(exc))
        raise  # pragma: no cover - parser.error exits


def _build_parse_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizbook parse",
        description="Parse pasted multiple-choice text and print the result.",
    )
    parser.add_argument(
        "source",
        help="Text file holding pasted questions, or '-' for stdin.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit one JSON object per question instead of a table.",
    )
    parser.add_argument(
        "--all",
        dest="include_all",
        action="store_true",
        help="Include blocks without a detectable answer.",
    )
    return parser


def parse_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parse_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        text = read_source(args.source)
    except FileNotFoundError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    parsed = parse_questions(text)
    questions = parsed if args.include_all else usable_questions(parsed)
    if not questions:
        sys.stderr.write("No questions could be parsed from the input.\n")
        return 1

    if args.json:
        for question in questions:
            sys.stdout.write(
                json.dumps(question.to_dict(), ensure_ascii=False) + "\n"
            )
        return 0

    console = Console()
    table = Table(box=box.SIMPLE, expand=True)
    table.add_column("#", justify="right")
    table.add_column("No.")
    table.add_column("Question", overflow="fold")
    table.add_column("Options", overflow="fold")
    table.add_column("Answer", justify="center")
    table.add_column("Score", justify="right")
    for idx, question in enumerate(questions, start=1):
        table.add_row(
            str(idx),
            question.number,
            question.title,
            "\n".join(
                f"{option.label}. {option.text}" for option in question.options
            ),
            question.answer or "—",
            question.score,
        )
    console.print(table)
    skipped = len(parsed) - len(usable_questions(parsed))
    console.print(
        f"Parsed {len(questions)} question(s) using the "
        f"{segment(text).strategy} strategy; "
        f"{skipped} block(s) without an answer.",
        style="dim",
    )
    return 0


def _build_quiz_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizbook quiz",
        description=(
            "Practise questions from pasted text; misses are collected in the "
            "error book."
        ),
    )
    parser.add_argument(
        "source",
        help="Text file holding pasted questions, or '-' for stdin.",
    )
    parser.add_argument(
        "--tui",
        action="store_true",
        help="Use the Textual interface instead of the console loop.",
    )
    parser.add_argument(
        "--shuffle",
        action="store_true",
        default=None,
        help="Shuffle the questions before starting.",
    )
    add_runtime_arguments(parser)
    return parser


def quiz_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_quiz_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        text = read_source(args.source)
    except FileNotFoundError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    runtime = runtime_from_args(parser, args, shuffle=args.shuffle)
    controller = runtime.controller()
    if controller.load_text(text) == 0:
        sys.stderr.write("No usable questions found in the input.\n")
        return 1
    runtime.logger.info(
        "Quiz started",
        extra={"source": str(args.source), "total": controller.session.total},
    )
    return run_interface(controller, runtime, tui=args.tui)


def run_interface(
    controller: QuizController, runtime: Runtime, *, tui: bool
) -> int:
    """Run the Textual app or the Rich console loop over ``controller``."""

    if tui:
        app = QuizApp(
            controller, completion_delay=runtime.config.completion_delay
        )
        app.run()
        return 0
    console = Console()
    run_quiz_session(
        controller,
        console,
        lambda: console.input("[bold]> [/]"),
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(quiz_main())
