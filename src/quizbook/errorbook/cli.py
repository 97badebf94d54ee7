"""CLI for browsing and managing error collections."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from quizbook.quizzer._main import (
    add_runtime_arguments,
    run_interface,
    runtime_from_args,
)

from .store import ErrorBookStore


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quizbook errors",
        description="Manage error collections built from missed questions.",
    )
    common = argparse.ArgumentParser(add_help=False)
    add_runtime_arguments(common)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser(
        "list", help="List saved error collections", parents=[common]
    )

    sp_show = sub.add_parser(
        "show", help="Show the questions in a collection", parents=[common]
    )
    sp_show.add_argument("id")

    sp_rename = sub.add_parser(
        "rename", help="Rename a collection", parents=[common]
    )
    sp_rename.add_argument("id")
    sp_rename.add_argument("name")

    sp_delete = sub.add_parser(
        "delete", help="Delete a collection", parents=[common]
    )
    sp_delete.add_argument("id")

    sp_merge = sub.add_parser(
        "merge", help="Combine collections into a new one", parents=[common]
    )
    sp_merge.add_argument("ids", nargs="+")
    sp_merge.add_argument("--name")

    sp_practice = sub.add_parser(
        "practice",
        help="Practise a collection; correct answers graduate",
        parents=[common],
    )
    sp_practice.add_argument("id")
    sp_practice.add_argument("--tui", action="store_true")

    sub.add_parser(
        "save",
        help="Save the current session's misses as a collection",
        parents=[common],
    )
    return parser


def _cmd_list(store: ErrorBookStore, console: Console) -> int:
    collections = store.get_collections()
    pending = store.session_error_count()
    if not collections and not pending:
        console.print("The error book is empty.")
        return 1
    table = Table(box=box.SIMPLE, expand=False)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Created")
    table.add_column("Questions", justify="right")
    for collection in collections:
        table.add_row(
            collection.id,
            collection.name,
            collection.date_created,
            str(collection.question_count),
        )
    console.print(table)
    console.print(
        f"Total errors: {store.total_error_count()} | "
        f"Unsaved session errors: {pending}"
    )
    return 0


def _cmd_show(store: ErrorBookStore, console: Console, identifier: str) -> int:
    collection = store.get_collection(identifier)
    if collection is None:
        sys.stderr.write(f"Unknown collection '{identifier}'.\n")
        return 1
    table = Table(
        title=f"{collection.name} ({collection.id})",
        box=box.SIMPLE,
        expand=True,
    )
    table.add_column("#", justify="right")
    table.add_column("Question", overflow="fold")
    table.add_column("Last answer")
    table.add_column("Correct answer")
    for idx, question in enumerate(collection.questions, start=1):
        table.add_row(
            str(idx),
            question.title,
            question.user_answer or "—",
            question.answer,
        )
    console.print(table)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    runtime = runtime_from_args(parser, args)
    store = runtime.store
    console = Console()

    if args.command == "list":
        return _cmd_list(store, console)
    if args.command == "show":
        return _cmd_show(store, console, args.id)
    if args.command == "rename":
        if not store.rename(args.id, args.name):
            sys.stderr.write(f"Could not rename '{args.id}'.\n")
            return 1
        console.print(f"Renamed {args.id} to {args.name.strip()}.")
        return 0
    if args.command == "delete":
        if not store.delete(args.id):
            sys.stderr.write(f"Unknown collection '{args.id}'.\n")
            return 1
        console.print(f"Deleted {args.id}.")
        return 0
    if args.command == "merge":
        merged = store.merge(args.ids, args.name)
        if merged is None:
            sys.stderr.write("Merge failed: every id must exist.\n")
            return 1
        console.print(
            f"Created {merged.id} ({merged.name}) with "
            f"{merged.question_count} question(s)."
        )
        return 0
    if args.command == "save":
        saved = store.save_session_as_collection()
        if saved is None:
            console.print("No session errors to save.")
            return 1
        console.print(
            f"Saved {saved.question_count} question(s) as {saved.name} "
            f"({saved.id})."
        )
        return 0
    if args.command == "practice":
        controller = runtime.controller()
        if not controller.start_error_collection(args.id):
            sys.stderr.write(
                f"Collection '{args.id}' is missing or has no questions.\n"
            )
            return 1
        return run_interface(controller, runtime, tui=args.tui)

    parser.print_help()  # pragma: no cover - argparse enforces commands
    return 2


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
