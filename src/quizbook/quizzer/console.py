"""Rich-powered quiz loop driven by a :class:`QuizController`.

The loop renders the current question, reads one command per prompt and
forwards it to the controller. All quiz rules live in the controller,
session and error book; this module only formats state and parses input, so
tests can drive it with a scripted ``input_provider`` and a recording
console.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Literal

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import OPTION_LABELS, Question

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..controller import QuizController
    from ..errorbook.store import ErrorCollection

__all__ = [
    "ConsoleSessionResult",
    "SessionCommand",
    "feedback_text",
    "parse_session_command",
    "question_heading",
    "run_quiz_session",
]

InputProvider = Callable[[], str]
ExitAction = Literal["finished", "quit", "empty"]
CommandType = Literal["select", "submit", "next", "prev", "goto", "save", "quit"]

MULTIPLE_CHOICE_HINT = "Multiple choice: select every correct option."


@dataclass(frozen=True)
class SessionCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    choice: str | None = None
    index: int | None = None


@dataclass(frozen=True)
class ConsoleSessionResult:
    """Return value from :func:`run_quiz_session`."""

    exit_action: ExitAction
    total: int
    answered: int
    correct: int
    saved_collection_id: str | None = None


def parse_session_command(raw: str | None) -> SessionCommand | None:
    """Parse raw user input into a structured command."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return SessionCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return SessionCommand("prev")
    if lowered in {"s", "submit"}:
        return SessionCommand("submit")
    if lowered in {"q", "quit", "exit"}:
        return SessionCommand("quit")
    if lowered == "save":
        return SessionCommand("save")
    parts = lowered.split()
    if parts[0] in {"g", "goto"} and len(parts) == 2:
        try:
            return SessionCommand("goto", index=int(parts[1]) - 1)
        except ValueError:
            return None
    letters = text.replace(",", "").replace(" ", "").upper()
    if letters and all(letter in OPTION_LABELS for letter in letters):
        return SessionCommand("select", letters)
    return None


def question_heading(question: Question, index: int, total: int) -> str:
    heading = f"{index + 1} / {total}"
    if question.number:
        heading = f"{question.number} ({heading})"
    if question.score:
        heading += f" [{question.score} pts]"
    return heading


def feedback_text(question: Question, *, error_book_mode: bool) -> str | None:
    """Describe the graded state of ``question``; ``None`` before grading."""

    if question.is_correct is None:
        return None
    if question.is_correct:
        if error_book_mode:
            return "✓ Correct! Removed from the error collection."
        return "✓ Correct!"
    if question.is_multiple_choice:
        message = (
            "✗ Your selection is incomplete or wrong. "
            f"The answer is {question.answer}"
        )
    else:
        message = f"✗ Incorrect. The answer is {question.answer}"
    if not error_book_mode:
        message += " (added to the error book)"
    return message


def run_quiz_session(
    controller: "QuizController",
    console: Console,
    input_provider: InputProvider,
) -> ConsoleSessionResult:
    """Run an interactive quiz over the controller's current session."""

    session = controller.session
    if session.current_question is None:
        console.print(
            Panel(
                "No questions to practise.",
                title="Quiz Session",
                border_style="yellow",
            )
        )
        return ConsoleSessionResult("empty", 0, 0, 0)

    state = _LoopState()
    while not state.finished:
        _render_question(console, controller)
        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            break
        command = parse_session_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Ending session.[/]")
            break
        _apply_command(command, controller, console, state)
        if state.finished:
            collection = _offer_save(controller, console, input_provider)
            if collection is not None:
                state.saved_id = collection.id

    result = ConsoleSessionResult(
        exit_action="finished" if state.finished else "quit",
        total=session.total,
        answered=session.answered_count(),
        correct=session.correct_count,
        saved_collection_id=state.saved_id,
    )
    _render_summary(console, controller, result)
    return result


def _apply_command(
    command: SessionCommand,
    controller: "QuizController",
    console: Console,
    state: "_LoopState",
) -> None:
    session = controller.session
    if command.type == "select" and command.choice:
        question = session.current_question
        letters = command.choice
        if question is not None and not question.is_multiple_choice:
            if len(letters) != 1:
                console.print("[red]This question takes a single choice.[/]")
                return
        for letter in letters:
            session.set_answer(letter)
    elif command.type == "next":
        if not session.next():
            console.print("[dim]Already at the last question.[/]")
    elif command.type == "prev":
        if not session.prev():
            console.print("[dim]Already at the first question.[/]")
    elif command.type == "goto" and command.index is not None:
        if not session.go_to(command.index):
            console.print(
                f"[red]No question {command.index + 1}; "
                f"pick 1-{session.total}.[/]"
            )
    elif command.type == "submit":
        outcome = controller.submit()
        if not outcome.accepted:
            console.print("[red]Select an answer before submitting.[/]")
            return
        if outcome.offer_completion:
            question = session.current_question
            if question is not None:
                _print_feedback(console, controller, question)
            state.finished = True
    elif command.type == "save":
        collection = controller.save_session_errors()
        if collection is None:
            console.print("[yellow]No session errors to save.[/]")
            return
        console.print(
            f"Saved {collection.question_count} question(s) as "
            f"[bold]{collection.name}[/] ({collection.id})."
        )
        state.saved_id = collection.id


@dataclass
class _LoopState:
    finished: bool = False
    saved_id: str | None = None


def _offer_save(
    controller: "QuizController",
    console: Console,
    input_provider: InputProvider,
) -> "ErrorCollection | None":
    if not controller.should_offer_completion():
        console.print("[bold green]Quiz complete.[/]")
        return None
    misses = controller.store.session_error_count()
    console.print(
        Panel(
            f"You missed {misses} question(s). "
            "Save them as an error collection? \\[y/N]",
            title="Quiz complete",
            border_style="magenta",
        )
    )
    try:
        answer = input_provider()
    except (EOFError, KeyboardInterrupt, StopIteration):
        return None
    if answer.strip().lower() not in {"y", "yes"}:
        return None
    collection = controller.save_session_errors()
    if collection is not None:
        console.print(
            f"Saved [bold]{collection.name}[/] ({collection.id})."
        )
    return collection


def _print_feedback(
    console: Console, controller: "QuizController", question: Question
) -> None:
    message = feedback_text(
        question, error_book_mode=controller.in_error_book_mode
    )
    if message:
        style = "bold green" if question.is_correct else "bold red"
        console.print(Text(message, style=style))


def _render_question(console: Console, controller: "QuizController") -> None:
    session = controller.session
    question = session.current_question
    if question is None:
        return
    header = Text.assemble(
        (
            question_heading(question, session.current_index, session.total),
            "bold cyan",
        ),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.title, style="bold"))
    if question.is_multiple_choice:
        console.print(Text(MULTIPLE_CHOICE_HINT, style="italic yellow"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Choice")
    for option in question.options:
        selected = session.is_option_selected(option.label)
        indicator = "•" if selected else " "
        choice_text = Text(option.text)
        if selected:
            choice_text.stylize("bold green")
        row_text = Text(indicator + " ")
        row_text += choice_text
        table.add_row(option.label, row_text)
    console.print(table)

    _print_feedback(console, controller, question)

    mode = "error book" if controller.in_error_book_mode else "practice"
    console.print(
        Text(
            f"[{mode}] Answered {session.answered_count()}/{session.total} | "
            f"Correct {session.correct_count} | "
            "Commands: A-D, s (submit), n (next), p (prev), g <n>, "
            "save, q (quit)",
            style="dim",
        )
    )


def _render_summary(
    console: Console,
    controller: "QuizController",
    result: ConsoleSessionResult,
) -> None:
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))

    overview = Table(
        show_header=False,
        box=box.MINIMAL_DOUBLE_HEAD,
        expand=False,
    )
    overview.add_column("Metric", style="bold")
    overview.add_column("Value", justify="right")
    overview.add_row("Total questions", str(result.total))
    overview.add_row("Answered", str(result.answered))
    overview.add_row("Correct", str(result.correct))
    accuracy = result.correct / result.total if result.total else 0.0
    overview.add_row("Accuracy", f"{accuracy * 100:.1f}%")
    overview.add_row(
        "Session errors", str(controller.store.session_error_count())
    )
    console.print(overview)

    responses = Table(title="Responses", box=box.SIMPLE, expand=True)
    responses.add_column("#", justify="right")
    responses.add_column("Question", overflow="fold")
    responses.add_column("Your answer")
    responses.add_column("Correct answer")
    responses.add_column("Result", justify="center")
    for idx, question in enumerate(controller.session.questions, start=1):
        if question.is_correct is None:
            outcome = "—"
        else:
            outcome = "✅" if question.is_correct else "❌"
        responses.add_row(
            str(idx),
            question.title or f"Question {idx}",
            question.user_answer or "—",
            question.answer,
            outcome,
        )
    console.print(responses)
