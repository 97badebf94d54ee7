"""Textual front end for a :class:`QuizController`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.widget import Widget
from textual.widgets import Button, Static

from .console import MULTIPLE_CHOICE_HINT, feedback_text, question_heading
from .models import Question

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..controller import QuizController

_LOGGER = logging.getLogger(__name__)


class QuizApp(App):
    CSS_PATH = None
    CSS = """
#choices Button.selected { background: $accent; color: black; }
#feedback.correct { color: $success; }
#feedback.incorrect { color: $error; }
#nav { color: $text; }
"""
    BINDINGS = [
        ("n", "next", "Next"),
        ("p", "prev", "Prev"),
        ("a", "select_a", "Select A"),
        ("b", "select_b", "Select B"),
        ("c", "select_c", "Select C"),
        ("d", "select_d", "Select D"),
        ("enter", "submit", "Submit"),
        ("s", "submit", "Submit"),
        ("w", "save_errors", "Save misses"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        controller: "QuizController",
        *,
        completion_delay: float = 1.0,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._completion_delay = completion_delay
        self.completion_pending = False
        self.completion_offered = False
        self.saved_collection_id: str | None = None
        self.confirm_text = ""

    def compose(self) -> ComposeResult:
        session = self._controller.session
        question = session.current_question
        if question is None:
            yield Static("No questions.", id="empty")
            return
        with Container(id="stage"):
            yield self._question_view(question)
        with Container(id="footer"):
            yield Button("Prev", id="prev")
            yield Button("Next", id="next")
            yield Button("Submit", id="submit")
            yield Button("Save misses", id="save")
            yield Static(self._answered_text(), id="answered")
            yield Static("", id="confirm")

    # Pure helpers for navigation and selection (testable without running App)
    def current_question(self) -> Question | None:
        return self._controller.session.current_question

    def next_question(self) -> int:
        self._controller.session.next()
        self._update_stage()
        return self._controller.session.current_index

    def prev_question(self) -> int:
        self._controller.session.prev()
        self._update_stage()
        return self._controller.session.current_index

    def go_to_question(self, index: int) -> bool:
        moved = self._controller.session.go_to(index)
        self._update_stage()
        return moved

    def select_answer(self, key: str) -> bool:
        changed = self._controller.session.set_answer(key)
        self._update_stage()
        return changed

    def submit_answer(self) -> bool | None:
        """Submit the current selection; ``None`` when nothing is selected."""

        outcome = self._controller.submit()
        if not outcome.accepted:
            self._set_confirm("Select an answer before submitting.")
            return None
        if outcome.offer_completion:
            self._schedule_completion()
        self._update_stage()
        return outcome.is_correct

    def on_completion_timer(self) -> bool:
        """Show the save offer if the session still qualifies for it."""

        self.completion_pending = False
        if not self._controller.should_offer_completion():
            return False
        self.completion_offered = True
        misses = self._controller.store.session_error_count()
        self._set_confirm(
            f"Quiz complete. {misses} missed question(s): press w to save."
        )
        return True

    def save_errors(self) -> str | None:
        collection = self._controller.save_session_errors()
        if collection is None:
            self._set_confirm("No session errors to save.")
            return None
        self.saved_collection_id = collection.id
        self.completion_offered = False
        self._set_confirm(f"Saved as {collection.name} ({collection.id}).")
        self._update_stage()
        return collection.id

    def _schedule_completion(self) -> None:
        self.completion_pending = True
        try:
            self.set_timer(self._completion_delay, self.on_completion_timer)
        except Exception:
            _LOGGER.debug("Completion timer unavailable; app not running")

    def _question_view(self, question: Question) -> "QuestionView":
        session = self._controller.session
        return QuestionView(
            question,
            index=session.current_index,
            total=session.total,
            selected=[
                option.label
                for option in question.options
                if session.is_option_selected(option.label)
            ],
            feedback=feedback_text(
                question,
                error_book_mode=self._controller.in_error_book_mode,
            ),
        )

    def _update_stage(self) -> None:
        question = self.current_question()
        if question is None:
            return
        try:
            stage = self.query_one("#stage", Container)
        except Exception:
            return
        stage.remove_children()
        stage.mount(self._question_view(question))
        try:
            answered = self.query_one("#answered", Static)
            answered.update(self._answered_text())
        except Exception:
            pass

    def _set_confirm(self, message: str) -> None:
        self.confirm_text = message
        try:
            self.query_one("#confirm", Static).update(message)
        except Exception:
            pass

    def action_next(self) -> None:
        self.next_question()

    def action_prev(self) -> None:
        self.prev_question()

    def action_select_a(self) -> None:
        self.select_answer("A")

    def action_select_b(self) -> None:
        self.select_answer("B")

    def action_select_c(self) -> None:
        self.select_answer("C")

    def action_select_d(self) -> None:
        self.select_answer("D")

    def action_submit(self) -> None:
        self.submit_answer()

    def action_save_errors(self) -> None:
        self.save_errors()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = getattr(event.button, "id", "") or ""
        if bid.startswith("choice-") and len(bid) >= 8:
            self.select_answer(bid[-1])
        elif bid == "submit":
            self.action_submit()
        elif bid == "next":
            self.action_next()
        elif bid == "prev":
            self.action_prev()
        elif bid == "save":
            self.action_save_errors()

    def _answered_text(self) -> str:
        session = self._controller.session
        return (
            f"Answered: {session.answered_count()}/{session.total} | "
            f"Correct: {session.correct_count}"
        )

    def answered_count(self) -> int:
        return self._controller.session.answered_count()


class QuestionView(Widget):
    """Renders a single question with its choices, progress and feedback."""

    def __init__(
        self,
        question: Question,
        index: int,
        total: int,
        *,
        selected: Iterable[str] = (),
        feedback: str | None = None,
    ) -> None:
        super().__init__()
        self.question = question
        self.index = index
        self.total = total
        self.selected = {str(key).strip().upper() for key in selected}
        self.feedback = feedback

    def compose(self) -> ComposeResult:
        yield Static(
            question_heading(self.question, self.index, self.total),
            id="progress",
        )
        yield Static(self.question.title, id="stem")
        if self.question.is_multiple_choice:
            yield Static(MULTIPLE_CHOICE_HINT, id="hint")
        with Vertical(id="choices"):
            for option in self.question.options:
                btn = Button(
                    f"{option.label}) {option.text}",
                    id=f"choice-{option.label}",
                )
                if option.label in self.selected:
                    btn.add_class("selected")
                yield btn
        feedback = Static(self.feedback or "", id="feedback")
        if self.question.is_correct is not None:
            feedback.add_class(
                "correct" if self.question.is_correct else "incorrect"
            )
        yield feedback
