"""Quiz session state machine.

A :class:`QuizSession` owns the live question list of one quiz run: the
current position, the answer state of every question and the running score.
It reports misses and re-answers to an injected :class:`ErrorRecorder`
(normally the :class:`~quizbook.errorbook.store.ErrorBookStore`).

Expected failures (nothing selected, out-of-range navigation, operations on
an empty session) are reported through boolean returns, never exceptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol, Sequence

from .models import OPTION_LABELS, Question, clone_questions

__all__ = [
    "ErrorRecorder",
    "QuestionStatus",
    "QuizSession",
    "SessionSnapshot",
    "SessionState",
]

_LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
    EMPTY = "empty"
    ACTIVE = "active"
    COMPLETED = "completed"


class ErrorRecorder(Protocol):
    """Capabilities the session needs from the error book."""

    def record_miss(self, question: Question) -> None:
        ...

    def update_error_status(self, question: Question, is_correct: bool) -> None:
        ...

    def is_error_book_mode(self) -> bool:
        ...


@dataclass(frozen=True)
class QuestionStatus:
    answered: bool
    is_correct: bool | None


@dataclass(frozen=True)
class SessionSnapshot:
    """Detached copy of a session's progress."""

    questions: tuple[Question, ...]
    current_index: int
    correct_count: int


class QuizSession:
    """Holds one quiz run: questions, position and score."""

    def __init__(
        self,
        recorder: ErrorRecorder | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._recorder = recorder
        self._logger = logger or _LOGGER
        self._questions: list[Question] = []
        self._index = 0
        self._correct = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def init(self, questions: Iterable[Question]) -> SessionState:
        """Start a new run over ``questions``, clearing their answer state.

        The session takes ownership of the given objects; callers that need
        to keep an untouched copy should pass clones.
        """

        self._questions = list(questions)
        self._index = 0
        self._correct = 0
        for question in self._questions:
            question.reset_state()
        self._logger.debug(
            "Quiz session initialised",
            extra={"question_count": len(self._questions)},
        )
        return self.state

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            questions=tuple(clone_questions(self._questions)),
            current_index=self._index,
            correct_count=self._correct,
        )

    def restore(
        self,
        questions: Iterable[Question],
        index: int = 0,
        correct_count: int = 0,
    ) -> bool:
        """Resume a run previously captured with :meth:`snapshot`."""

        restored = clone_questions(questions)
        if restored and not 0 <= index < len(restored):
            return False
        self._questions = restored
        self._index = index if restored else 0
        self._correct = max(0, int(correct_count))
        return True

    def restore_snapshot(self, snapshot: SessionSnapshot) -> bool:
        return self.restore(
            snapshot.questions, snapshot.current_index, snapshot.correct_count
        )

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        if not self._questions:
            return SessionState.EMPTY
        if self.is_complete():
            return SessionState.COMPLETED
        return SessionState.ACTIVE

    @property
    def total(self) -> int:
        return len(self._questions)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def correct_count(self) -> int:
        return self._correct

    @property
    def current_question(self) -> Question | None:
        if not self._questions:
            return None
        return self._questions[self._index]

    @property
    def questions(self) -> Sequence[Question]:
        return tuple(self._questions)

    def is_option_selected(self, label: str) -> bool:
        question = self.current_question
        if question is None:
            return False
        label = str(label).strip().upper()
        if question.is_multiple_choice:
            return label in (question.user_answers or [])
        return question.user_answer == label

    def status(self) -> list[QuestionStatus]:
        return [
            QuestionStatus(question.is_answered, question.is_correct)
            for question in self._questions
        ]

    def answered_count(self) -> int:
        return sum(1 for question in self._questions if question.is_answered)

    def in_error_book_mode(self) -> bool:
        return bool(self._recorder and self._recorder.is_error_book_mode())

    def is_complete(self) -> bool:
        """Whether the completion offer applies right now.

        True on the last question of a normal-mode run once every question
        has an answer. Evaluated on demand, never cached.
        """

        if not self._questions or self.in_error_book_mode():
            return False
        if self._index != len(self._questions) - 1:
            return False
        return all(question.is_answered for question in self._questions)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def set_answer(self, label: str) -> bool:
        question = self.current_question
        if question is None:
            return False
        letter = str(label).strip().upper()
        if letter not in OPTION_LABELS:
            return False
        if question.is_multiple_choice:
            selection = set(question.user_answers or [])
            selection.symmetric_difference_update({letter})
            ordered = [item for item in OPTION_LABELS if item in selection]
            question.user_answers = ordered
            question.user_answer = "".join(ordered)
        else:
            question.user_answer = letter
        return True

    def submit(self) -> bool:
        """Grade the current question and notify the error recorder.

        Returns ``False`` without touching state when nothing is selected.
        """

        question = self.current_question
        if question is None or not question.is_answered:
            return False

        if question.is_multiple_choice:
            is_correct = set(question.user_answers or []) == set(
                question.answer
            )
        else:
            is_correct = question.user_answer == question.answer

        was_correct = question.is_correct is True
        question.is_correct = is_correct
        if is_correct and not was_correct:
            self._correct += 1
        elif was_correct and not is_correct:
            # A flip from correct to wrong takes the point back.
            self._correct -= 1

        self._logger.debug(
            "Answer submitted",
            extra={
                "question_index": self._index,
                "selected": question.user_answer,
                "is_correct": is_correct,
            },
        )

        if self._recorder is not None:
            if self._recorder.is_error_book_mode():
                self._recorder.update_error_status(question, is_correct)
            elif not is_correct:
                self._recorder.record_miss(question)
        return is_correct

    def next(self) -> bool:
        if self._index + 1 < len(self._questions):
            self._index += 1
            return True
        return False

    def prev(self) -> bool:
        if self._questions and self._index > 0:
            self._index -= 1
            return True
        return False

    def go_to(self, index: int) -> bool:
        if 0 <= index < len(self._questions):
            self._index = index
            return True
        return False
