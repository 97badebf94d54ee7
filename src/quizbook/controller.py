"""Composition root wiring the parser, a quiz session and the error book.

The controller mirrors what a user can do from the front ends: load pasted
text, practise it, flip into the error book, practise a collection and come
back to the saved normal-mode progress.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable

from .errorbook.store import ErrorBookStore, ErrorCollection
from .quizzer.models import Question, clone_questions
from .quizzer.parser import QuestionParser, usable_questions
from .quizzer.session import QuizSession, SessionSnapshot

__all__ = ["QuizController", "SubmitOutcome"]


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of a submission as seen by a front end."""

    accepted: bool
    is_correct: bool
    offer_completion: bool = False


class QuizController:
    def __init__(
        self,
        store: ErrorBookStore,
        *,
        parser: QuestionParser | None = None,
        shuffle: bool = False,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._logger = logger or logging.getLogger(__name__)
        self._parser = parser or QuestionParser(logger=self._logger)
        self._session = QuizSession(store, logger=self._logger)
        self._shuffle = shuffle
        self._rng = rng or random.Random()
        self._questions: list[Question] = []
        self._saved: SessionSnapshot | None = None
        self._completed = False

    @property
    def session(self) -> QuizSession:
        return self._session

    @property
    def store(self) -> ErrorBookStore:
        return self._store

    @property
    def has_questions(self) -> bool:
        return bool(self._questions)

    @property
    def in_error_book_mode(self) -> bool:
        return self._store.is_error_book_mode()

    def load_text(self, text: str) -> int:
        """Parse ``text`` and start a normal-mode run over usable questions."""

        parsed = self._parser.parse(text)
        usable = usable_questions(parsed)
        dropped = len(parsed) - len(usable)
        if dropped:
            self._logger.warning(
                "Dropped questions without a detectable answer",
                extra={"dropped": dropped, "parsed": len(parsed)},
            )
        return self.load_questions(usable)

    def load_questions(self, questions: Iterable[Question]) -> int:
        self._questions = clone_questions(questions)
        if self._shuffle:
            self._rng.shuffle(self._questions)
        self._saved = None
        self._completed = False
        if self._questions:
            self.switch_to_normal_mode()
        self._logger.info(
            "Loaded questions",
            extra={"question_count": len(self._questions)},
        )
        return len(self._questions)

    def switch_to_normal_mode(self) -> bool:
        """Resume saved normal progress, or restart over the loaded questions."""

        if not self._questions:
            return False
        self._store.set_error_book_mode(False)
        if self._saved is not None:
            self._session.restore_snapshot(self._saved)
        else:
            self._session.init(clone_questions(self._questions))
        return True

    def switch_to_error_book_mode(self) -> bool:
        """Enter the error book; ``False`` when there is nothing to review."""

        if not self._store.is_error_book_mode() and self._questions:
            self._saved = self._session.snapshot()
        self._store.set_error_book_mode(True)
        return bool(
            self._store.get_collections() or self._store.session_error_count()
        )

    def start_error_collection(self, identifier: str) -> bool:
        if not self._store.select_collection(identifier):
            self._logger.warning(
                "Error collection not found",
                extra={"collection_id": identifier},
            )
            return False
        questions = self._store.current_collection_questions()
        if not questions:
            return False
        self._store.set_error_book_mode(True)
        self._session.init(questions)
        return True

    def submit(self) -> SubmitOutcome:
        question = self._session.current_question
        if question is None or not question.is_answered:
            return SubmitOutcome(accepted=False, is_correct=False)
        is_correct = self._session.submit()
        offer = False
        if not self._completed and self._session.is_complete():
            self._completed = True
            offer = True
        return SubmitOutcome(
            accepted=True, is_correct=is_correct, offer_completion=offer
        )

    def should_offer_completion(self) -> bool:
        """Re-check, at display time, that the completion offer still applies."""

        if self._store.is_error_book_mode():
            return False
        if self._store.session_error_count() == 0:
            return False
        statuses = self._session.status()
        return bool(statuses) and all(item.answered for item in statuses)

    def save_session_errors(self) -> ErrorCollection | None:
        return self._store.save_session_as_collection()

    def save_and_practice(self) -> ErrorCollection | None:
        """Save the session's misses and immediately practise them."""

        collection = self.save_session_errors()
        if collection is None:
            return None
        if not self.in_error_book_mode and self._questions:
            self._saved = self._session.snapshot()
        self.start_error_collection(collection.id)
        return collection

    def back_to_input(self) -> None:
        self._saved = None
        self._completed = False
        self._store.set_error_book_mode(False)
