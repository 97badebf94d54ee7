"""Question and option records shared by the parser, session and error book.

Questions are structurally immutable once parsed (``options``/``answer``);
only the answer state (``user_answer``, ``user_answers``, ``is_correct``) is
mutated during a quiz. Copies are made with the explicit ``clone`` helpers
rather than serialisation round-trips.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, MutableMapping

__all__ = [
    "OPTION_LABELS",
    "PLACEHOLDER_OPTION_TEXT",
    "Option",
    "Question",
    "canonical_answer",
    "clone_questions",
]


OPTION_LABELS: tuple[str, ...] = ("A", "B", "C", "D")
PLACEHOLDER_OPTION_TEXT = "未提供选项"


def canonical_answer(letters: Iterable[str]) -> str:
    """Uppercase, de-duplicate and sort answer letters, dropping non A-D."""

    picked = {str(letter).strip().upper() for letter in letters}
    return "".join(label for label in OPTION_LABELS if label in picked)


@dataclass(frozen=True)
class Option:
    """A labelled choice; ``label`` is one of A-D."""

    label: str
    text: str

    def to_dict(self) -> MutableMapping[str, Any]:
        return {"label": self.label, "text": self.text}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Option":
        return cls(
            label=str(payload.get("label", "")).strip().upper()[:1],
            text=str(payload.get("text", "")),
        )


@dataclass
class Question:
    """A parsed multiple-choice question plus its in-session answer state."""

    title: str
    options: tuple[Option, ...]
    answer: str
    number: str = ""
    score: str = ""
    user_answer: str | None = None
    user_answers: list[str] | None = None
    is_correct: bool | None = None

    def __post_init__(self) -> None:
        self.options = tuple(self.options)
        if self.is_multiple_choice and self.user_answers is None:
            self.user_answers = []

    @property
    def is_multiple_choice(self) -> bool:
        return len(self.answer) > 1

    @property
    def is_usable(self) -> bool:
        return bool(self.answer)

    @property
    def is_answered(self) -> bool:
        if self.is_multiple_choice:
            return bool(self.user_answers)
        return self.user_answer is not None

    @property
    def identity(self) -> tuple[str, str]:
        """Key used by the error book to match questions across copies."""
        return (self.title, self.answer)

    def option_for(self, label: str | None) -> Option | None:
        if not label:
            return None
        normalized = str(label).strip().upper()[:1]
        for option in self.options:
            if option.label == normalized:
                return option
        return None

    def reset_state(self) -> None:
        self.user_answer = None
        self.is_correct = None
        self.user_answers = [] if self.is_multiple_choice else None

    def clone(self) -> "Question":
        return Question(
            title=self.title,
            options=self.options,
            answer=self.answer,
            number=self.number,
            score=self.score,
            user_answer=self.user_answer,
            user_answers=(
                list(self.user_answers)
                if self.user_answers is not None
                else None
            ),
            is_correct=self.is_correct,
        )

    def error_snapshot(self) -> "Question":
        """Copy kept in an error collection: last answer kept, marked wrong."""

        snapshot = self.clone()
        snapshot.is_correct = False
        return snapshot

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "number": self.number,
            "score": self.score,
            "title": self.title,
            "options": [option.to_dict() for option in self.options],
            "answer": self.answer,
            "isMultipleChoice": self.is_multiple_choice,
            "userAnswer": self.user_answer,
            "userAnswers": (
                list(self.user_answers)
                if self.user_answers is not None
                else None
            ),
            "isCorrect": self.is_correct,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Question":
        raw_options = payload.get("options") or []
        options = tuple(
            Option.from_dict(item)
            for item in raw_options
            if isinstance(item, Mapping)
        )
        user_answer = payload.get("userAnswer")
        raw_selection = payload.get("userAnswers")
        if raw_selection is None and user_answer and len(str(user_answer)) > 1:
            raw_selection = sorted(set(str(user_answer)))
        is_correct = payload.get("isCorrect")
        return cls(
            title=str(payload.get("title", "")),
            options=options,
            answer=canonical_answer(str(payload.get("answer", "") or "")),
            number=str(payload.get("number", "") or ""),
            score=str(payload.get("score", "") or ""),
            user_answer=str(user_answer) if user_answer is not None else None,
            user_answers=(
                [str(item) for item in raw_selection]
                if isinstance(raw_selection, list)
                else None
            ),
            is_correct=bool(is_correct) if is_correct is not None else None,
        )


def clone_questions(questions: Iterable[Question]) -> list[Question]:
    return [question.clone() for question in questions]
