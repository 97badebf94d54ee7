"""Shared helpers for the quizbook test suite."""

from .questions import (  # noqa: F401
    ANSWER_ANCHORED_TEXT,
    BLANK_LINE_TEXT,
    NUMBERED_TEXT,
    make_question,
)
from .storage import FailingStore, FixedClock  # noqa: F401

__all__ = [
    "ANSWER_ANCHORED_TEXT",
    "BLANK_LINE_TEXT",
    "NUMBERED_TEXT",
    "FailingStore",
    "FixedClock",
    "make_question",
]
