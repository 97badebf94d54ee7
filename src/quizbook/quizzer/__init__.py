"""Question parsing, quiz sessions and their console/Textual front ends."""

from __future__ import annotations

from .models import (
    OPTION_LABELS,
    PLACEHOLDER_OPTION_TEXT,
    Option,
    Question,
    canonical_answer,
    clone_questions,
)
from .parser import (
    DEFAULT_STRATEGIES,
    QuestionParser,
    SegmentationResult,
    parse_block,
    parse_questions,
    segment,
    usable_questions,
)
from .session import (
    ErrorRecorder,
    QuestionStatus,
    QuizSession,
    SessionSnapshot,
    SessionState,
)

__all__ = [
    "OPTION_LABELS",
    "PLACEHOLDER_OPTION_TEXT",
    "Option",
    "Question",
    "canonical_answer",
    "clone_questions",
    "DEFAULT_STRATEGIES",
    "QuestionParser",
    "SegmentationResult",
    "parse_block",
    "parse_questions",
    "segment",
    "usable_questions",
    "ErrorRecorder",
    "QuestionStatus",
    "QuizSession",
    "SessionSnapshot",
    "SessionState",
]
