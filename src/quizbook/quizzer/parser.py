"""Turn pasted multiple-choice text into :class:`Question` records.

Segmentation runs an ordered list of strategies and keeps the blocks from
the first one that yields anything:

1. ``answer_anchored``: every block ends with an ``答案：X`` or
   ``正确答案：X`` marker;
2. ``numbered``: blocks start at ``1.`` / ``一、`` style markers and mention
   both an A and a B;
3. ``blank_line``: blank-line separated paragraphs that look like questions.

Block parsing never raises. Missing pieces degrade to empty strings or
placeholder options so one malformed block cannot drop the rest of a paste.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .models import (
    OPTION_LABELS,
    PLACEHOLDER_OPTION_TEXT,
    Option,
    Question,
    canonical_answer,
)

__all__ = [
    "SegmentationResult",
    "Splitter",
    "DEFAULT_STRATEGIES",
    "QuestionParser",
    "normalize_text",
    "split_by_answer_markers",
    "split_by_numbered_prefix",
    "split_by_blank_lines",
    "segment",
    "parse_block",
    "parse_questions",
    "usable_questions",
]

_LOGGER = logging.getLogger(__name__)

_ANSWER_MARKER = r"(?:正确答案|答案)[:：]"
_NUMERAL_MARKER = r"(?:\d+|[一二三四五六七八九十]+)[.、)）]"

_ANSWER_BLOCK_RE = re.compile(
    r".*?" + _ANSWER_MARKER + r"\s*[A-D]+\s*(?=\n\S|$)", re.S
)
_NUMBERED_BLOCK_RE = re.compile(
    r"(?:^|\n)" + _NUMERAL_MARKER + r".*?(?=\n" + _NUMERAL_MARKER + r"|\s*$)",
    re.S,
)
_BLANK_LINE_RE = re.compile(r"\n\s*\n")
_BLANK_LINE_HINTS = ("正确答案", "答案", "A.", "A、", "A．")

_ANSWER_RE = re.compile(_ANSWER_MARKER + r"\s*([A-D]+)", re.I)
_ANSWER_LINE_RE = re.compile(_ANSWER_MARKER + r"\s*[A-D]+.*$", re.I | re.M)
_ANSWER_CUT_RE = re.compile(_ANSWER_MARKER)
_NUMBER_RE = re.compile(r"^(?:\d+[.、)）]\s*|\d+\s*[.、)）])")
_SCORE_RE = re.compile(r"\(\s*(\d+(?:\.\d+)?)\s*分?\s*\)")
_BRACKET_ANSWER_RE = re.compile(r"([（(])\s*([A-D]{1,4})\s*([）)])", re.I)
_PUNCT_OPTION_RE = re.compile(r"([A-D])[.．、]")
_GLUED_RE = re.compile(r"[A-Za-z0-9]")
_LINE_OPTION_RE = re.compile(r"^[ \t]*([A-D])[ \t]+(?=\S)", re.M)

Splitter = Callable[[str], list[str]]


@dataclass(frozen=True)
class SegmentationResult:
    """Blocks produced by the winning strategy (``"none"`` if none won)."""

    strategy: str
    blocks: tuple[str, ...]


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    unified = text.replace("\r\n", "\n").replace("\r", "\n")
    return re.sub(r"\n{3,}", "\n\n", unified).strip()


def split_by_answer_markers(text: str) -> list[str]:
    blocks = []
    for match in _ANSWER_BLOCK_RE.finditer(text):
        block = match.group(0).strip()
        if block:
            blocks.append(block)
    return blocks


def split_by_numbered_prefix(text: str) -> list[str]:
    blocks = []
    for match in _NUMBERED_BLOCK_RE.finditer(text):
        block = match.group(0).strip()
        if block and "A" in block and "B" in block:
            blocks.append(block)
    return blocks


def split_by_blank_lines(text: str) -> list[str]:
    blocks = []
    for raw in _BLANK_LINE_RE.split(text):
        block = raw.strip()
        if "A" not in block or "B" not in block:
            continue
        if any(hint in block for hint in _BLANK_LINE_HINTS):
            blocks.append(block)
    return blocks


DEFAULT_STRATEGIES: tuple[tuple[str, Splitter], ...] = (
    ("answer_anchored", split_by_answer_markers),
    ("numbered", split_by_numbered_prefix),
    ("blank_line", split_by_blank_lines),
)


def segment(
    text: str | None,
    strategies: Sequence[tuple[str, Splitter]] = DEFAULT_STRATEGIES,
) -> SegmentationResult:
    """Split ``text`` into question blocks; first productive strategy wins."""

    normalized = normalize_text(text)
    if not normalized:
        return SegmentationResult("none", ())
    for name, splitter in strategies:
        blocks = splitter(normalized)
        if blocks:
            return SegmentationResult(name, tuple(blocks))
    return SegmentationResult("none", ())


def parse_block(block: str) -> Question:
    """Parse a single question block into a :class:`Question`.

    An inline bracketed key such as ``(AC)`` overrides a trailing answer
    marker; the brackets stay in the title with the letters removed.
    """

    answer_match = _ANSWER_RE.search(block)
    answer = canonical_answer(answer_match.group(1)) if answer_match else ""

    text = _ANSWER_LINE_RE.sub("", block, count=1).strip()

    number = ""
    number_match = _NUMBER_RE.match(text)
    if number_match:
        number = number_match.group(0).strip()
        text = text[number_match.end():].strip()

    score = ""
    score_match = _SCORE_RE.search(text)
    if score_match:
        score = score_match.group(1)
        text = (text[: score_match.start()] + text[score_match.end():]).strip()

    bracket_match = _BRACKET_ANSWER_RE.search(text)
    if bracket_match:
        answer = canonical_answer(bracket_match.group(2))
        text = (
            text[: bracket_match.start()]
            + bracket_match.group(1)
            + bracket_match.group(3)
            + text[bracket_match.end():]
        ).strip()

    markers = _option_markers(text)
    title = text[: markers[0][0]].strip() if markers else text
    found = _extract_options(text, markers)

    return Question(
        title=title,
        options=_canonical_options(found),
        answer=answer,
        number=number,
        score=score,
    )


def _option_markers(text: str) -> list[tuple[int, int, str]]:
    """Return ``(start, end, label)`` for each option marker in ``text``.

    Punctuated markers (``A.``, ``A、``, ``A．``) are preferred; bare
    line-leading labels (``A 3``) are only used when none exist.

    A punctuated marker glued to a preceding letter or digit (``A.3B.4``)
    only counts once an earlier option was found and its label comes later
    than that option's, so words such as ``USA.`` stay in the text.
    """

    markers: list[tuple[int, int, str]] = []
    for match in _PUNCT_OPTION_RE.finditer(text):
        start, label = match.start(1), match.group(1)
        glued = start > 0 and _GLUED_RE.match(text[start - 1])
        if glued and (not markers or label <= markers[-1][2]):
            continue
        markers.append((start, match.end(), label))
    if markers:
        return markers

    # The first line is the title, even when it starts with "A ".
    first_break = text.find("\n")
    if first_break < 0:
        return []
    markers = [
        (match.start(1), match.end(), match.group(1))
        for match in _LINE_OPTION_RE.finditer(text, first_break + 1)
    ]
    return markers if len(markers) >= 2 else []


def _extract_options(
    text: str, markers: Sequence[tuple[int, int, str]]
) -> list[Option]:
    found: list[Option] = []
    for index, (_, end, label) in enumerate(markers):
        stop = markers[index + 1][0] if index + 1 < len(markers) else len(text)
        chunk = text[end:stop]
        cut = _ANSWER_CUT_RE.search(chunk)
        if cut:
            chunk = chunk[: cut.start()]
        found.append(Option(label=label, text=chunk.strip()))
    return found


def _canonical_options(found: Iterable[Option]) -> tuple[Option, ...]:
    by_label: dict[str, Option] = {}
    for option in found:
        by_label.setdefault(option.label, option)
    return tuple(
        by_label.get(label) or Option(label, PLACEHOLDER_OPTION_TEXT)
        for label in OPTION_LABELS
    )


class QuestionParser:
    """Configurable front end over :func:`segment` and :func:`parse_block`."""

    def __init__(
        self,
        strategies: Sequence[tuple[str, Splitter]] = DEFAULT_STRATEGIES,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._strategies = tuple(strategies)
        self._logger = logger or _LOGGER

    def parse(self, text: str | None) -> list[Question]:
        result = segment(text, self._strategies)
        self._logger.debug(
            "Segmented pasted text",
            extra={
                "strategy": result.strategy,
                "block_count": len(result.blocks),
            },
        )
        questions: list[Question] = []
        for index, block in enumerate(result.blocks):
            question = parse_block(block)
            missing = [
                option.label
                for option in question.options
                if option.text == PLACEHOLDER_OPTION_TEXT
            ]
            if missing or not question.answer:
                self._logger.debug(
                    "Degraded question block",
                    extra={
                        "block_index": index,
                        "missing_answer": not question.answer,
                        "missing_options": missing,
                    },
                )
            questions.append(question)
        return questions


def parse_questions(
    text: str | None, *, logger: logging.Logger | None = None
) -> list[Question]:
    """Parse pasted text with the default strategies."""

    return QuestionParser(logger=logger).parse(text)


def usable_questions(questions: Iterable[Question]) -> list[Question]:
    """Drop questions without a detectable answer."""

    return [question for question in questions if question.is_usable]
