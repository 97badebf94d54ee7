"""Error collections and the store that persists them.

The store keeps every collection in memory and writes the complete list back
to the key-value backend after each mutation. Storage failures are logged
and swallowed at this boundary: losing error-book history must never stop a
quiz from running.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, MutableMapping

from ..quizzer.models import Question, clone_questions
from .storage import KeyValueStore, StorageError

__all__ = [
    "COLLECTIONS_KEY",
    "LEGACY_KEY",
    "TEMP_COLLECTION_ID",
    "TEMP_COLLECTION_NAME",
    "ErrorCollection",
    "ErrorBookStore",
    "format_timestamp",
]

LEGACY_KEY = "quiz_error_questions"
COLLECTIONS_KEY = "quiz_error_collections"
TEMP_COLLECTION_ID = "temp_session"
TEMP_COLLECTION_NAME = "当前会话错题"

Clock = Callable[[], float]


def format_timestamp(timestamp_ms: int) -> str:
    """Render epoch milliseconds as local ``YYYY-MM-DD HH:MM``."""

    return datetime.fromtimestamp(timestamp_ms / 1000).strftime(
        "%Y-%m-%d %H:%M"
    )


@dataclass
class ErrorCollection:
    """A named group of missed questions."""

    id: str
    name: str
    timestamp: int
    date_created: str
    questions: list[Question] = field(default_factory=list)
    is_temporary: bool = False

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def index_of(self, identity: tuple[str, str]) -> int | None:
        for index, question in enumerate(self.questions):
            if question.identity == identity:
                return index
        return None

    def clone(self) -> "ErrorCollection":
        return ErrorCollection(
            id=self.id,
            name=self.name,
            timestamp=self.timestamp,
            date_created=self.date_created,
            questions=clone_questions(self.questions),
            is_temporary=self.is_temporary,
        )

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "dateCreated": self.date_created,
            "questions": [question.to_dict() for question in self.questions],
            "isTemporary": self.is_temporary,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ErrorCollection":
        identifier = str(payload.get("id", ""))
        try:
            timestamp = int(payload.get("timestamp") or 0)
        except (TypeError, ValueError):
            timestamp = 0
        date_created = str(payload.get("dateCreated") or "")
        if not date_created and timestamp:
            date_created = format_timestamp(timestamp)
        raw_questions = payload.get("questions") or []
        return cls(
            id=identifier,
            name=str(payload.get("name") or date_created or identifier),
            timestamp=timestamp,
            date_created=date_created,
            questions=[
                Question.from_dict(item)
                for item in raw_questions
                if isinstance(item, Mapping)
            ],
            is_temporary=bool(
                payload.get("isTemporary") or identifier == TEMP_COLLECTION_ID
            ),
        )


class ErrorBookStore:
    """Owns the error collections and the error-book mode flags.

    Every getter hands out clones, so callers can never mutate stored
    snapshots behind the store's back.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        logger: logging.Logger | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._storage = storage
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock
        self._collections: list[ErrorCollection] = []
        self._current_id: str | None = None
        self._error_book_mode = False
        self._load()
        self._migrate_legacy()

    # ------------------------------------------------------------------
    # Mode flags
    # ------------------------------------------------------------------
    def set_error_book_mode(self, enabled: bool) -> None:
        self._error_book_mode = bool(enabled)
        if not self._error_book_mode:
            self._current_id = None

    def is_error_book_mode(self) -> bool:
        return self._error_book_mode

    # ------------------------------------------------------------------
    # Session recording
    # ------------------------------------------------------------------
    def record_miss(self, question: Question) -> bool:
        """Add ``question`` to the temporary collection unless present."""

        temporary = self._temporary()
        if temporary is None:
            now = self._now_ms()
            temporary = ErrorCollection(
                id=TEMP_COLLECTION_ID,
                name=TEMP_COLLECTION_NAME,
                timestamp=now,
                date_created=format_timestamp(now),
                is_temporary=True,
            )
            self._collections.append(temporary)
        if temporary.index_of(question.identity) is not None:
            return False
        temporary.questions.append(question.error_snapshot())
        self._persist()
        return True

    def update_error_status(self, question: Question, is_correct: bool) -> bool:
        """Graduate or refresh ``question`` inside the selected collection."""

        collection = self._find(self._current_id)
        if collection is None:
            return False
        index = collection.index_of(question.identity)
        if index is None:
            return False
        if is_correct:
            del collection.questions[index]
            self._logger.info(
                "Question graduated from error collection",
                extra={
                    "collection_id": collection.id,
                    "remaining": collection.question_count,
                },
            )
        else:
            stored = collection.questions[index]
            stored.user_answer = question.user_answer
            if stored.is_multiple_choice:
                stored.user_answers = list(question.user_answers or [])
        self._persist()
        return True

    def save_session_as_collection(self) -> ErrorCollection | None:
        """Promote the temporary collection's questions to a new collection."""

        temporary = self._temporary()
        if temporary is None or not temporary.questions:
            return None
        identifier, now = self._allocate_id()
        collection = ErrorCollection(
            id=identifier,
            name=format_timestamp(now),
            timestamp=now,
            date_created=format_timestamp(now),
            questions=clone_questions(temporary.questions),
        )
        self._collections.append(collection)
        temporary.questions = []
        self._persist()
        self._logger.info(
            "Saved session errors as collection",
            extra={
                "collection_id": identifier,
                "question_count": collection.question_count,
            },
        )
        return collection.clone()

    # ------------------------------------------------------------------
    # Collection management
    # ------------------------------------------------------------------
    def create_collection(
        self, name: str | None, questions: Iterable[Question]
    ) -> ErrorCollection:
        collection = self._add_collection(name, questions)
        self._persist()
        return collection.clone()

    def merge(
        self, ids: Iterable[str], name: str | None = None
    ) -> ErrorCollection | None:
        """Create a collection holding the union of ``ids``' questions.

        Questions are deduplicated by ``(title, answer)``; the sources stay.
        """

        sources = []
        for identifier in ids:
            collection = self._find(identifier)
            if collection is None:
                return None
            sources.append(collection)
        if not sources:
            return None
        combined: list[Question] = []
        seen: set[tuple[str, str]] = set()
        for collection in sources:
            for question in collection.questions:
                if question.identity in seen:
                    continue
                seen.add(question.identity)
                combined.append(question)
        return self.create_collection(name, combined)

    def get_collections(self) -> list[ErrorCollection]:
        return [
            collection.clone()
            for collection in self._collections
            if not collection.is_temporary
        ]

    def get_collection(self, identifier: str) -> ErrorCollection | None:
        collection = self._find(identifier)
        return collection.clone() if collection else None

    def get_temporary_collection(self) -> ErrorCollection | None:
        temporary = self._temporary()
        return temporary.clone() if temporary else None

    def select_collection(self, identifier: str) -> bool:
        if self._find(identifier) is None:
            return False
        self._current_id = identifier
        return True

    @property
    def current_collection_id(self) -> str | None:
        return self._current_id

    def current_collection(self) -> ErrorCollection | None:
        return self.get_collection(self._current_id or "")

    def current_collection_questions(self) -> list[Question]:
        collection = self._find(self._current_id)
        return clone_questions(collection.questions) if collection else []

    def rename(self, identifier: str, name: str) -> bool:
        collection = self._find(identifier)
        cleaned = (name or "").strip()
        if collection is None or not cleaned:
            return False
        collection.name = cleaned
        self._persist()
        return True

    def delete(self, identifier: str) -> bool:
        collection = self._find(identifier)
        if collection is None:
            return False
        self._collections.remove(collection)
        if self._current_id == identifier:
            self._current_id = None
        self._persist()
        return True

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------
    def total_error_count(self) -> int:
        return sum(
            collection.question_count
            for collection in self._collections
            if not collection.is_temporary
        )

    def session_error_count(self) -> int:
        temporary = self._temporary()
        return temporary.question_count if temporary else 0

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _find(self, identifier: str | None) -> ErrorCollection | None:
        if not identifier:
            return None
        for collection in self._collections:
            if collection.id == identifier:
                return collection
        return None

    def _temporary(self) -> ErrorCollection | None:
        for collection in self._collections:
            if collection.is_temporary:
                return collection
        return None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _add_collection(
        self, name: str | None, questions: Iterable[Question]
    ) -> ErrorCollection:
        identifier, now = self._allocate_id()
        collection = ErrorCollection(
            id=identifier,
            name=(name or "").strip() or format_timestamp(now),
            timestamp=now,
            date_created=format_timestamp(now),
            questions=[question.error_snapshot() for question in questions],
        )
        self._collections.append(collection)
        return collection

    def _allocate_id(self) -> tuple[str, int]:
        now = self._now_ms()
        while self._find(f"error_{now}") is not None:
            now += 1
        return f"error_{now}", now

    def _read(self, key: str) -> str | None:
        try:
            return self._storage.get(key)
        except StorageError as exc:
            self._logger.error(
                "Failed to read error book storage",
                extra={"key": key, "error": str(exc)},
            )
            return None

    def _persist(self) -> bool:
        try:
            payload = json.dumps(
                [collection.to_dict() for collection in self._collections],
                ensure_ascii=False,
            )
            self._storage.set(COLLECTIONS_KEY, payload)
        except (StorageError, TypeError, ValueError) as exc:
            self._logger.error(
                "Failed to persist error collections",
                extra={"key": COLLECTIONS_KEY, "error": str(exc)},
            )
            return False
        return True

    def _load(self) -> None:
        raw = self._read(COLLECTIONS_KEY)
        if not raw:
            return
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._logger.error(
                "Stored error collections are not valid JSON",
                extra={"key": COLLECTIONS_KEY, "error": str(exc)},
            )
            return
        if not isinstance(payload, list):
            self._logger.warning(
                "Stored error collections are not a list",
                extra={"key": COLLECTIONS_KEY},
            )
            return
        temporary_seen = False
        for item in payload:
            if not isinstance(item, Mapping):
                continue
            collection = ErrorCollection.from_dict(item)
            if collection.is_temporary:
                if temporary_seen:
                    continue
                temporary_seen = True
            self._collections.append(collection)
        self._logger.debug(
            "Loaded error collections",
            extra={"collection_count": len(self._collections)},
        )

    def _migrate_legacy(self) -> None:
        raw = self._read(LEGACY_KEY)
        if not raw:
            return
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._logger.error(
                "Failed to migrate legacy error questions",
                extra={"key": LEGACY_KEY, "error": str(exc)},
            )
            return
        if isinstance(payload, list) and payload:
            questions = [
                Question.from_dict(item)
                for item in payload
                if isinstance(item, Mapping)
            ]
            migrated = self._add_collection(None, questions)
            if not self._persist():
                return
            self._logger.info(
                "Migrated legacy error questions",
                extra={
                    "collection_id": migrated.id,
                    "question_count": migrated.question_count,
                },
            )
        try:
            self._storage.remove(LEGACY_KEY)
        except StorageError as exc:
            self._logger.error(
                "Failed to remove legacy error questions",
                extra={"key": LEGACY_KEY, "error": str(exc)},
            )
