from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import FixedClock, make_question  # noqa: E402
from quizbook.errorbook.storage import MemoryStore  # noqa: E402
from quizbook.errorbook.store import ErrorBookStore  # noqa: E402


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def error_book(memory_store, clock) -> ErrorBookStore:
    """Error book over an in-memory backend with a controllable clock."""

    return ErrorBookStore(memory_store, clock=clock)


@pytest.fixture
def sample_questions():
    return [
        make_question("2+2=?", "B", number="1."),
        make_question("3+3=?", "C", number="2."),
        make_question("Pick the even numbers", "AC", number="3."),
    ]


@pytest.fixture
def isolated_workspace(tmp_path, monkeypatch) -> Path:
    """Point QUIZBOOK_DATA_HOME at a tmp dir and clear other overrides."""

    home = tmp_path / "workspace"
    monkeypatch.setenv("QUIZBOOK_DATA_HOME", str(home))
    for key in (
        "QUIZBOOK_CONFIG",
        "QUIZBOOK_STORAGE_DIR",
        "QUIZBOOK_COMPLETION_DELAY",
        "QUIZBOOK_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    return home


@pytest.fixture(autouse=True)
def _reset_quizbook_logger():
    """Drop handlers configure_logger attached so caplog sees records."""

    yield
    logger = logging.getLogger("quizbook")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
