from __future__ import annotations

import json
import logging
from pathlib import Path

from quizbook.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "quizbook.test", log_dir=log_dir, level="INFO"
    )
    assert log_path == (log_dir / "test.log").resolve()

    logger.debug("hidden")
    logger.info("hello", extra={"question_count": 3, "path": Path("a")})
    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("failed", extra={"items": ({"k": object()},)})
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "hello"
    assert first["level"] == "INFO"
    assert first["extra"] == {"question_count": 3, "path": "a"}
    last = json.loads(lines[-1])
    assert "ValueError" in last["exception"]
    assert last["extra"]["items"][0]["k"].startswith("<object")
    _close(logger)


def test_configure_logger_reuses_handlers(tmp_path):
    logger, _ = core_logging.configure_logger(
        "quizbook.reuse", log_dir=tmp_path, verbose=True
    )
    assert len(logger.handlers) == 2

    logger, _ = core_logging.configure_logger(
        "quizbook.reuse", log_dir=tmp_path, verbose=False
    )
    assert len(logger.handlers) == 1

    logger, path = core_logging.configure_logger(
        "quizbook.reuse", log_dir=tmp_path / "other"
    )
    assert len(logger.handlers) == 1
    assert path.parent == (tmp_path / "other").resolve()
    _close(logger)


def test_unknown_level_falls_back_to_info(tmp_path):
    logger, _ = core_logging.configure_logger(
        "quizbook.level", log_dir=tmp_path, level="chatty"
    )
    assert logger.handlers[0].level == logging.INFO
    _close(logger)
