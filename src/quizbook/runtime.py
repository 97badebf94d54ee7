"""Bootstrap shared by the quizbook subcommands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from quizbook.core.logging import configure_logger
from quizbook.core.workspace import WorkspaceLayout

from .config import ConfigOverrides, QuizbookConfig, load_config
from .controller import QuizController
from .errorbook.storage import JsonFileStore
from .errorbook.store import ErrorBookStore


@dataclass(frozen=True)
class Runtime:
    """Everything a subcommand needs once configuration is resolved."""

    config: QuizbookConfig
    layout: WorkspaceLayout
    logger: logging.Logger
    log_path: Path
    store: ErrorBookStore

    def controller(self) -> QuizController:
        return QuizController(
            self.store,
            shuffle=self.config.shuffle,
            logger=self.logger,
        )


def build_runtime(
    *,
    config_path: Optional[Path] = None,
    workspace_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    verbose: bool = False,
    env: Optional[Mapping[str, str]] = None,
) -> Runtime:
    """Resolve config, configure logging and open the error book.

    Raises :class:`~quizbook.config.QuizbookConfigError` for bad config and
    :class:`~quizbook.errorbook.storage.StorageError` when the storage
    directory cannot be created.
    """

    result = load_config(
        config_path=config_path,
        overrides=overrides,
        env=env,
        workspace_path=workspace_path,
    )
    logger, log_path = configure_logger(
        log_dir=result.layout.path_for("logs"),
        level=result.config.log_level,
        verbose=verbose,
    )
    logger.debug(
        "Runtime configured",
        extra={
            "storage_dir": result.config.storage_dir,
            "config_path": result.config_path,
        },
    )
    storage = JsonFileStore(
        result.config.storage_dir, max_bytes=result.config.max_bytes
    )
    store = ErrorBookStore(storage, logger=logger.getChild("errorbook"))
    return Runtime(
        config=result.config,
        layout=result.layout,
        logger=logger,
        log_path=log_path,
        store=store,
    )
