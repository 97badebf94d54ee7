"""Configuration loader shared by the quizbook commands."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, MutableMapping, Optional

from quizbook.core import config as core_config
from quizbook.core import workspace as workspace_mod

CONFIG_FILENAME = "quizbook.toml"
CONFIG_ENV = "QUIZBOOK_CONFIG"
ENV_PREFIX = "QUIZBOOK_"

_DEFAULT_COMPLETION_DELAY = 1.0
_DEFAULT_LOG_LEVEL = "INFO"


class QuizbookConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizbookConfig:
    """Fully resolved configuration for a quizbook run."""

    storage_dir: Path
    max_bytes: int
    completion_delay: float
    shuffle: bool
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    storage_dir: Optional[Path] = None
    completion_delay: Optional[float] = None
    shuffle: Optional[bool] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    """Result of loading configuration, including workspace context."""

    config: QuizbookConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizbookConfigError(str(exc)) from exc
    default_path = layout.path_for("config") / CONFIG_FILENAME

    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=default_path,
    )

    file_options = _default_table()
    loaded_path: Optional[Path]
    if requested_path.exists():
        loaded_path = requested_path
        try:
            parsed = core_config.load_toml(requested_path)
            core_config.merge_defaults(file_options, parsed)
        except core_config.TomlConfigError as exc:
            raise QuizbookConfigError(str(exc)) from exc
    else:
        loaded_path = None
        if config_path is not None or _has_env_config(env_map):
            raise QuizbookConfigError(
                f"Config file not found: {requested_path}"
            )

    storage_dir = _resolve_storage_dir(
        candidate=_pick_first(
            overrides.storage_dir,
            _parse_env_path(env_map, "STORAGE_DIR"),
            _coerce_optional_path(file_options["storage"]["dir"]),
        ),
        layout=layout,
    )
    max_bytes = _resolve_max_bytes(file_options["storage"]["max_bytes"])
    completion_delay = _resolve_delay(
        _pick_first(
            overrides.completion_delay,
            _parse_env_float(env_map, "COMPLETION_DELAY"),
            file_options["quiz"]["completion_delay"],
        )
    )
    shuffle = _pick_first(overrides.shuffle, file_options["quiz"]["shuffle"])
    if not isinstance(shuffle, bool):
        raise QuizbookConfigError("quiz.shuffle must be a boolean.")
    log_level = _resolve_log_level(
        _pick_first(
            overrides.log_level,
            _parse_env_string(env_map, "LOG_LEVEL"),
            file_options["logging"]["level"],
        )
    )

    config = QuizbookConfig(
        storage_dir=storage_dir,
        max_bytes=max_bytes,
        completion_delay=completion_delay,
        shuffle=shuffle,
        log_level=log_level,
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "storage": {"dir": "", "max_bytes": 0},
        "quiz": {
            "completion_delay": _DEFAULT_COMPLETION_DELAY,
            "shuffle": False,
        },
        "logging": {"level": _DEFAULT_LOG_LEVEL},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = env_map.get(CONFIG_ENV)
    if env_candidate and env_candidate.strip():
        return Path(env_candidate.strip()).expanduser()
    return default_path


def _has_env_config(env_map: Mapping[str, str]) -> bool:
    env_candidate = env_map.get(CONFIG_ENV)
    return bool(env_candidate and env_candidate.strip())


def _coerce_optional_path(value: object) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value
    if isinstance(value, str):
        raw = value.strip()
        return Path(raw) if raw else None
    raise QuizbookConfigError("storage.dir must be a string when provided.")


def _resolve_storage_dir(
    *, candidate: object, layout: workspace_mod.WorkspaceLayout
) -> Path:
    if candidate is None:
        return layout.path_for("storage")
    path = Path(str(candidate)).expanduser()
    if not path.is_absolute():
        return (layout.home / path).resolve()
    return path.resolve()


def _resolve_max_bytes(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise QuizbookConfigError(
            "storage.max_bytes must be a non-negative integer."
        )
    return value


def _resolve_delay(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QuizbookConfigError("quiz.completion_delay must be a number.")
    if value < 0:
        raise QuizbookConfigError(
            "quiz.completion_delay must be zero or positive."
        )
    return float(value)


def _resolve_log_level(candidate: object) -> str:
    if not isinstance(candidate, str):
        raise QuizbookConfigError("logging.level must be a string.")
    level = candidate.strip()
    if not level:
        raise QuizbookConfigError("logging.level must be a non-empty string.")
    return level.upper()


def _parse_env_float(env_map: Mapping[str, str], key: str) -> Optional[float]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise QuizbookConfigError(
            f"{ENV_PREFIX}{key} must be a number, got '{raw}'."
        ) from exc


def _parse_env_path(env_map: Mapping[str, str], key: str) -> Optional[Path]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    return Path(raw).expanduser()


def _parse_env_string(env_map: Mapping[str, str], key: str) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
