"""Shared TOML configuration helpers and packaged templates."""

from __future__ import annotations

import tomllib
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping

__all__ = [
    "TomlConfigError",
    "load_toml",
    "merge_defaults",
    "read_template",
    "write_template",
    "TEMPLATE_PACKAGE",
    "TEMPLATE_FILENAME",
]


TEMPLATE_PACKAGE = "quizbook"
TEMPLATE_FILENAME = "quizbook.toml"


class TomlConfigError(RuntimeError):
    """Raised when TOML config IO or validation fails."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Load a TOML document from ``path``.

    Errors are surfaced as :class:`TomlConfigError` instances so callers can
    translate them into domain-specific exceptions.
    """

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Recursively merge ``override`` into ``base`` rejecting unknown keys."""

    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        if isinstance(base[key], MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted,
                        type(value).__name__,
                    )
                )
            merge_defaults(base[key], value, path=f"{dotted}.")
            continue
        base[key] = value


def read_template() -> str:
    """Return the packaged ``quizbook.toml`` template text."""

    try:
        resource = resources.files(TEMPLATE_PACKAGE).joinpath(
            TEMPLATE_FILENAME
        )
        return resource.read_text(encoding="utf-8")
    except FileNotFoundError as exc:  # pragma: no cover - package state
        raise TomlConfigError(
            f"Packaged template '{TEMPLATE_FILENAME}' is missing."
        ) from exc


def write_template(
    path: Path,
    *,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write the packaged template to ``path`` honouring ``overwrite``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.write_text(read_template(), encoding="utf-8")
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path
