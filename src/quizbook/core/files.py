"""Reading pasted question text from files or stdin."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

__all__ = ["read_text_file", "read_source"]


def read_text_file(path: Path) -> str:
    """Read a text file as UTF-8 with replacement for decode errors."""
    with Path(path).open("r", encoding="utf-8-sig", errors="replace") as fh:
        return fh.read()


def read_source(source: str | Path, *, stdin: TextIO | None = None) -> str:
    """Return the text behind ``source``; ``-`` reads the whole of stdin."""
    if str(source) == "-":
        return (stdin or sys.stdin).read()
    path = Path(source).expanduser()
    if not path.is_file():
        raise FileNotFoundError(f"Input not found: {path}")
    return read_text_file(path)
