"""Key-value persistence backends for the error book.

The error book only needs three calls: ``get``, ``set`` and ``remove`` over
string values. :class:`MemoryStore` keeps them in a dict and
:class:`JsonFileStore` writes one file per key with atomic replacement and a
lock file guarding concurrent writers.
"""

from __future__ import annotations

import os
import re
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, MutableMapping, Protocol

__all__ = [
    "StorageError",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
]


_LOCK_FILENAME = ".lock"
_LOCK_TIMEOUT_SECONDS = 5.0
_LOCK_POLL_SECONDS = 0.05
_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(RuntimeError):
    """Raised when a value cannot be read or persisted."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


def _encoded_size(value: str) -> int:
    return len(value.encode("utf-8"))


class MemoryStore:
    """In-process store; ``max_bytes`` (0 = unlimited) caps the total size."""

    def __init__(
        self,
        initial: MutableMapping[str, str] | None = None,
        *,
        max_bytes: int = 0,
    ) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._max_bytes = max(0, int(max_bytes))

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(
                f"Values must be strings, got {type(value).__name__}."
            )
        if self._max_bytes:
            used = sum(
                _encoded_size(item)
                for name, item in self._data.items()
                if name != key
            )
            if used + _encoded_size(value) > self._max_bytes:
                raise StorageError(
                    f"Storage quota exceeded while writing '{key}'."
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileStore:
    """Store each key as ``<key>.json`` under ``root``."""

    def __init__(
        self,
        root: Path,
        *,
        max_bytes: int = 0,
        lock_timeout: float = _LOCK_TIMEOUT_SECONDS,
    ) -> None:
        self._root = Path(root)
        self._max_bytes = max(0, int(max_bytes))
        self._lock_timeout = lock_timeout
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                f"Unable to create storage directory: {self._root}"
            ) from exc

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key or ""):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._root / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read storage file: {path}") from exc

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(
                f"Values must be strings, got {type(value).__name__}."
            )
        target = self.path_for(key)
        with self._locked():
            if self._max_bytes:
                used = self._used_bytes(exclude=target)
                if used + _encoded_size(value) > self._max_bytes:
                    raise StorageError(
                        f"Storage quota exceeded while writing '{key}'."
                    )
            try:
                _replace_file(target, value)
            except OSError as exc:
                raise StorageError(
                    f"Failed to write storage file: {target}"
                ) from exc

    def remove(self, key: str) -> None:
        target = self.path_for(key)
        with self._locked():
            try:
                target.unlink(missing_ok=True)
            except OSError as exc:
                raise StorageError(
                    f"Failed to remove storage file: {target}"
                ) from exc

    def _locked(self):
        return _exclusive_lock(self._root / _LOCK_FILENAME, self._lock_timeout)

    def _used_bytes(self, *, exclude: Path) -> int:
        total = 0
        for path in self._root.glob("*.json"):
            if path == exclude:
                continue
            try:
                total += path.stat().st_size
            except OSError:
                continue
        return total


@contextmanager
def _exclusive_lock(path: Path, timeout: float) -> Iterator[None]:
    """Hold ``path`` as a lock file; the holder's pid is written into it."""

    deadline = time.monotonic() + timeout
    while True:
        try:
            with path.open("x", encoding="utf-8") as handle:
                handle.write(str(os.getpid()))
            break
        except FileExistsError:
            if time.monotonic() >= deadline:
                raise StorageError(
                    f"Storage is locked by another writer: {path}"
                ) from None
            time.sleep(_LOCK_POLL_SECONDS)
    try:
        yield
    finally:
        path.unlink(missing_ok=True)


def _replace_file(target: Path, text: str) -> None:
    fd, staging = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.stem}-", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(staging, target)
    except BaseException:
        Path(staging).unlink(missing_ok=True)
        raise
