"""Virtual file abstraction shared by CLI and IDE hosts.

The engine never walks directories itself; hosts hand it an already-filtered
collection of ``VirtualFile`` objects. Identity is the normalized path.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Protocol, runtime_checkable


def normalize_path(path: str | os.PathLike[str]) -> Path:
    """Absolute path with ``.``/``..`` collapsed. Symlinks are not resolved."""
    return Path(os.path.abspath(os.fspath(path)))


@runtime_checkable
class VirtualFile(Protocol):
    """Read-only view of a source file."""

    @property
    def path(self) -> Path: ...

    @property
    def name(self) -> str: ...

    @property
    def extension(self) -> str: ...

    def read_text(self) -> str: ...

    def exists(self) -> bool: ...

    def size(self) -> int: ...

    def last_modified(self) -> float: ...


class FileSystemVirtualFile:
    """``VirtualFile`` backed by a file on disk."""

    __slots__ = ("_path",)

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = normalize_path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def extension(self) -> str:
        return self._path.suffix.lstrip(".")

    def read_text(self) -> str:
        return self._path.read_text(encoding="utf-8")

    def exists(self) -> bool:
        return self._path.exists()

    def size(self) -> int:
        return self._path.stat().st_size

    def last_modified(self) -> float:
        return self._path.stat().st_mtime

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileSystemVirtualFile | InMemoryVirtualFile):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"FileSystemVirtualFile({str(self._path)!r})"

    def __str__(self) -> str:
        return str(self._path)


class InMemoryVirtualFile:
    """``VirtualFile`` over an in-memory buffer (unsaved editor content, tests).

    ``update`` swaps the buffer, which changes the content fingerprint the
    parse cache keys on.
    """

    __slots__ = ("_path", "_content", "_modified")

    def __init__(self, path: str | os.PathLike[str], content: str) -> None:
        self._path = normalize_path(path)
        self._content = content
        self._modified = time.time()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def extension(self) -> str:
        return self._path.suffix.lstrip(".")

    def read_text(self) -> str:
        return self._content

    def update(self, content: str) -> None:
        self._content = content
        self._modified = time.time()

    def exists(self) -> bool:
        return True

    def size(self) -> int:
        return len(self._content.encode("utf-8"))

    def last_modified(self) -> float:
        return self._modified

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileSystemVirtualFile | InMemoryVirtualFile):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"InMemoryVirtualFile({str(self._path)!r})"

    def __str__(self) -> str:
        return str(self._path)


def memory_writer(file: VirtualFile, content: str) -> None:
    """Quick-fix writer for in-memory files."""
    if isinstance(file, InMemoryVirtualFile):
        file.update(content)
    else:
        file.path.write_text(content, encoding="utf-8")
