"""
Async filesystem primitives.

Each operation runs in a worker thread and reports failures as a typed
FileSystemError subclass, so the pipeline can tell which step failed.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from .errors import JsonStringifyError, MkdirError, RmError, WriteFileError


def atomic_write(path: Path, content: str) -> None:
    """Write content to a file atomically.

    Writes to a temporary file in the same directory, then replaces the
    target, so an interrupted write never leaves a truncated file behind.
    """
    temp_fd, temp_path_str = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", text=True)
    temp_path = Path(temp_path_str)

    try:
        with open(temp_fd, "w", encoding="utf-8") as f:
            f.write(content)
        # Same directory ensures an atomic rename on POSIX
        temp_path.replace(path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def to_json_string(value: Any) -> str:
    """Pretty-print a value the way the generated package stores JSON."""
    return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)


async def mkdirp(path: Path) -> None:
    try:
        await asyncio.to_thread(Path(path).mkdir, parents=True, exist_ok=True)
    except OSError as e:
        raise MkdirError(str(path), e) from e


async def write_file(path: Path, content: str) -> None:
    try:
        await asyncio.to_thread(atomic_write, Path(path), content)
    except (OSError, UnicodeEncodeError) as e:
        raise WriteFileError(str(path), e) from e


async def rm(path: Path, force: bool = True) -> None:
    """Remove a file. With `force`, a missing file is not an error."""
    try:
        await asyncio.to_thread(os.remove, path)
    except FileNotFoundError as e:
        if not force:
            raise RmError(str(path), e) from e
    except OSError as e:
        raise RmError(str(path), e) from e


async def write_file_json(path: Path, content: Any) -> None:
    try:
        text = to_json_string(content)
    except (TypeError, ValueError) as e:
        raise JsonStringifyError(str(path), e) from e
    await write_file(path, text)
