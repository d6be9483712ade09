# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""File I/O helpers for the library.

All writes go through a temporary file in the destination directory that is
then renamed over the target, so a reader never observes a partial file.
"""

import tempfile
from pathlib import Path
from typing import Any

import orjson

from pocket_prompt.exceptions import StorageFailureError

__all__ = [
    "atomic_write",
    "read_json",
    "write_json_atomic",
]


def atomic_write(path: Path, content: bytes | str) -> None:
    """Write content to a file atomically.

    Args:
        path: Destination file path.
        content: Content to write (bytes or string).

    Raises:
        StorageFailureError: If the write operation fails.
    """
    is_bytes = isinstance(content, bytes)
    mode = "wb" if is_bytes else "w"
    encoding = None if is_bytes else "utf-8"

    temp_path: Path | None = None
    try:
        _ = path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode=mode,
            dir=path.parent,
            delete=False,
            suffix=".tmp",
            encoding=encoding,
        ) as f:
            _ = f.write(content)
            temp_path = Path(f.name)

        _ = temp_path.replace(path)

    except OSError as e:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        msg = f"Failed to write file: {e}"
        raise StorageFailureError(msg, path=path, operation="write", cause=e) from e


def read_json(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Read and parse a JSON object from a file.

    Raises:
        StorageFailureError: If the file cannot be read, is not valid JSON,
            or does not contain an object.
    """
    try:
        content = path.read_bytes()
    except OSError as e:
        msg = f"Failed to read file: {e}"
        raise StorageFailureError(msg, path=path, operation="read", cause=e) from e

    try:
        data = orjson.loads(content)
    except orjson.JSONDecodeError as e:
        msg = f"Invalid JSON: {e}"
        raise StorageFailureError(msg, path=path, operation="parse", cause=e) from e

    if not isinstance(data, dict):
        msg = f"Expected JSON object, got {type(data).__name__}"
        raise StorageFailureError(msg, path=path, operation="parse")

    return data


def write_json_atomic(
    path: Path,
    data: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> None:
    """Write a dictionary as indented JSON atomically.

    Raises:
        StorageFailureError: If the write operation fails.
    """
    content = orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS)
    atomic_write(path, content + b"\n")
