"""Filesystem helpers for log directories and atomic writes."""

import os
import tempfile
from pathlib import Path
from typing import Union

from ..core.errors import AtomicWriteError, FilesystemError
from ..core.log import get_logger

logger = get_logger(__name__)


def atomic_write(path: Path, data: Union[str, bytes], mode: str = "w") -> None:
    """Atomically write data to a file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    is_binary = isinstance(data, bytes) or "b" in mode
    write_mode = "wb" if is_binary else "w"
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            mode=write_mode,
            dir=path.parent,
            delete=False,
            prefix=f".{path.name}.tmp",
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(data)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        tmp_path.replace(path)
        logger.debug("Atomically wrote %s %s to %s", len(data),
                     "bytes" if is_binary else "chars", path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass
        raise AtomicWriteError(f"Failed to atomically write to {path}: {e}") from e


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists and return it."""
    try:
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        return path
    except PermissionError as e:
        raise FilesystemError(f"Permission denied creating directory {path}") from e
    except OSError as e:
        raise FilesystemError(f"Error creating directory {path}: {e}") from e


def append_bytes(path: Path, data: bytes) -> None:
    """Append to ``path``, creating it and its parents as needed."""
    path = Path(path)
    ensure_dir(path.parent)
    try:
        with open(path, "ab") as f:
            f.write(data)
    except OSError as e:
        raise FilesystemError(f"Error appending to {path}: {e}") from e
