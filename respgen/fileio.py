"""
Whole-file JSON reads and atomic writes.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from .errors import PersistenceFailure

PathLike = Union[str, Path]


def ensure_dir_exists(filepath: PathLike) -> None:
    """Create the parent directory of filepath."""
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)


def write_json_atomic(filepath: PathLike, data: Any) -> None:
    """
    Write JSON through a temp file in the same directory, then os.replace().

    A crash mid-write leaves either the old or the new content.

    Raises:
        PersistenceFailure: If the file cannot be written
    """
    path = Path(filepath)
    tmp_path = None
    try:
        ensure_dir_exists(path)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix='.tmp')
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        raise PersistenceFailure(f"Cannot write {path}: {e}") from e


def write_bytes_atomic(filepath: PathLike, data: bytes) -> None:
    """Atomically write raw bytes (same contract as write_json_atomic)."""
    path = Path(filepath)
    tmp_path = None
    try:
        ensure_dir_exists(path)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix='.tmp')
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        raise PersistenceFailure(f"Cannot write {path}: {e}") from e


def read_json(filepath: PathLike) -> Any:
    """Read a JSON file. Raises FileNotFoundError / ValueError as json does."""
    with open(filepath, 'r') as f:
        return json.load(f)
