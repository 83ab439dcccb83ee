"""
Input/output helpers
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def load_json(path: Path) -> Any:
    """
    Load JSON from disk

    Parameters
    ----------
    path
        Path from which to load

    Returns
    -------
    :
        Loaded data

    Raises
    ------
    json.JSONDecodeError
        The file does not contain valid JSON
    """
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def write_json(obj: Any, path: Path) -> Path:
    """
    Write JSON to disk

    Parent directories are created if needed.

    Parameters
    ----------
    obj
        Object to write

    path
        Path in which to write

    Returns
    -------
    :
        Path in which the data was written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(obj, fh, indent=2)

    return path


def get_file_size_mb(path: Path) -> float:
    """
    Get the size of a file in megabytes
    """
    return Path(path).stat().st_size / 1024 / 1024
