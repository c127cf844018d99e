"""JSON file storage for activity summaries and detail documents."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def read_json(path: str | Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def read_json_default(path: str | Path, default: Any = None) -> Any:
    """Load JSON from ``path``, returning ``default`` if the file does not exist.

    Other I/O and decoding errors propagate.
    """
    try:
        return read_json(path)
    except FileNotFoundError:
        return default


def dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def write_json_path(path: str | Path, data: Any) -> Path:
    """Write ``data`` as indented JSON, creating parent directories.

    The document is written to a temporary file next to the target and moved
    into place, so readers never observe a partially written file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(dump_json(data))
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target


__all__ = ["dump_json", "read_json", "read_json_default", "write_json_path"]
