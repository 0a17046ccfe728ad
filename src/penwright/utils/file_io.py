"""File helpers used by document persistence and settings."""

from __future__ import annotations

import codecs
import json
import os
import tempfile
from pathlib import Path
from typing import Any

__all__ = ["read_text", "write_text", "write_json"]


def read_text(path: Path | str, *, encoding: str = "utf-8") -> str:
    """Read a text file, dropping a leading UTF-8 byte order mark.

    Line endings are preserved exactly so change tracking sees what the
    user's editor wrote.
    """

    raw = Path(path).read_bytes()
    if raw.startswith(codecs.BOM_UTF8):
        raw = raw[len(codecs.BOM_UTF8) :]
    return raw.decode(encoding)


def write_text(path: Path | str, content: str, *, encoding: str = "utf-8") -> Path:
    """Write *content* atomically via a temp file in the target directory."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(descriptor, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            os.unlink(tmp_name)
    return target


def write_json(path: Path | str, payload: Any) -> Path:
    return write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
