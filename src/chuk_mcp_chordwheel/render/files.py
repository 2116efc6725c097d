"""
File helpers shared by the WAV and MIDI exporters.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

_UNSAFE = re.compile(r"[^a-z0-9]+")


def sanitize_filename(name: str, default: str = "untitled") -> str:
    """Lowercase, with runs of anything but letters and digits turned into '_'."""
    cleaned = _UNSAFE.sub("_", name.lower()).strip("_")
    return cleaned or default


def write_atomic(path: Path, data: bytes) -> Path:
    """
    Write bytes so the target either appears complete or not at all.

    Data goes to a temporary file in the same directory first and is
    then moved into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path
