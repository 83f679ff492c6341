"""Small file helpers shared by the pipeline stages."""

from __future__ import annotations

import os
from pathlib import Path


def write_file(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Create or truncate ``path`` and write ``data`` to it.

    ``mode`` only applies when the file is created.
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as target:
        target.write(data)


def copy_file(src: Path, dst: Path) -> None:
    """Copy ``src`` to ``dst`` by reading it fully and writing it back."""
    write_file(dst, src.read_bytes())
