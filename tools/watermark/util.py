from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def write_bytes_atomic(path: Path, data: bytes) -> None:
    """Replace the file at `path` with `data` without exposing a half-written file.

    Symlinks are followed so the link target is edited, and the existing file's
    permission bits carry over to the replacement.
    """

    path = path.resolve()
    ensure_dir(path.parent)
    with tempfile.NamedTemporaryFile(
        "wb",
        delete=False,
        dir=path.parent,
        prefix=path.name + ".",
        suffix=".tmp",
    ) as f:
        f.write(data)
        tmp_name = f.name
    try:
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except OSError:
        os.unlink(tmp_name)
        raise
