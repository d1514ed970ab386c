"""File and directory replacement.

Both helpers overwrite something the user's checkout already contains: the
Xcode project file and the extension build directory.
"""

from __future__ import annotations

import os
import shutil
import stat
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "replace_tree"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Replace path with content in one rename.

    An interrupted run never leaves Xcode with a truncated project file. The
    permission bits of an existing file are kept; text is written without
    newline translation.
    """
    mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else None
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


def replace_tree(source: Path, target: Path) -> None:
    """Make target an exact copy of source, discarding what was there.

    Symlinks are copied as links. Raises OSError.
    """
    if target.is_symlink() or target.is_file():
        target.unlink()
    elif target.exists():
        shutil.rmtree(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, target, symlinks=True)
