"""Home directory lookup and path containment checks.

The secrets and repository locators walk upward from the working directory
and must stop once they leave the user's home directory.
"""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path

__all__ = ["home", "is_within", "clear_caches"]


@lru_cache(maxsize=1)
def home() -> Path:
    """Get user's home directory.

    Uses USERPROFILE on Windows, HOME elsewhere, then falls back to
    Path.home().
    """
    if sys.platform == "win32":
        userprofile = os.environ.get("USERPROFILE")
        if userprofile:
            return Path(userprofile)
    else:
        home_env = os.environ.get("HOME")
        if home_env:
            return Path(home_env)

    return Path.home()


def is_within(path: Path, ancestor: Path) -> bool:
    """Return True if path is ancestor or lies below it."""
    return path == ancestor or ancestor in path.parents


def clear_caches() -> None:
    """Clear the cached home directory (tests change HOME)."""
    home.cache_clear()
