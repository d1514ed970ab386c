"""Platform layer: home directory, tool execution, file writes."""

from .files import atomic_write_text, replace_tree
from .paths import clear_caches, home, is_within
from .process import ProcessError, run_tool

__all__ = [
    "ProcessError",
    "atomic_write_text",
    "clear_caches",
    "home",
    "is_within",
    "replace_tree",
    "run_tool",
]
