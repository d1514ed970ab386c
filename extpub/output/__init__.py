"""Output abstraction layer."""

from .console import ConsoleProtocol, Level, Line, MockConsole, RichConsole

__all__ = [
    "ConsoleProtocol",
    "Level",
    "Line",
    "MockConsole",
    "RichConsole",
]
