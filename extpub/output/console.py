"""Console output abstraction.

Every progress line and diagnostic of a publish run goes through
ConsoleProtocol. The CLI wires in RichConsole; tests use MockConsole and
assert on what would have been printed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Protocol

__all__ = [
    "ConsoleProtocol",
    "Level",
    "Line",
    "MockConsole",
    "RichConsole",
]

Level = Literal["info", "success", "warning", "error", "hint", "header", "detail"]


class ConsoleProtocol(Protocol):
    """What a publish run may say, independent of how it is rendered."""

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def hint(self, message: str) -> None:
        """Dimmed follow-up to an error."""
        ...

    def header(self, message: str) -> None: ...

    def detail(self, label: str, value: object) -> None:
        """Print a `label: "value"` line, used for the run summary."""
        ...


def quoted(value: object) -> str:
    return f'"{value}"'


class RichConsole:
    """Console implementation using Rich."""

    _PREFIXES: dict[Level, str] = {
        "info": "[cyan]info:[/cyan]",
        "success": "[green]OK[/green]",
        "warning": "[yellow]warning:[/yellow]",
        "error": "[red bold]error:[/red bold]",
        "hint": "[dim]hint:[/dim]",
    }

    def __init__(self, *, stderr: bool = False) -> None:
        # Rich is only needed once something is printed.
        from rich.console import Console

        self._console = Console(stderr=stderr, highlight=False)

    def _prefixed(self, level: Level, message: str) -> None:
        self._console.print(self._PREFIXES[level], self._escape(message))

    def info(self, message: str) -> None:
        self._prefixed("info", message)

    def success(self, message: str) -> None:
        self._prefixed("success", message)

    def warning(self, message: str) -> None:
        self._prefixed("warning", message)

    def error(self, message: str) -> None:
        self._prefixed("error", message)

    def hint(self, message: str) -> None:
        self._prefixed("hint", message)

    def header(self, message: str) -> None:
        self._console.print(f"\n[blue bold]{self._escape(message)}[/blue bold]")

    def detail(self, label: str, value: object) -> None:
        self._console.print(f"[dim]{self._escape(label)}:[/dim] {self._escape(quoted(value))}")

    @staticmethod
    def _escape(text: str) -> str:
        # Asset names like "uBOLite_[beta].zip" must not be read as markup.
        from rich.markup import escape

        return escape(text)


@dataclass(frozen=True, slots=True)
class Line:
    """One line captured by MockConsole, rendered without styling."""

    level: Level
    text: str


@dataclass
class MockConsole:
    """Console implementation that captures output for testing."""

    lines: list[Line] = field(default_factory=lambda: list[Line]())

    def info(self, message: str) -> None:
        self.lines.append(Line("info", f"info: {message}"))

    def success(self, message: str) -> None:
        self.lines.append(Line("success", f"OK {message}"))

    def warning(self, message: str) -> None:
        self.lines.append(Line("warning", f"warning: {message}"))

    def error(self, message: str) -> None:
        self.lines.append(Line("error", f"error: {message}"))

    def hint(self, message: str) -> None:
        self.lines.append(Line("hint", f"hint: {message}"))

    def header(self, message: str) -> None:
        self.lines.append(Line("header", message))

    def detail(self, label: str, value: object) -> None:
        self.lines.append(Line("detail", f"{label}: {quoted(value)}"))

    # Test helpers

    @property
    def messages(self) -> list[str]:
        return [line.text for line in self.lines]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(line.level == "error" for line in self.lines)

    def has_warning(self) -> bool:
        return any(line.level == "warning" for line in self.lines)

    def find(self, substring: str) -> list[Line]:
        """All captured lines containing substring."""
        return [line for line in self.lines if substring in line.text]
