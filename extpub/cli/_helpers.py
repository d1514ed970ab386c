"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn, Protocol

import typer

from extpub.output.console import ConsoleProtocol


class _Diagnostic(Protocol):
    @property
    def message(self) -> str: ...


def exit_with_error(
    error: _Diagnostic,
    console: ConsoleProtocol,
    code: int,
) -> NoReturn:
    """Print a diagnostic (plus its hint, if any) and exit with code."""
    console.error(error.message)
    hint: str | None = getattr(error, "hint", None)
    if hint:
        console.hint(hint)
    raise typer.Exit(code=code)
