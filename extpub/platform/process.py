"""Running the external build tools.

unzip, node, xcodebuild and zip are started here and nowhere else. Their
output goes straight to the terminal: xcodebuild in particular is long
and only useful while it runs.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from extpub.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run_tool"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A tool that could not start (returncode -1) or exited non-zero.

    Attributes:
        command: Argument list as given.
        returncode: Exit status, or -1 when the executable could not be started.
        reason: OS error text when the tool never started.
    """

    command: tuple[str, ...]
    returncode: int
    reason: str = ""

    @property
    def started(self) -> bool:
        return self.returncode != -1

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def run_tool(cmd: list[str], cwd: Path) -> Result[None, ProcessError]:
    """Run cmd in cwd and wait for it."""
    try:
        proc = subprocess.run(cmd, cwd=str(cwd), check=False)
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, reason=str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(command=tuple(cmd), returncode=proc.returncode))
    return Ok(None)
