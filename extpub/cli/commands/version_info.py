from __future__ import annotations

from pathlib import Path

import typer

from extpub.cli._helpers import exit_with_error
from extpub.core.errors import ErrorCode
from extpub.core.manifest import load_manifest
from extpub.core.result import Err
from extpub.output.console import RichConsole
from extpub.xcode.version import derive_project_version


def version_info(
    manifest: Path = typer.Argument(..., help="Path to the extension manifest.json"),
) -> None:
    """Show the Xcode versions a manifest would produce, without patching."""
    console = RichConsole()

    loaded = load_manifest(manifest)
    if isinstance(loaded, Err):
        exit_with_error(loaded.error, console, int(ErrorCode.IO_ERROR))

    derived = derive_project_version(loaded.value.version)
    if isinstance(derived, Err):
        exit_with_error(derived.error, console, int(ErrorCode.USER_ERROR))

    console.detail("MARKETING_VERSION", loaded.value.version)
    console.detail("CURRENT_PROJECT_VERSION", derived.value)
