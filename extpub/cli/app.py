from __future__ import annotations

import typer

from extpub import __version__
from extpub.cli.commands.publish import publish
from extpub.cli.commands.version_info import version_info

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command()(publish)
app.command("version-info")(version_info)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Publish Safari builds of a browser extension from GitHub releases."""


def main() -> None:
    app()
