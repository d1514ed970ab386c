from __future__ import annotations

import typer

from extpub.cli._helpers import exit_with_error
from extpub.cli.args import parse_tokens, token_flag, token_value
from extpub.cli.context import build_context
from extpub.core.errors import ErrorCode
from extpub.core.result import Err
from extpub.output.console import RichConsole
from extpub.services.publish import PublishOptions, PublishWorkflow


def publish(
    tokens: list[str] | None = typer.Argument(
        None,
        metavar="[NAME=VALUE]...",
        help="Legacy arguments: ghowner=, ghrepo=, ghtag=, asset=, publish=, ios, macos, nocleanup",
        show_default=False,
    ),
    ghowner: str | None = typer.Option(None, "--ghowner", help="GitHub repository owner"),
    ghrepo: str | None = typer.Option(None, "--ghrepo", help="GitHub repository name"),
    ghtag: str | None = typer.Option(None, "--ghtag", help="Release tag"),
    asset: str | None = typer.Option(
        None, "--asset", help="Substring of the release asset to build from"
    ),
    ios: bool = typer.Option(False, "--ios", help="Build the iOS archive"),
    macos: bool = typer.Option(False, "--macos", help="Build the macOS archive"),
    publish_to: str | None = typer.Option(
        None, "--publish", help="Publish target; 'github' uploads to the release"
    ),
    nocleanup: bool = typer.Option(False, "--nocleanup", help="Keep the temp directory"),
) -> None:
    """Build Safari archives from a release asset and optionally publish them."""
    console = RichConsole()

    parsed = parse_tokens(tokens or [])
    if isinstance(parsed, Err):
        console.error(parsed.error)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    args = parsed.value

    ctx = build_context(console)
    options = PublishOptions(
        owner=ghowner or token_value(args, "ghowner") or ctx.config.github.owner,
        repo=ghrepo or token_value(args, "ghrepo") or ctx.config.github.repo,
        tag=ghtag or token_value(args, "ghtag"),
        asset=asset or token_value(args, "asset"),
        ios=ios or token_flag(args, "ios"),
        macos=macos or token_flag(args, "macos"),
        publish=publish_to or token_value(args, "publish"),
        cleanup=not (nocleanup or token_flag(args, "nocleanup")),
        repo_root=ctx.repo_root,
        secrets=ctx.secrets,
        layout=ctx.config.layout,
    )

    result = PublishWorkflow(options, ctx.console).run()
    if isinstance(result, Err):
        exit_with_error(result.error, ctx.console, int(result.error.exit_code))
