from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from extpub.cli._helpers import exit_with_error
from extpub.core.config import Config, load_config_or_default
from extpub.core.errors import ErrorCode
from extpub.core.locate import Secrets, find_repo_root, load_secrets
from extpub.core.result import Err
from extpub.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    secrets: Secrets | None
    repo_root: Path | None
    config: Config
    console: ConsoleProtocol


def build_context(console: ConsoleProtocol | None = None) -> CLIContext:
    """Resolve secrets, repository root and extpub.toml once per invocation.

    A missing secrets file or repository is not fatal here; the publish
    workflow reports it. An unreadable secrets or config file is.
    """
    console = console or RichConsole()

    secrets_result = load_secrets()
    if isinstance(secrets_result, Err):
        exit_with_error(secrets_result.error, console, int(ErrorCode.USER_ERROR))
    secrets = secrets_result.value
    if secrets is not None:
        console.info(f"Found secrets in {secrets.path}")

    repo_root = find_repo_root()

    config = Config()
    if repo_root is not None:
        config_result = load_config_or_default(repo_root)
        if isinstance(config_result, Err):
            exit_with_error(config_result.error, console, int(ErrorCode.USER_ERROR))
        config = config_result.value

    return CLIContext(
        secrets=secrets,
        repo_root=repo_root,
        config=config,
        console=console,
    )
