"""Upward directory search for the secrets file and the repository root.

Both searches start at the working directory and walk toward the filesystem
root, stopping once the directory being searched is no longer inside the
user's home directory.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from extpub.platform.paths import home, is_within

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str

__all__ = [
    "SECRETS_FILENAME",
    "LocateError",
    "Secrets",
    "find_repo_root",
    "find_secrets_file",
    "find_upward",
    "load_secrets",
]

SECRETS_FILENAME = "ubo_secrets"


@dataclass(frozen=True, slots=True)
class LocateError:
    """Error when a located file exists but cannot be used."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class Secrets:
    """Credentials loaded from the secrets file.

    Attributes:
        values: Every string entry of the JSON object.
        path: File the secrets were read from.
    """

    values: dict[str, str]
    path: Path

    @property
    def github_token(self) -> str | None:
        return self.values.get("github_token") or None

    def __repr__(self) -> str:
        # Never print token values.
        return f"Secrets(keys={sorted(self.values)!r}, path={self.path!r})"


def _walk(start: Path, boundary: Path) -> Iterator[Path]:
    yield start
    current = start
    while current.parent != current:
        current = current.parent
        if not is_within(current, boundary):
            return
        yield current


def find_upward(
    predicate: Callable[[Path], bool],
    *,
    start: Path | None = None,
    boundary: Path | None = None,
) -> Path | None:
    """Return the first directory, from start upward, satisfying predicate.

    The start directory is always checked. The search then gives up once it
    leaves boundary (the home directory by default).
    """
    search_start = (start or Path.cwd()).resolve()
    limit = (boundary or home()).resolve()
    for directory in _walk(search_start, limit):
        if predicate(directory):
            return directory
    return None


def find_secrets_file(*, start: Path | None = None, boundary: Path | None = None) -> Path | None:
    found = find_upward(
        lambda d: (d / SECRETS_FILENAME).is_file(),
        start=start,
        boundary=boundary,
    )
    if found is None:
        return None
    return found / SECRETS_FILENAME


def find_repo_root(*, start: Path | None = None, boundary: Path | None = None) -> Path | None:
    """Return the directory holding a `.git` entry (a worktree has a `.git` file)."""
    return find_upward(lambda d: (d / ".git").exists(), start=start, boundary=boundary)


def _parse_secrets(path: Path) -> Result[StrDict, LocateError]:
    try:
        data_obj: object = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        return Err(LocateError(f"Cannot read secrets: {e}", path=path))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return Err(LocateError(f"Invalid JSON in secrets file: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(LocateError("Secrets file must contain a JSON object", path=path))
    return Ok(data)


def load_secrets(
    *, start: Path | None = None, boundary: Path | None = None
) -> Result[Secrets | None, LocateError]:
    """Find and load the secrets file.

    Returns:
        Ok(None) when no secrets file exists within the boundary,
        Ok(Secrets) when one was loaded, Err(LocateError) when it is unusable.
    """
    path = find_secrets_file(start=start, boundary=boundary)
    if path is None:
        return Ok(None)

    result = _parse_secrets(path)
    if isinstance(result, Err):
        return result

    values: dict[str, str] = {}
    for key in result.value:
        value = get_str(result.value, key)
        if value is not None:
            values[key] = value
    return Ok(Secrets(values=values, path=path))
