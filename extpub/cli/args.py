"""`name=value` command-line tokens.

The publish command accepts the historical token form
(``ghowner=uBlockOrigin ghtag=2025.1114.1723 asset=safari macos``) in
addition to regular options. A bare name is a boolean flag.
"""

from __future__ import annotations

from collections.abc import Iterable

from extpub.core.result import Err, Ok, Result

__all__ = [
    "FLAG_NAMES",
    "KNOWN_NAMES",
    "TokenArgs",
    "parse_tokens",
    "token_flag",
    "token_value",
]

VALUE_NAMES = frozenset({"ghowner", "ghrepo", "ghtag", "asset", "publish"})
FLAG_NAMES = frozenset({"ios", "macos", "nocleanup"})
KNOWN_NAMES = VALUE_NAMES | FLAG_NAMES

_FALSE_WORDS = frozenset({"", "0", "false", "no", "off"})

TokenArgs = dict[str, str | bool]


def parse_tokens(tokens: Iterable[str]) -> Result[TokenArgs, str]:
    """Parse `name=value` / `name` tokens; later tokens override earlier ones."""
    args: TokenArgs = {}
    for token in tokens:
        name, sep, value = token.partition("=")
        if name not in KNOWN_NAMES:
            return Err(f"Unknown argument: {token}")
        if not sep:
            args[name] = True
        elif name in FLAG_NAMES:
            args[name] = value.strip().lower() not in _FALSE_WORDS
        else:
            args[name] = value
    return Ok(args)


def token_value(args: TokenArgs, name: str) -> str | None:
    value = args.get(name)
    if value is True:
        # `publish` with no value: keep it visible so validation can reject it.
        return "true"
    if isinstance(value, str):
        return value or None
    return None


def token_flag(args: TokenArgs, name: str) -> bool:
    return args.get(name) is True
