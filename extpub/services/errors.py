from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from extpub.core.errors import ErrorCode

PublishErrorKind = Literal[
    "missing_input",
    "invalid_input",
    "release_failed",
    "invalid_manifest",
    "tool_missing",
    "tool_failed",
    "io_error",
]


@dataclass(frozen=True, slots=True)
class PublishError:
    kind: PublishErrorKind
    message: str
    hint: str | None = None

    @property
    def exit_code(self) -> ErrorCode:
        match self.kind:
            case "tool_missing":
                return ErrorCode.ENV_ERROR
            case "tool_failed":
                return ErrorCode.BUILD_ERROR
            case "io_error":
                return ErrorCode.IO_ERROR
            case _:
                return ErrorCode.USER_ERROR
