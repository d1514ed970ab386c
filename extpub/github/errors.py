from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "release_unavailable",
    "invalid_response",
    "asset_not_found",
    "download_failed",
    "upload_failed",
    "delete_failed",
    "io_error",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
