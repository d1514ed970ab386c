"""Reading the extension's manifest.json."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str

__all__ = ["ExtensionManifest", "ManifestError", "load_manifest"]


@dataclass(frozen=True, slots=True)
class ManifestError:
    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ExtensionManifest:
    """The subset of manifest.json that publishing cares about."""

    version: str
    name: str | None = None
    raw: StrDict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: StrDict) -> ExtensionManifest | None:
        version = get_str(data, "version")
        if version is None:
            return None
        return cls(version=version, name=get_str(data, "name"), raw=data)


def load_manifest(path: Path) -> Result[ExtensionManifest, ManifestError]:
    try:
        data_obj: object = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(ManifestError(f"Manifest not found: {path}", path=path))
    except OSError as e:
        return Err(ManifestError(f"Cannot read manifest: {e}", path=path))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return Err(ManifestError(f"Invalid JSON in manifest: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ManifestError("Manifest root must be a JSON object", path=path))

    manifest = ExtensionManifest.from_dict(data)
    if manifest is None:
        return Err(ManifestError("Manifest has no version", path=path))
    return Ok(manifest)
