"""Xcode version fields derived from the extension manifest version.

Extension versions look like ``2025.1114.1723``: the year, then the month and
day packed as ``MMDD`` (without leading zero), then the time of day packed as
``HHMM``. App Store packaging requires ``CURRENT_PROJECT_VERSION`` to grow
strictly, so the project version is derived from that timestamp:

- major: whole days elapsed since the first Safari build (``BUILD_ORIGIN``)
- minor: the manifest's ``HHMM`` field, as written

``MARKETING_VERSION`` is the manifest version itself.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo
from pathlib import Path

from extpub.core.manifest import ExtensionManifest
from extpub.core.result import Err, Ok, Result
from extpub.platform.files import atomic_write_text

__all__ = [
    "BUILD_ORIGIN",
    "ManifestVersion",
    "ProjectVersion",
    "VersionError",
    "derive_project_version",
    "manifest_timestamp",
    "parse_manifest_version",
    "patch_marketing_version",
    "patch_project_version",
    "patch_xcode_project",
]

BUILD_ORIGIN = datetime(2022, 9, 6, 17, 47, 52, tzinfo=UTC)

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")
_PROJECT_VERSION_RE = re.compile(r"\bCURRENT_PROJECT_VERSION = [^;]*;")
_MARKETING_VERSION_RE = re.compile(r"\bMARKETING_VERSION = [^;]*;")


@dataclass(frozen=True, slots=True)
class VersionError:
    message: str
    version: str | None = None
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ManifestVersion:
    """A manifest version split into its three numeric fields."""

    year: int
    monthday: int
    dayminutes: int
    dayminutes_text: str

    @property
    def month(self) -> int:
        return self.monthday // 100

    @property
    def day(self) -> int:
        return self.monthday % 100

    @property
    def hours(self) -> int:
        return self.dayminutes // 100

    @property
    def minutes(self) -> int:
        return self.dayminutes % 100


@dataclass(frozen=True, slots=True)
class ProjectVersion:
    major: int
    minor: str

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


def parse_manifest_version(version: str) -> Result[ManifestVersion, VersionError]:
    invalid = Err(
        VersionError(
            message=f"invalid manifest version: {version!r}",
            version=version,
        )
    )
    m = _VERSION_RE.fullmatch(version)
    if m is None:
        return invalid
    try:
        year, monthday, dayminutes = (int(field) for field in m.groups())
    except ValueError:
        # More digits than int() accepts.
        return invalid
    return Ok(
        ManifestVersion(
            year=year,
            monthday=monthday,
            dayminutes=dayminutes,
            dayminutes_text=m.group(3),
        )
    )


def manifest_timestamp(
    version: ManifestVersion, *, tz: tzinfo = UTC
) -> Result[datetime, VersionError]:
    """Calendar timestamp encoded in a manifest version.

    Fields outside their calendar range (month 13, day 0, hour 24...) are an
    error rather than an exception.
    """
    try:
        stamp = datetime(
            version.year,
            version.month,
            version.day,
            version.hours,
            version.minutes,
            tzinfo=tz,
        )
    except (ValueError, OverflowError) as e:
        return Err(
            VersionError(
                message=f"manifest version does not encode a valid date: {e}",
                version=f"{version.year}.{version.monthday}.{version.dayminutes_text}",
            )
        )
    return Ok(stamp)


def derive_project_version(
    version: str, *, tz: tzinfo = UTC
) -> Result[ProjectVersion, VersionError]:
    parsed = parse_manifest_version(version)
    if isinstance(parsed, Err):
        return parsed

    stamp = manifest_timestamp(parsed.value, tz=tz)
    if isinstance(stamp, Err):
        return stamp

    days = (stamp.value - BUILD_ORIGIN) // timedelta(days=1)
    return Ok(ProjectVersion(major=days, minor=parsed.value.dayminutes_text))


def patch_project_version(text: str, project_version: ProjectVersion) -> str:
    replacement = f"CURRENT_PROJECT_VERSION = {project_version};"
    return _PROJECT_VERSION_RE.sub(lambda _m: replacement, text)


def patch_marketing_version(text: str, version: str) -> str:
    replacement = f"MARKETING_VERSION = {version};"
    return _MARKETING_VERSION_RE.sub(lambda _m: replacement, text)


def patch_xcode_project(
    pbxproj: Path, manifest: ExtensionManifest, *, tz: tzinfo = UTC
) -> Result[ProjectVersion, VersionError]:
    """Rewrite the version fields of a project.pbxproj in place.

    Returns:
        Ok with the project version written, or Err if the manifest version
        is malformed or the file cannot be read or written. The file is left
        untouched on error.
    """
    project_version = derive_project_version(manifest.version, tz=tz)
    if isinstance(project_version, Err):
        return project_version

    try:
        text = pbxproj.read_text(encoding="utf-8")
    except OSError as e:
        return Err(VersionError(message=f"cannot read Xcode project: {e}", path=pbxproj))

    text = patch_marketing_version(text, manifest.version)
    text = patch_project_version(text, project_version.value)

    try:
        atomic_write_text(pbxproj, text)
    except OSError as e:
        return Err(VersionError(message=f"cannot write Xcode project: {e}", path=pbxproj))
    return project_version
