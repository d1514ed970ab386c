"""Xcode project helpers."""

from .version import (
    BUILD_ORIGIN,
    ProjectVersion,
    VersionError,
    derive_project_version,
    patch_xcode_project,
)

__all__ = [
    "BUILD_ORIGIN",
    "ProjectVersion",
    "VersionError",
    "derive_project_version",
    "patch_xcode_project",
]
