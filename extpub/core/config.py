"""Typed configuration loading and access.

An optional ``extpub.toml`` at the repository root can provide default
GitHub coordinates and override the project layout:

    [github]
    owner = "uBlockOrigin"
    repo = "uBOL-home"

    [layout]
    build_dir = "dist/build/uBOLite.safari"
    xcode_dir = "platform/mv3/safari/xcode"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_str, get_table

__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "ConfigError",
    "GithubConfig",
    "ProjectLayout",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "extpub.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class GithubConfig:
    owner: str | None = None
    repo: str | None = None


@dataclass(frozen=True, slots=True)
class ProjectLayout:
    """Paths relative to the repository root, plus naming conventions."""

    build_dir: str = "dist/build/uBOLite.safari"
    xcode_dir: str = "platform/mv3/safari/xcode"
    xcode_project: str = "uBlock Origin Lite.xcodeproj"
    patch_script: str = "platform/mv3/safari/patch-extension.js"
    scheme: str = "uBlock Origin Lite ({platform})"
    export_options: str = "exportOptionsAdHoc.{platform}.plist"
    build_prefix: str = "uBOLite"

    def build_path(self, root: Path) -> Path:
        return root / self.build_dir

    def xcode_path(self, root: Path) -> Path:
        return root / self.xcode_dir

    def xcodeproj_path(self, root: Path) -> Path:
        return self.xcode_path(root) / self.xcode_project

    def pbxproj_path(self, root: Path) -> Path:
        return self.xcodeproj_path(root) / "project.pbxproj"

    def patch_script_path(self, root: Path) -> Path:
        return root / self.patch_script

    def scheme_for(self, platform_title: str) -> str:
        """Scheme name for a platform ("iOS", "macOS")."""
        return self.scheme.format(platform=platform_title)

    def export_options_path(self, root: Path, platform: str) -> Path:
        """Export options plist for a platform id ("ios", "macos")."""
        return self.xcode_path(root) / self.export_options.format(platform=platform)


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    github: GithubConfig = field(default_factory=GithubConfig)
    layout: ProjectLayout = field(default_factory=ProjectLayout)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        github: StrDict = get_table(data, "github") or {}
        layout: StrDict = get_table(data, "layout") or {}
        defaults = ProjectLayout()

        return cls(
            github=GithubConfig(
                owner=get_str(github, "owner"),
                repo=get_str(github, "repo"),
            ),
            layout=ProjectLayout(
                build_dir=get_str(layout, "build_dir") or defaults.build_dir,
                xcode_dir=get_str(layout, "xcode_dir") or defaults.xcode_dir,
                xcode_project=get_str(layout, "xcode_project") or defaults.xcode_project,
                patch_script=get_str(layout, "patch_script") or defaults.patch_script,
                scheme=get_str(layout, "scheme") or defaults.scheme,
                export_options=get_str(layout, "export_options") or defaults.export_options,
                build_prefix=get_str(layout, "build_prefix") or defaults.build_prefix,
            ),
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file."""
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return Ok(Config.from_dict(result.value))


def load_config_or_default(repo_root: Path) -> Result[Config, ConfigError]:
    """Load `<repo_root>/extpub.toml`, or the default config when it is absent.

    A file that exists but is malformed is still an error.
    """
    path = repo_root / CONFIG_FILENAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
