"""Core domain types and logic."""

from .config import Config, ConfigError, ProjectLayout, load_config, load_config_or_default
from .errors import ErrorCode
from .locate import LocateError, Secrets, find_repo_root, find_secrets_file, load_secrets
from .manifest import ExtensionManifest, ManifestError, load_manifest
from .result import Err, Ok, Result

__all__ = [
    # config
    "Config",
    "ConfigError",
    "ProjectLayout",
    "load_config",
    "load_config_or_default",
    # errors
    "ErrorCode",
    # locate
    "LocateError",
    "Secrets",
    "find_repo_root",
    "find_secrets_file",
    "load_secrets",
    # manifest
    "ExtensionManifest",
    "ManifestError",
    "load_manifest",
    # result
    "Err",
    "Ok",
    "Result",
]
