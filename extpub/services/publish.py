"""Publish workflow: release asset in, Safari builds out.

Stages, in order, each aborting the run on failure:

1. validate options
2. resolve the source asset on the release
3. download and unzip it into a fresh temp directory
4. replace the build directory with the unpacked package
5. run the patch script on the build directory
6. read the patched manifest
7. write manifest-derived versions into the Xcode project
8. archive (and, when publishing, export) each requested platform
9. when publishing to GitHub: zip, upload, then delete the source asset
10. remove the temp directory unless asked to keep it

Nothing is rolled back: an asset uploaded before a later failure stays on
the release.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

from extpub.core.config import ProjectLayout
from extpub.core.locate import Secrets
from extpub.core.manifest import ExtensionManifest, load_manifest
from extpub.core.result import Err, Ok, Result
from extpub.github.errors import ReleaseError
from extpub.github.http import HttpClient, RealHttpClient
from extpub.github.releases import AssetInfo, ReleaseClient
from extpub.output.console import ConsoleProtocol
from extpub.platform.files import replace_tree
from extpub.platform.process import ProcessError, run_tool
from extpub.xcode.version import ProjectVersion, patch_xcode_project

from .errors import PublishError

__all__ = [
    "PLATFORMS",
    "PUBLISH_GITHUB",
    "BuildPlatform",
    "CommandRunner",
    "PublishOptions",
    "PublishReport",
    "PublishWorkflow",
    "build_name_prefix",
    "validate_options",
]

PUBLISH_GITHUB = "github"
ZIP_MIME_TYPE = "application/zip"

CommandRunner = Callable[[list[str], Path], Result[None, ProcessError]]


@dataclass(frozen=True, slots=True)
class BuildPlatform:
    """An Xcode destination platform."""

    id: Literal["ios", "macos"]
    title: str

    @property
    def destination(self) -> str:
        return f"generic/platform={self.title}"


PLATFORMS: dict[str, BuildPlatform] = {
    "ios": BuildPlatform(id="ios", title="iOS"),
    "macos": BuildPlatform(id="macos", title="macOS"),
}


@dataclass(frozen=True, slots=True)
class PublishOptions:
    """Everything a publish run needs, resolved once at process start."""

    owner: str | None = None
    repo: str | None = None
    tag: str | None = None
    asset: str | None = None
    ios: bool = False
    macos: bool = False
    publish: str | None = None
    cleanup: bool = True
    repo_root: Path | None = None
    secrets: Secrets | None = None
    layout: ProjectLayout = field(default_factory=ProjectLayout)
    temp_root: Path | None = None

    @property
    def platforms(self) -> tuple[BuildPlatform, ...]:
        selected: list[BuildPlatform] = []
        if self.ios:
            selected.append(PLATFORMS["ios"])
        if self.macos:
            selected.append(PLATFORMS["macos"])
        return tuple(selected)

    @property
    def publish_to_github(self) -> bool:
        return self.publish == PUBLISH_GITHUB


@dataclass(frozen=True, slots=True)
class _Validated:
    owner: str
    repo: str
    tag: str
    asset: str
    token: str
    repo_root: Path


@dataclass(frozen=True, slots=True)
class PublishReport:
    asset: AssetInfo
    version: str
    project_version: ProjectVersion
    temp_dir: Path
    built: tuple[str, ...] = ()
    uploaded: tuple[str, ...] = ()
    source_deleted: bool = False
    temp_dir_removed: bool = False


def _missing(message: str) -> Err[PublishError]:
    return Err(PublishError(kind="missing_input", message=message))


def validate_options(options: PublishOptions) -> Result[_Validated, PublishError]:
    """Check preconditions in a fixed order; the first one missing wins."""
    if options.secrets is None:
        return _missing("Need secrets")
    token = options.secrets.github_token
    if not token:
        return _missing("Need GitHub token")
    if not options.owner:
        return _missing("Need GitHub owner")
    if not options.repo:
        return _missing("Need GitHub repo")
    if not options.tag:
        return _missing("Need GitHub tag")
    if options.repo_root is None:
        return _missing("Need local repo root")
    if not options.asset:
        return _missing("Need asset=[...]")
    if options.publish is not None and not options.publish_to_github:
        return Err(
            PublishError(
                kind="invalid_input",
                message=f"Unknown publish target: {options.publish}",
                hint=f"Supported: publish={PUBLISH_GITHUB}",
            )
        )
    return Ok(
        _Validated(
            owner=options.owner,
            repo=options.repo,
            tag=options.tag,
            asset=options.asset,
            token=token,
            repo_root=options.repo_root,
        )
    )


def _release_failed(error: ReleaseError) -> Err[PublishError]:
    return Err(PublishError(kind="release_failed", message=error.message, hint=error.hint))


class PublishWorkflow:
    """Runs one publish, start to finish."""

    def __init__(
        self,
        options: PublishOptions,
        console: ConsoleProtocol,
        *,
        http: HttpClient | None = None,
        runner: CommandRunner = run_tool,
    ) -> None:
        self._options = options
        self._console = console
        self._http = http
        self._runner = runner

    def run(self) -> Result[PublishReport, PublishError]:
        validated = validate_options(self._options)
        if isinstance(validated, Err):
            return validated
        v = validated.value
        layout = self._options.layout

        client = ReleaseClient(
            self._http or RealHttpClient(),
            owner=v.owner,
            repo=v.repo,
            tag=v.tag,
            token=v.token,
        )

        self._console.header(f"Publish {v.asset} from {v.owner}/{v.repo}")
        self._console.info(f"Fetching release info for {v.tag} from GitHub")
        asset_result = client.get_asset_info(v.asset)
        if isinstance(asset_result, Err):
            return _release_failed(asset_result.error)
        asset = asset_result.value

        self._console.detail("GitHub owner", v.owner)
        self._console.detail("GitHub repo", v.repo)
        self._console.detail("Release tag", v.tag)
        self._console.detail("Release asset", asset.name)
        self._console.detail("Local repo root", v.repo_root)

        self._console.info(f"Fetching {asset.url}")
        downloaded = client.download_asset(asset, temp_root=self._options.temp_root)
        if isinstance(downloaded, Err):
            return _release_failed(downloaded.error)
        archive = downloaded.value
        temp_dir = archive.parent
        self._console.info(f"Asset saved at {archive}")

        staged = self._prepare_package(archive, v.repo_root, layout)
        if isinstance(staged, Err):
            self._report_kept(temp_dir)
            return staged
        manifest, project_version = staged.value

        report = PublishReport(
            asset=asset,
            version=manifest.version,
            project_version=project_version,
            temp_dir=temp_dir,
        )

        built = self._build_platforms(manifest, temp_dir, v.repo_root, layout)
        if isinstance(built, Err):
            self._report_kept(temp_dir)
            return built
        report = replace(report, built=built.value)

        if self._options.publish_to_github:
            published = self._publish(client, asset, manifest, temp_dir, layout, built.value)
            if isinstance(published, Err):
                self._report_kept(temp_dir)
                return published
            uploaded, deleted = published.value
            report = replace(report, uploaded=uploaded, source_deleted=deleted)

        if self._options.cleanup:
            self._console.info(f"Removing {temp_dir}")
            try:
                shutil.rmtree(temp_dir)
            except OSError as e:
                self._console.warning(f"Could not remove {temp_dir}: {e}")
            else:
                report = replace(report, temp_dir_removed=True)

        self._console.success("Done")
        return Ok(report)

    # -- stages ---------------------------------------------------------------

    def _prepare_package(
        self, archive: Path, repo_root: Path, layout: ProjectLayout
    ) -> Result[tuple[ExtensionManifest, ProjectVersion], PublishError]:
        temp_dir = archive.parent
        unpack_dir = temp_dir / Path(archive.name).stem
        try:
            unpack_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(PublishError(kind="io_error", message=f"Cannot create {unpack_dir}: {e}"))

        unzipped = self._exec(["unzip", "-q", str(archive), "-d", str(unpack_dir)], temp_dir)
        if isinstance(unzipped, Err):
            return unzipped

        build_dir = layout.build_path(repo_root)
        self._console.info(f'Copy package files to "{build_dir}"')
        try:
            replace_tree(unpack_dir, build_dir)
        except OSError as e:
            return Err(
                PublishError(kind="io_error", message=f"Cannot populate {build_dir}: {e}")
            )

        self._console.info("Patch extension to pass validation in Apple Store")
        patched = self._exec(
            ["node", str(layout.patch_script_path(repo_root)), f"packageDir={build_dir}"],
            repo_root,
        )
        if isinstance(patched, Err):
            return patched

        manifest_path = build_dir / "manifest.json"
        self._console.info(f"Read manifest {manifest_path}")
        manifest = load_manifest(manifest_path)
        if isinstance(manifest, Err):
            return Err(PublishError(kind="invalid_manifest", message=manifest.error.message))

        self._console.info("Patch Xcode project with manifest version")
        project_version = patch_xcode_project(layout.pbxproj_path(repo_root), manifest.value)
        if isinstance(project_version, Err):
            error = project_version.error
            if error.path is not None:
                return Err(PublishError(kind="io_error", message=error.message))
            return Err(PublishError(kind="invalid_manifest", message=error.message))
        self._console.detail("Marketing version", manifest.value.version)
        self._console.detail("Project version", project_version.value)

        return Ok((manifest.value, project_version.value))

    def _build_platforms(
        self,
        manifest: ExtensionManifest,
        temp_dir: Path,
        repo_root: Path,
        layout: ProjectLayout,
    ) -> Result[tuple[str, ...], PublishError]:
        prefix = build_name_prefix(layout, manifest)
        xcodeproj = layout.xcodeproj_path(repo_root)
        built: list[str] = []

        for platform in self._options.platforms:
            name = f"{prefix}.{platform.id}"
            archive_path = temp_dir / f"{name}.xcarchive"

            self._console.info(f"Building archive {name}")
            archived = self._exec(
                [
                    "xcodebuild",
                    "clean",
                    "archive",
                    "-configuration",
                    "release",
                    "-destination",
                    platform.destination,
                    "-project",
                    str(xcodeproj),
                    "-scheme",
                    layout.scheme_for(platform.title),
                    "-archivePath",
                    str(archive_path),
                ],
                repo_root,
            )
            if isinstance(archived, Err):
                return archived

            if self._options.publish_to_github:
                self._console.info(f"Building app from {archive_path.name}")
                exported = self._exec(
                    [
                        "xcodebuild",
                        "-exportArchive",
                        "-archivePath",
                        str(archive_path),
                        "-exportPath",
                        str(temp_dir / name),
                        "-exportOptionsPlist",
                        str(layout.export_options_path(repo_root, platform.id)),
                    ],
                    repo_root,
                )
                if isinstance(exported, Err):
                    return exported

            built.append(platform.id)

        return Ok(tuple(built))

    def _publish(
        self,
        client: ReleaseClient,
        source: AssetInfo,
        manifest: ExtensionManifest,
        temp_dir: Path,
        layout: ProjectLayout,
        built: tuple[str, ...],
    ) -> Result[tuple[tuple[str, ...], bool], PublishError]:
        if not built:
            self._console.warning("Nothing was built; skipping upload (add ios and/or macos)")
            return Ok(((), False))

        prefix = build_name_prefix(layout, manifest)
        uploaded: list[str] = []
        for platform_id in built:
            name = f"{prefix}.{platform_id}"
            zip_name = f"{name}.zip"
            zipped = self._exec(["zip", "-qry", zip_name, name], temp_dir)
            if isinstance(zipped, Err):
                return zipped

            zip_path = temp_dir / zip_name
            self._console.info(f'Uploading "{zip_path}" to GitHub...')
            result = client.upload_asset(zip_path, ZIP_MIME_TYPE)
            if isinstance(result, Err):
                return _release_failed(result.error)
            self._console.success(f"Uploaded {zip_name}")
            uploaded.append(zip_name)

        self._console.info(f"Remove {source.name} from GitHub release {client.tag}...")
        deleted = client.delete_asset(source.url)
        if isinstance(deleted, Err):
            self._console.warning(f"{deleted.error.message}: {deleted.error.hint or source.url}")
            return Ok((tuple(uploaded), False))
        if not deleted.value:
            self._console.warning(f"GitHub refused to delete {source.name}")
        return Ok((tuple(uploaded), deleted.value))

    # -- helpers --------------------------------------------------------------

    def _exec(self, cmd: list[str], cwd: Path) -> Result[None, PublishError]:
        result = self._runner(cmd, cwd)
        if isinstance(result, Err):
            error = result.error
            if not error.started:
                return Err(
                    PublishError(
                        kind="tool_missing",
                        message=f"{cmd[0]}: could not run",
                        hint=error.reason or None,
                    )
                )
            return Err(PublishError(kind="tool_failed", message=str(error)))
        return Ok(None)

    def _report_kept(self, temp_dir: Path) -> None:
        self._console.warning(f"Temporary files kept in {temp_dir}")


def build_name_prefix(layout: ProjectLayout, manifest: ExtensionManifest) -> str:
    """`uBOLite_<version>`: base name of archives, exports and zips."""
    return f"{layout.build_prefix}_{manifest.version}"

