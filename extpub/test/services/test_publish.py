"""Tests for extpub.services.publish - the publish workflow."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from extpub.core.config import ProjectLayout
from extpub.core.errors import ErrorCode
from extpub.core.locate import Secrets
from extpub.core.result import Err, Ok, Result
from extpub.github.http import MockHttpClient
from extpub.github.releases import expand_upload_url
from extpub.output.console import MockConsole
from extpub.platform.process import ProcessError
from extpub.services.publish import PublishOptions, PublishWorkflow, validate_options

OWNER = "uBlockOrigin"
REPO = "uBOL-home"
TAG = "2025.1114.1723"
VERSION = "2025.1114.1723"
RELEASE_URL = f"https://api.github.com/repos/{OWNER}/{REPO}/releases/tags/{TAG}"
UPLOAD_TEMPLATE = (
    f"https://uploads.github.com/repos/{OWNER}/{REPO}/releases/42/assets{{?name,label}}"
)
SOURCE_ASSET = "uBOLite_2025.1114.1723.safari.zip"
SOURCE_URL = f"https://api.github.com/repos/{OWNER}/{REPO}/releases/assets/11"

PBXPROJ = "\t\t\t\tCURRENT_PROJECT_VERSION = 1;\n\t\t\t\tMARKETING_VERSION = 1.0;\n"


class FakeRunner:
    """Stands in for unzip, node, xcodebuild and zip."""

    def __init__(self, *, version: str = VERSION, fail: str | None = None, rc: int = 65) -> None:
        self.version = version
        self.fail = fail
        self.rc = rc
        self.calls: list[tuple[list[str], Path]] = []

    def __call__(self, cmd: list[str], cwd: Path) -> Result[None, ProcessError]:
        self.calls.append((cmd, cwd))
        if cmd[0] == self.fail:
            return Err(ProcessError(command=tuple(cmd), returncode=self.rc, reason="x"))

        match cmd[0]:
            case "unzip":
                dest = Path(cmd[cmd.index("-d") + 1])
                (dest / "js").mkdir(parents=True)
                (dest / "manifest.json").write_text(json.dumps({"version": self.version}))
                (dest / "js" / "background.js").write_text("// bg")
            case "xcodebuild" if "-exportArchive" in cmd:
                export = Path(cmd[cmd.index("-exportPath") + 1])
                export.mkdir(parents=True)
                (export / "uBlock Origin Lite.app").mkdir()
            case "zip":
                (cwd / cmd[2]).write_bytes(b"PK" + cmd[3].encode())
            case _:
                pass
        return Ok(None)

    def commands(self, tool: str) -> list[list[str]]:
        return [cmd for cmd, _ in self.calls if cmd[0] == tool]


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    root = tmp_path / "uBlock"
    (root / ".git").mkdir(parents=True)
    pbxproj = ProjectLayout().pbxproj_path(root)
    pbxproj.parent.mkdir(parents=True)
    pbxproj.write_text(PBXPROJ)
    stale = ProjectLayout().build_path(root)
    stale.mkdir(parents=True)
    (stale / "stale.txt").write_text("old build")
    return root


@pytest.fixture
def temp_root(tmp_path: Path) -> Path:
    path = tmp_path / "tmp"
    path.mkdir()
    return path


@pytest.fixture
def http() -> MockHttpClient:
    client = MockHttpClient()
    client.set_json(
        "GET",
        RELEASE_URL,
        {
            "tag_name": TAG,
            "upload_url": UPLOAD_TEMPLATE,
            "assets": [
                {"id": 10, "name": "uBOLite_2025.1114.1723.chromium.zip", "url": "https://x/10"},
                {"id": 11, "name": SOURCE_ASSET, "url": SOURCE_URL},
            ],
        },
    )
    client.set_bytes("GET", SOURCE_URL, b"PK\x03\x04")
    for platform in ("ios", "macos"):
        name = f"uBOLite_{VERSION}.{platform}.zip"
        client.set_json("POST", expand_upload_url(UPLOAD_TEMPLATE, name), {"name": name})
    client.set_bytes("DELETE", SOURCE_URL, b"", status=204)
    return client


@pytest.fixture
def options(repo_root: Path, temp_root: Path, tmp_path: Path) -> PublishOptions:
    return PublishOptions(
        owner=OWNER,
        repo=REPO,
        tag=TAG,
        asset="safari",
        macos=True,
        repo_root=repo_root,
        secrets=Secrets(values={"github_token": "ghp_test"}, path=tmp_path / "ubo_secrets"),
        temp_root=temp_root,
    )


def _workflow(
    options: PublishOptions, http: MockHttpClient, runner: FakeRunner
) -> tuple[PublishWorkflow, MockConsole]:
    console = MockConsole()
    return PublishWorkflow(options, console, http=http, runner=runner), console


class TestValidateOptions:
    @pytest.mark.parametrize(
        ("changes", "message"),
        [
            ({"secrets": None}, "Need secrets"),
            ({"owner": None}, "Need GitHub owner"),
            ({"repo": ""}, "Need GitHub repo"),
            ({"tag": None}, "Need GitHub tag"),
            ({"repo_root": None}, "Need local repo root"),
            ({"asset": None}, "Need asset=[...]"),
        ],
    )
    def test_missing_input(
        self, options: PublishOptions, changes: dict[str, object], message: str
    ) -> None:
        result = validate_options(replace(options, **changes))  # type: ignore[arg-type]
        assert isinstance(result, Err)
        assert result.error.message == message
        assert result.error.kind == "missing_input"
        assert result.error.exit_code == ErrorCode.USER_ERROR

    def test_missing_token(self, options: PublishOptions, tmp_path: Path) -> None:
        no_token = Secrets(values={"other": "x"}, path=tmp_path / "ubo_secrets")
        result = validate_options(replace(options, secrets=no_token))
        assert isinstance(result, Err)
        assert result.error.message == "Need GitHub token"

    def test_order_secrets_first(self) -> None:
        result = validate_options(PublishOptions())
        assert isinstance(result, Err)
        assert result.error.message == "Need secrets"

    def test_unknown_publish_target(self, options: PublishOptions) -> None:
        result = validate_options(replace(options, publish="appstore"))
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"

    def test_valid(self, options: PublishOptions) -> None:
        assert isinstance(validate_options(replace(options, publish="github")), Ok)


class TestBuildOnly:
    def test_full_run(
        self, options: PublishOptions, http: MockHttpClient, repo_root: Path, temp_root: Path
    ) -> None:
        runner = FakeRunner()
        workflow, console = _workflow(options, http, runner)

        result = workflow.run()

        assert isinstance(result, Ok)
        report = result.value
        assert report.asset.name == SOURCE_ASSET
        assert report.version == VERSION
        assert str(report.project_version) == "1164.1723"
        assert report.built == ("macos",)
        assert report.uploaded == ()
        assert report.source_deleted is False
        assert report.temp_dir_removed is True
        assert not report.temp_dir.exists()
        assert report.temp_dir.parent == temp_root
        assert console.find("Done")

        assert [cmd[0] for cmd, _ in runner.calls] == ["unzip", "node", "xcodebuild"]

    def test_build_dir_replaced(
        self, options: PublishOptions, http: MockHttpClient, repo_root: Path
    ) -> None:
        workflow, _ = _workflow(options, http, FakeRunner())
        assert isinstance(workflow.run(), Ok)

        build_dir = ProjectLayout().build_path(repo_root)
        assert not (build_dir / "stale.txt").exists()
        assert (build_dir / "manifest.json").exists()
        assert (build_dir / "js" / "background.js").read_text() == "// bg"

    def test_xcode_project_patched(
        self, options: PublishOptions, http: MockHttpClient, repo_root: Path
    ) -> None:
        workflow, _ = _workflow(options, http, FakeRunner())
        assert isinstance(workflow.run(), Ok)

        text = ProjectLayout().pbxproj_path(repo_root).read_text()
        assert "CURRENT_PROJECT_VERSION = 1164.1723;" in text
        assert "MARKETING_VERSION = 2025.1114.1723;" in text

    def test_commands(
        self, options: PublishOptions, http: MockHttpClient, repo_root: Path
    ) -> None:
        runner = FakeRunner()
        workflow, _ = _workflow(options, http, runner)
        result = workflow.run()
        assert isinstance(result, Ok)
        temp_dir = result.value.temp_dir
        layout = ProjectLayout()

        [unzip] = runner.commands("unzip")
        assert unzip == [
            "unzip",
            "-q",
            str(temp_dir / SOURCE_ASSET),
            "-d",
            str(temp_dir / "uBOLite_2025.1114.1723.safari"),
        ]

        [node] = runner.commands("node")
        assert node == [
            "node",
            str(layout.patch_script_path(repo_root)),
            f"packageDir={layout.build_path(repo_root)}",
        ]

        [archive] = runner.commands("xcodebuild")
        assert archive[:3] == ["xcodebuild", "clean", "archive"]
        assert archive[archive.index("-destination") + 1] == "generic/platform=macOS"
        assert archive[archive.index("-scheme") + 1] == "uBlock Origin Lite (macOS)"
        assert archive[archive.index("-project") + 1] == str(layout.xcodeproj_path(repo_root))
        assert archive[archive.index("-archivePath") + 1] == str(
            temp_dir / "uBOLite_2025.1114.1723.macos.xcarchive"
        )

    def test_no_platforms(self, options: PublishOptions, http: MockHttpClient) -> None:
        runner = FakeRunner()
        workflow, _ = _workflow(replace(options, macos=False), http, runner)
        result = workflow.run()
        assert isinstance(result, Ok)
        assert result.value.built == ()
        assert runner.commands("xcodebuild") == []

    def test_nocleanup_keeps_temp_dir(self, options: PublishOptions, http: MockHttpClient) -> None:
        workflow, _ = _workflow(replace(options, cleanup=False), http, FakeRunner())
        result = workflow.run()
        assert isinstance(result, Ok)
        assert result.value.temp_dir_removed is False
        assert (result.value.temp_dir / SOURCE_ASSET).exists()


class TestPublishGithub:
    def test_uploads_each_platform_then_deletes_source(
        self, options: PublishOptions, http: MockHttpClient
    ) -> None:
        runner = FakeRunner()
        opts = replace(options, ios=True, macos=True, publish="github")
        workflow, _ = _workflow(opts, http, runner)

        result = workflow.run()

        assert isinstance(result, Ok)
        report = result.value
        assert report.built == ("ios", "macos")
        assert report.uploaded == (
            "uBOLite_2025.1114.1723.ios.zip",
            "uBOLite_2025.1114.1723.macos.zip",
        )
        assert report.source_deleted is True

        posts = http.calls_for("POST")
        assert [p.headers["Content-Type"] for p in posts] == ["application/zip"] * 2
        assert posts[0].data == b"PKuBOLite_2025.1114.1723.ios"
        [delete] = http.calls_for("DELETE")
        assert delete.url == SOURCE_URL

    def test_export_and_zip_commands(
        self, options: PublishOptions, http: MockHttpClient, repo_root: Path
    ) -> None:
        runner = FakeRunner()
        workflow, _ = _workflow(replace(options, publish="github", cleanup=False), http, runner)
        result = workflow.run()
        assert isinstance(result, Ok)
        temp_dir = result.value.temp_dir

        export = runner.commands("xcodebuild")[1]
        assert export[1] == "-exportArchive"
        assert export[export.index("-exportPath") + 1] == str(
            temp_dir / "uBOLite_2025.1114.1723.macos"
        )
        assert export[export.index("-exportOptionsPlist") + 1] == str(
            ProjectLayout().export_options_path(repo_root, "macos")
        )

        [(zip_cmd, zip_cwd)] = [(c, cwd) for c, cwd in runner.calls if c[0] == "zip"]
        assert zip_cmd == [
            "zip",
            "-qry",
            "uBOLite_2025.1114.1723.macos.zip",
            "uBOLite_2025.1114.1723.macos",
        ]
        assert zip_cwd == temp_dir

    def test_upload_failure_aborts_before_delete(
        self, options: PublishOptions, http: MockHttpClient
    ) -> None:
        name = "uBOLite_2025.1114.1723.macos.zip"
        http.set_error("POST", expand_upload_url(UPLOAD_TEMPLATE, name), 422, "already_exists")
        workflow, console = _workflow(replace(options, publish="github"), http, FakeRunner())

        result = workflow.run()

        assert isinstance(result, Err)
        assert result.error.kind == "release_failed"
        assert result.error.exit_code == ErrorCode.USER_ERROR
        assert http.calls_for("DELETE") == []
        assert console.find("Temporary files kept")

    def test_delete_refused_is_warning(
        self, options: PublishOptions, http: MockHttpClient
    ) -> None:
        http.set_error("DELETE", SOURCE_URL, 403, "Forbidden")
        workflow, console = _workflow(replace(options, publish="github"), http, FakeRunner())

        result = workflow.run()

        assert isinstance(result, Ok)
        assert result.value.source_deleted is False
        assert console.has_warning()

    def test_nothing_built_skips_upload(
        self, options: PublishOptions, http: MockHttpClient
    ) -> None:
        opts = replace(options, macos=False, publish="github")
        workflow, console = _workflow(opts, http, FakeRunner())

        result = workflow.run()

        assert isinstance(result, Ok)
        assert http.calls_for("POST") == []
        assert http.calls_for("DELETE") == []
        assert console.find("Nothing was built")


class TestFailures:
    def test_asset_not_found(self, options: PublishOptions, http: MockHttpClient) -> None:
        runner = FakeRunner()
        workflow, _ = _workflow(replace(options, asset="firefox"), http, runner)

        result = workflow.run()

        assert isinstance(result, Err)
        assert result.error.kind == "release_failed"
        assert runner.calls == []

    def test_release_unavailable(self, options: PublishOptions, http: MockHttpClient) -> None:
        http.set_error("GET", RELEASE_URL, 0, "Network is unreachable")
        workflow, _ = _workflow(options, http, FakeRunner())

        result = workflow.run()

        assert isinstance(result, Err)
        assert result.error.exit_code == ErrorCode.USER_ERROR
        assert "Network is unreachable" in (result.error.hint or "")

    def test_download_failure(self, options: PublishOptions, http: MockHttpClient) -> None:
        http.set_error("GET", SOURCE_URL, 404, "Not Found")
        workflow, _ = _workflow(options, http, FakeRunner())
        result = workflow.run()
        assert isinstance(result, Err)
        assert result.error.kind == "release_failed"

    def test_xcodebuild_failure_stops_run(
        self, options: PublishOptions, http: MockHttpClient
    ) -> None:
        runner = FakeRunner(fail="xcodebuild")
        workflow, console = _workflow(replace(options, ios=True, publish="github"), http, runner)

        result = workflow.run()

        assert isinstance(result, Err)
        assert result.error.kind == "tool_failed"
        assert result.error.exit_code == ErrorCode.BUILD_ERROR
        assert len(runner.commands("xcodebuild")) == 1
        assert http.calls_for("POST") == []
        assert console.find("Temporary files kept")

    def test_missing_tool(self, options: PublishOptions, http: MockHttpClient) -> None:
        runner = FakeRunner(fail="node", rc=-1)
        workflow, _ = _workflow(options, http, runner)

        result = workflow.run()

        assert isinstance(result, Err)
        assert result.error.kind == "tool_missing"
        assert result.error.exit_code == ErrorCode.ENV_ERROR
        assert result.error.message == "node: could not run"

    def test_invalid_manifest_version(
        self, options: PublishOptions, http: MockHttpClient, repo_root: Path
    ) -> None:
        workflow, _ = _workflow(options, http, FakeRunner(version="2025.1114"))

        result = workflow.run()

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_manifest"
        assert ProjectLayout().pbxproj_path(repo_root).read_text() == PBXPROJ

    def test_missing_xcode_project(
        self, options: PublishOptions, http: MockHttpClient, repo_root: Path
    ) -> None:
        ProjectLayout().pbxproj_path(repo_root).unlink()
        workflow, _ = _workflow(options, http, FakeRunner())

        result = workflow.run()

        assert isinstance(result, Err)
        assert result.error.kind == "io_error"
        assert result.error.exit_code == ErrorCode.IO_ERROR
