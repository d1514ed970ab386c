"""Client for the GitHub releases REST API.

Covers the five calls a publish run needs: fetch a release by tag, find an
asset in it, download an asset, upload a new asset and delete an asset.
Every call is a single attempt; a failure is returned as Err(ReleaseError)
and the caller aborts the run.
"""

from __future__ import annotations

import shutil
import tempfile
import urllib.parse
from dataclasses import dataclass
from pathlib import Path

from extpub.core.result import Err, Ok, Result
from extpub.core.structured import StrDict, as_str_dict, get_int, get_list, get_str
from extpub.github.errors import ReleaseError, ReleaseErrorKind
from extpub.github.http import HttpClient, HttpError

__all__ = [
    "API_ROOT",
    "AssetInfo",
    "ReleaseClient",
    "ReleaseInfo",
    "expand_upload_url",
    "parse_release",
]

API_ROOT = "https://api.github.com"
UPLOAD_URL_TEMPLATE = "{?name,label}"
ASSET_TEMP_PREFIX = "github-asset-"


@dataclass(frozen=True, slots=True)
class AssetInfo:
    """One asset attached to a release.

    Attributes:
        name: File name shown on the release page.
        url: API URL of the asset (used for download and delete).
        id: Numeric asset id.
        browser_download_url: Public download URL.
        content_type: MIME type recorded at upload.
        size: Size in bytes.
    """

    name: str
    url: str
    id: int | None = None
    browser_download_url: str | None = None
    content_type: str | None = None
    size: int | None = None

    @classmethod
    def from_dict(cls, data: StrDict) -> AssetInfo | None:
        name = get_str(data, "name")
        url = get_str(data, "url")
        if name is None or url is None:
            return None
        return cls(
            name=name,
            url=url,
            id=get_int(data, "id"),
            browser_download_url=get_str(data, "browser_download_url"),
            content_type=get_str(data, "content_type"),
            size=get_int(data, "size"),
        )


@dataclass(frozen=True, slots=True)
class ReleaseInfo:
    """A release as returned by the releases API."""

    tag: str | None
    upload_url: str | None
    assets: tuple[AssetInfo, ...]

    def find_asset(self, name_substring: str) -> AssetInfo | None:
        """First asset whose name contains name_substring, in API order."""
        for asset in self.assets:
            if name_substring in asset.name:
                return asset
        return None


def parse_release(data: StrDict) -> ReleaseInfo:
    assets: list[AssetInfo] = []
    for item in get_list(data, "assets") or []:
        table = as_str_dict(item)
        if table is None:
            continue
        asset = AssetInfo.from_dict(table)
        if asset is not None:
            assets.append(asset)
    return ReleaseInfo(
        tag=get_str(data, "tag_name"),
        upload_url=get_str(data, "upload_url"),
        assets=tuple(assets),
    )


def expand_upload_url(template: str, asset_name: str) -> str:
    """Fill the `{?name,label}` placeholder of a release upload URL."""
    query = "?" + urllib.parse.urlencode({"name": asset_name}, quote_via=urllib.parse.quote)
    return template.replace(UPLOAD_URL_TEMPLATE, query)


class ReleaseClient:
    """Authenticated access to one tagged release of one repository."""

    def __init__(
        self,
        http: HttpClient,
        *,
        owner: str,
        repo: str,
        tag: str,
        token: str,
        api_root: str = API_ROOT,
    ) -> None:
        self._http = http
        self.owner = owner
        self.repo = repo
        self.tag = tag
        self._token = token
        self._api_root = api_root.rstrip("/")

    @property
    def release_url(self) -> str:
        tag = urllib.parse.quote(self.tag, safe="")
        return f"{self._api_root}/repos/{self.owner}/{self.repo}/releases/tags/{tag}"

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        headers.update(extra)
        return headers

    def get_release_info(self) -> Result[ReleaseInfo, ReleaseError]:
        url = self.release_url
        result = self._http.request(
            "GET", url, headers=self._headers(Accept="application/vnd.github+json")
        )
        if isinstance(result, Err):
            message = f"Release {self.tag} unavailable"
            return Err(_from_http("release_unavailable", message, result.error))

        decoded = result.value.json()
        if isinstance(decoded, Err):
            message = "Release info is not valid JSON"
            return Err(_from_http("invalid_response", message, decoded.error))

        data = as_str_dict(decoded.value)
        if data is None:
            message = "Release info is not an object"
            return Err(ReleaseError(kind="invalid_response", message=message, hint=url))
        return Ok(parse_release(data))

    def get_asset_info(self, name_substring: str) -> Result[AssetInfo, ReleaseError]:
        release = self.get_release_info()
        if isinstance(release, Err):
            return release

        asset = release.value.find_asset(name_substring)
        if asset is None:
            names = ", ".join(a.name for a in release.value.assets) or "none"
            return Err(
                ReleaseError(
                    kind="asset_not_found",
                    message=f"No asset matching '{name_substring}' in release {self.tag}",
                    hint=f"Assets: {names}",
                )
            )
        return Ok(asset)

    def download_asset(
        self, asset: AssetInfo, *, temp_root: Path | None = None
    ) -> Result[Path, ReleaseError]:
        """Download an asset into a fresh temp directory named after the asset.

        Returns:
            Ok with the path of the downloaded file.
        """
        result = self._http.request(
            "GET", asset.url, headers=self._headers(Accept="application/octet-stream")
        )
        if isinstance(result, Err):
            message = f"Failed to download {asset.name}"
            return Err(_from_http("download_failed", message, result.error))

        try:
            temp_dir = Path(
                tempfile.mkdtemp(
                    prefix=ASSET_TEMP_PREFIX,
                    dir=str(temp_root) if temp_root else None,
                )
            )
        except OSError as e:
            return Err(ReleaseError(kind="io_error", message=f"Cannot create temp dir: {e}"))

        path = temp_dir / Path(asset.name).name
        try:
            path.write_bytes(result.value.body)
        except OSError as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            return Err(ReleaseError(kind="io_error", message=f"Cannot save {asset.name}: {e}"))
        return Ok(path)

    def upload_asset(self, path: Path, mime_type: str) -> Result[StrDict, ReleaseError]:
        """Upload a local file as a new asset of the release.

        Returns:
            Ok with the asset description returned by GitHub.
        """
        try:
            data = path.read_bytes()
        except OSError as e:
            return Err(ReleaseError(kind="io_error", message=f"Cannot read {path}: {e}"))

        release = self.get_release_info()
        if isinstance(release, Err):
            return release

        template = release.value.upload_url
        if template is None:
            return Err(ReleaseError(kind="invalid_response", message="Release has no upload_url"))

        url = expand_upload_url(template, path.name)
        result = self._http.request(
            "POST",
            url,
            headers=self._headers(
                **{"Content-Type": mime_type, "Accept": "application/vnd.github+json"}
            ),
            data=data,
        )
        if isinstance(result, Err):
            return Err(_from_http("upload_failed", f"Failed to upload {path.name}", result.error))

        decoded = result.value.json()
        if isinstance(decoded, Err):
            message = "Upload response is not valid JSON"
            return Err(_from_http("invalid_response", message, decoded.error))
        body = as_str_dict(decoded.value)
        if body is None:
            return Err(
                ReleaseError(kind="invalid_response", message="Upload response is not an object")
            )
        return Ok(body)

    def delete_asset(self, asset_url: str) -> Result[bool, ReleaseError]:
        """Delete an asset by API URL.

        Returns:
            Ok(True) when GitHub accepted the delete, Ok(False) when it
            answered with an error status. Network failures are Err.
        """
        result = self._http.request("DELETE", asset_url, headers=self._headers())
        if isinstance(result, Err):
            if result.error.status:
                return Ok(False)
            return Err(_from_http("delete_failed", "Failed to delete asset", result.error))
        return Ok(True)


def _from_http(kind: ReleaseErrorKind, message: str, error: HttpError) -> ReleaseError:
    return ReleaseError(kind=kind, message=message, hint=str(error))
