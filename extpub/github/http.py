"""HTTP client abstraction for the GitHub releases API.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from extpub import __version__
from extpub.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "SENSITIVE_HEADERS",
]

# Headers that must not follow a redirect to another host. GitHub answers
# asset downloads with a redirect to a pre-signed storage URL which rejects
# requests that also carry a bearer token.
SENSITIVE_HEADERS = frozenset({"authorization"})


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A successful (2xx) HTTP response."""

    url: str
    status: int
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    def json(self) -> Result[object, HttpError]:
        """Decode the body as JSON."""
        try:
            return Ok(json.loads(self.body.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=self.url, status=0, message=f"JSON parse error: {e}"))


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    Non-2xx responses and transport failures are both reported as
    Err(HttpError); nothing is raised.
    """

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: bytes | None = None,
    ) -> Result[HttpResponse, HttpError]:
        """Perform a request and return the full response body.

        Args:
            method: HTTP method ("GET", "POST", "DELETE")
            url: URL to request
            headers: Extra request headers
            data: Raw request body
        """
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - Redirects, without forwarding sensitive headers
    - Optional socket timeout (None waits indefinitely)
    """

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str = f"extpub/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _build_request(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
        data: bytes | None,
    ) -> urllib.request.Request:
        req = urllib.request.Request(url, data=data, method=method)
        req.add_header("User-Agent", self.user_agent)
        for name, value in (headers or {}).items():
            if name.lower() in SENSITIVE_HEADERS:
                # Unredirected headers are dropped when urllib follows a redirect.
                req.add_unredirected_header(name, value)
            else:
                req.add_header(name, value)
        return req

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: bytes | None = None,
    ) -> Result[HttpResponse, HttpError]:
        try:
            req = self._build_request(method, url, headers, data)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                body = response.read()
                return Ok(
                    HttpResponse(
                        url=url,
                        status=response.status,
                        body=body,
                        headers=dict(response.headers.items()),
                    )
                )
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


@dataclass(frozen=True, slots=True)
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    data: bytes | None


class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are keyed by (method, url). Unknown requests answer 404.

    Usage:
        client = MockHttpClient()
        client.set_json("GET", "https://api.github.com/x", {"assets": []})
        result = client.request("GET", "https://api.github.com/x")
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], HttpResponse | HttpError] = {}
        self.calls: list[RecordedCall] = []

    def set_response(self, method: str, url: str, response: HttpResponse | HttpError) -> None:
        self._responses[(method.upper(), url)] = response

    def set_json(self, method: str, url: str, payload: object, *, status: int = 200) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.set_response(method, url, HttpResponse(url=url, status=status, body=body))

    def set_bytes(self, method: str, url: str, body: bytes, *, status: int = 200) -> None:
        self.set_response(method, url, HttpResponse(url=url, status=status, body=body))

    def set_error(self, method: str, url: str, status: int, message: str) -> None:
        self.set_response(method, url, HttpError(url=url, status=status, message=message))

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: bytes | None = None,
    ) -> Result[HttpResponse, HttpError]:
        key = (method.upper(), url)
        self.calls.append(RecordedCall(key[0], url, dict(headers or {}), data))

        response = self._responses.get(key)
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def calls_for(self, method: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.method == method.upper()]
