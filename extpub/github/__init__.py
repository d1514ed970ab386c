"""GitHub releases access."""

from .errors import ReleaseError
from .http import HttpClient, HttpError, HttpResponse, MockHttpClient, RealHttpClient
from .releases import AssetInfo, ReleaseClient, ReleaseInfo

__all__ = [
    "AssetInfo",
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "ReleaseClient",
    "ReleaseError",
    "ReleaseInfo",
]
