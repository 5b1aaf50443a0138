"""Internal machinery: the HTTP client used for the GitHub API."""

from .http import (
    Auth,
    BearerAuth,
    HttpClient,
    HttpError,
)

__all__ = [
    "Auth",
    "BearerAuth",
    "HttpClient",
    "HttpError",
]
