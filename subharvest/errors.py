"""Exception taxonomy for search, auth and configuration failures."""

from __future__ import annotations

from typing import Optional


class HarvestError(Exception):
    """Base class for every error raised by subharvest."""


class ConfigError(HarvestError):
    """Invalid or missing configuration."""


class SearchError(HarvestError):
    """A search request failed. Never retried by the client or the step."""


class Unauthenticated(SearchError):
    """Bearer token was rejected; renew it and retry the same step."""


class TransportError(SearchError):
    """Network-level failure (connection refused, timeout, ...)."""


class MalformedResponse(SearchError):
    """Response body did not have the expected shape."""


class OtherSearchError(SearchError):
    """Any response outside the recognized success and error shapes."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (status={self.status_code}, body={self.body[:200]!r})"


class AuthError(HarvestError):
    """Credential exchange failed."""


class BadUserCredentials(AuthError):
    """Username or password was refused."""


class BadAppCredentials(AuthError):
    """Application id or secret was refused."""
