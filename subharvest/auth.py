"""OAuth password-grant token exchange and renewal."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .config import Credentials
from .errors import AuthError, BadAppCredentials, BadUserCredentials, MalformedResponse, TransportError

logger = logging.getLogger(__name__)

_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"

# Renew this long before the stated expiry to absorb clock and latency slack.
RENEW_MARGIN = 60 * 2


@dataclass(frozen=True)
class AccessToken:
    access_token: str
    ttl: float
    fetched_at: float

    def should_renew(self, now: float) -> bool:
        return now - self.fetched_at >= self.ttl - RENEW_MARGIN


def fetch_token(
    session: requests.Session,
    creds: Credentials,
    user_agent: str,
    timeout: float = 30,
    clock: Callable[[], float] = time.monotonic,
) -> AccessToken:
    """Exchange username/password for a bearer token.

    Raises BadAppCredentials on a 401, BadUserCredentials when reddit
    answers 200 with ``{"error": "invalid_grant"}``.
    """
    form = {
        "grant_type": "password",
        "username": creds.username,
        "password": creds.password,
    }
    try:
        resp = session.post(
            _TOKEN_URL,
            data=form,
            auth=(creds.app_id, creds.app_secret),
            headers={"User-Agent": user_agent},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise TransportError(f"token request failed: {exc}") from exc

    if resp.status_code == 401:
        raise BadAppCredentials("application id or secret rejected")
    if resp.status_code != 200:
        raise AuthError(f"token request returned status {resp.status_code}")

    try:
        body = resp.json()
    except ValueError as exc:
        raise MalformedResponse("token response is not JSON") from exc
    if not isinstance(body, dict):
        raise MalformedResponse("token response is not an object")

    error = body.get("error")
    if error == "invalid_grant":
        raise BadUserCredentials(f"username or password rejected for {creds.username!r}")
    if error:
        raise AuthError(f"token request failed: {error}")

    try:
        token = AccessToken(
            access_token=str(body["access_token"]),
            ttl=float(body["expires_in"]),
            fetched_at=clock(),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponse(f"token response missing field: {exc}") from exc
    logger.info("Fetched access token (expires in %ds)", int(token.ttl))
    return token


class TokenManager:
    """Hands out a bearer token, renewing it when close to expiry."""

    def __init__(
        self,
        creds: Credentials,
        user_agent: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._creds = creds
        self._user_agent = user_agent
        self._session = session or requests.Session()
        self._timeout = timeout
        self._clock = clock
        self._token: Optional[AccessToken] = None

    def token(self) -> str:
        if self._token is None or self._token.should_renew(self._clock()):
            if self._token is not None:
                logger.debug("Access token near expiry, renewing")
            self._token = fetch_token(
                self._session, self._creds, self._user_agent, self._timeout, self._clock,
            )
        return self._token.access_token

    def invalidate(self) -> None:
        self._token = None
