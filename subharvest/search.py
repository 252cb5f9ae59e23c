"""Search client: one paginated cloudsearch request per call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import requests

from .errors import MalformedResponse, OtherSearchError, TransportError, Unauthenticated
from .models import Submission

logger = logging.getLogger(__name__)

_SEARCH_URL = "https://oauth.reddit.com/r/{subreddit}/search"
PAGE_LIMIT = 100


@dataclass(frozen=True)
class TimeRange:
    """Half-open window ``[before - size, before)`` in epoch seconds."""

    before: float
    size: float

    @property
    def start(self) -> int:
        # Clamp to the epoch when the window reaches past it.
        return int(max(0.0, self.before - self.size))

    @property
    def stop(self) -> int:
        return int(max(0.0, self.before))

    def query(self) -> str:
        return f"timestamp:{self.start}..{self.stop}"


def build_search_params(window: TimeRange, after: Optional[str] = None) -> List[Tuple[str, str]]:
    params = [
        ("q", window.query()),
        ("syntax", "cloudsearch"),
        ("sort", "new"),
        ("type", "link"),  # submissions only
        ("limit", str(PAGE_LIMIT)),
        ("restrict_sr", "true"),
        ("include_over_18", "on"),
        ("raw_json", "1"),
    ]
    if after is not None:
        params.append(("after", after))
    return params


def parse_listing(body) -> Tuple[List[Submission], Optional[str]]:
    """Extract submissions and the `after` cursor from a listing body."""
    try:
        data = body["data"]
        children = data["children"]
        after = data["after"]
    except (KeyError, TypeError) as exc:
        raise MalformedResponse(f"unexpected listing shape: {exc!r}") from exc
    if not isinstance(children, list):
        raise MalformedResponse("listing children is not a list")
    if after is not None and not isinstance(after, str):
        raise MalformedResponse(f"listing after is not a string: {after!r}")

    items: List[Submission] = []
    for child in children:
        if not isinstance(child, dict) or "data" not in child:
            raise MalformedResponse("listing child has no data")
        items.append(Submission.from_json(child["data"]))
    return items, after


class SearchClient:
    """Issues search requests against one subreddit.

    Headers are sent per request so one session can be shared by several
    clients.
    """

    def __init__(
        self,
        subreddit: str,
        token_source: Callable[[], str],
        user_agent: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._subreddit = subreddit
        self._url = _SEARCH_URL.format(subreddit=subreddit)
        self._token_source = token_source
        self._user_agent = user_agent
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def subreddit(self) -> str:
        return self._subreddit

    def search(self, window: TimeRange, after: Optional[str] = None) -> Tuple[List[Submission], Optional[str]]:
        """Fetch one page of submissions inside ``window``.

        Returns (submissions, next_after); next_after is None when the
        window has no further pages.
        """
        headers = {
            "Authorization": f"bearer {self._token_source()}",
            "User-Agent": self._user_agent,
        }
        params = build_search_params(window, after)
        logger.debug("Searching r/%s %s after=%s", self._subreddit, window.query(), after)
        try:
            resp = self._session.get(self._url, params=params, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TransportError(f"search request failed: {exc}") from exc

        if resp.status_code == 401:
            raise Unauthenticated(f"search rejected credentials (status={resp.status_code})")
        if resp.status_code != 200:
            raise OtherSearchError("unexpected search response", resp.status_code, resp.text)

        try:
            body = resp.json()
        except ValueError as exc:
            raise MalformedResponse("search response is not JSON") from exc
        return parse_listing(body)

    def close(self) -> None:
        self._session.close()
