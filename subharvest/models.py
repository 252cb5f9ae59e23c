"""Data models for crawl state, step outcomes and harvested submissions."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Optional, Union

from .config import CrawlLimits
from .errors import MalformedResponse


@dataclass(frozen=True)
class Submission:
    """A single submission returned by the search endpoint."""

    id: str
    name: str
    title: str
    url: str
    permalink: str
    author: str
    subreddit: str
    domain: str
    # Empty string when the submission has no thumbnail.
    thumbnail: str
    # `created` carries reddit's 8 hour offset, `created_utc` does not.
    created: float
    created_utc: float
    ups: float
    downs: float
    score: float
    num_comments: float
    stickied: bool
    locked: bool
    is_self: bool
    is_video: bool

    _TEXT = ("id", "name", "title", "url", "permalink", "author", "subreddit", "domain", "thumbnail")
    _NUMBERS = ("created", "created_utc", "ups", "downs", "score", "num_comments")
    _FLAGS = ("stickied", "locked", "is_self", "is_video")

    @classmethod
    def from_json(cls, data: dict) -> "Submission":
        """Build a Submission from one `children[].data` object.

        Counters arrive as ints or floats depending on the listing and are
        normalized to float.
        """
        if not isinstance(data, dict):
            raise MalformedResponse(f"submission is not an object: {type(data).__name__}")
        kwargs = {}
        try:
            for key in cls._TEXT:
                value = data[key]
                # deleted accounts come back with author=None in some listings
                kwargs[key] = "" if value is None else str(value)
            for key in cls._NUMBERS:
                value = data[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise MalformedResponse(f"{key} is not numeric: {value!r}")
                kwargs[key] = float(value)
            for key in cls._FLAGS:
                kwargs[key] = bool(data[key])
        except KeyError as exc:
            raise MalformedResponse(f"submission missing field {exc}") from exc
        return cls(**kwargs)

    @property
    def has_thumbnail(self) -> bool:
        return self.thumbnail != ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CrawlState:
    """Everything the engine carries from one step to the next.

    Never mutated: every successful step returns a new value.
    """

    cursor_before: float
    window_size: float
    pagination_token: Optional[str] = None
    page_number: int = 1
    last_request_at: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CrawlState":
        return cls(
            cursor_before=float(data["cursor_before"]),
            window_size=float(data["window_size"]),
            pagination_token=data.get("pagination_token"),
            page_number=int(data.get("page_number", 1)),
            last_request_at=float(data.get("last_request_at", 0.0)),
        )


def initial_state(limits: CrawlLimits) -> CrawlState:
    """Starting state for a fresh crawl."""
    return CrawlState(
        cursor_before=limits.initial_cursor,
        window_size=limits.initial_window,
    )


@dataclass(frozen=True)
class Progress:
    """A batch of submissions plus the state to pass into the next step."""

    items: List[Submission]
    state: CrawlState


@dataclass(frozen=True)
class Complete:
    """The forum's entire history has been traversed."""


StepOutcome = Union[Progress, Complete]


@dataclass
class CrawlProgress:
    """Progress update from the harvest engine."""

    subreddit: str
    batches: int
    items_total: int
    cursor_before: float
    window_size: float
    page_number: int = 1
    batch_size: int = 0
    event_type: str = "batch"  # "batch", "retry", "renew", "complete"
    detail: str = ""
