from __future__ import annotations

import pytest

from subharvest.config import CrawlLimits
from subharvest.models import Submission


def make_submission(n: int) -> Submission:
    return Submission(
        id=f"t{n}",
        name=f"t3_t{n}",
        title=f"post {n}",
        url=f"https://example.com/{n}",
        permalink=f"/r/python/comments/t{n}/",
        author="someone",
        subreddit="python",
        domain="example.com",
        thumbnail="",
        created=1_500_000_000.0 + n,
        created_utc=1_500_000_000.0 + n,
        ups=1.0,
        downs=0.0,
        score=1.0,
        num_comments=0.0,
        stickied=False,
        locked=False,
        is_self=False,
        is_video=False,
    )


def make_batch(count: int) -> list:
    return [make_submission(i) for i in range(count)]


class ScriptedClient:
    """Returns scripted (items, after) pairs or raises scripted errors."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def search(self, window, after=None):
        self.calls.append((window, after))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limits():
    return CrawlLimits(
        initial_window=900,
        min_window=600,
        max_window=31_536_000,
        initial_cursor=1_600_000_000,
    )
