"""Harvest configuration."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Optional

from .errors import ConfigError

SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 31_536_000

# Reddit's `created` timestamps run 8 hours ahead of UTC; starting the
# cursor that far in the future keeps the newest posts inside the first window.
REDDIT_OFFSET = 60 * 60 * 8


def _default_cursor() -> float:
    return time.time() + REDDIT_OFFSET


@dataclass(frozen=True)
class CrawlLimits:
    """Window bounds and starting point of a crawl, in seconds."""

    initial_window: float = 60 * 15
    min_window: float = 60 * 10
    max_window: float = SECONDS_PER_YEAR
    initial_cursor: float = field(default_factory=_default_cursor)

    def __post_init__(self) -> None:
        if not 0 < self.min_window <= self.max_window:
            raise ValueError(
                f"window bounds must satisfy 0 < min <= max, got {self.min_window}..{self.max_window}"
            )
        if not self.min_window <= self.initial_window <= self.max_window:
            raise ValueError(
                f"initial window {self.initial_window} outside {self.min_window}..{self.max_window}"
            )


@dataclass
class HarvestConfig:
    """Configuration for a harvest session."""

    subreddit: str
    limits: CrawlLimits = field(default_factory=CrawlLimits)
    user_agent: str = "subharvest/0.1 (+https://github.com/example/subharvest)"
    timeout: int = 30
    retries: int = 2
    min_request_interval: float = 1.0
    state_path: Optional[str] = None
    verbose: bool = False


_CREDENTIAL_ENV = {
    "username": "REDDIT_USERNAME",
    "password": "REDDIT_PASSWORD",
    "app_id": "REDDIT_APP_ID",
    "app_secret": "REDDIT_APP_SECRET",
}


@dataclass(frozen=True)
class Credentials:
    """Script-app credentials for the password grant."""

    username: str
    password: str
    app_id: str
    app_secret: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, app_id={self.app_id!r})"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Credentials":
        env = os.environ if environ is None else environ
        missing = [var for var in _CREDENTIAL_ENV.values() if not env.get(var)]
        if missing:
            raise ConfigError("missing environment variables: " + ", ".join(missing))
        return cls(**{attr: env[var] for attr, var in _CREDENTIAL_ENV.items()})
