"""Adaptive time-window crawl engine."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterator, Optional

from .auth import TokenManager
from .config import SECONDS_PER_DAY, CrawlLimits, HarvestConfig
from .errors import TransportError, Unauthenticated
from .models import Complete, CrawlProgress, CrawlState, Progress, StepOutcome
from .search import PAGE_LIMIT, SearchClient, TimeRange
from .storage import StateStore

logger = logging.getLogger(__name__)

# Target items per first page. Below the band wastes requests, a full
# page means the window holds more than one page can show.
BAND_LOW = 50


def clamp(value: float, lo: float, hi: float) -> float:
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value


def next_window_size(size: float, count: int) -> float:
    """Unclamped window size for the next request given a first-page count."""
    if count < BAND_LOW:
        # includes count == 0
        return size + size / 2
    if count >= PAGE_LIMIT:
        return size - size / 20
    return size


def pretty_duration(seconds: float) -> str:
    days = int(seconds // SECONDS_PER_DAY)
    hours = (seconds % SECONDS_PER_DAY) / 3600
    return f"{days}d:{hours:.2f}h"


def step(
    state: CrawlState,
    client: SearchClient,
    limits: CrawlLimits,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
    min_interval: float = 1.0,
) -> StepOutcome:
    """Issue one search request and compute the next crawl state.

    Returns Complete once a maximum-size window comes back empty, otherwise
    Progress(items, next_state). Any SearchError propagates unchanged and
    the input state stays valid for a retry.
    """
    elapsed = clock() - state.last_request_at
    if elapsed < min_interval:
        sleep(min_interval - max(elapsed, 0.0))

    window = TimeRange(before=state.cursor_before, size=state.window_size)
    items, next_token = client.search(window, state.pagination_token)

    if state.window_size == limits.max_window and not items:
        logger.info("Empty %s window at %s, crawl complete", pretty_duration(state.window_size), window.query())
        return Complete()

    if next_token is None:
        next_cursor = state.cursor_before - state.window_size
        next_page = 1
    else:
        next_cursor = state.cursor_before
        next_page = state.page_number + 1

    if state.page_number == 1:
        next_size = clamp(next_window_size(state.window_size, len(items)), limits.min_window, limits.max_window)
        if next_size < state.window_size:
            logger.info("[window] shrunk: %s -> %s (%d items)",
                        pretty_duration(state.window_size), pretty_duration(next_size), len(items))
        elif next_size > state.window_size:
            logger.info("[window] grew: %s -> %s (%d items)",
                        pretty_duration(state.window_size), pretty_duration(next_size), len(items))
        else:
            logger.info("[window] unchanged: %s (%d items)", pretty_duration(next_size), len(items))
    else:
        # Frozen while paginating: the token belongs to the current window.
        next_size = state.window_size

    next_state = CrawlState(
        cursor_before=next_cursor,
        window_size=next_size,
        pagination_token=next_token,
        page_number=next_page,
        last_request_at=clock(),
    )
    return Progress(items=items, state=next_state)


class HarvestEngine:
    """Drives `step` until the crawl completes, renewing and retrying as needed."""

    def __init__(
        self,
        config: HarvestConfig,
        client: SearchClient,
        tokens: Optional[TokenManager] = None,
        progress_callback: Optional[Callable[[CrawlProgress], None]] = None,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._client = client
        self._tokens = tokens
        self._progress_callback = progress_callback
        self._cancel_event = cancel_event
        self._clock = clock
        self._sleep = sleep
        self._store = StateStore(config.state_path) if config.state_path else None
        self.batches = 0
        self.items_total = 0
        self.completed = False
        self.state: Optional[CrawlState] = None

    def step(self, state: CrawlState) -> StepOutcome:
        """One step with token renewal and transport retries applied."""
        renewed = False
        attempt = 0
        while True:
            try:
                return step(
                    state,
                    self._client,
                    self._config.limits,
                    clock=self._clock,
                    sleep=self._sleep,
                    min_interval=self._config.min_request_interval,
                )
            except Unauthenticated:
                if renewed or self._tokens is None:
                    raise
                renewed = True
                logger.info("Access token rejected, renewing")
                self._tokens.invalidate()
                self._report(state, event_type="renew")
            except TransportError as exc:
                if attempt >= self._config.retries:
                    raise
                attempt += 1
                logger.warning("Request failed (attempt %d/%d): %s", attempt, self._config.retries, exc)
                self._report(state, event_type="retry", detail=str(exc))
                self._sleep(1)

    def run(self, state: CrawlState) -> Iterator[Progress]:
        """Yield every batch until the crawl completes or is cancelled.

        The state after a batch is checkpointed once the caller asks for
        the next one.
        """
        self.state = state
        while True:
            if self._cancel_event and self._cancel_event.is_set():
                logger.info("Harvest cancelled by user.")
                return

            outcome = self.step(self.state)
            if isinstance(outcome, Complete):
                self.completed = True
                if self._store:
                    self._store.save(self.state, complete=True)
                logger.info(
                    "r/%s complete: %d items in %d batches",
                    self._config.subreddit, self.items_total, self.batches,
                )
                self._report(self.state, event_type="complete")
                return

            self.batches += 1
            self.items_total += len(outcome.items)
            logger.debug(
                "[%d] %d items, page %d, before=%d",
                self.batches, len(outcome.items), outcome.state.page_number, int(outcome.state.cursor_before),
            )
            self._report(outcome.state, batch_size=len(outcome.items))
            yield outcome

            self.state = outcome.state
            if self._store:
                self._store.save(self.state)

    def _report(self, state: CrawlState, event_type: str = "batch", batch_size: int = 0, detail: str = "") -> None:
        if not self._progress_callback:
            return
        self._progress_callback(CrawlProgress(
            subreddit=self._config.subreddit,
            batches=self.batches,
            items_total=self.items_total,
            cursor_before=state.cursor_before,
            window_size=state.window_size,
            page_number=state.page_number,
            batch_size=batch_size,
            event_type=event_type,
            detail=detail,
        ))
