"""Command-line interface for the harvester."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading

import requests

from . import __version__
from .auth import TokenManager
from .config import SECONDS_PER_YEAR, CrawlLimits, Credentials, HarvestConfig
from .engine import HarvestEngine, pretty_duration
from .errors import AuthError, ConfigError, HarvestError
from .models import initial_state
from .search import SearchClient
from .storage import StateStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="subharvest",
        description="Harvest every submission of a subreddit, newest first",
        epilog="Credentials are read from REDDIT_USERNAME, REDDIT_PASSWORD, "
               "REDDIT_APP_ID and REDDIT_APP_SECRET.",
    )
    p.add_argument("subreddit", help="Subreddit name, without the r/ prefix")
    p.add_argument(
        "--state", default=None,
        help="JSON checkpoint file; resumes from it when present",
    )
    p.add_argument(
        "--initial-window", type=float, default=60 * 15,
        help="Initial window size in seconds (default: 900)",
    )
    p.add_argument(
        "--min-window", type=float, default=60 * 10,
        help="Minimum window size in seconds (default: 600)",
    )
    p.add_argument(
        "--max-window", type=float, default=SECONDS_PER_YEAR,
        help="Maximum window size in seconds (default: one year)",
    )
    p.add_argument(
        "--before", type=float, default=None,
        help="Start crawling back from this epoch timestamp (default: now + 8h)",
    )
    p.add_argument(
        "--timeout", type=int, default=30,
        help="HTTP request timeout in seconds (default: 30)",
    )
    p.add_argument(
        "--retries", type=int, default=2,
        help="Max retries per request on network errors (default: 2)",
    )
    p.add_argument(
        "--user-agent", default=None,
        help="User-Agent header sent to reddit",
    )
    p.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable verbose logging",
    )
    p.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    return p


def build_config(args: argparse.Namespace) -> HarvestConfig:
    limit_kwargs = dict(
        initial_window=args.initial_window,
        min_window=args.min_window,
        max_window=args.max_window,
    )
    if args.before is not None:
        limit_kwargs["initial_cursor"] = args.before
    try:
        limits = CrawlLimits(**limit_kwargs)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    config = HarvestConfig(
        subreddit=args.subreddit.removeprefix("r/"),
        limits=limits,
        timeout=args.timeout,
        retries=args.retries,
        state_path=args.state,
        verbose=args.verbose,
    )
    if args.user_agent:
        config.user_agent = args.user_agent
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        config = build_config(args)
        creds = Credentials.from_env()
        state = initial_state(config.limits)
        if config.state_path:
            loaded = StateStore(config.state_path).load()
            if loaded is not None:
                state, complete = loaded
                if complete:
                    logger.info("r/%s already fully harvested (%s)", config.subreddit, config.state_path)
                    return 0
                limits = config.limits
                if not limits.min_window <= state.window_size <= limits.max_window:
                    raise ConfigError(
                        f"saved window {state.window_size} outside {limits.min_window}..{limits.max_window}"
                    )
                logger.info(
                    "Resuming r/%s before=%d window=%s",
                    config.subreddit, int(state.cursor_before), pretty_duration(state.window_size),
                )
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    session = requests.Session()
    tokens = TokenManager(creds, config.user_agent, session=session, timeout=config.timeout)
    client = SearchClient(config.subreddit, tokens.token, config.user_agent, config.timeout, session=session)
    cancel = threading.Event()
    engine = HarvestEngine(config, client, tokens, cancel_event=cancel)

    try:
        for progress in engine.run(state):
            for item in progress.items:
                sys.stdout.write(json.dumps(item.to_dict(), ensure_ascii=False) + "\n")
            sys.stdout.flush()
    except KeyboardInterrupt:
        cancel.set()
        logger.info("Interrupted after %d batches", engine.batches)
        return 130
    except AuthError as exc:
        logger.error("Authentication failed: %s", exc)
        return 1
    except HarvestError as exc:
        logger.error("Harvest failed: %s", exc)
        return 1
    finally:
        client.close()

    print(
        f"\nHarvest {'complete' if engine.completed else 'stopped'}: "
        f"{engine.items_total} submissions in {engine.batches} batches",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
