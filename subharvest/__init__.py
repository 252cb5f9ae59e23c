"""Incremental subreddit submission harvester."""

__version__ = "0.1.0"
