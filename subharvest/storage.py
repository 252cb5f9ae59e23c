"""Checkpoint crawl state to JSON so a harvest can resume."""

from __future__ import annotations

import json
import logging
import os
from typing import Optional, Tuple

from .errors import ConfigError
from .models import CrawlState

logger = logging.getLogger(__name__)


class StateStore:
    """Persist a single CrawlState to a JSON file."""

    def __init__(self, path: str) -> None:
        self._path = path
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    @property
    def path(self) -> str:
        return self._path

    def save(self, state: CrawlState, complete: bool = False) -> str:
        data = {"complete": complete, "state": state.to_dict()}
        tmp = self._path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self._path)
        logger.debug("Saved state → %s", self._path)
        return self._path

    def load(self) -> Optional[Tuple[CrawlState, bool]]:
        """Return (state, complete), or None when no checkpoint exists."""
        if not os.path.exists(self._path):
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return CrawlState.from_dict(data["state"]), bool(data.get("complete", False))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"corrupt state file {self._path}: {exc}") from exc
