"""User-visible advisories for degraded operation."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque

from ..models.domain import Advisory, AdvisoryLevel

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    AdvisoryLevel.INFO: logging.INFO,
    AdvisoryLevel.WARNING: logging.WARNING,
    AdvisoryLevel.ERROR: logging.ERROR,
}


class AdvisoryBoard:
    """Bounded, most-recent-last list of advisories shown to the operator."""

    def __init__(self, history: int = 50) -> None:
        self._items: Deque[Advisory] = deque(maxlen=history)

    def post(self, source: str, message: str, level: AdvisoryLevel = AdvisoryLevel.WARNING) -> Advisory:
        advisory = Advisory(source=source, message=message, level=level)
        self._items.append(advisory)
        logger.log(_LOG_LEVELS[level], f"[{source}] {message}")
        return advisory

    def recent(self, limit: int | None = None) -> list[Advisory]:
        items = list(self._items)
        if limit is not None:
            return items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
