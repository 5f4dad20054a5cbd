"""Publish/subscribe primitives for device feeds and change notifications."""

from __future__ import annotations

import itertools
import logging
from typing import Callable, Dict, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Cancellation token returned by :meth:`EventSource.subscribe`."""

    def __init__(self, source: "EventSource", token: int) -> None:
        self._source = source
        self._token = token
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._source._unsubscribe(self._token)


class EventSource(Generic[T]):
    """Delivers each published event to the current handlers, in subscription order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: Dict[int, Callable[[T], None]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, handler: Callable[[T], None]) -> Subscription:
        token = next(self._tokens)
        self._handlers[token] = handler
        return Subscription(self, token)

    def _unsubscribe(self, token: int) -> None:
        self._handlers.pop(token, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    def publish(self, event: T) -> None:
        # Snapshot so handlers may unsubscribe while being called
        for handler in list(self._handlers.values()):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Handler for '{self.name}' failed")
