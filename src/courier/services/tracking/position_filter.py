"""Accuracy gate and moving-average smoothing for device position samples."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Optional

from ...models.domain import AdvisoryLevel, FilteredPosition, PositionSample
from ..advisories import AdvisoryBoard

logger = logging.getLogger(__name__)


class PositionFilter:
    """Reject low-confidence samples and smooth the accepted ones.

    Accepted samples are kept in a trailing window of ``window`` entries and
    latitude/longitude are averaged independently over whatever the window
    currently holds. The first accepted sample ever triggers ``on_acquired``.
    """

    def __init__(
        self,
        *,
        window: int = 3,
        reject_accuracy_m: float = 10.0,
        advisory_accuracy_m: float = 50.0,
        advisories: AdvisoryBoard | None = None,
        on_acquired: Callable[[FilteredPosition], None] | None = None,
    ) -> None:
        if window < 1:
            raise ValueError("Smoothing window must hold at least one sample.")
        self.window = window
        self.reject_accuracy_m = reject_accuracy_m
        self.advisory_accuracy_m = advisory_accuracy_m
        self.advisories = advisories
        self.on_acquired = on_acquired
        self._samples: Deque[PositionSample] = deque(maxlen=window)
        self._acquired = False
        self._current: Optional[FilteredPosition] = None

    @property
    def current(self) -> Optional[FilteredPosition]:
        return self._current

    @property
    def acquired(self) -> bool:
        return self._acquired

    def accept(self, sample: PositionSample) -> Optional[FilteredPosition]:
        """Return the new filtered position, or None when the sample is rejected."""
        if sample.accuracy > self.reject_accuracy_m:
            logger.debug(f"Rejected position sample with accuracy {sample.accuracy:.1f} m")
            if sample.accuracy > self.advisory_accuracy_m and self.advisories is not None:
                self.advisories.post(
                    "position",
                    f"Location accuracy is poor ({sample.accuracy:.0f} m); waiting for a better fix.",
                    AdvisoryLevel.WARNING,
                )
            return None

        self._samples.append(sample)
        count = len(self._samples)
        self._current = FilteredPosition(
            latitude=sum(s.latitude for s in self._samples) / count,
            longitude=sum(s.longitude for s in self._samples) / count,
        )

        if not self._acquired:
            self._acquired = True
            logger.info("Position acquired")
            if self.on_acquired is not None:
                self.on_acquired(self._current)

        return self._current

    def reset(self) -> None:
        """Forget held samples. The acquired signal is not re-armed."""
        self._samples.clear()
        self._current = None

    def __len__(self) -> int:
        return len(self._samples)
