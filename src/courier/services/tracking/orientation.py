"""Compass heading normalisation, smoothing and throttling."""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from typing import Callable, Deque, Optional

from ...models.domain import AdvisoryLevel, Heading, HeadingConvention, HeadingSample
from ..advisories import AdvisoryBoard

logger = logging.getLogger(__name__)


def normalize_heading(value: float, convention: HeadingConvention, declination_deg: float = 0.0) -> float:
    """Convert a platform reading into degrees clockwise from true north, in [0, 360)."""

    if convention is HeadingConvention.ALPHA:
        degrees = 360.0 - value
    elif convention is HeadingConvention.MAGNETIC:
        degrees = value + declination_deg
    else:
        degrees = value
    return degrees % 360.0


def circular_mean(angles: list[float]) -> float:
    sin_sum = sum(math.sin(math.radians(a)) for a in angles)
    cos_sum = sum(math.cos(math.radians(a)) for a in angles)
    return math.degrees(math.atan2(sin_sum, cos_sum)) % 360.0


class OrientationAdapter:
    """Turn raw compass samples into a smoothed heading for the operator marker."""

    def __init__(
        self,
        *,
        window: int = 3,
        min_interval_ms: int = 100,
        declination_deg: float = 0.0,
        advisories: AdvisoryBoard | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window < 1:
            raise ValueError("Smoothing window must hold at least one sample.")
        self.min_interval_s = min_interval_ms / 1000.0
        self.declination_deg = declination_deg
        self.advisories = advisories
        self._clock = clock
        self._angles: Deque[float] = deque(maxlen=window)
        self._last_emitted_at: Optional[float] = None
        self._unavailable_reported = False
        self._current: Optional[Heading] = None

    @property
    def current(self) -> Optional[Heading]:
        return self._current

    def accept(self, sample: HeadingSample | None) -> Optional[Heading]:
        """Return the new heading, or None if the sample is unavailable or throttled."""
        if sample is None or sample.value is None or not math.isfinite(sample.value):
            if not self._unavailable_reported:
                self._unavailable_reported = True
                if self.advisories is not None:
                    self.advisories.post(
                        "orientation",
                        "Compass heading is not available on this device.",
                        AdvisoryLevel.INFO,
                    )
            return None

        self._unavailable_reported = False
        now = self._clock()
        if self._last_emitted_at is not None and now - self._last_emitted_at < self.min_interval_s:
            return None

        self._angles.append(normalize_heading(sample.value, sample.convention, self.declination_deg))
        self._last_emitted_at = now
        self._current = Heading(degrees=int(round(circular_mean(list(self._angles)))) % 360)
        return self._current
