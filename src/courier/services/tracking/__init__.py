"""Device position and orientation tracking."""

from .orientation import OrientationAdapter, normalize_heading
from .position_filter import PositionFilter

__all__ = [
    "OrientationAdapter",
    "PositionFilter",
    "normalize_heading",
]
