"""Progress reporting for long-running intake steps.

Callers pass a plain callable that receives a float in [0, 100]. Each step
owns a sub-range of that scale (text extraction usually the first half,
candidate extraction the second) and reports fractions of its own work.
"""

import logging
from typing import Callable, Optional, Tuple

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]

FULL_RANGE: Tuple[float, float] = (0.0, 100.0)


class ScaledProgress:
    """Maps step-local fractions onto a caller-declared sub-range.

    Emitted values never move backward: a fraction lower than one already
    reported is dropped.
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback],
        progress_range: Tuple[float, float] = FULL_RANGE,
    ):
        start, end = progress_range
        if not (0.0 <= start <= end <= 100.0):
            raise ValueError(f"Invalid progress range: {progress_range}")
        self.callback = callback
        self.start = float(start)
        self.end = float(end)
        self.last: Optional[float] = None

    def report(self, fraction: float) -> None:
        """Report completion of ``fraction`` (0..1) of this step."""
        if self.callback is None:
            return
        fraction = min(max(float(fraction), 0.0), 1.0)
        value = self.start + (self.end - self.start) * fraction
        if self.last is not None and value <= self.last:
            return
        self.last = value
        self.callback(value)

    def done(self) -> None:
        self.report(1.0)
