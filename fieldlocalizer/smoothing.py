"""Moving-average smoothing of the published robot pose."""

from __future__ import annotations

from collections import deque

from fieldlocalizer.model import Pose


def _truncate(value: float) -> int:
    """Drop the fractional part, rounding toward zero."""
    return int(value)


def _integer_mean(values: deque[float], count: int) -> float:
    """Mean with integer arithmetic.

    Each partial sum is truncated toward zero, then the sum is divided by
    ``count`` and the quotient is truncated toward zero as well.
    """
    total = 0
    for value in values:
        total = _truncate(total + value)
    quotient = abs(total) // count
    return float(quotient if total >= 0 else -quotient)


class PoseMovingAverage:
    """Smooths poses over a sliding window of the last ``size`` samples.

    Averages are taken in whole units: fractional parts are dropped while
    summing and after dividing. Until the window has filled, the mean of all
    samples so far is returned.
    """

    def __init__(self, size: int = 5) -> None:
        if size <= 0:
            raise ValueError("size must be positive")
        self.size = size
        self._xs: deque[float] = deque()
        self._ys: deque[float] = deque()
        self._thetas: deque[float] = deque()

    def push(self, pose: Pose) -> Pose:
        """Add a pose to the window and return the smoothed pose."""
        self._xs.append(pose.x)
        self._ys.append(pose.y)
        self._thetas.append(pose.theta)

        if len(self._ys) < self.size:
            count = len(self._ys)
            return Pose(
                _integer_mean(self._xs, count),
                _integer_mean(self._ys, count),
                _integer_mean(self._thetas, count),
            )

        smoothed = Pose(
            _integer_mean(self._xs, self.size),
            _integer_mean(self._ys, self.size),
            _integer_mean(self._thetas, self.size),
        )
        self._xs.popleft()
        self._ys.popleft()
        self._thetas.popleft()
        return smoothed