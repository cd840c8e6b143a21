"""Keyframes and piecewise-linear gain curves.

Fader moves arrive as sparse control points.  :class:`GainCurve` turns them
into a continuous multiplier: exact hits return the stored gain, points between
two keyframes are interpolated linearly, and anything outside the recorded
range holds the nearest edge value.  A curve without keyframes is the identity.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, TypeVar

import numpy as np

GAIN_BOOST = 1.618
CONTROL_MAX = 127

T = TypeVar("T")


@dataclass(frozen=True)
class Keyframe:
    """Automation point expressed in seconds, beats, and linear gain."""

    time: float
    beat: float
    gain: float

    def to_dict(self) -> dict[str, float]:
        """Return the ``{time, beat, value}`` record used by level files."""

        return {"time": self.time, "beat": self.beat, "value": self.gain}


def gain_from_control(value: float, *, boost: float = GAIN_BOOST) -> float:
    """Map a 0..127 controller value onto the squared fader law."""

    clamped = min(max(float(value), 0.0), float(CONTROL_MAX))
    normalized = clamped / CONTROL_MAX
    return normalized * normalized * boost


def find_bracket(
    items: Sequence[T], key: Callable[[T], float], value: float
) -> Tuple[Optional[int], Optional[int]]:
    """Locate *value* among *items* sorted ascending by *key*.

    Returns ``(index, index)`` on an exact match, otherwise the indices of the
    greatest item below and the least item above *value*.  Either side is
    ``None`` when *value* falls outside the sequence.
    """

    lo, hi = 0, len(items)
    while lo < hi:
        mid = (lo + hi) // 2
        if key(items[mid]) < value:
            lo = mid + 1
        else:
            hi = mid
    if lo < len(items) and key(items[lo]) == value:
        return lo, lo
    before = lo - 1 if lo > 0 else None
    after = lo if lo < len(items) else None
    return before, after


class GainCurve:
    """Gain lookups over an ordered keyframe sequence."""

    def __init__(self, keyframes: Sequence[Keyframe]) -> None:
        self._keyframes = tuple(keyframes)
        self._times = np.array([frame.time for frame in self._keyframes], dtype=np.float64)
        self._gains = np.array([frame.gain for frame in self._keyframes], dtype=np.float64)
        if not np.all(np.isfinite(self._times)):
            raise ValueError("Keyframe times must be finite")
        if self._times.size > 1 and np.any(np.diff(self._times) <= 0.0):
            raise ValueError("Keyframes must be strictly increasing in time")
        self._cached: Tuple[int, int] | None = None

    @property
    def keyframes(self) -> Tuple[Keyframe, ...]:
        return self._keyframes

    def __len__(self) -> int:
        return len(self._keyframes)

    def gain_at(self, time: float) -> float:
        """Return the instantaneous gain at *time* seconds."""

        if not self._keyframes:
            return 1.0
        before, after = self._cached_bracket(time)
        if before is None and after is None:
            before, after = find_bracket(self._keyframes, _keyframe_time, time)
        if before is not None and before == after:
            return self._keyframes[before].gain
        if before is not None and after is not None:
            self._cached = (before, after)
            return _interpolate(self._keyframes[before], self._keyframes[after], time)
        if after is None:
            return self._keyframes[before].gain
        return self._keyframes[after].gain

    def _cached_bracket(self, time: float) -> Tuple[Optional[int], Optional[int]]:
        # Sequential playback usually stays inside the previous bracket.
        if self._cached is None:
            return None, None
        before, after = self._cached
        if self._keyframes[before].time < time < self._keyframes[after].time:
            return before, after
        return None, None

    def gains_at(self, times: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`gain_at` for a block of query times."""

        times = np.asarray(times, dtype=np.float64)
        if not self._keyframes:
            return np.ones(times.shape, dtype=np.float64)
        count = self._times.size
        index = np.searchsorted(self._times, times, side="left")
        exact = (index < count) & (self._times[np.minimum(index, count - 1)] == times)

        before = np.clip(index - 1, 0, count - 1)
        after = np.clip(index, 0, count - 1)
        t0 = self._times[before]
        t1 = self._times[after]
        g0 = self._gains[before]
        g1 = self._gains[after]
        span = np.where(t1 > t0, t1 - t0, 1.0)
        interpolated = g0 + (g1 - g0) * ((times - t0) / span)

        gains = np.where(index == 0, self._gains[0], interpolated)
        gains = np.where(index >= count, self._gains[-1], gains)
        return np.where(exact, self._gains[np.minimum(index, count - 1)], gains)


def _keyframe_time(frame: Keyframe) -> float:
    return frame.time


def _interpolate(before: Keyframe, after: Keyframe, time: float) -> float:
    position = (time - before.time) / (after.time - before.time)
    return before.gain + (after.gain - before.gain) * position


__all__ = [
    "CONTROL_MAX",
    "GAIN_BOOST",
    "GainCurve",
    "Keyframe",
    "find_bracket",
    "gain_from_control",
]
