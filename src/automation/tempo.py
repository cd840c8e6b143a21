"""Piecewise tempo map converting recording time into musical beats."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from .curves import find_bracket

DEFAULT_TEMPO_BPM = 120.0


@dataclass(frozen=True)
class TempoPoint:
    """Tempo anchor: from ``time`` onwards beats advance at ``tempo`` BPM."""

    time: float
    beat: float
    tempo: float

    @property
    def beat_duration(self) -> float:
        return 60.0 / self.tempo

    def to_dict(self) -> dict[str, float]:
        return {"time": self.time, "beat": self.beat, "tempo": self.tempo}


class TempoMap:
    """Ordered tempo anchors, strictly increasing in time and beat."""

    def __init__(
        self, points: Iterable[TempoPoint] = (), *, default_tempo: float = DEFAULT_TEMPO_BPM
    ) -> None:
        self._points: Tuple[TempoPoint, ...] = tuple(points)
        self.default_tempo = default_tempo
        for previous, current in zip(self._points, self._points[1:]):
            if current.time <= previous.time or current.beat < previous.beat:
                raise ValueError("Tempo points must be strictly increasing in time")

    @property
    def points(self) -> Tuple[TempoPoint, ...]:
        return self._points

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TempoPoint]:
        return iter(self._points)

    def anchor_at(self, time: float) -> TempoPoint:
        """Return the last anchor at or before *time* (or the implicit origin)."""

        before, _ = find_bracket(self._points, _point_time, time)
        if before is None:
            return TempoPoint(time=0.0, beat=0.0, tempo=self.default_tempo)
        return self._points[before]

    def beat_at(self, time: float) -> float:
        """Convert a recording time in seconds to a beat position."""

        anchor = self.anchor_at(time)
        return anchor.beat + (time - anchor.time) / anchor.beat_duration

    def tempo_at(self, time: float) -> float:
        return self.anchor_at(time).tempo

    def to_list(self) -> list[dict[str, float]]:
        return [point.to_dict() for point in self._points]


def _point_time(point: TempoPoint) -> float:
    return point.time


__all__ = ["DEFAULT_TEMPO_BPM", "TempoMap", "TempoPoint"]
