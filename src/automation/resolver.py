"""Fold a recorder event log into a tempo map and per-track gain keyframes.

Resolution is strictly causal: each event's beat position is derived from the
tempo anchor known *when the event is read*.  A tempo change logged later never
rewrites beats that were already assigned.  The state is an immutable value
threaded through :func:`advance`, so individual events can be exercised in
isolation.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .curves import GAIN_BOOST, GainCurve, Keyframe, gain_from_control
from .events import ControlChange, Event, TempoChange, Tick, iter_events
from .tempo import DEFAULT_TEMPO_BPM, TempoMap, TempoPoint

logger = logging.getLogger(__name__)

# Measured offset between the mixer clock and the recorder clock.
RECORDER_DRIFT_FACTOR = 0.9999541021


@dataclass
class ResolverConfig:
    """Numeric knobs for turning fader moves into keyframes."""

    default_tempo: float = DEFAULT_TEMPO_BPM
    hold_gap_seconds: float = 0.1
    hold_lead_seconds: float = 0.05
    gain_boost: float = GAIN_BOOST
    drift_factor: float = 1.0

    def __post_init__(self) -> None:
        if self.default_tempo <= 0:
            raise ValueError("default_tempo must be positive")
        if self.drift_factor <= 0:
            raise ValueError("drift_factor must be positive")
        if not 0.0 <= self.hold_lead_seconds <= self.hold_gap_seconds:
            raise ValueError("hold_lead_seconds must lie between 0 and hold_gap_seconds")

    @classmethod
    def with_drift_correction(cls, **overrides: float) -> "ResolverConfig":
        """Return a config that compensates for the recorder clock drift."""

        return cls(drift_factor=RECORDER_DRIFT_FACTOR, **overrides)


@dataclass(frozen=True)
class ResolverState:
    """Running accumulator threaded through the event fold."""

    track_count: int
    tempo_points: Tuple[TempoPoint, ...] = ()
    last_keyframes: Tuple[Optional[Keyframe], ...] = ()
    total_duration: float = 0.0
    total_beats: float = 0.0
    nominal_tempo: Optional[float] = None
    last_tick: Optional[float] = None

    @classmethod
    def initial(cls, track_count: int) -> "ResolverState":
        if track_count < 0:
            raise ValueError("track_count must not be negative")
        return cls(track_count=track_count, last_keyframes=(None,) * track_count)

    def current_tempo(self, config: ResolverConfig) -> float:
        return self.tempo_points[-1].tempo if self.tempo_points else config.default_tempo

    def beat_at(self, time: float, config: ResolverConfig) -> float:
        if self.tempo_points:
            anchor = self.tempo_points[-1]
            anchor_time, anchor_beat = anchor.time, anchor.beat
        else:
            anchor_time, anchor_beat = 0.0, 0.0
        return anchor_beat + (time - anchor_time) * self.current_tempo(config) / 60.0


@dataclass(frozen=True)
class Emitted:
    """Keyframes produced for a single track by one event."""

    track_index: int
    keyframes: Tuple[Keyframe, ...]


def advance(
    state: ResolverState, event: Event, config: ResolverConfig
) -> Tuple[ResolverState, Optional[Emitted]]:
    """Apply one event to *state*, returning the new state and any keyframes."""

    if isinstance(event, Tick):
        time, beat = _position(state, event, config)
        return replace(state, total_duration=time, total_beats=beat, last_tick=time), None

    if isinstance(event, ControlChange):
        time, beat = _position(state, event, config)
        return _advance_control(state, event, time, beat, config)

    if isinstance(event, TempoChange):
        time, beat = _position(state, event, config)
        tempo = event.bpm / config.drift_factor
        point = TempoPoint(time=time, beat=beat, tempo=tempo)
        points = state.tempo_points
        if points and time < points[-1].time:
            logger.debug("Ignoring out-of-order tempo change at %.3fs", time)
            return state, None
        if points and points[-1].time == time:
            # Simultaneous announcements: keep the latest one.
            points = points[:-1]
        nominal = state.nominal_tempo if state.nominal_tempo is not None else event.bpm
        return replace(state, tempo_points=points + (point,), nominal_tempo=nominal), None

    raise TypeError(f"Unsupported event type {type(event).__name__}")


def _position(state: ResolverState, event: Event, config: ResolverConfig) -> Tuple[float, float]:
    time = event.time * config.drift_factor
    return time, state.beat_at(time, config)


def _advance_control(
    state: ResolverState,
    event: ControlChange,
    time: float,
    beat: float,
    config: ResolverConfig,
) -> Tuple[ResolverState, Optional[Emitted]]:
    index = event.track_index
    if not 0 <= index < state.track_count:
        logger.debug("Ignoring fader move for unknown track %d at %.3fs", index, time)
        return state, None

    gain = gain_from_control(event.value, boost=config.gain_boost)
    keyframe = Keyframe(time=time, beat=beat, gain=gain)
    previous = state.last_keyframes[index]
    emitted: Tuple[Keyframe, ...] = (keyframe,)
    if previous is not None and time - previous.time > config.hold_gap_seconds:
        beat_duration = 60.0 / state.current_tempo(config)
        hold = Keyframe(
            time=time - config.hold_lead_seconds,
            beat=beat - config.hold_lead_seconds / beat_duration,
            gain=previous.gain,
        )
        emitted = (hold, keyframe)

    last_keyframes = list(state.last_keyframes)
    last_keyframes[index] = keyframe
    return replace(state, last_keyframes=tuple(last_keyframes)), Emitted(index, emitted)


@dataclass(frozen=True)
class ResolvedTimeline:
    """Immutable result of resolving an event log."""

    tempo_map: TempoMap
    keyframes: Tuple[Tuple[Keyframe, ...], ...]
    total_duration: float = 0.0
    total_beats: float = 0.0
    nominal_tempo: Optional[float] = None
    tick_intervals: Tuple[float, ...] = field(default=())

    @property
    def track_count(self) -> int:
        return len(self.keyframes)

    def curve(self, track_index: int) -> GainCurve:
        """Return the gain curve for *track_index*."""

        return GainCurve(self.keyframes[track_index])

    def mean_tick_interval(self) -> Optional[float]:
        if not self.tick_intervals:
            return None
        return sum(self.tick_intervals) / len(self.tick_intervals)


def _append_keyframe(track: List[Keyframe], keyframe: Keyframe) -> None:
    if track and keyframe.time <= track[-1].time:
        if keyframe.time == track[-1].time:
            track[-1] = keyframe
            return
        logger.debug("Dropping out-of-order keyframe at %.3fs", keyframe.time)
        return
    track.append(keyframe)


def resolve_events(
    events: Iterable[Event], track_count: int, config: ResolverConfig | None = None
) -> ResolvedTimeline:
    """Fold already-parsed *events* into a :class:`ResolvedTimeline`."""

    config = config or ResolverConfig()
    state = ResolverState.initial(track_count)
    tracks: List[List[Keyframe]] = [[] for _ in range(track_count)]
    tick_intervals: List[float] = []

    for event in events:
        previous_tick = state.last_tick
        state, emitted = advance(state, event, config)
        if isinstance(event, Tick) and previous_tick is not None and state.last_tick is not None:
            tick_intervals.append(state.last_tick - previous_tick)
        if emitted is not None:
            for keyframe in emitted.keyframes:
                _append_keyframe(tracks[emitted.track_index], keyframe)

    points = list(state.tempo_points)
    closing = TempoPoint(
        time=state.total_duration,
        beat=state.total_beats,
        tempo=state.current_tempo(config),
    )
    if not points or closing.time > points[-1].time:
        points.append(closing)

    timeline = ResolvedTimeline(
        tempo_map=TempoMap(points, default_tempo=config.default_tempo),
        keyframes=tuple(tuple(track) for track in tracks),
        total_duration=state.total_duration,
        total_beats=state.total_beats,
        nominal_tempo=state.nominal_tempo,
        tick_intervals=tuple(tick_intervals),
    )
    logger.debug(
        "Resolved %.2fs (%.2f beats) across %d tracks with %d tempo points",
        timeline.total_duration,
        timeline.total_beats,
        track_count,
        len(points),
    )
    return timeline


def resolve(
    event_log: Sequence[str] | Iterable[str],
    track_count: int,
    config: ResolverConfig | None = None,
) -> ResolvedTimeline:
    """Parse raw log lines and resolve them for *track_count* tracks."""

    return resolve_events(iter_events(event_log), track_count, config)


__all__ = [
    "Emitted",
    "RECORDER_DRIFT_FACTOR",
    "ResolvedTimeline",
    "ResolverConfig",
    "ResolverState",
    "advance",
    "resolve",
    "resolve_events",
]
