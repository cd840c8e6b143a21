"""Tempo resolution and gain automation derived from recorder event logs."""
from .curves import GAIN_BOOST, GainCurve, Keyframe, find_bracket, gain_from_control
from .events import ControlChange, Event, TempoChange, Tick, iter_events, parse_event
from .resolver import (
    RECORDER_DRIFT_FACTOR,
    ResolvedTimeline,
    ResolverConfig,
    ResolverState,
    advance,
    resolve,
    resolve_events,
)
from .tempo import DEFAULT_TEMPO_BPM, TempoMap, TempoPoint

__all__ = [
    "ControlChange",
    "DEFAULT_TEMPO_BPM",
    "Event",
    "GAIN_BOOST",
    "GainCurve",
    "Keyframe",
    "RECORDER_DRIFT_FACTOR",
    "ResolvedTimeline",
    "ResolverConfig",
    "ResolverState",
    "TempoChange",
    "TempoMap",
    "TempoPoint",
    "Tick",
    "advance",
    "find_bracket",
    "gain_from_control",
    "iter_events",
    "parse_event",
    "resolve",
    "resolve_events",
]
