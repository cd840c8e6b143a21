"""Parsed recorder events and the line-oriented log reader.

The recorder appends one JSON array per line while a session is captured.
Lines written while the recorder was shutting down are frequently truncated,
so the reader treats anything it cannot decode as noise rather than as an
error.
"""
from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import math
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tick:
    """Clock pulse emitted by the tempo master."""

    time: float


@dataclass(frozen=True)
class TempoChange:
    """Tempo announcement in beats per minute."""

    time: float
    bpm: float


@dataclass(frozen=True)
class ControlChange:
    """Fader movement for a logical track (raw 0..127 controller value)."""

    time: float
    track_index: int
    value: int


Event = Union[Tick, TempoChange, ControlChange]


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not isinstance(value, float) or math.isfinite(value)


def _reject_constant(name: str) -> float:
    raise ValueError(f"Non-finite number {name} in event log")


def parse_event(line: str) -> Optional[Event]:
    """Decode a single log line, returning ``None`` when it is unusable."""

    try:
        record = json.loads(line, parse_constant=_reject_constant)
    except ValueError:
        return None
    if not isinstance(record, list) or len(record) < 2:
        return None
    time, kind = record[0], record[1]
    if not _is_number(time):
        return None

    if kind == "tick":
        return Tick(time=float(time))
    if kind == "tempo":
        if len(record) < 3 or not _is_number(record[2]) or record[2] <= 0:
            return None
        return TempoChange(time=float(time), bpm=float(record[2]))
    if kind == "channel_volume":
        if len(record) < 4 or not _is_number(record[2]) or not _is_number(record[3]):
            return None
        return ControlChange(time=float(time), track_index=int(record[2]), value=int(record[3]))
    return None


def iter_events(lines: Iterable[str]) -> Iterator[Event]:
    """Yield events from *lines* in log order, skipping unusable records."""

    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        event = parse_event(line)
        if event is None:
            logger.debug("Skipping unparsable event line %d: %r", number, line[:80])
            continue
        yield event


def read_event_log(path: Path) -> list[str]:
    """Return the raw lines of an ``.events`` file.

    Undecodable bytes become replacement characters, so a torn record only
    spoils its own line.
    """

    return path.read_text(encoding="utf-8", errors="replace").splitlines()


__all__ = [
    "ControlChange",
    "Event",
    "TempoChange",
    "Tick",
    "iter_events",
    "parse_event",
    "read_event_log",
]
