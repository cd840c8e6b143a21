"""Pydantic-powered session models for recorder takes.

A take is one multitrack recording plus the event log captured alongside it.
:class:`SessionConfig` describes how its channels map onto logical tracks, and
:class:`SessionSummary` is the document handed to project-file generators once
tempo and fader automation have been resolved.
"""
from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator, model_validator

from automation.curves import Keyframe
from automation.tempo import TempoPoint


class TrackSpec(BaseModel):
    """Routing for one logical track of the take."""

    id: int = Field(..., description="Identifier used by downstream project files")
    name: str = Field(..., min_length=1)
    channels: List[int] = Field(
        ..., min_length=1, description="1-based source channels mixed into this track"
    )
    file_suffix: Optional[str] = Field(
        None, description="Suffix for exported audio; defaults to the track name"
    )
    is_tempo_master: bool = False

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, channels: List[int]) -> List[int]:
        if any(channel < 1 for channel in channels):
            raise ValueError("Channel numbers start at 1")
        return channels

    def file_name(self, base_name: str, extension: str = ".wav") -> str:
        """Return the exported audio file name for a take called *base_name*."""

        return f"{base_name}-{self.file_suffix or self.name}{extension}"


class SessionConfig(BaseModel):
    """Track layout and rendering options for a take."""

    tracks: List[TrackSpec] = Field(default_factory=list)
    bake_threshold: int = Field(
        500, ge=0, description="Tracks with more keyframes are rendered into audio"
    )
    drift_correction: bool = Field(
        False, description="Compensate for the recorder clock running fast"
    )
    chunk_frames: int = Field(1024, gt=0)

    @model_validator(mode="after")
    def validate_tracks(self) -> SessionConfig:  # type: ignore[override]
        names = [track.name for track in self.tracks]
        if len(names) != len(set(names)):
            raise ValueError("Track names must be unique")
        if sum(1 for track in self.tracks if track.is_tempo_master) > 1:
            raise ValueError("Only one track can be the tempo master")
        return self

    @classmethod
    def default(cls) -> SessionConfig:
        """Return the five-track layout used by the live rig."""

        return cls(
            tracks=[
                TrackSpec(id=8, name="drums", channels=[1], file_suffix="sampler", is_tempo_master=True),
                TrackSpec(id=9, name="ext", channels=[5]),
                TrackSpec(id=10, name="bass", channels=[2]),
                TrackSpec(id=11, name="synth", channels=[3, 4]),
                TrackSpec(id=12, name="fx", channels=[7, 8]),
            ]
        )


class LevelPoint(BaseModel):
    """Serialized keyframe as stored in ``.levels`` files and summaries."""

    time: float
    beat: float
    value: float = Field(..., ge=0.0, description="Linear gain multiplier")

    @classmethod
    def from_keyframe(cls, keyframe: Keyframe) -> LevelPoint:
        return cls(time=keyframe.time, beat=keyframe.beat, value=keyframe.gain)

    def to_keyframe(self) -> Keyframe:
        return Keyframe(time=self.time, beat=self.beat, gain=self.value)


class TempoPointRecord(BaseModel):
    time: float
    beat: float
    tempo: float = Field(..., gt=0)

    @classmethod
    def from_point(cls, point: TempoPoint) -> TempoPointRecord:
        return cls(time=point.time, beat=point.beat, tempo=point.tempo)


class SessionTrack(BaseModel):
    """Exported track entry: audio file plus any automation left to embed."""

    id: int
    name: str
    channels: List[int]
    file_name: str
    is_tempo_master: bool = False
    levels_baked: bool = False
    keyframe_count: int = Field(0, ge=0)
    duration_beats: float = 0.0
    volume: List[LevelPoint] = Field(default_factory=list)


class SessionSummary(BaseModel):
    """Tempo map and per-track automation for downstream project generation."""

    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    nominal_tempo: Optional[float] = None
    duration_seconds: float = 0.0
    duration_beats: float = 0.0
    tempo_map: List[TempoPointRecord] = Field(default_factory=list)
    tracks: List[SessionTrack] = Field(default_factory=list)

    def track(self, name: str) -> SessionTrack:
        """Return the track called *name*, raising if it is unknown."""

        for track in self.tracks:
            if track.name == name:
                return track
        raise KeyError(f"Track {name!r} not found")


def level_points(keyframes: Sequence[Keyframe]) -> List[LevelPoint]:
    return [LevelPoint.from_keyframe(keyframe) for keyframe in keyframes]


__all__ = [
    "LevelPoint",
    "SessionConfig",
    "SessionSummary",
    "SessionTrack",
    "TempoPointRecord",
    "TrackSpec",
    "level_points",
]
