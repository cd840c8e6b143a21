"""High-level helper that turns a recorded take into a session folder.

For every configured track the routed channels are split out of the
multitrack recording.  Tracks whose fader automation is too dense to embed in
a project file get the automation rendered straight into a ``-with-levels``
copy of their audio; sparse tracks keep their keyframes in the summary.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from audio.channels import ChannelSplitResult, split_channels
from audio.gain import ApplicatorConfig, apply_gain_to_file
from automation.curves import Keyframe
from automation.events import read_event_log
from automation.resolver import ResolvedTimeline, ResolverConfig, resolve

from .models import (
    SessionConfig,
    SessionSummary,
    SessionTrack,
    TempoPointRecord,
    TrackSpec,
    level_points,
)
from .persistence import LevelsFileAdapter, SessionFileAdapter

logger = logging.getLogger(__name__)

EVENTS_SUFFIX = ".events"
LEVELED_SUFFIX = "-with-levels"

ChannelSplitter = Callable[[Path, Path, Sequence[int]], ChannelSplitResult]


@dataclass(frozen=True)
class SessionExportResult:
    """Summaries of exported paths useful for logging or tooling."""

    session_root: Path
    summary_path: Path
    summary: SessionSummary
    track_paths: List[Path] = field(default_factory=list)
    level_paths: List[Path] = field(default_factory=list)
    baked_paths: List[Path] = field(default_factory=list)


def events_path_for(recording: Path) -> Path:
    """Return the event log recorded alongside *recording*."""

    return recording.with_name(recording.name + EVENTS_SUFFIX)


def strip_events_suffix(path: Path) -> Path:
    """Accept either the recording or its ``.events`` log and return the recording."""

    if path.suffix == EVENTS_SUFFIX:
        return path.with_suffix("")
    return path


class SessionExportService:
    """Resolve automation, split tracks, and write a session summary in one step."""

    def __init__(
        self,
        config: SessionConfig | None = None,
        *,
        splitter: ChannelSplitter | None = None,
    ) -> None:
        self.config = config or SessionConfig.default()
        self._splitter = splitter or self._split

    def resolver_config(self) -> ResolverConfig:
        if self.config.drift_correction:
            return ResolverConfig.with_drift_correction()
        return ResolverConfig()

    def resolve_timeline(self, events_path: Path) -> ResolvedTimeline:
        lines = read_event_log(events_path)
        return resolve(lines, len(self.config.tracks), self.resolver_config())

    def export_session(
        self,
        recording: Path,
        session_root: Path,
        *,
        events_path: Optional[Path] = None,
        created_at: Optional[datetime] = None,
    ) -> SessionExportResult:
        """Export *recording* into a new *session_root* directory.

        ``session.json`` is stamped with the current time unless *created_at*
        pins it, in which case identical inputs give identical output.
        """

        events_path = events_path or events_path_for(recording)
        if not recording.exists():
            raise FileNotFoundError(f"Recording '{recording}' does not exist")
        if not events_path.exists():
            raise FileNotFoundError(f"Event log '{events_path}' does not exist")

        logger.info("Parsing events from %s", events_path)
        timeline = self.resolve_timeline(events_path)
        session_root.mkdir(parents=True, exist_ok=False)

        logger.info("Exporting %d tracks to %s", len(self.config.tracks), session_root)
        base_name = recording.stem
        tracks: List[SessionTrack] = []
        track_paths: List[Path] = []
        level_paths: List[Path] = []
        baked_paths: List[Path] = []
        for index, spec in enumerate(self.config.tracks):
            keyframes = timeline.keyframes[index]
            split_path = session_root / spec.file_name(base_name)
            self._splitter(recording, split_path, spec.channels)
            track_paths.append(split_path)

            file_name = split_path.name
            embedded: Sequence[Keyframe] = keyframes
            baked = len(keyframes) > self.config.bake_threshold
            if baked:
                levels_path, baked_path = self._bake_levels(split_path, keyframes)
                level_paths.append(levels_path)
                baked_paths.append(baked_path)
                file_name = baked_path.name
                embedded = ()

            tracks.append(self._track_entry(spec, file_name, keyframes, embedded, baked, timeline))

        summary = SessionSummary(
            name=session_root.name,
            nominal_tempo=timeline.nominal_tempo,
            duration_seconds=timeline.total_duration,
            duration_beats=timeline.total_beats,
            tempo_map=[TempoPointRecord.from_point(point) for point in timeline.tempo_map],
            tracks=tracks,
        )
        if created_at is not None:
            summary = summary.model_copy(update={"created_at": created_at})
        summary_path = SessionFileAdapter(session_root).save(summary)
        logger.info("Exported session summary to %s", summary_path)

        return SessionExportResult(
            session_root=session_root,
            summary_path=summary_path,
            summary=summary,
            track_paths=track_paths,
            level_paths=level_paths,
            baked_paths=baked_paths,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _split(self, source: Path, destination: Path, channels: Sequence[int]) -> ChannelSplitResult:
        return split_channels(source, destination, channels, chunk_frames=self.config.chunk_frames)

    def _bake_levels(self, split_path: Path, keyframes: Sequence[Keyframe]) -> tuple[Path, Path]:
        levels_path = LevelsFileAdapter.save(keyframes, LevelsFileAdapter.path_for(split_path))
        baked_path = split_path.with_name(f"{split_path.stem}{LEVELED_SUFFIX}{split_path.suffix}")
        apply_gain_to_file(
            split_path,
            baked_path,
            keyframes,
            ApplicatorConfig(chunk_frames=self.config.chunk_frames),
        )
        logger.info("Rendered %d keyframes into %s", len(keyframes), baked_path.name)
        return levels_path, baked_path

    @staticmethod
    def _track_entry(
        spec: TrackSpec,
        file_name: str,
        keyframes: Sequence[Keyframe],
        embedded: Sequence[Keyframe],
        baked: bool,
        timeline: ResolvedTimeline,
    ) -> SessionTrack:
        return SessionTrack(
            id=spec.id,
            name=spec.name,
            channels=list(spec.channels),
            file_name=file_name,
            is_tempo_master=spec.is_tempo_master,
            levels_baked=baked,
            keyframe_count=len(keyframes),
            duration_beats=timeline.total_beats,
            volume=level_points(embedded),
        )


__all__ = [
    "ChannelSplitter",
    "EVENTS_SUFFIX",
    "SessionExportResult",
    "SessionExportService",
    "events_path_for",
    "strip_events_suffix",
]
