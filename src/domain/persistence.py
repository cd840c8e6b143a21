"""Persistence helpers for level files, session configs, and summaries."""
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Sequence

from automation.curves import Keyframe

from .models import LevelPoint, SessionConfig, SessionSummary, level_points

SESSION_FILE_NAME = "session.json"


class LevelsFileAdapter:
    """Read and write ``.levels`` side-channel files.

    A level file is a JSON array of ``{"time", "beat", "value"}`` objects in
    ascending time order, where ``value`` is the linear gain.  Files written by
    older recorders may repeat a timestamp; the last entry for a time wins.
    """

    @staticmethod
    def path_for(audio_path: Path) -> Path:
        """Return the conventional level file location next to *audio_path*."""

        return audio_path.with_name(audio_path.name + ".levels")

    @staticmethod
    def save(keyframes: Sequence[Keyframe], destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        payload = [point.model_dump(mode="json") for point in level_points(keyframes)]
        destination.write_text(json.dumps(payload), encoding="utf-8")
        return destination

    @staticmethod
    def load(source: Path) -> List[Keyframe]:
        payload = json.loads(source.read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            raise ValueError(f"Level file '{source}' must contain a JSON array")
        keyframes: List[Keyframe] = []
        for item in payload:
            keyframe = LevelPoint.model_validate(item).to_keyframe()
            if keyframes and keyframes[-1].time == keyframe.time:
                keyframes[-1] = keyframe
            else:
                keyframes.append(keyframe)
        return keyframes


class SessionFileAdapter:
    """The ``session.json`` summary stored at the root of an exported session."""

    def __init__(self, session_root: Path, filename: str = SESSION_FILE_NAME) -> None:
        self.session_root = session_root
        self.path = session_root / filename

    def save(self, summary: SessionSummary) -> Path:
        self.session_root.mkdir(parents=True, exist_ok=True)
        self.path.write_text(summary.model_dump_json(indent=2), encoding="utf-8")
        return self.path

    def load(self) -> SessionSummary:
        if not self.path.exists():
            raise FileNotFoundError(f"No session summary at '{self.path}'")
        return SessionSummary.model_validate_json(self.path.read_text(encoding="utf-8"))


def load_session_config(path: Path) -> SessionConfig:
    """Load a :class:`SessionConfig` from a JSON document."""

    payload = json.loads(path.read_text(encoding="utf-8"))
    return SessionConfig.model_validate(payload)


__all__ = [
    "LevelsFileAdapter",
    "SESSION_FILE_NAME",
    "SessionFileAdapter",
    "load_session_config",
]
