"""CLI helper that turns a recorded take plus its event log into a session folder."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from audio.pcm import UnsupportedFormatError
from domain.models import SessionConfig
from domain.persistence import load_session_config
from domain.session_export_service import (
    SessionExportService,
    events_path_for,
    strip_events_suffix,
)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Split a multitrack take into tracks and resolve its tempo and fader automation.",
    )
    parser.add_argument(
        "recording",
        type=Path,
        help="Multitrack WAV recording (the matching .events path is accepted too).",
    )
    parser.add_argument(
        "session_root",
        type=Path,
        help="Destination directory for the session; must not exist yet.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Session config JSON describing the track layout (defaults to the live rig).",
    )
    parser.add_argument(
        "--drift-correction",
        action="store_true",
        help="Compensate for the recorder clock drift when resolving times and tempos.",
    )
    parser.add_argument(
        "--bake-threshold",
        type=int,
        default=None,
        help="Render tracks with more keyframes than this into audio.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> SessionConfig:
    if args.config is None:
        config = SessionConfig.default()
    else:
        config_path = args.config.expanduser().resolve()
        if not config_path.exists():
            raise SystemExit(f"Session config '{config_path}' does not exist.")
        try:
            config = load_session_config(config_path)
        except ValidationError as exc:
            raise SystemExit(f"Invalid session config '{config_path}': {exc}") from exc

    updates: dict[str, object] = {}
    if args.drift_correction:
        updates["drift_correction"] = True
    if args.bake_threshold is not None:
        if args.bake_threshold < 0:
            raise SystemExit("--bake-threshold must not be negative.")
        updates["bake_threshold"] = args.bake_threshold
    return config.model_copy(update=updates) if updates else config


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    recording = strip_events_suffix(args.recording.expanduser().resolve())
    events_path = events_path_for(recording)
    if not recording.exists():
        raise SystemExit(f"Recording '{recording}' does not exist.")
    if not events_path.exists():
        raise SystemExit(f"Event log '{events_path}' does not exist.")
    session_root = args.session_root.expanduser().resolve()
    if session_root.exists():
        raise SystemExit(f"Session directory '{session_root}' already exists.")

    service = SessionExportService(_load_config(args))
    try:
        result = service.export_session(recording, session_root, events_path=events_path)
    except UnsupportedFormatError as exc:
        raise SystemExit(f"Cannot process '{recording}': {exc}") from exc

    summary = result.summary
    tempo = f"{summary.nominal_tempo:g} BPM" if summary.nominal_tempo is not None else "no tempo"
    print(f"Exported session to {result.summary_path}")
    print(
        f"Duration: {summary.duration_seconds:.2f}s ({summary.duration_beats:.2f} beats) | "
        f"Tempo: {tempo} | Tracks: {len(summary.tracks)} | Baked: {len(result.baked_paths)}"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
