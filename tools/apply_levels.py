"""CLI helper that renders a ``.levels`` automation file into a WAV file."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from audio.gain import DEFAULT_CHUNK_FRAMES, ApplicatorConfig, apply_gain_to_file
from audio.pcm import UnsupportedFormatError
from automation.curves import GainCurve
from domain.persistence import LevelsFileAdapter


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Apply fader automation from a .levels file to 16-bit PCM audio.",
    )
    parser.add_argument("source", type=Path, help="Input WAV file.")
    parser.add_argument("destination", type=Path, help="Output WAV file.")
    parser.add_argument(
        "--levels",
        type=Path,
        default=None,
        help="Level file to apply (defaults to SOURCE.levels).",
    )
    parser.add_argument(
        "--chunk-frames",
        type=int,
        default=DEFAULT_CHUNK_FRAMES,
        help="Frames processed per chunk.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    source = args.source.expanduser().resolve()
    if not source.exists():
        raise SystemExit(f"Audio file '{source}' does not exist.")
    levels_path = (args.levels or LevelsFileAdapter.path_for(source)).expanduser().resolve()
    if not levels_path.exists():
        raise SystemExit(f"Level file '{levels_path}' does not exist.")
    if args.chunk_frames <= 0:
        raise SystemExit("--chunk-frames must be positive.")

    try:
        curve = GainCurve(LevelsFileAdapter.load(levels_path))
    except (ValidationError, ValueError) as exc:
        raise SystemExit(f"Invalid level file '{levels_path}': {exc}") from exc

    try:
        result = apply_gain_to_file(
            source,
            args.destination.expanduser().resolve(),
            curve,
            ApplicatorConfig(chunk_frames=args.chunk_frames),
        )
    except UnsupportedFormatError as exc:
        raise SystemExit(f"Cannot process '{source}': {exc}") from exc

    print(f"Wrote {result.destination}")
    print(f"Frames: {result.frames} | Duration: {result.duration_seconds:.2f}s | Keyframes: {result.keyframes}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
