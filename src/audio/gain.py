"""Streaming gain stage that bakes an automation curve into PCM audio.

Audio is read, scaled and written one frame-aligned chunk at a time, so memory
use is bounded by the chunk size rather than the recording length.  Every
channel of a frame shares the same gain; products are truncated toward zero
and clipped to the 16-bit range so loud passages saturate instead of wrapping.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Iterable, Iterator, Sequence, Union

import numpy as np
import soundfile as sf

from automation.curves import GainCurve, Keyframe

from .pcm import PcmFormat, ensure_supported, format_from_soundfile

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_FRAMES = 1024
INT16_MIN = -0x8000
INT16_MAX = 0x7FFF

Chunk = Union[bytes, bytearray, memoryview, np.ndarray]


@dataclass
class ApplicatorConfig:
    """I/O tuning for the gain stage."""

    chunk_frames: int = DEFAULT_CHUNK_FRAMES

    def __post_init__(self) -> None:
        if self.chunk_frames <= 0:
            raise ValueError("chunk_frames must be positive")


@dataclass(frozen=True)
class GainRenderResult:
    """Summary of a file rendered through :func:`apply_gain_to_file`."""

    destination: Path
    pcm_format: PcmFormat
    frames: int
    keyframes: int

    @property
    def duration_seconds(self) -> float:
        return self.pcm_format.frames_to_seconds(self.frames)


class GainApplicator:
    """Scale consecutive frame blocks by a :class:`GainCurve`."""

    def __init__(self, curve: GainCurve, pcm_format: PcmFormat) -> None:
        ensure_supported(pcm_format)
        self.curve = curve
        self.pcm_format = pcm_format
        self._position = 0

    @property
    def position(self) -> int:
        """Absolute index of the next frame to be processed."""

        return self._position

    def process(self, block: np.ndarray) -> np.ndarray:
        """Return a new ``int16`` block with gain applied to every channel."""

        frames = np.asarray(block)
        if frames.ndim == 1:
            frames = frames.reshape(-1, self.pcm_format.channels)
        if frames.shape[1] != self.pcm_format.channels:
            raise ValueError(
                f"Block has {frames.shape[1]} channels; expected {self.pcm_format.channels}"
            )
        count = frames.shape[0]
        indices = np.arange(self._position, self._position + count, dtype=np.float64)
        gains = self.curve.gains_at(indices / self.pcm_format.sample_rate)
        scaled = np.trunc(frames.astype(np.float64) * gains[:, None])
        self._position += count
        return np.clip(scaled, INT16_MIN, INT16_MAX).astype(np.int16)

    def process_bytes(self, chunk: Chunk) -> bytes:
        """Byte-level variant of :meth:`process` for raw little-endian PCM."""

        if len(chunk) % self.pcm_format.frame_bytes:
            raise ValueError("Chunk is not aligned to the frame boundary")
        samples = np.frombuffer(chunk, dtype=self.pcm_format.numpy_dtype)
        processed = self.process(samples.reshape(-1, self.pcm_format.channels))
        return processed.astype(self.pcm_format.numpy_dtype, copy=False).tobytes()


def frame_aligned_chunks(
    chunks: Iterable[Chunk], frame_bytes: int, chunk_frames: int = DEFAULT_CHUNK_FRAMES
) -> Iterator[bytes]:
    """Regroup an arbitrary byte stream into whole-frame chunks."""

    size = frame_bytes * chunk_frames
    pending = bytearray()
    for chunk in chunks:
        pending.extend(chunk)
        while len(pending) >= size:
            yield bytes(pending[:size])
            del pending[:size]
    if len(pending) % frame_bytes:
        raise ValueError("PCM stream ends with a partial frame")
    if pending:
        yield bytes(pending)


def apply_gain(
    chunks: Iterable[Chunk],
    keyframes: Sequence[Keyframe] | GainCurve,
    pcm_format: PcmFormat,
    config: ApplicatorConfig | None = None,
) -> Iterator[bytes]:
    """Yield gain-adjusted PCM bytes for a raw little-endian byte stream."""

    config = config or ApplicatorConfig()
    curve = keyframes if isinstance(keyframes, GainCurve) else GainCurve(keyframes)
    applicator = GainApplicator(curve, pcm_format)
    for chunk in frame_aligned_chunks(chunks, pcm_format.frame_bytes, config.chunk_frames):
        yield applicator.process_bytes(chunk)


def apply_gain_to_file(
    source: Path,
    destination: Path,
    keyframes: Sequence[Keyframe] | GainCurve,
    config: ApplicatorConfig | None = None,
) -> GainRenderResult:
    """Render *source* into *destination* with the automation curve applied.

    The output keeps the container, subtype, sample rate and channel count of
    the input.  Unsupported formats are rejected before *destination* is
    created.
    """

    config = config or ApplicatorConfig()
    if not source.exists():
        raise FileNotFoundError(f"Audio file '{source}' does not exist")
    curve = keyframes if isinstance(keyframes, GainCurve) else GainCurve(keyframes)

    with sf.SoundFile(str(source)) as reader:
        pcm_format = format_from_soundfile(reader)
        applicator = GainApplicator(curve, pcm_format)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with sf.SoundFile(
            str(destination),
            mode="w",
            samplerate=reader.samplerate,
            channels=reader.channels,
            subtype=reader.subtype,
            format=reader.format,
        ) as writer:
            for block in reader.blocks(
                blocksize=config.chunk_frames, dtype="int16", always_2d=True
            ):
                writer.write(applicator.process(block))

    logger.debug(
        "Applied %d keyframes to %d frames (%s -> %s)",
        len(curve),
        applicator.position,
        source,
        destination,
    )
    return GainRenderResult(
        destination=destination,
        pcm_format=pcm_format,
        frames=applicator.position,
        keyframes=len(curve),
    )


__all__ = [
    "ApplicatorConfig",
    "DEFAULT_CHUNK_FRAMES",
    "GainApplicator",
    "GainRenderResult",
    "apply_gain",
    "apply_gain_to_file",
    "frame_aligned_chunks",
]
