"""Channel routing: extract a track's source channels from a multitrack take."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Sequence, Tuple

import numpy as np
import soundfile as sf

from .gain import DEFAULT_CHUNK_FRAMES
from .pcm import PcmFormat, format_from_soundfile

logger = logging.getLogger(__name__)

_BLOCK_DTYPES = {8: "int16", 16: "int16", 24: "int32", 32: "int32"}


@dataclass(frozen=True)
class ChannelSplitResult:
    destination: Path
    source_channels: Tuple[int, ...]
    pcm_format: PcmFormat
    frames: int


def _column_indices(channels: Sequence[int], available: int) -> list[int]:
    if not channels:
        raise ValueError("At least one source channel is required")
    columns = []
    for channel in channels:
        if not 1 <= channel <= available:
            raise ValueError(
                f"Source channel {channel} out of range; recording has {available} channels"
            )
        columns.append(channel - 1)
    return columns


def _block_dtype(fmt: PcmFormat) -> str:
    # Wide enough for every sample so libsndfile copies them without rounding.
    if fmt.encoding == "float":
        return "float64" if fmt.bit_depth == 64 else "float32"
    return _BLOCK_DTYPES[fmt.bit_depth]


def split_channels(
    source: Path,
    destination: Path,
    channels: Sequence[int],
    *,
    chunk_frames: int = DEFAULT_CHUNK_FRAMES,
) -> ChannelSplitResult:
    """Copy the 1-based *channels* of *source* into a new file at *destination*.

    Any PCM or float subtype is accepted.  Samples are read in a dtype wide
    enough for the subtype, so the split file is bit-identical to the selected
    input columns.
    """

    if not source.exists():
        raise FileNotFoundError(f"Audio file '{source}' does not exist")
    with sf.SoundFile(str(source)) as reader:
        source_format = format_from_soundfile(reader)
        columns = _column_indices(channels, source_format.channels)
        output_format = PcmFormat(
            sample_rate=source_format.sample_rate,
            channels=len(columns),
            bit_depth=source_format.bit_depth,
            byte_order=source_format.byte_order,
            encoding=source_format.encoding,
        )
        destination.parent.mkdir(parents=True, exist_ok=True)
        frames = 0
        with sf.SoundFile(
            str(destination),
            mode="w",
            samplerate=reader.samplerate,
            channels=len(columns),
            subtype=reader.subtype,
            format=reader.format,
        ) as writer:
            dtype = _block_dtype(source_format)
            for block in reader.blocks(blocksize=chunk_frames, dtype=dtype, always_2d=True):
                writer.write(np.ascontiguousarray(block[:, columns]))
                frames += block.shape[0]

    logger.debug("Split channels %s of %s into %s", list(channels), source, destination)
    return ChannelSplitResult(
        destination=destination,
        source_channels=tuple(channels),
        pcm_format=output_format,
        frames=frames,
    )


__all__ = ["ChannelSplitResult", "split_channels"]
