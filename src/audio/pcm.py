"""PCM stream format description and support checks."""
from __future__ import annotations

from dataclasses import dataclass
import sys
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    import soundfile as sf

_SUBTYPE_BIT_DEPTHS = {
    "PCM_S8": (8, "pcm"),
    "PCM_U8": (8, "pcm"),
    "PCM_16": (16, "pcm"),
    "PCM_24": (24, "pcm"),
    "PCM_32": (32, "pcm"),
    "FLOAT": (32, "float"),
    "DOUBLE": (64, "float"),
}
_BIG_ENDIAN_CONTAINERS = {"AIFF", "AU"}


class UnsupportedFormatError(ValueError):
    """Raised when a stream uses a sample layout the gain stage cannot rewrite."""


@dataclass(frozen=True)
class PcmFormat:
    """Interleaved PCM layout shared by the input and output streams."""

    sample_rate: int
    channels: int
    bit_depth: int = 16
    byte_order: str = "little"
    encoding: str = "pcm"

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if self.channels <= 0:
            raise ValueError("channels must be positive")
        if self.byte_order not in ("little", "big"):
            raise ValueError(f"Unknown byte order {self.byte_order!r}")

    @property
    def sample_bytes(self) -> int:
        return self.bit_depth // 8

    @property
    def frame_bytes(self) -> int:
        """Bytes per frame (one sample for every channel)."""

        return self.sample_bytes * self.channels

    @property
    def byte_rate(self) -> int:
        return self.frame_bytes * self.sample_rate

    @property
    def numpy_dtype(self) -> np.dtype:
        ensure_supported(self)
        return np.dtype("<i2")

    def frames_to_seconds(self, frames: int) -> float:
        return frames / float(self.sample_rate)


def ensure_supported(fmt: PcmFormat) -> None:
    """Raise :class:`UnsupportedFormatError` unless *fmt* is signed 16-bit little-endian."""

    if fmt.encoding != "pcm":
        raise UnsupportedFormatError(f"Unsupported sample encoding: {fmt.encoding}")
    if fmt.bit_depth != 16:
        raise UnsupportedFormatError(f"Unsupported bit depth: {fmt.bit_depth}")
    if fmt.byte_order != "little":
        raise UnsupportedFormatError(f"Unsupported byte order: {fmt.byte_order}")


def format_from_soundfile(handle: "sf.SoundFile") -> PcmFormat:
    """Describe an open :class:`soundfile.SoundFile` as a :class:`PcmFormat`."""

    subtype = str(handle.subtype).upper()
    if subtype not in _SUBTYPE_BIT_DEPTHS:
        raise UnsupportedFormatError(f"Unsupported sample subtype: {subtype}")
    bit_depth, encoding = _SUBTYPE_BIT_DEPTHS[subtype]

    endian = str(handle.endian).upper()
    if endian == "LITTLE":
        byte_order = "little"
    elif endian == "BIG":
        byte_order = "big"
    elif endian == "CPU":
        byte_order = sys.byteorder
    else:
        container = str(handle.format).upper()
        byte_order = "big" if container in _BIG_ENDIAN_CONTAINERS else "little"

    return PcmFormat(
        sample_rate=int(handle.samplerate),
        channels=int(handle.channels),
        bit_depth=bit_depth,
        byte_order=byte_order,
        encoding=encoding,
    )


__all__ = [
    "PcmFormat",
    "UnsupportedFormatError",
    "ensure_supported",
    "format_from_soundfile",
]
