"""Streaming PCM helpers: format checks, channel routing, and the gain stage."""
from .channels import ChannelSplitResult, split_channels
from .gain import (
    DEFAULT_CHUNK_FRAMES,
    ApplicatorConfig,
    GainApplicator,
    GainRenderResult,
    apply_gain,
    apply_gain_to_file,
    frame_aligned_chunks,
)
from .pcm import PcmFormat, UnsupportedFormatError, ensure_supported, format_from_soundfile

__all__ = [
    "ApplicatorConfig",
    "ChannelSplitResult",
    "DEFAULT_CHUNK_FRAMES",
    "GainApplicator",
    "GainRenderResult",
    "PcmFormat",
    "UnsupportedFormatError",
    "apply_gain",
    "apply_gain_to_file",
    "ensure_supported",
    "format_from_soundfile",
    "frame_aligned_chunks",
    "split_channels",
]
