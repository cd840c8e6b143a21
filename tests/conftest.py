import json
import sys
from pathlib import Path
from typing import Callable, Sequence

import numpy as np
import pytest
import soundfile as sf

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

from domain.models import SessionConfig, TrackSpec  # noqa: E402


@pytest.fixture()
def write_wav() -> Callable[..., Path]:
    def _write(
        path: Path,
        data: np.ndarray,
        sample_rate: int = 1_000,
        *,
        subtype: str = "PCM_16",
        format: str = "WAV",
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        sf.write(str(path), data, sample_rate, subtype=subtype, format=format)
        return path

    return _write


@pytest.fixture()
def write_events() -> Callable[[Path, Sequence[object]], Path]:
    def _write(path: Path, records: Sequence[object]) -> Path:
        lines = [record if isinstance(record, str) else json.dumps(record) for record in records]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def multitrack_take() -> np.ndarray:
    """Two seconds of an eight-channel take at 1 kHz; channel N holds N * 1000."""

    frames = 2_000
    columns = [np.full(frames, 1000 * channel, dtype=np.int16) for channel in range(1, 9)]
    return np.stack(columns, axis=1)


@pytest.fixture()
def two_track_config() -> SessionConfig:
    return SessionConfig(
        tracks=[
            TrackSpec(id=1, name="drums", channels=[1], is_tempo_master=True),
            TrackSpec(id=2, name="synth", channels=[3, 4]),
        ],
        bake_threshold=3,
    )
