import json

import pytest

from automation.curves import Keyframe, gain_from_control
from automation.events import ControlChange, TempoChange, Tick
from automation.resolver import (
    RECORDER_DRIFT_FACTOR,
    ResolverConfig,
    ResolverState,
    advance,
    resolve,
)
from automation.tempo import TempoMap, TempoPoint


def _lines(*records: object) -> list[str]:
    return [json.dumps(record) for record in records]


def test_sparse_fader_moves_get_a_hold_keyframe():
    timeline = resolve(
        _lines([0.0, "channel_volume", 0, 64], [0.3, "channel_volume", 0, 127]),
        track_count=1,
    )
    first, hold, last = timeline.keyframes[0]
    assert first == Keyframe(time=0.0, beat=0.0, gain=gain_from_control(64))
    assert hold.time == pytest.approx(0.25)
    assert hold.beat == pytest.approx(0.5)
    assert hold.gain == first.gain
    assert last.time == pytest.approx(0.3)
    assert last.beat == pytest.approx(0.6)
    assert last.gain == pytest.approx(1.618)


def test_dense_fader_moves_interpolate_directly():
    timeline = resolve(
        _lines([0.0, "channel_volume", 0, 10], [0.05, "channel_volume", 0, 20]),
        track_count=1,
    )
    assert [frame.time for frame in timeline.keyframes[0]] == [0.0, 0.05]


def test_later_tempo_change_does_not_rewrite_earlier_beats():
    head = _lines([0.0, "tempo", 60], [1.0, "channel_volume", 0, 100])
    tail = _lines([2.0, "tempo", 120], [3.0, "channel_volume", 0, 100], [3.0, "tick"])

    partial = resolve(head, track_count=1)
    full = resolve(head + tail, track_count=1)

    assert full.keyframes[0][0] == partial.keyframes[0][0]
    assert full.keyframes[0][0].beat == pytest.approx(1.0)
    hold, last = full.keyframes[0][1:]
    assert hold.time == pytest.approx(2.95)
    assert hold.beat == pytest.approx(3.9)
    assert last.beat == pytest.approx(4.0)
    assert full.total_beats == pytest.approx(4.0)
    assert [point.tempo for point in full.tempo_map] == [60.0, 120.0, 120.0]


def test_empty_log_produces_empty_timeline():
    timeline = resolve([], track_count=3)
    assert timeline.keyframes == ((), (), ())
    assert timeline.total_duration == 0.0
    assert timeline.total_beats == 0.0
    assert timeline.nominal_tempo is None
    assert timeline.curve(0).gain_at(1.0) == 1.0


def test_default_tempo_without_tempo_events():
    timeline = resolve(_lines([0.5, "tick"], [1.0, "tick"], [1.5, "tick"]), track_count=0)
    assert timeline.nominal_tempo is None
    assert timeline.total_duration == pytest.approx(1.5)
    assert timeline.total_beats == pytest.approx(3.0)
    assert timeline.tempo_map.points == (TempoPoint(time=1.5, beat=3.0, tempo=120.0),)
    assert timeline.tempo_map.beat_at(0.75) == pytest.approx(1.5)
    assert timeline.tick_intervals == pytest.approx((0.5, 0.5))
    assert timeline.mean_tick_interval() == pytest.approx(0.5)


def test_closing_point_extends_last_tempo():
    timeline = resolve(_lines([0.0, "tempo", 90], [4.0, "tick"]), track_count=0)
    assert timeline.nominal_tempo == 90
    assert timeline.tempo_map.points == (
        TempoPoint(time=0.0, beat=0.0, tempo=90.0),
        TempoPoint(time=4.0, beat=6.0, tempo=90.0),
    )


def test_out_of_range_tracks_and_noise_are_ignored():
    lines = _lines(
        [0.0, "channel_volume", 5, 100],
        [0.0, "channel_volume", -1, 100],
        [0.1, "channel_volume", 1, 127],
    )
    lines.insert(1, "[0.05, \"channel_volume\", 0")
    timeline = resolve(lines, track_count=2)
    assert timeline.keyframes[0] == ()
    assert len(timeline.keyframes[1]) == 1


def test_same_timestamp_keeps_last_value():
    timeline = resolve(
        _lines([1.0, "channel_volume", 0, 10], [1.0, "channel_volume", 0, 127]),
        track_count=1,
    )
    assert len(timeline.keyframes[0]) == 1
    assert timeline.keyframes[0][0].gain == pytest.approx(1.618)


def test_simultaneous_tempo_announcements_keep_latest():
    timeline = resolve(_lines([0.0, "tempo", 100], [0.0, "tempo", 140], [1.0, "tick"]), track_count=0)
    assert timeline.nominal_tempo == 100
    assert timeline.tempo_map.points[0].tempo == 140.0
    assert timeline.total_beats == pytest.approx(140.0 / 60.0)


def test_drift_correction_scales_times_and_tempos():
    config = ResolverConfig(drift_factor=0.5)
    timeline = resolve(_lines([0.0, "tempo", 60], [2.0, "tick"]), track_count=0, config=config)
    assert timeline.total_duration == 0.0
    assert timeline.total_beats == pytest.approx(2.0)
    assert timeline.nominal_tempo == 60
    assert timeline.tempo_map.points[0].tempo == pytest.approx(120.0)


def test_drift_correction_is_disabled_by_default():
    assert ResolverConfig().drift_factor == 1.0
    assert ResolverConfig.with_drift_correction().drift_factor == RECORDER_DRIFT_FACTOR


def test_config_validation():
    with pytest.raises(ValueError):
        ResolverConfig(default_tempo=0)
    with pytest.raises(ValueError):
        ResolverConfig(hold_lead_seconds=0.2)


def test_advance_threads_state_per_event():
    config = ResolverConfig()
    state = ResolverState.initial(2)

    state, emitted = advance(state, TempoChange(time=0.0, bpm=60.0), config)
    assert emitted is None
    assert state.nominal_tempo == 60.0

    state, emitted = advance(state, ControlChange(time=2.0, track_index=1, value=127), config)
    assert emitted is not None
    assert emitted.track_index == 1
    assert emitted.keyframes == (Keyframe(time=2.0, beat=2.0, gain=gain_from_control(127)),)

    state, emitted = advance(state, Tick(time=3.0), config)
    assert emitted is None
    assert state.total_duration == 3.0
    assert state.total_beats == pytest.approx(3.0)


def test_advance_rejects_unknown_events():
    with pytest.raises(TypeError):
        advance(ResolverState.initial(1), object(), ResolverConfig())  # type: ignore[arg-type]


def test_tempo_map_lookups():
    tempo_map = TempoMap(
        [TempoPoint(time=1.0, beat=2.0, tempo=60.0), TempoPoint(time=3.0, beat=4.0, tempo=180.0)]
    )
    assert tempo_map.beat_at(0.5) == pytest.approx(1.0)
    assert tempo_map.beat_at(2.0) == pytest.approx(3.0)
    assert tempo_map.beat_at(4.0) == pytest.approx(7.0)
    assert tempo_map.tempo_at(3.5) == 180.0
    with pytest.raises(ValueError):
        TempoMap([TempoPoint(1.0, 1.0, 120.0), TempoPoint(1.0, 2.0, 120.0)])


def test_non_finite_records_do_not_reach_the_timeline():
    timeline = resolve(
        [
            "[0.0, \"channel_volume\", 0, 127]",
            "[NaN, \"channel_volume\", 0, 0]",
            "[1.0, \"channel_volume\", 0, 127]",
            "[Infinity, \"tick\"]",
        ],
        track_count=1,
    )
    assert [frame.time for frame in timeline.keyframes[0]] == pytest.approx([0.0, 0.95, 1.0])
    assert timeline.total_duration == 0.0
    gains = timeline.curve(0).gains_at([0.0, 0.5, 1.0])
    assert gains.tolist() == pytest.approx([1.618, 1.618, 1.618])
