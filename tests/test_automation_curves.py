import numpy as np
import pytest

from automation.curves import GAIN_BOOST, GainCurve, Keyframe, find_bracket, gain_from_control


def _curve(*points: tuple[float, float]) -> GainCurve:
    return GainCurve([Keyframe(time=time, beat=time * 2.0, gain=gain) for time, gain in points])


def test_interpolates_between_keyframes_and_holds_edges():
    curve = _curve((0.0, 0.2), (1.0, 0.8))
    assert curve.gain_at(0.5) == pytest.approx(0.5)
    assert curve.gain_at(-1.0) == pytest.approx(0.2)
    assert curve.gain_at(2.0) == pytest.approx(0.8)


def test_exact_match_returns_stored_gain():
    curve = _curve((0.0, 0.1), (0.3, 0.7), (0.9, 0.4))
    assert curve.gain_at(0.3) == 0.7
    assert curve.gain_at(0.9) == 0.4
    assert curve.gain_at(0.0) == 0.1


def test_empty_curve_is_identity():
    curve = GainCurve([])
    assert curve.gain_at(0.0) == 1.0
    assert curve.gain_at(123.4) == 1.0
    np.testing.assert_array_equal(curve.gains_at(np.array([0.0, 5.0])), np.ones(2))


def test_single_keyframe_holds_everywhere():
    curve = _curve((1.0, 0.6))
    assert curve.gain_at(0.0) == 0.6
    assert curve.gain_at(1.0) == 0.6
    assert curve.gain_at(7.0) == 0.6


def test_sequential_lookups_match_fresh_lookups():
    points = ((0.0, 0.0), (0.5, 1.0), (1.0, 0.25), (2.0, 1.5))
    cached = _curve(*points)
    times = np.linspace(-0.5, 2.5, 61)
    expected = [_curve(*points).gain_at(float(t)) for t in times]
    assert [cached.gain_at(float(t)) for t in times] == pytest.approx(expected)
    # Jumping backwards must not reuse a stale bracket.
    assert cached.gain_at(0.25) == pytest.approx(0.5)


def test_vectorised_lookup_matches_scalar_lookup():
    curve = _curve((0.0, 0.2), (0.25, 1.0), (0.5, 0.0), (1.0, 0.8))
    times = np.array([-1.0, 0.0, 0.1, 0.25, 0.4, 0.5, 0.75, 1.0, 3.0])
    expected = np.array([curve.gain_at(float(t)) for t in times])
    np.testing.assert_allclose(curve.gains_at(times), expected, rtol=1e-12, atol=1e-12)


def test_rejects_unsorted_keyframes():
    with pytest.raises(ValueError):
        _curve((1.0, 0.5), (0.5, 0.2))


def test_gain_mapping_is_squared_and_monotonic():
    assert gain_from_control(0) == 0.0
    assert gain_from_control(127) == pytest.approx(GAIN_BOOST)
    assert gain_from_control(64) == pytest.approx((64 / 127) ** 2 * 1.618)
    gains = [gain_from_control(value) for value in range(128)]
    assert all(lower < upper for lower, upper in zip(gains, gains[1:]))


def test_gain_mapping_clamps_out_of_range_values():
    assert gain_from_control(200) == gain_from_control(127)
    assert gain_from_control(-5) == 0.0


def test_find_bracket_reports_neighbours():
    items = [1.0, 2.0, 4.0]
    assert find_bracket(items, float, 2.0) == (1, 1)
    assert find_bracket(items, float, 3.0) == (1, 2)
    assert find_bracket(items, float, 0.5) == (None, 0)
    assert find_bracket(items, float, 9.0) == (2, None)
    assert find_bracket([], float, 1.0) == (None, None)


def test_keyframe_serialises_gain_as_value():
    assert Keyframe(time=1.5, beat=3.0, gain=0.4).to_dict() == {"time": 1.5, "beat": 3.0, "value": 0.4}


def test_rejects_non_finite_keyframe_times():
    with pytest.raises(ValueError, match="finite"):
        _curve((0.0, 1.0), (float("nan"), 0.0))
    with pytest.raises(ValueError, match="finite"):
        _curve((float("inf"), 1.0))


def test_edges_hold_after_an_interpolated_lookup():
    curve = _curve((1.0, 0.2), (2.0, 0.6))
    assert curve.gain_at(1.5) == pytest.approx(0.4)
    assert curve.gain_at(0.0) == 0.2
    assert curve.gain_at(3.0) == 0.6
