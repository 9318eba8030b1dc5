import pytest

from src.score_following.errors import InsufficientData
from src.score_following.tempo import (
    TempoCurve,
    beat_event_times,
    compute_tempo_curve,
    overall_tempo,
    smooth_tempo,
    tempo_by_measure,
)


class TestBeatEventTimes:
    """Tests for live times of whole reference beats."""

    def test_diagonal(self):
        path = [(i, i) for i in range(9)]
        assert beat_event_times(path, 0.5, 60.0) == pytest.approx([0, 1, 2, 3, 4])

    def test_half_speed_performance(self):
        path = [(i, 2 * i) for i in range(9)]
        assert beat_event_times(path, 0.5, 60.0) == pytest.approx([0, 2, 4, 6, 8])

    def test_interpolates_between_path_samples(self):
        # Reference beats at 0, 0.75, 1.5; beat 1 falls a third of the way in
        path = [(0, 0), (1, 3), (2, 6)]
        events = beat_event_times(path, 0.5, 90.0)
        assert events == pytest.approx([0.0, 2.0])

    def test_empty_path(self):
        assert beat_event_times([], 0.5, 60.0) == []

    def test_invalid_tempo(self):
        with pytest.raises(ValueError):
            beat_event_times([(0, 0)], 0.5, 0.0)


class TestTempoByMeasure:
    """Tests for per-measure BPM."""

    def test_complete_measures_only(self):
        assert tempo_by_measure(list(range(9)), 4) == [(1, 60.0), (2, 60.0)]
        assert tempo_by_measure(list(range(8)), 4) == [(1, 60.0)]

    def test_clamped(self):
        fast = [0.0, 0.01, 0.02, 0.03, 0.04]
        slow = [0.0, 10.0, 20.0, 30.0, 40.0]
        assert tempo_by_measure(fast, 4) == [(1, 240.0)]
        assert tempo_by_measure(slow, 4) == [(1, 40.0)]

    def test_stalled_measure_skipped(self):
        times = [0.0, 0.0, 0.0, 0.0, 0.0, 1.0, 2.0, 3.0, 4.0]
        assert tempo_by_measure(times, 4) == [(2, 60.0)]

    def test_invalid_meter(self):
        with pytest.raises(ValueError):
            tempo_by_measure([0.0, 1.0], 0)


def test_smooth_tempo():
    assert smooth_tempo([60.0, 90.0, 120.0]) == pytest.approx([75.0, 90.0, 105.0])
    assert smooth_tempo([60.0, 90.0, 120.0], radius=0) == [60.0, 90.0, 120.0]
    assert smooth_tempo([]) == []


class TestOverallTempo:
    """Tests for whole-performance tempo."""

    def test_overall(self):
        assert overall_tempo([0.0, 1.0, 2.0, 3.0]) == pytest.approx(60.0)

    def test_insufficient(self):
        assert overall_tempo([1.0]) == 0.0
        assert overall_tempo([1.0, 1.0]) == 0.0

    def test_strict(self):
        with pytest.raises(InsufficientData):
            overall_tempo([], strict=True)


def test_compute_tempo_curve():
    path = [(i, i) for i in range(17)]
    curve = compute_tempo_curve(path, 0.5, 120.0, beats_per_measure=4)
    assert isinstance(curve, TempoCurve)
    assert curve.measures == [1, 2, 3, 4]
    assert curve.raw_bpm == pytest.approx([120.0] * 4)
    assert curve.bpm(smoothed=True) == pytest.approx([120.0] * 4)
    assert curve.overall_bpm == pytest.approx(120.0)
