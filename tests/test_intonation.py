import numpy as np
import pytest

from src.score_following.config import IntonationConfig
from src.score_following.intonation import (
    calculate_intonation,
    estimate_pitches_at_timestamps,
    fold_deviation,
)
from src.score_following.score_events import ScoreEvent, attach_predicted_times

# Ten windows per second keeps window arithmetic exact
SR = 100
HOP = 10


@pytest.mark.parametrize(
    "diff, expected",
    [
        (0.5, 0.5),
        (-1.5, -1.5),
        (3.0, None),
        (12.0, None),
        (12.5, 0.5),
        (-12.5, -0.5),
        (26.0, 2.0),
        (40.0, None),
    ],
)
def test_fold_deviation(diff, expected):
    result = fold_deviation(diff)
    if expected is None:
        assert result is None
    else:
        assert result == pytest.approx(expected)


class TestEstimatePitches:
    """Tests for per-note aggregation over analysis windows."""

    def test_median_of_neighbourhood(self):
        pitches = [60.0, 60.5, 61.0, np.nan, 70.0, 70.0]
        # Next note starts at window 6, so the first note uses windows 0..2
        estimates = estimate_pitches_at_timestamps([0.0, 0.6], pitches, [60, 70], SR, HOP)
        assert estimates[0] == pytest.approx(60.5)
        assert estimates[1] is None

    def test_last_note_uses_default_aggregate(self):
        pitches = [np.nan] * 5 + [69.0] * 3 + [69.4] * 4
        estimates = estimate_pitches_at_timestamps([0.5], pitches, [69], SR, HOP)
        assert estimates[0] == pytest.approx(69.4)

    def test_neighbourhood_at_least_one_window(self):
        pitches = [64.2, 64.8, 100.0]
        estimates = estimate_pitches_at_timestamps([0.0, 0.1], pitches, [64, 64], SR, HOP)
        assert estimates[0] == pytest.approx(64.2)
        assert estimates[1] == pytest.approx(64.8)

    def test_octave_errors_are_folded(self):
        pitches = [81.2, 81.2, 81.2]
        estimates = estimate_pitches_at_timestamps([0.0], pitches, [69], SR, HOP)
        assert estimates[0] == pytest.approx(69.2)

    def test_far_off_candidates_rejected(self):
        pitches = [64.0, 64.0]
        assert estimate_pitches_at_timestamps([0.0], pitches, [60], SR, HOP) == [None]

    def test_unvoiced_neighbourhood(self):
        pitches = [np.nan] * 4
        assert estimate_pitches_at_timestamps([0.0], pitches, [60], SR, HOP) == [None]

    def test_query_past_last_window(self):
        assert estimate_pitches_at_timestamps([5.0], [60.0] * 3, [60], SR, HOP) == [None]

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            estimate_pitches_at_timestamps([0.0, 1.0], [60.0], [60], SR, HOP)


class TestCalculateIntonation:
    """End-to-end intonation on synthetic tones."""

    def test_in_tune_a440(self, tone):
        estimates = calculate_intonation(tone, ref_times=[0.0], score_pitches=[69])
        assert estimates[0] == pytest.approx(69.0, abs=0.3)

    def test_a440_against_middle_c_is_rejected(self, tone):
        assert calculate_intonation(tone, ref_times=[0.0], score_pitches=[60]) == [None]

    def test_reference_times_of_score_events(self, tone):
        events = [ScoreEvent(beat=1, ref_time=0.0, midi=69)]
        estimates = calculate_intonation(
            tone, events=events, config=IntonationConfig(), use_predicted=False
        )
        assert estimates[0] == pytest.approx(69.0, abs=0.3)

    def test_events_need_midi(self, tone):
        with pytest.raises(ValueError):
            calculate_intonation(tone, events=[ScoreEvent(beat=1, ref_time=0.0)])

    def test_events_need_predicted_time(self, tone):
        with pytest.raises(ValueError):
            calculate_intonation(tone, events=[ScoreEvent(beat=1, ref_time=0.0, midi=69)])

    def test_delayed_live_note_uses_predicted_time(self, tone):
        # Live performance enters one second after the reference
        live = np.concatenate([np.zeros(44100, dtype=np.float32), tone])
        event = ScoreEvent(beat=1, ref_time=0.0, midi=69, predicted_time=1.0)
        estimates = calculate_intonation(live, events=[event])
        assert estimates[0] == pytest.approx(69.0, abs=0.3)
        assert calculate_intonation(live, events=[event], use_predicted=False) == [None]

    def test_after_attaching_alignment(self, tone):
        live = np.concatenate([np.zeros(44100, dtype=np.float32), tone])
        frame_duration = 4096 / 44100
        # Every reference frame lands 11 live frames later
        path = [(i, i + 11) for i in range(11)]
        events = attach_predicted_times(
            [ScoreEvent(beat=1, ref_time=0.0, midi=69)], path, frame_duration
        )
        assert events[0].predicted_time == pytest.approx(11 * frame_duration)
        estimates = calculate_intonation(live, events=events)
        assert estimates[0] == pytest.approx(69.0, abs=0.3)

    def test_requires_notes(self, tone):
        with pytest.raises(ValueError):
            calculate_intonation(tone)
