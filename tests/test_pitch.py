import numpy as np
import pytest

from src.score_following.pitch import calculate_f0s, hz_to_midi, min_detectable_frequency


class TestHzToMidi:
    """Tests for frequency to MIDI conversion."""

    def test_reference_pitches(self):
        assert hz_to_midi(440.0) == pytest.approx(69.0)
        assert hz_to_midi(880.0) == pytest.approx(81.0)
        assert hz_to_midi(261.6256) == pytest.approx(60.0, abs=1e-3)

    @pytest.mark.parametrize("frequency", [0.0, -100.0, float("nan")])
    def test_scalar_non_positive_raises(self, frequency):
        with pytest.raises(ValueError):
            hz_to_midi(frequency)

    def test_array_maps_invalid_entries_to_nan(self):
        midi = hz_to_midi(np.array([440.0, 0.0, np.nan, -5.0, 220.0]))
        assert midi[0] == pytest.approx(69.0)
        assert np.all(np.isnan(midi[1:4]))
        assert midi[4] == pytest.approx(57.0)


def test_min_detectable_frequency():
    assert min_detectable_frequency(44100, 4096) == pytest.approx(44100 / 2046)


class TestCalculateF0s:
    """Tests for per-window f0 estimation."""

    def test_window_count(self, tone):
        f0s = calculate_f0s(tone, 44100, 4096)
        assert len(f0s) == (len(tone) - 4096) // 4096 + 1

    def test_hop_length(self, tone):
        f0s = calculate_f0s(tone, 44100, 4096, hop_len=2048)
        assert len(f0s) == (len(tone) - 4096) // 2048 + 1

    def test_detects_a440(self, tone):
        f0s = calculate_f0s(tone, 44100, 4096)
        assert np.nanmedian(f0s) == pytest.approx(440.0, rel=0.02)

    def test_audio_shorter_than_window(self, tone):
        assert len(calculate_f0s(tone[:1000], 44100, 4096)) == 0

    def test_window_too_short_for_range(self, tone):
        with pytest.raises(ValueError):
            calculate_f0s(tone, 44100, 64, fmax=500.0)
