import numpy as np
import pytest

from src.score_following.config import DEFAULT_SAMPLE_RATE, DEFAULT_WIN_LEN
from src.score_following.follower import ScoreFollower


def _tone(freq=440.0, duration=1.0, sr=DEFAULT_SAMPLE_RATE, amplitude=0.5):
    t = np.arange(int(sr * duration)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def _frames(audio, frame_size=DEFAULT_WIN_LEN):
    frames = []
    for start in range(0, len(audio), frame_size):
        frame = audio[start:start + frame_size]
        if len(frame) < frame_size:
            frame = np.pad(frame, (0, frame_size - len(frame)))
        frames.append(frame)
    return frames


@pytest.fixture
def make_tone():
    """Factory for sine tones: make_tone(freq, duration, sr, amplitude)."""
    return _tone


@pytest.fixture
def split_frames():
    """Factory splitting audio into consecutive zero-padded frames."""
    return _frames


@pytest.fixture
def tone():
    """One second of A4 (440 Hz) at 44.1 kHz."""
    return _tone(440.0, 1.0)


@pytest.fixture
def melody():
    """C major arpeggio up and down, half a second per note."""
    freqs = [261.63, 329.63, 392.0, 523.25, 392.0, 329.63, 261.63]
    return np.concatenate([_tone(f, 0.5) for f in freqs])


@pytest.fixture
def tone_follower(tone):
    """ScoreFollower whose reference is the one-second A4 tone."""
    return ScoreFollower.create(tone)


@pytest.fixture
def rng():
    return np.random.default_rng(0)
