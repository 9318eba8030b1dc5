"""Chroma-family features for score following.

ChromaFeatures is a stateless per-frame chromagram. CENSFeatures adds
quantisation and causal temporal smoothing, which makes it robust to
dynamics and timbre at the cost of keeping a short per-stream history.
"""

from collections import deque
from typing import Optional, Type

import librosa
import numpy as np

from ..config import (
    CENS_QUANTIZATION_STEPS,
    DEFAULT_CENS_SMOOTHING,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_WIN_LEN,
    N_CHROMA,
    SILENCE_THRESHOLD,
)
from .base import FeatureExtractor


class ChromaFeatures(FeatureExtractor):
    """Chroma vector from the power spectrum of one Hann-windowed frame."""

    def __init__(
        self,
        sr: int = DEFAULT_SAMPLE_RATE,
        win_len: int = DEFAULT_WIN_LEN,
        hop_len: Optional[int] = None,
        n_chroma: int = N_CHROMA,
        tuning: float = 0.0,
    ):
        self.n_features = n_chroma
        super().__init__(sr=sr, win_len=win_len, hop_len=hop_len)
        self.n_chroma = n_chroma
        self.tuning = tuning

        self._window = librosa.filters.get_window("hann", win_len, fftbins=True)
        # [n_chroma, 1 + win_len // 2]
        self._filterbank = librosa.filters.chroma(
            sr=sr, n_fft=win_len, n_chroma=n_chroma, tuning=tuning
        )

    def raw_chroma(self, frame: np.ndarray) -> np.ndarray:
        spectrum = np.abs(np.fft.rfft(frame * self._window)) ** 2
        return self._filterbank @ spectrum

    def make_feature(self, frame: np.ndarray) -> np.ndarray:
        return self.normalize(self.raw_chroma(frame), SILENCE_THRESHOLD)

    def clone_empty(self) -> "ChromaFeatures":
        return ChromaFeatures(
            sr=self.sr,
            win_len=self.win_len,
            hop_len=self.hop_len,
            n_chroma=self.n_chroma,
            tuning=self.tuning,
        )


class CENSFeatures(ChromaFeatures):
    """Chroma Energy Normalized Statistics, computed causally.

    Each frame's chroma is L1-normalised and quantised against
    ``CENS_QUANTIZATION_STEPS``; the last ``smoothing`` quantised frames are
    combined with a trailing half-Hann weighting (most recent frame weighted
    highest) and the result is L2-normalised.
    """

    def __init__(
        self,
        sr: int = DEFAULT_SAMPLE_RATE,
        win_len: int = DEFAULT_WIN_LEN,
        hop_len: Optional[int] = None,
        n_chroma: int = N_CHROMA,
        tuning: float = 0.0,
        smoothing: int = DEFAULT_CENS_SMOOTHING,
    ):
        super().__init__(sr=sr, win_len=win_len, hop_len=hop_len, n_chroma=n_chroma, tuning=tuning)
        if smoothing < 1:
            raise ValueError(f"smoothing must be >= 1, got {smoothing}")
        self.smoothing = smoothing
        self._history = deque(maxlen=smoothing)
        self._weights = np.hanning(2 * smoothing + 1)[1:smoothing + 1]

    def quantize(self, chroma: np.ndarray) -> np.ndarray:
        energy = chroma.sum()
        if not energy > SILENCE_THRESHOLD:
            return np.zeros(self.n_chroma)
        chroma = chroma / energy

        quantized = np.zeros(self.n_chroma)
        for step in CENS_QUANTIZATION_STEPS:
            quantized += (chroma > step) * 0.25
        return quantized

    def snapshot(self):
        return tuple(self._history)

    def restore(self, state) -> None:
        self._history.clear()
        self._history.extend(state)

    def make_feature(self, frame: np.ndarray) -> np.ndarray:
        self._history.append(self.quantize(self.raw_chroma(frame)))

        weights = self._weights[-len(self._history):]
        smoothed = weights @ np.stack(self._history)
        return self.normalize(smoothed, SILENCE_THRESHOLD)

    def clone_empty(self) -> "CENSFeatures":
        return CENSFeatures(
            sr=self.sr,
            win_len=self.win_len,
            hop_len=self.hop_len,
            n_chroma=self.n_chroma,
            tuning=self.tuning,
            smoothing=self.smoothing,
        )


FEATURE_CLASSES = {
    "chroma": ChromaFeatures,
    "cens": CENSFeatures,
}


def get_feature_class(kind: str) -> Type[ChromaFeatures]:
    """Look up a feature extractor class by name."""
    if kind not in FEATURE_CLASSES:
        raise ValueError(f"Unknown feature kind: {kind}")
    return FEATURE_CLASSES[kind]
