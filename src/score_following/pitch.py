"""Fundamental frequency estimation over fixed analysis windows."""

import logging
from typing import Union

import librosa
import numpy as np

from .config import PITCH_FMAX, PITCH_FMIN

logger = logging.getLogger(__name__)


def hz_to_midi(frequency: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert frequency in Hz to fractional MIDI pitch, 69 + 12 log2(f / 440).

    Scalars must be positive. In arrays, non-positive and NaN entries map
    to NaN.

    Raises:
        ValueError: If a scalar frequency is not a positive number.
    """
    if np.ndim(frequency) == 0:
        frequency = float(frequency)
        if not frequency > 0:
            raise ValueError(f"Frequency must be a positive number, got {frequency}")
        return float(librosa.hz_to_midi(frequency))

    frequency = np.asarray(frequency, dtype=np.float64)
    midi = np.full(frequency.shape, np.nan)
    valid = np.isfinite(frequency) & (frequency > 0)
    midi[valid] = librosa.hz_to_midi(frequency[valid])
    return midi


def min_detectable_frequency(sample_rate: int, win_len: int) -> float:
    """Lowest fmin for which pYIN can see a full period inside one window."""
    return sample_rate / (win_len // 2 - 2)


def calculate_f0s(
    audio: np.ndarray,
    sample_rate: int,
    win_len: int,
    hop_len: int = None,
    fmin: float = PITCH_FMIN,
    fmax: float = PITCH_FMAX,
) -> np.ndarray:
    """Estimate one fundamental frequency per analysis window with pYIN.

    Windows start every ``hop_len`` samples and are not padded, giving
    ``floor((len(audio) - win_len) / hop_len) + 1`` estimates.

    Args:
        audio: Mono PCM samples.
        sample_rate: Sample rate of ``audio``.
        win_len: Samples per analysis window.
        hop_len: Samples between windows. Defaults to ``win_len``.
        fmin: Lowest frequency searched, raised if the window is too short.
        fmax: Highest frequency searched, capped below Nyquist.

    Returns:
        Array of f0 values in Hz, NaN for unvoiced windows.
    """
    hop_len = hop_len or win_len
    audio = np.asarray(audio, dtype=np.float32).reshape(-1)
    if len(audio) < win_len:
        return np.zeros(0)

    fmin = max(fmin, min_detectable_frequency(sample_rate, win_len))
    fmax = min(fmax, sample_rate / 2 - 1)
    if fmin >= fmax:
        raise ValueError(
            f"Window of {win_len} samples at {sample_rate} Hz cannot resolve pitches below {fmax} Hz"
        )

    f0, voiced_flag, _ = librosa.pyin(
        audio,
        fmin=fmin,
        fmax=fmax,
        sr=sample_rate,
        frame_length=win_len,
        hop_length=hop_len,
        center=False,
    )
    logger.debug(
        "%d samples -> %d windows (%d voiced)", len(audio), len(f0), int(np.sum(voiced_flag))
    )
    return f0
