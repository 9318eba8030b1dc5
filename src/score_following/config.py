"""Configuration constants for live score following.

This module defines defaults for audio framing, feature extraction, the
online time warping engine and intonation estimation.
"""

from dataclasses import dataclass, field, fields
from typing import Optional


# Audio framing
DEFAULT_SAMPLE_RATE = 44100  # Hz
DEFAULT_WIN_LEN = 4096  # samples per analysis frame
N_CHROMA = 12


# Online time warping
DEFAULT_SEARCH_WIDTH = 50  # frames either side of the current reference index
DEFAULT_MAX_RUN_COUNT = 3  # consecutive single-axis moves allowed
DEFAULT_DIAG_WEIGHT = 0.75  # < 1 favours diagonal (tempo-proportional) moves


# CENS feature settings
CENS_QUANTIZATION_STEPS = (0.4, 0.2, 0.1, 0.05)
DEFAULT_CENS_SMOOTHING = 9  # frames of causal smoothing
SILENCE_THRESHOLD = 1e-10  # raw chroma energy treated as silence


# Intonation
OCTAVE_OFF_THRESHOLD = 2  # octaves; larger deviations are discarded
SEMITONE_THRESHOLD = 2  # semitones after octave folding
DEFAULT_AGGREGATE_SIZE = 10  # windows aggregated for the last query
PITCH_FMIN = 65.41  # C2
PITCH_FMAX = 2093.0  # C7


# Tempo analysis
MIN_BPM = 40.0
MAX_BPM = 240.0
TEMPO_SMOOTH_RADIUS = 1  # measures either side in the moving average


# Evaluation thresholds
ONSET_ERROR_THRESHOLD_MS = 100.0


FEATURE_KINDS = ("chroma", "cens")


@dataclass
class FollowerConfig:
    """Parameters for one score following session.

    Attributes:
        search_width: Half-width ``c`` of the reference band searched per step.
        max_run_count: Maximum consecutive moves along a single axis.
        diag_weight: Multiplier on the diagonal predecessor cost (< 1).
        sample_rate: Session sample rate; the reference is resampled to it.
        win_len: Samples per analysis frame.
        hop_len: Samples between reference frames. Defaults to ``win_len``.
        features: Feature family, one of ``FEATURE_KINDS``.
        window_depth: Live columns of accumulated cost kept for backtracking.
            Defaults to ``search_width``.
        cens_smoothing: Smoothing length in frames for CENS features.
    """

    search_width: int = DEFAULT_SEARCH_WIDTH
    max_run_count: int = DEFAULT_MAX_RUN_COUNT
    diag_weight: float = DEFAULT_DIAG_WEIGHT
    sample_rate: int = DEFAULT_SAMPLE_RATE
    win_len: int = DEFAULT_WIN_LEN
    hop_len: Optional[int] = None
    features: str = "cens"
    window_depth: Optional[int] = None
    cens_smoothing: int = DEFAULT_CENS_SMOOTHING

    # Derived fields left unset by the caller track their source field
    _derived: frozenset = field(default=frozenset(), init=False, repr=False, compare=False)

    def __post_init__(self):
        derived = set()
        if self.hop_len is None:
            self.hop_len = self.win_len
            derived.add("hop_len")
        if self.window_depth is None:
            self.window_depth = self.search_width
            derived.add("window_depth")
        self._derived = frozenset(derived)

        if self.search_width < 1:
            raise ValueError(f"search_width must be >= 1, got {self.search_width}")
        if self.max_run_count < 1:
            raise ValueError(f"max_run_count must be >= 1, got {self.max_run_count}")
        if not 0.0 < self.diag_weight <= 1.0:
            raise ValueError(f"diag_weight must be in (0, 1], got {self.diag_weight}")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        if self.win_len <= 0 or self.hop_len <= 0:
            raise ValueError(
                f"win_len and hop_len must be positive, got {self.win_len}, {self.hop_len}"
            )
        if self.window_depth < 1:
            raise ValueError(f"window_depth must be >= 1, got {self.window_depth}")
        if self.features not in FEATURE_KINDS:
            raise ValueError(f"Unknown feature kind: {self.features}")

    @property
    def frame_duration(self) -> float:
        """Seconds between consecutive reference frames."""
        return self.hop_len / self.sample_rate

    def with_overrides(self, **overrides) -> "FollowerConfig":
        """Copy this config with some fields replaced.

        ``hop_len`` and ``window_depth`` that were defaulted are derived
        again from the new ``win_len`` and ``search_width`` unless they are
        overridden themselves.
        """
        values = {f.name: getattr(self, f.name) for f in fields(self) if f.init}
        for name in self._derived:
            values[name] = None
        values.update(overrides)
        return FollowerConfig(**values)


@dataclass
class IntonationConfig:
    """Parameters for per-note pitch estimation."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    win_len: int = DEFAULT_WIN_LEN
    hop_len: Optional[int] = None
    fmin: float = PITCH_FMIN
    fmax: float = PITCH_FMAX
    semitone_threshold: float = SEMITONE_THRESHOLD
    octave_off_threshold: int = OCTAVE_OFF_THRESHOLD

    def __post_init__(self):
        if self.hop_len is None:
            self.hop_len = self.win_len
        if self.fmin >= self.fmax:
            raise ValueError(f"fmin ({self.fmin}) must be below fmax ({self.fmax})")


def get_default_config() -> FollowerConfig:
    """Get default follower configuration."""
    return FollowerConfig()
