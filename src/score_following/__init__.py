"""Live score following.

Aligns a live audio performance, frame by frame, to a reference recording
of the same piece and reports the performer's position in the reference.

Submodules:
    config: Constants and dataclass configuration
    features: Chroma and CENS frame features
    alignment: Online time warping, offline replay, time warping and metrics
    follower: ScoreFollower, the per-session streaming entry point
    session: Queue-fed worker thread for capture callbacks
    pitch: Per-window f0 estimation
    intonation: Per-note played pitch estimation
    score_events: Score event tables and beat cursors
    tempo: Tempo curves from alignment paths
"""

from . import config
from .config import (
    DEFAULT_SAMPLE_RATE,
    DEFAULT_WIN_LEN,
    FollowerConfig,
    IntonationConfig,
    get_default_config,
)
from .errors import (
    FeatureMismatch,
    InsufficientData,
    ReferenceLoadError,
    ScoreFollowingError,
)
from .features import CENSFeatures, ChromaFeatures, FeatureExtractor, FeatureSequence
from .alignment import (
    AlignmentPath,
    OnlineTimeWarping,
    calculate_warped_times,
    evaluate_warped_times,
    precompute_alignment_path,
)
from .audio_io import load_reference_audio
from .follower import ScoreFollower, build_reference
from .session import LiveSession
from .pitch import calculate_f0s, hz_to_midi
from .intonation import calculate_intonation, estimate_pitches_at_timestamps
from .score_events import (
    ScoreEvent,
    attach_predicted_times,
    beat_at_reference_time,
    current_beat,
    load_score_events,
    parse_score_csv,
)
from .tempo import TempoCurve, compute_tempo_curve

__all__ = [
    "config",
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_WIN_LEN",
    "FollowerConfig",
    "IntonationConfig",
    "get_default_config",
    "ScoreFollowingError",
    "ReferenceLoadError",
    "FeatureMismatch",
    "InsufficientData",
    "FeatureExtractor",
    "FeatureSequence",
    "ChromaFeatures",
    "CENSFeatures",
    "AlignmentPath",
    "OnlineTimeWarping",
    "calculate_warped_times",
    "evaluate_warped_times",
    "precompute_alignment_path",
    "load_reference_audio",
    "ScoreFollower",
    "build_reference",
    "LiveSession",
    "calculate_f0s",
    "hz_to_midi",
    "calculate_intonation",
    "estimate_pitches_at_timestamps",
    "ScoreEvent",
    "parse_score_csv",
    "load_score_events",
    "attach_predicted_times",
    "beat_at_reference_time",
    "current_beat",
    "TempoCurve",
    "compute_tempo_curve",
]
