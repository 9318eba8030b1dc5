"""Score follower: reference building plus the streaming ``step`` contract.

A ScoreFollower owns one reference feature sequence, one live feature
extractor and one OnlineTimeWarping engine for a single performance
session. Construction is two-phase: ``build_reference`` does all the
fallible I/O and feature work, and only a fully built reference is ever
wrapped in a follower.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from .alignment.otw import AlignmentPath, OnlineTimeWarping
from .audio_io import ReferenceSource, load_reference_audio
from .config import FollowerConfig
from .errors import FeatureMismatch, ScoreFollowingError
from .features.base import FeatureExtractor
from .features.chroma import CENSFeatures, get_feature_class

logger = logging.getLogger(__name__)


def _resolve_config(config: Optional[FollowerConfig], overrides: dict) -> FollowerConfig:
    if config is None:
        return FollowerConfig(**overrides)
    return config.with_overrides(**overrides) if overrides else config


def make_extractor(config: FollowerConfig) -> FeatureExtractor:
    """Instantiate the feature extractor named in ``config``."""
    feature_cls = get_feature_class(config.features)
    kwargs = dict(sr=config.sample_rate, win_len=config.win_len, hop_len=config.hop_len)
    if feature_cls is CENSFeatures:
        kwargs["smoothing"] = config.cens_smoothing
    return feature_cls(**kwargs)


def build_reference(
    reference: ReferenceSource,
    config: FollowerConfig,
    source_sr: Optional[int] = None,
) -> FeatureExtractor:
    """Load reference audio and extract its full feature sequence.

    Returns:
        The extractor used, with a frozen featuregram covering the reference.

    Raises:
        ReferenceLoadError: If the audio cannot be loaded.
    """
    audio = load_reference_audio(reference, target_sr=config.sample_rate, source_sr=source_sr)
    extractor = make_extractor(config)
    extractor.process_audio(audio)
    logger.info(
        "Built reference: %d frames (%s, win=%d, hop=%d)",
        len(extractor.featuregram),
        config.features,
        config.win_len,
        config.hop_len,
    )
    return extractor


class ScoreFollower:
    """Online alignment of live audio frames to a reference recording.

    Not thread-safe: one follower serves one producer. Use
    ``session.LiveSession`` to feed frames from another thread.
    """

    def __init__(self, reference: FeatureExtractor, config: FollowerConfig):
        if not reference.featuregram.frozen:
            raise ValueError("Reference featuregram must be fully built")
        self.config = config
        self.sr = config.sample_rate
        self.win_len = config.win_len
        self.hop_len = config.hop_len
        self.ref = reference
        self.halted = False
        self._start_session()

    @classmethod
    def create(
        cls,
        reference: ReferenceSource,
        config: Optional[FollowerConfig] = None,
        source_sr: Optional[int] = None,
        **overrides,
    ) -> "ScoreFollower":
        """Load the reference and return a ready follower.

        Args:
            reference: Path, http(s) URL, encoded bytes, or sample array.
            config: Session parameters. Defaults to ``FollowerConfig()``.
            source_sr: Sample rate of ``reference`` when it is an array.
            **overrides: FollowerConfig fields to override.

        Raises:
            ReferenceLoadError: If decoding, network or filesystem access fails.
        """
        config = _resolve_config(config, overrides)
        return cls(build_reference(reference, config, source_sr=source_sr), config)

    @classmethod
    async def create_async(
        cls,
        reference: ReferenceSource,
        config: Optional[FollowerConfig] = None,
        source_sr: Optional[int] = None,
        **overrides,
    ) -> "ScoreFollower":
        """Like ``create`` with the reference build run off the event loop.

        Cancelling the awaiting task drops the in-progress reference.
        """
        config = _resolve_config(config, overrides)
        reference_features = await asyncio.to_thread(
            build_reference, reference, config, source_sr
        )
        return cls(reference_features, config)

    def _start_session(self) -> None:
        self.live = self.ref.clone_empty()
        self.otw = OnlineTimeWarping(
            self.ref.featuregram.as_array(),
            self.ref,
            search_width=self.config.search_width,
            max_run_count=self.config.max_run_count,
            diag_weight=self.config.diag_weight,
            window_depth=self.config.window_depth,
        )

    @property
    def path(self) -> AlignmentPath:
        """Cumulative alignment path of this session."""
        return self.otw.path

    @property
    def frame_duration(self) -> float:
        return self.hop_len / self.sr

    def step(self, audio_frame: Sequence[float]) -> float:
        """Align the next live frame and return the reference position.

        Frames must arrive in strict temporal order. Short frames are
        zero-padded to the window length.

        Returns:
            Estimated position in the reference, in seconds.

        Raises:
            FeatureMismatch: If the frame is malformed; the session is intact.
            ScoreFollowingError: If the session was halted by an earlier
                unrecoverable error.
        """
        if self.halted:
            raise ScoreFollowingError("Session halted; create a new follower or reset()")

        snapshot = self.live.snapshot()
        try:
            feature = self.live.extract(audio_frame)
            ref_idx = self.otw.insert(feature)
        except FeatureMismatch:
            self.live.restore(snapshot)
            raise
        except Exception:
            self.halted = True
            raise

        self.live.featuregram.append(feature)
        return ref_idx * self.frame_duration

    def get_backwards_path(self, b: int) -> AlignmentPath:
        """Backtrack up to ``b`` steps from the current frontier."""
        return self.otw.get_backwards_path(b)

    def get_path_difference(self, back_path: Sequence[Tuple[int, int]]) -> List[Tuple[int, int]]:
        """Pairs of the forward path that are not in ``back_path``."""
        back = set(map(tuple, back_path))
        return [pair for pair in self.path if pair not in back]

    def reset(self) -> None:
        """Discard the alignment path and start a new session."""
        self.halted = False
        self._start_session()

    def __repr__(self) -> str:
        return (
            f"ScoreFollower(ref_frames={len(self.ref.featuregram)}, "
            f"live_frames={self.otw.live_idx + 1}, features={self.config.features!r})"
        )
