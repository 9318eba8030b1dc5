"""Feature extractor interface and feature sequences.

A feature extractor turns one fixed-length audio frame into one
low-dimensional, non-negative, unit-norm vector and defines the distance
used to compare two such vectors.
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

import numpy as np
from scipy.spatial.distance import cdist

from ..config import DEFAULT_SAMPLE_RATE, DEFAULT_WIN_LEN, N_CHROMA
from ..errors import FeatureMismatch

logger = logging.getLogger(__name__)


class FeatureSequence:
    """Append-only sequence of feature vectors.

    Once frozen (the reference sequence after it is built) no further
    vectors may be appended.
    """

    def __init__(self, n_features: int = N_CHROMA):
        self.n_features = n_features
        self._vectors: List[np.ndarray] = []
        self._array: Optional[np.ndarray] = None
        self.frozen = False

    def append(self, vector: np.ndarray) -> None:
        if self.frozen:
            raise RuntimeError("Cannot append to a frozen feature sequence")
        self._vectors.append(vector)
        self._array = None

    def freeze(self) -> "FeatureSequence":
        self.frozen = True
        return self

    def as_array(self) -> np.ndarray:
        """Return the sequence as a [num_frames, n_features] array."""
        if self._array is None:
            if self._vectors:
                self._array = np.stack(self._vectors)
            else:
                self._array = np.zeros((0, self.n_features))
            if self.frozen:
                self._array.setflags(write=False)
        return self._array

    def __len__(self) -> int:
        return len(self._vectors)

    def __getitem__(self, idx):
        return self._vectors[idx]

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self._vectors)


def num_frames(num_samples: int, win_len: int, hop_len: int) -> int:
    """Number of frames needed to cover a signal, last one zero-padded."""
    if num_samples <= 0:
        return 0
    if num_samples <= win_len:
        return 1
    return 1 + math.ceil((num_samples - win_len) / hop_len)


class FeatureExtractor(ABC):
    """Capability interface: ``extract`` a frame, ``compare`` two features.

    Subclasses implement ``make_feature`` on a frame that is already
    validated and zero-padded to ``win_len``.
    """

    n_features = N_CHROMA

    def __init__(
        self,
        sr: int = DEFAULT_SAMPLE_RATE,
        win_len: int = DEFAULT_WIN_LEN,
        hop_len: Optional[int] = None,
    ):
        self.sr = sr
        self.win_len = win_len
        self.hop_len = hop_len or win_len
        self.featuregram = FeatureSequence(self.n_features)
        self.net_encoding_time = 0.0

    @abstractmethod
    def make_feature(self, frame: np.ndarray) -> np.ndarray:
        """Compute the feature of a padded, finite frame of length win_len."""

    @abstractmethod
    def clone_empty(self) -> "FeatureExtractor":
        """Return a new extractor with the same parameters and no history."""

    def snapshot(self):
        """Opaque copy of any per-stream state ``make_feature`` mutates."""
        return None

    def restore(self, state) -> None:
        pass

    def prepare_frame(self, frame) -> np.ndarray:
        """Validate a frame and zero-pad it on the right to win_len.

        Raises:
            FeatureMismatch: If the frame is not 1-D, longer than win_len,
                or contains NaN/inf samples.
        """
        try:
            samples = np.asarray(frame, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise FeatureMismatch(f"Audio frame is not numeric: {e}") from e

        if samples.ndim != 1:
            raise FeatureMismatch(f"Audio frame must be 1-D, got shape {samples.shape}")
        if samples.shape[0] > self.win_len:
            raise FeatureMismatch(
                f"Audio frame has {samples.shape[0]} samples, window is {self.win_len}"
            )
        if not np.all(np.isfinite(samples)):
            raise FeatureMismatch("Audio frame contains NaN or inf samples")

        if samples.shape[0] < self.win_len:
            samples = np.pad(samples, (0, self.win_len - samples.shape[0]))
        return samples

    def extract(self, frame) -> np.ndarray:
        return self.make_feature(self.prepare_frame(frame))

    def insert(self, frame) -> np.ndarray:
        """Extract a feature and append it to this extractor's featuregram."""
        start = time.perf_counter()
        feature = self.extract(frame)
        self.net_encoding_time += time.perf_counter() - start
        logger.debug("Net feature encoding time is %.1fms", self.net_encoding_time * 1000)

        self.featuregram.append(feature)
        return feature

    def compare(self, a: np.ndarray, b: np.ndarray) -> float:
        """Euclidean distance between two normalised features.

        Symmetric, and exactly zero for identical vectors.
        """
        return float(cdist(np.atleast_2d(a), np.atleast_2d(b), metric="euclidean")[0, 0])

    def compare_many(self, rows: np.ndarray, feature: np.ndarray) -> np.ndarray:
        """Distances from each row of ``rows`` to ``feature``."""
        return cdist(rows, np.atleast_2d(feature), metric="euclidean")[:, 0]

    def normalize(self, vector: np.ndarray, energy_floor: float) -> np.ndarray:
        """L2-normalise, mapping near-silent vectors to the uniform vector."""
        norm = np.linalg.norm(vector)
        if not norm > energy_floor:
            return np.full(self.n_features, 1.0 / np.sqrt(self.n_features))
        return vector / norm

    def process_audio(self, samples: np.ndarray) -> FeatureSequence:
        """Insert every hop of ``samples`` and freeze the featuregram.

        The trailing partial window is zero-padded, so the sequence lines up
        with a live stream of consecutive frames of the same audio.
        """
        samples = np.asarray(samples, dtype=np.float64)
        count = num_frames(len(samples), self.win_len, self.hop_len)
        for m in range(count):
            position = m * self.hop_len
            self.insert(samples[position:position + self.win_len])
        return self.featuregram.freeze()

    @classmethod
    def from_audio(cls, samples: np.ndarray, **kwargs) -> "FeatureExtractor":
        """Build an extractor whose featuregram covers ``samples``."""
        extractor = cls(**kwargs)
        extractor.process_audio(samples)
        return extractor
