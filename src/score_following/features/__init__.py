"""Audio frame features for alignment.

This submodule provides:
    - FeatureExtractor: extract/compare interface and frame padding
    - ChromaFeatures: per-frame chromagram
    - CENSFeatures: quantised, causally smoothed chroma
"""

from .base import FeatureExtractor, FeatureSequence, num_frames
from .chroma import (
    FEATURE_CLASSES,
    CENSFeatures,
    ChromaFeatures,
    get_feature_class,
)
