"""Alignment algorithms and evaluation metrics.

This submodule provides:
    - Online time warping against a reference feature sequence
    - Offline replay of the streaming follower over a full recording
    - Reference-to-live time mapping through an alignment path
    - Onset error metrics for evaluation
"""

from .otw import (
    AlignmentPath,
    CostWindow,
    Direction,
    OnlineTimeWarping,
    RunState,
)
from .offline import precompute_alignment_path
from .warping import calculate_warped_times, path_to_times
from .metrics import (
    evaluate_warped_times,
    frame_to_time,
    is_valid_path,
    longest_run,
    onset_error,
    time_to_frame,
)
