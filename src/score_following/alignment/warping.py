"""Map reference timestamps onto live timestamps through an alignment path."""

from typing import List, Optional, Sequence, Tuple

import numpy as np


def path_to_times(
    path: Sequence[Tuple[int, int]],
    frame_duration: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Convert (reference, live) frame indices to seconds on both axes.

    Args:
        path: Alignment path of (reference_index, live_index) pairs.
        frame_duration: Duration of one frame in seconds.

    Returns:
        Tuple of (reference_times, live_times) arrays.
    """
    if len(path) == 0:
        return np.zeros(0), np.zeros(0)
    indices = np.asarray(path, dtype=np.float64)
    return indices[:, 0] * frame_duration, indices[:, 1] * frame_duration


def calculate_warped_times(
    path: Sequence[Tuple[int, int]],
    frame_duration: float,
    ref_times: Sequence[float],
) -> List[Optional[float]]:
    """Estimate live timestamps for reference timestamps.

    Each query is resolved independently: the path sample whose reference
    time is closest (first one on ties) is paired with its predecessor when
    the sample lies at or after the query, otherwise with its successor, and
    the live time is interpolated linearly across that pair. The fraction is
    clamped to [0, 1], so queries before the first or after the last sample
    return the boundary live time.

    Args:
        path: Alignment path of (reference_index, live_index) pairs.
        frame_duration: Duration of one frame in seconds (both axes).
        ref_times: Reference timestamps in seconds.

    Returns:
        One live timestamp per query, or None for every query if the path is
        empty.
    """
    if frame_duration <= 0:
        raise ValueError(f"frame_duration must be positive, got {frame_duration}")
    if len(path) == 0:
        return [None] * len(ref_times)

    ref_path_times, live_path_times = path_to_times(path, frame_duration)
    last = len(ref_path_times) - 1

    warped_times: List[Optional[float]] = []
    for query_time in ref_times:
        diffs = ref_path_times - query_time
        idx = int(np.argmin(np.abs(diffs)))

        if diffs[idx] >= 0 and idx > 0:
            left_idx, right_idx = idx - 1, idx
        elif idx < last:
            left_idx, right_idx = idx, idx + 1
        else:
            warped_times.append(float(live_path_times[idx]))
            continue

        fraction = (query_time - ref_path_times[left_idx]) / frame_duration
        fraction = min(max(fraction, 0.0), 1.0)

        live_span = live_path_times[right_idx] - live_path_times[left_idx]
        warped_times.append(float(live_path_times[left_idx] + live_span * fraction))

    return warped_times
